import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="wordtales-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["SEED_DEMO_CONTENT"] = "false"
os.environ["REVIEW_REQUIRED"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.pop("SEED_ADMIN_PHONE", None)
os.environ.pop("GEMINI_API_KEY", None)

from typing import Dict, Iterable, List

import pytest

from wordtales.db import Base, SessionLocal, engine
from wordtales.content_tree import get_content_tree
from wordtales.errors import ExternalServiceFailure
from wordtales.models import AuthUser
from wordtales.review import get_review_board
from wordtales.routers import quiz as quiz_router
from wordtales.routers.auth import hash_password
from wordtales.schemas import Definition, ExampleSentence, WordEntry


def entry(word: str, meaning: str, pos: str = "n.") -> WordEntry:
	return WordEntry(
		word=word,
		phonetic=f"/{word}/",
		definitions=[Definition(partOfSpeech=pos, meaning=meaning)],
		examples=[ExampleSentence(english=f"A {word}.", chinese=meaning)],
	)


class FakeLookup:
	"""Stands in for the generative-AI lookup service."""

	def __init__(self, known: Dict[str, WordEntry] | None = None, *, fail: bool = False) -> None:
		self.known = dict(known or {})
		self.fail = fail
		self.calls: List[List[str]] = []

	async def lookup_words(self, words: List[str]) -> Dict[str, WordEntry]:
		self.calls.append(list(words))
		if self.fail:
			raise ExternalServiceFailure("model unavailable")
		return {w: self.known[w] for w in words if w in self.known}


class DictStore:
	def __init__(self, entries: Dict[str, WordEntry] | None = None) -> None:
		self.entries = dict(entries or {})

	def get(self, word: str):
		return self.entries.get(word)

	def get_many(self, words: Iterable[str]):
		return {w: self.entries[w] for w in words if w in self.entries}

	def put_many(self, entries: Dict[str, WordEntry]) -> None:
		self.entries.update(entries)


@pytest.fixture(autouse=True)
def fresh_state():
	Base.metadata.drop_all(bind=engine)
	Base.metadata.create_all(bind=engine)
	get_content_tree().invalidate()
	get_review_board().clear()
	quiz_router._sessions.clear()
	quiz_router._owners.clear()
	yield


@pytest.fixture
def db():
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()


def create_user(db, phone: str, password: str = "secret123", role: str = "user", email: str | None = None) -> AuthUser:
	row = AuthUser(phone=phone, password_hash=hash_password(password), email=email, role=role)
	db.add(row)
	db.commit()
	return row
