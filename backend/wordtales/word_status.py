from __future__ import annotations

import json
from typing import Iterable, List

from sqlalchemy.orm import Session

from .annotation import unique_words
from .models import UserWordList
from .schemas import normalize_word

FAVORITED = "favoritedWords"
LEARNED = "learnedWords"


class WordStatusStore:
	"""Per-user string-keyed JSON lists: the notebook and the learned set."""

	def __init__(self, db: Session, phone: str) -> None:
		self.db = db
		self.phone = phone

	def _row(self, key: str) -> UserWordList | None:
		return (
			self.db.query(UserWordList)
			.filter(UserWordList.phone == self.phone, UserWordList.key == key)
			.first()
		)

	def read(self, key: str) -> List[str]:
		row = self._row(key)
		if row is None:
			return []
		try:
			data = json.loads(row.value_json)
		except ValueError:
			return []
		return [str(w) for w in data] if isinstance(data, list) else []

	def write(self, key: str, words: Iterable[str]) -> List[str]:
		words = unique_words(words)
		row = self._row(key)
		if row is None:
			row = UserWordList(phone=self.phone, key=key)
			self.db.add(row)
		row.value_json = json.dumps(words, ensure_ascii=False)
		self.db.commit()
		return words

	def favorites(self) -> List[str]:
		return self.read(FAVORITED)

	def learned(self) -> List[str]:
		return self.read(LEARNED)

	def toggle_favorite(self, word: str) -> bool:
		"""Returns True when the word is now favorited."""
		key = normalize_word(word)
		current = self.favorites()
		if key in current:
			self.write(FAVORITED, [w for w in current if w != key])
			return False
		self.write(FAVORITED, current + [key])
		return True

	def add_favorites(self, words: Iterable[str]) -> List[str]:
		return self.write(FAVORITED, self.favorites() + list(words))

	def remove_favorites(self, words: Iterable[str]) -> List[str]:
		drop = set(unique_words(words))
		return self.write(FAVORITED, [w for w in self.favorites() if w not in drop])

	def mark_learned(self, word: str) -> None:
		key = normalize_word(word)
		current = self.learned()
		if key not in current:
			self.write(LEARNED, current + [key])
