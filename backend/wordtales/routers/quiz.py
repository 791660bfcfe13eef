from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..annotation import extract_words
from ..content_store import ContentStore
from ..content_tree import ContentTree, get_content_tree
from ..db import get_db
from ..deps import get_content_store, get_word_cache
from ..errors import NotFound, ValidationFailure
from ..quiz import (
	QuizOutcome,
	QuizSession,
	build_quiz,
	missed_words_to_add,
	notebook_words_to_remove,
	pick_notebook_words,
)
from ..schemas import StoryStatus, User
from ..settings import settings
from ..word_cache import WordCache
from ..word_status import WordStatusStore
from .auth import get_current_user

router = APIRouter(prefix="/quiz", tags=["quiz"])


class QuestionOut(BaseModel):
	number: int
	total: int
	word: str
	options: List[str]


class StartResponse(BaseModel):
	session_id: Optional[str] = None
	title: str
	total: int
	question: Optional[QuestionOut] = None


class AnswerRequest(BaseModel):
	session_id: str
	choice: str


class AnswerResponse(BaseModel):
	correct: bool
	correct_answer: str
	finished: bool
	next_question: Optional[QuestionOut] = None


class FinishResponse(BaseModel):
	outcome: QuizOutcome
	remove_from_notebook: List[str] = []
	add_to_notebook: List[str] = []


# Active sessions, keyed by session id; owner phone is checked on every call.
# Each user holds at most one: starting a quiz drops the previous one.
_sessions: Dict[str, QuizSession] = {}
_owners: Dict[str, str] = {}


def _drop_sessions_of(phone: str) -> None:
	for session_id in [sid for sid, owner in _owners.items() if owner == phone]:
		_sessions.pop(session_id, None)
		_owners.pop(session_id, None)


def _question_out(session: QuizSession) -> Optional[QuestionOut]:
	question = session.current
	if question is None:
		return None
	return QuestionOut(
		number=len(session.answers) + 1,
		total=len(session.questions),
		word=question.word,
		options=question.options,
	)


def _start(user: User, words: List[str], cache: WordCache, *, source: str, title: str) -> StartResponse:
	_drop_sessions_of(user.phone)
	questions = build_quiz(words, cache)
	if not questions:
		# Fewer than two quizzable words: nothing to ask
		return StartResponse(title=title, total=0)
	session = QuizSession(questions, source=source, title=title)
	_sessions[session.session_id] = session
	_owners[session.session_id] = user.phone
	return StartResponse(session_id=session.session_id, title=title, total=len(questions), question=_question_out(session))


def _session(session_id: str, user: User) -> QuizSession:
	session = _sessions.get(session_id)
	if session is None or _owners.get(session_id) != user.phone:
		raise NotFound("Session not found or expired", resource="QuizSession")
	return session


@router.post("/story/{story_id}", response_model=StartResponse)
async def start_story_quiz(
	story_id: str,
	user: User = Depends(get_current_user),
	store: ContentStore = Depends(get_content_store),
	tree: ContentTree = Depends(get_content_tree),
	cache: WordCache = Depends(get_word_cache),
):
	story = tree.story(store, story_id)
	if not user.is_admin and story.status != StoryStatus.published:
		raise NotFound(f"Story {story_id} not found", resource="Story")
	words = extract_words(story.content)
	if not words:
		raise ValidationFailure("this story has no words to quiz")
	return _start(user, words, cache, source="story", title=story.title)


@router.post("/notebook", response_model=StartResponse)
async def start_notebook_quiz(
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	cache: WordCache = Depends(get_word_cache),
):
	favorites = WordStatusStore(db, user.phone).favorites()
	if not favorites:
		raise ValidationFailure("the notebook is empty")
	words = pick_notebook_words(favorites, settings.notebook_quiz_limit)
	return _start(user, words, cache, source="notebook", title="Notebook quiz")


@router.post("/answer", response_model=AnswerResponse)
async def answer(req: AnswerRequest, user: User = Depends(get_current_user)):
	session = _session(req.session_id, user)
	question = session.current
	if question is None:
		raise ValidationFailure("quiz is already finished")
	correct = session.answer(req.choice)
	return AnswerResponse(
		correct=correct,
		correct_answer=question.correctAnswer,
		finished=session.finished,
		next_question=_question_out(session),
	)


@router.post("/{session_id}/finish", response_model=FinishResponse)
async def finish(session_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	session = _session(session_id, user)
	outcome = session.outcome()
	_sessions.pop(session_id, None)
	_owners.pop(session_id, None)
	if session.source == "notebook":
		return FinishResponse(outcome=outcome, remove_from_notebook=notebook_words_to_remove(outcome))
	favorites = WordStatusStore(db, user.phone).favorites()
	return FinishResponse(outcome=outcome, add_to_notebook=missed_words_to_add(outcome, favorites))
