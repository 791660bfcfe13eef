"""Multiple-choice quizzes over cached word entries.

The generator only reads the cache it is given and draws every shuffle
from the injected random source, so a seeded ``random.Random`` makes a
quiz reproducible.
"""
from __future__ import annotations

import random
import uuid
from typing import Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from .annotation import unique_words
from .errors import ValidationFailure

MAX_DISTRACTORS = 3
MIN_QUIZ_WORDS = 2


class Question(BaseModel):
	word: str
	correctAnswer: str
	options: List[str]


class QuizOutcome(BaseModel):
	correctlyAnswered: Set[str] = Field(default_factory=set)
	incorrectlyAnswered: Set[str] = Field(default_factory=set)
	score: int = 0
	total: int = 0


def build_quiz(words: Iterable[str], cache, rng: Optional[random.Random] = None) -> List[Question]:
	rng = rng or random.Random()
	wanted = unique_words(words)
	entries = cache.get_many(wanted)
	eligible = [w for w in wanted if w in entries and entries[w].has_definition]
	if len(eligible) < MIN_QUIZ_WORDS:
		return []

	meanings = {w: entries[w].definitions[0].meaning for w in eligible}
	distractor_count = min(MAX_DISTRACTORS, len(eligible) - 1)
	questions: List[Question] = []
	for word in eligible:
		others = [w for w in eligible if w != word]
		rng.shuffle(others)
		distractors = [meanings[w] for w in others[:distractor_count]]
		if len(distractors) < distractor_count:
			continue
		options = [meanings[word]] + distractors
		rng.shuffle(options)
		questions.append(Question(word=word, correctAnswer=meanings[word], options=options))
	rng.shuffle(questions)
	return questions


class QuizSession:
	"""Linear run through a question list; one recorded answer per question."""

	def __init__(self, questions: List[Question], *, source: str, title: str = "") -> None:
		self.session_id: str = uuid.uuid4().hex
		self.questions = questions
		self.source = source
		self.title = title
		self.answers: List[str] = []

	@property
	def finished(self) -> bool:
		return len(self.answers) >= len(self.questions)

	@property
	def current(self) -> Optional[Question]:
		if self.finished:
			return None
		return self.questions[len(self.answers)]

	def answer(self, choice: str) -> bool:
		question = self.current
		if question is None:
			raise ValidationFailure("quiz is already finished")
		self.answers.append(choice)
		return choice == question.correctAnswer

	def outcome(self) -> QuizOutcome:
		out = QuizOutcome(total=len(self.questions))
		for question, given in zip(self.questions, self.answers):
			if given == question.correctAnswer:
				out.correctlyAnswered.add(question.word)
			else:
				out.incorrectlyAnswered.add(question.word)
		out.score = len(out.correctlyAnswered)
		return out


def notebook_words_to_remove(outcome: QuizOutcome) -> List[str]:
	"""After a notebook quiz, words answered correctly may leave the notebook."""
	return sorted(outcome.correctlyAnswered)


def missed_words_to_add(outcome: QuizOutcome, favorites: Iterable[str]) -> List[str]:
	"""After a story quiz, missed words not yet in the notebook are offered."""
	saved = set(unique_words(favorites))
	return sorted(w for w in outcome.incorrectlyAnswered if w not in saved)


def pick_notebook_words(favorites: List[str], limit: int, rng: Optional[random.Random] = None) -> List[str]:
	rng = rng or random.Random()
	words = unique_words(favorites)
	rng.shuffle(words)
	return words[:limit]
