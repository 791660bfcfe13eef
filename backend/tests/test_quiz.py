import random

import pytest
from conftest import DictStore, entry

from wordtales.errors import ValidationFailure
from wordtales.quiz import (
	QuizSession,
	build_quiz,
	missed_words_to_add,
	notebook_words_to_remove,
	pick_notebook_words,
)
from wordtales.schemas import WordEntry
from wordtales.word_cache import WordCache


def make_cache(**meanings):
	return WordCache(DictStore({w: entry(w, m) for w, m in meanings.items()}))


def test_three_words_three_options_each():
	cache = make_cache(dog="狗", cat="猫", bird="鸟")
	meanings = {"dog": "狗", "cat": "猫", "bird": "鸟"}

	questions = build_quiz(["dog", "cat", "bird"], cache, random.Random(1))

	assert sorted(q.word for q in questions) == ["bird", "cat", "dog"]
	for q in questions:
		assert len(q.options) == 3
		assert q.correctAnswer == meanings[q.word]
		assert q.options.count(meanings[q.word]) == 1
		assert set(q.options) == set(meanings.values())


def test_distractors_capped_at_three():
	cache = make_cache(a="甲", b="乙", c="丙", d="丁", e="戊", f="己")
	questions = build_quiz(list("abcdef"), cache, random.Random(3))
	assert len(questions) == 6
	assert all(len(q.options) == 4 for q in questions)
	assert all(len(set(q.options)) == 4 for q in questions)


def test_fewer_than_two_eligible_words_gives_no_quiz():
	cache = WordCache(DictStore({
		"dog": entry("dog", "狗"),
		"ghost": WordEntry.stub("ghost"),
	}))
	assert build_quiz(["dog", "ghost", "unknown"], cache) == []
	assert build_quiz([], cache) == []
	assert build_quiz(["dog"], cache) == []


def test_words_without_definitions_are_dropped():
	cache = WordCache(DictStore({
		"dog": entry("dog", "狗"),
		"cat": entry("cat", "猫"),
		"ghost": WordEntry.stub("ghost"),
	}))
	questions = build_quiz(["dog", "ghost", "cat"], cache, random.Random(0))
	assert sorted(q.word for q in questions) == ["cat", "dog"]
	assert all(len(q.options) == 2 for q in questions)


def test_input_is_deduplicated_case_insensitively():
	cache = make_cache(dog="狗", cat="猫")
	questions = build_quiz(["Dog", "dog", "CAT"], cache, random.Random(0))
	assert sorted(q.word for q in questions) == ["cat", "dog"]


def test_seeded_random_source_is_reproducible():
	cache = make_cache(a="甲", b="乙", c="丙", d="丁", e="戊")
	first = build_quiz(list("abcde"), cache, random.Random(42))
	second = build_quiz(list("abcde"), cache, random.Random(42))
	assert first == second


def test_session_records_outcomes():
	cache = make_cache(dog="狗", cat="猫", bird="鸟")
	session = QuizSession(build_quiz(["dog", "cat", "bird"], cache, random.Random(5)), source="story")

	first = session.current
	assert session.answer(first.correctAnswer) is True
	second = session.current
	wrong = next(o for o in second.options if o != second.correctAnswer)
	assert session.answer(wrong) is False
	third = session.current
	session.answer(third.correctAnswer)

	assert session.finished
	assert session.current is None
	outcome = session.outcome()
	assert outcome.correctlyAnswered == {first.word, third.word}
	assert outcome.incorrectlyAnswered == {second.word}
	assert (outcome.score, outcome.total) == (2, 3)
	with pytest.raises(ValidationFailure):
		session.answer("anything")


def test_unanswered_questions_are_in_neither_set():
	cache = make_cache(dog="狗", cat="猫")
	session = QuizSession(build_quiz(["dog", "cat"], cache, random.Random(0)), source="notebook")
	session.answer(session.current.correctAnswer)
	outcome = session.outcome()
	assert len(outcome.correctlyAnswered) == 1
	assert outcome.incorrectlyAnswered == set()


def test_post_quiz_policies():
	cache = make_cache(dog="狗", cat="猫", bird="鸟")
	session = QuizSession(build_quiz(["dog", "cat", "bird"], cache, random.Random(9)), source="story")
	while not session.finished:
		q = session.current
		session.answer(q.correctAnswer if q.word == "dog" else "wrong")
	outcome = session.outcome()

	assert notebook_words_to_remove(outcome) == ["dog"]
	assert missed_words_to_add(outcome, ["Bird"]) == ["cat"]


def test_pick_notebook_words_caps_and_dedupes():
	words = [f"w{i}" for i in range(80)] + ["W1"]
	picked = pick_notebook_words(words, 50, random.Random(0))
	assert len(picked) == 50
	assert len(set(picked)) == 50
