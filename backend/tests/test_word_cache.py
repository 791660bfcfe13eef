import asyncio

from conftest import FakeLookup, entry

from wordtales.schemas import WordEntry
from wordtales.word_cache import (
	SqlWordStore,
	WordCache,
	chunked,
	fill_missing,
	lookup_with_stubs,
	read_through,
	refresh_word,
)


def test_saved_entry_round_trips(db):
	cache = WordCache(SqlWordStore(db))
	saved = entry("grief", "悲伤")
	cache.put("grief", saved)
	fetched = cache.get("grief")
	assert fetched.phonetic == saved.phonetic
	assert fetched.definitions == saved.definitions
	assert fetched.examples == saved.examples


def test_keys_are_case_insensitive(db):
	cache = WordCache(SqlWordStore(db))
	cache.put("Apple", entry("Apple", "苹果"))
	assert cache.get("APPLE").word == "apple"
	assert list(cache.get_many(["apple", "Apple"])) == ["apple"]
	assert cache.missing(["apple", "Pear", "pear"]) == ["pear"]


def test_chunked_caps_batch_size():
	assert chunked(list("abcdefg"), 3) == [["a", "b", "c"], ["d", "e", "f"], ["g"]]


def test_fill_missing_batches_and_persists(db):
	cache = WordCache(SqlWordStore(db))
	words = [f"word{i}" for i in range(25)]
	cache.put("word0", entry("word0", "已有"))
	lookup = FakeLookup({w: entry(w, w.upper()) for w in words})

	written = asyncio.run(fill_missing(cache, words, lookup, batch_size=10))

	assert len(written) == 24
	assert sorted(len(c) for c in lookup.calls) == [4, 10, 10]
	assert "word0" not in sum(lookup.calls, [])
	assert cache.missing(words) == []
	assert cache.get("word0").definitions[0].meaning == "已有"


def test_failed_batch_persists_stubs_for_every_word(db):
	cache = WordCache(SqlWordStore(db))
	words = ["alpha", "beta", "gamma", "delta", "omega"]

	asyncio.run(fill_missing(cache, words, FakeLookup(fail=True)))

	stored = cache.get_many(words)
	assert sorted(stored) == sorted(words)
	for word in words:
		assert stored[word].definitions == []
		assert stored[word].examples == []
		assert stored[word].phonetic == ""


def test_omitted_words_become_stubs():
	lookup = FakeLookup({"cat": entry("cat", "猫")})
	result = asyncio.run(lookup_with_stubs(lookup, ["cat", "dog"]))
	assert result["cat"].has_definition
	assert result["dog"] == WordEntry.stub("dog")


def test_one_failed_batch_does_not_affect_others():
	class HalfBroken(FakeLookup):
		async def lookup_words(self, words):
			if "b" in words:
				raise RuntimeError("boom")
			return await super().lookup_words(words)

	lookup = HalfBroken({"a": entry("a", "甲"), "b": entry("b", "乙")})
	result = asyncio.run(lookup_with_stubs(lookup, ["a", "b"], batch_size=1))
	assert result["a"].has_definition
	assert not result["b"].has_definition


def test_read_through_fetches_once(db):
	cache = WordCache(SqlWordStore(db))
	lookup = FakeLookup({"river": entry("river", "河流")})

	first = asyncio.run(read_through(cache, "River", lookup))
	second = asyncio.run(read_through(cache, "river", lookup))

	assert first.definitions[0].meaning == "河流"
	assert second == first
	assert lookup.calls == [["river"]]


def test_refresh_does_not_persist_empty_results(db):
	cache = WordCache(SqlWordStore(db))
	result = asyncio.run(refresh_word(cache, "zzz", FakeLookup(fail=True)))
	assert not result.has_definition
	assert cache.get("zzz") is None


def test_last_write_wins(db):
	cache = WordCache(SqlWordStore(db))
	cache.put("tree", entry("tree", "树"))
	cache.put("tree", entry("tree", "树木"))
	assert cache.get("tree").definitions[0].meaning == "树木"
