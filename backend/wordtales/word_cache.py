"""Shared dictionary of word entries keyed by lower-cased word.

Two fill paths exist. Interactive lookups are read-through for a single
word. Story ingestion computes the missing words of a story and fetches
them in bounded batches that run concurrently; nothing is persisted
until every batch has produced a result, and failed batches yield stub
entries rather than gaps.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from sqlalchemy.orm import Session

from .annotation import unique_words
from .models import WordDictionaryRow
from .schemas import WordEntry, normalize_word

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


class WordLookup(Protocol):
	async def lookup_words(self, words: List[str]) -> Dict[str, WordEntry]:
		...


class SqlWordStore:
	def __init__(self, db: Session) -> None:
		self.db = db

	def get(self, word: str) -> Optional[WordEntry]:
		row = self.db.get(WordDictionaryRow, word)
		if row is None:
			return None
		return WordEntry.model_validate(row.details)

	def get_many(self, words: Iterable[str]) -> Dict[str, WordEntry]:
		keys = list(words)
		if not keys:
			return {}
		rows = self.db.query(WordDictionaryRow).filter(WordDictionaryRow.word.in_(keys)).all()
		return {row.word: WordEntry.model_validate(row.details) for row in rows}

	def put_many(self, entries: Dict[str, WordEntry]) -> None:
		# Last write wins; there is no revision check
		now = datetime.utcnow()
		for word, entry in entries.items():
			row = self.db.get(WordDictionaryRow, word)
			if row is None:
				row = WordDictionaryRow(word=word)
			row.details = entry.model_dump()
			row.updated_at = now
			self.db.add(row)
		self.db.commit()

	def all(self) -> Dict[str, WordEntry]:
		rows = self.db.query(WordDictionaryRow).order_by(WordDictionaryRow.word).all()
		return {row.word: WordEntry.model_validate(row.details) for row in rows}


class WordCache:
	def __init__(self, store) -> None:
		self.store = store

	def get(self, word: str) -> Optional[WordEntry]:
		return self.store.get(normalize_word(word))

	def get_many(self, words: Iterable[str]) -> Dict[str, WordEntry]:
		return self.store.get_many(unique_words(words))

	def put(self, word: str, entry: WordEntry) -> None:
		self.put_many({word: entry})

	def put_many(self, entries: Dict[str, WordEntry]) -> None:
		normalized: Dict[str, WordEntry] = {}
		for word, entry in entries.items():
			key = normalize_word(word)
			normalized[key] = entry.model_copy(update={"word": key})
		if normalized:
			self.store.put_many(normalized)

	def missing(self, words: Iterable[str]) -> List[str]:
		wanted = unique_words(words)
		present = self.store.get_many(wanted)
		return [w for w in wanted if w not in present]


def chunked(words: List[str], size: int) -> List[List[str]]:
	size = max(1, int(size))
	return [words[i:i + size] for i in range(0, len(words), size)]


async def lookup_with_stubs(
	lookup: WordLookup,
	words: Iterable[str],
	*,
	batch_size: int = DEFAULT_BATCH_SIZE,
	on_batch: Optional[Callable[[Dict[str, WordEntry]], None]] = None,
) -> Dict[str, WordEntry]:
	"""Look up ``words`` in concurrent batches; every word gets an entry.

	``on_batch`` is called with each batch's results as it completes.
	"""
	wanted = unique_words(words)

	async def _one(batch: List[str]) -> Dict[str, WordEntry]:
		try:
			found = await lookup.lookup_words(batch)
		except Exception as exc:
			logger.warning("word lookup failed for %s: %s", ", ".join(batch), exc)
			found = {}
		found = {normalize_word(k): v for k, v in (found or {}).items()}
		result: Dict[str, WordEntry] = {}
		for word in batch:
			entry = found.get(word)
			result[word] = entry.model_copy(update={"word": word}) if entry is not None else WordEntry.stub(word)
		if on_batch is not None:
			on_batch(result)
		return result

	merged: Dict[str, WordEntry] = {}
	for part in await asyncio.gather(*(_one(b) for b in chunked(wanted, batch_size))):
		merged.update(part)
	return merged


async def fill_missing(
	cache: WordCache,
	words: Iterable[str],
	lookup: WordLookup,
	*,
	batch_size: int = DEFAULT_BATCH_SIZE,
) -> Dict[str, WordEntry]:
	"""Fetch and persist the entries ``cache`` lacks; returns what was written."""
	missing = cache.missing(words)
	if not missing:
		return {}
	fetched = await lookup_with_stubs(lookup, missing, batch_size=batch_size)
	cache.put_many(fetched)
	return fetched


async def read_through(cache: WordCache, word: str, lookup: WordLookup) -> WordEntry:
	cached = cache.get(word)
	if cached is not None:
		return cached
	return await refresh_word(cache, word, lookup)


async def refresh_word(cache: WordCache, word: str, lookup: WordLookup) -> WordEntry:
	"""Single-word lookup. Only entries with a definition are persisted."""
	key = normalize_word(word)
	entry = (await lookup_with_stubs(lookup, [key], batch_size=1))[key]
	if entry.has_definition:
		cache.put(key, entry)
	return entry
