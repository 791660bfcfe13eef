"""Per-story caching → reviewing → published lifecycle.

Creating or editing a story always starts from ``caching`` and extracts
its words again. Stories whose words are all cached publish directly.
Otherwise the missing words are looked up in the background and an
admin reviews the results; confirming persists the reviewed entries,
cancelling publishes anyway and drops the unsaved edits.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple, Union

from .annotation import extract_words
from .content_store import ContentStore
from .content_tree import ContentTree
from .errors import NotFound, ValidationFailure
from .schemas import Story, StoryStatus, WordEntry
from .word_cache import DEFAULT_BATCH_SIZE, WordCache, WordLookup, fill_missing, lookup_with_stubs

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
	StoryStatus.caching: {StoryStatus.caching, StoryStatus.reviewing, StoryStatus.published},
	StoryStatus.reviewing: {StoryStatus.caching, StoryStatus.published},
	StoryStatus.published: {StoryStatus.caching},
}


def check_transition(current: StoryStatus, target: StoryStatus) -> None:
	if target not in ALLOWED_TRANSITIONS[current]:
		raise ValidationFailure(f"story cannot move from {current.value} to {target.value}")


class ReviewTicket:
	def __init__(self, story: Story, words: List[str]) -> None:
		self.story_id = story.id
		self.title = story.title
		self.words = list(words)
		self.entries: Dict[str, Optional[WordEntry]] = {w: None for w in self.words}
		self.task: Optional[asyncio.Task] = None

	def receive(self, batch: Dict[str, WordEntry]) -> None:
		for word, entry in batch.items():
			if word in self.entries:
				self.entries[word] = entry

	@property
	def loading(self) -> List[str]:
		return [w for w in self.words if self.entries[w] is None]

	@property
	def complete(self) -> bool:
		return not self.loading

	def snapshot(self) -> Dict[str, Union[str, dict]]:
		return {
			w: (e.model_dump() if e is not None else "loading")
			for w, e in self.entries.items()
		}


class ReviewBoard:
	"""Reviews waiting for an admin, keyed by story id."""

	def __init__(self) -> None:
		self._tickets: Dict[str, ReviewTicket] = {}

	def open(self, story: Story, words: List[str]) -> ReviewTicket:
		ticket = ReviewTicket(story, words)
		self._tickets[story.id] = ticket
		return ticket

	def get(self, story_id: str) -> Optional[ReviewTicket]:
		return self._tickets.get(story_id)

	def close(self, story_id: str) -> Optional[ReviewTicket]:
		return self._tickets.pop(story_id, None)

	def pending(self) -> List[ReviewTicket]:
		return list(self._tickets.values())

	def clear(self) -> None:
		self._tickets.clear()


_board = ReviewBoard()


def get_review_board() -> ReviewBoard:
	return _board


class StoryLifecycle:
	def __init__(
		self,
		store: ContentStore,
		tree: ContentTree,
		cache: WordCache,
		lookup: WordLookup,
		board: ReviewBoard,
		*,
		review_required: bool = True,
		batch_size: int = DEFAULT_BATCH_SIZE,
	) -> None:
		self.store = store
		self.tree = tree
		self.cache = cache
		self.lookup = lookup
		self.board = board
		self.review_required = review_required
		self.batch_size = batch_size

	async def create(self, series_id: str, title: str, content: str) -> Tuple[Story, Optional[ReviewTicket]]:
		order = self.tree.next_order(self.store, series_id)
		story = self.store.add_story(series_id, title, content, StoryStatus.caching, order)
		self.tree.put_story(self.store, series_id, story)
		logger.info("story %s created in series %s at position %d", story.id, series_id, order)
		return await self._evaluate(series_id, story)

	async def edit(self, story_id: str, title: str, content: str) -> Tuple[Story, Optional[ReviewTicket]]:
		current = self.store.get_story(story_id)
		check_transition(current.status, StoryStatus.caching)
		# A pending review is dropped only once the edit itself is accepted
		story = self.store.update_story(story_id, title=title, content=content, status=StoryStatus.caching)
		self.board.close(story_id)
		series_id = self.store.series_of_story(story_id)
		self.tree.put_story(self.store, series_id, story)
		logger.info("story %s: %s -> %s", story_id, current.status.value, StoryStatus.caching.value)
		return await self._evaluate(series_id, story)

	async def _evaluate(self, series_id: str, story: Story) -> Tuple[Story, Optional[ReviewTicket]]:
		missing = self.cache.missing(extract_words(story.content))
		if not missing:
			return self._advance(series_id, story, StoryStatus.published), None
		if self.review_required:
			story = self._advance(series_id, story, StoryStatus.reviewing)
			ticket = self.board.open(story, missing)
			ticket.task = asyncio.create_task(self._fetch(ticket))
			return story, ticket
		await fill_missing(self.cache, missing, self.lookup, batch_size=self.batch_size)
		return self._advance(series_id, story, StoryStatus.published), None

	async def _fetch(self, ticket: ReviewTicket) -> None:
		try:
			await lookup_with_stubs(self.lookup, ticket.words, batch_size=self.batch_size, on_batch=ticket.receive)
		except Exception:
			logger.exception("background lookup for story %s failed", ticket.story_id)
			ticket.receive({w: WordEntry.stub(w) for w in ticket.loading})

	def _advance(self, series_id: str, story: Story, target: StoryStatus) -> Story:
		check_transition(story.status, target)
		updated = self.store.update_story(story.id, status=target)
		self.tree.put_story(self.store, series_id, updated)
		logger.info("story %s: %s -> %s", story.id, story.status.value, target.value)
		return updated

	def _reviewing_story(self, story_id: str) -> Story:
		story = self.store.get_story(story_id)
		if story.status != StoryStatus.reviewing:
			raise ValidationFailure(f"story {story_id} is not awaiting review")
		return story

	async def confirm(self, story_id: str, edited: Optional[Dict[str, WordEntry]] = None) -> Story:
		"""Persist the reviewed entries and publish.

		Waits for any outstanding lookups first, so every reviewed word is
		written together.
		"""
		story = self._reviewing_story(story_id)
		ticket = self.board.get(story_id)
		entries: Dict[str, WordEntry] = {}
		if ticket is not None:
			if ticket.task is not None:
				await ticket.task
			entries.update({w: e for w, e in ticket.entries.items() if e is not None})
		entries.update(edited or {})
		if ticket is None and not entries:
			raise NotFound(f"no review pending for story {story_id}", resource="Story")
		self.cache.put_many(entries)
		self.board.close(story_id)
		return self._advance(self.store.series_of_story(story_id), story, StoryStatus.published)

	async def cancel(self, story_id: str) -> Story:
		# Publishing on cancel keeps a story from staying hidden behind an abandoned review
		story = self._reviewing_story(story_id)
		self.board.close(story_id)
		return self._advance(self.store.series_of_story(story_id), story, StoryStatus.published)
