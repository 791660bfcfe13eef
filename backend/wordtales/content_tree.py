"""In-memory library → series → story hierarchy with lazy expansion.

Each level is fetched from the store at most once; later calls serve
from memory. Writes go to the store first and are mirrored here only
after they succeed.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Set

from .content_store import ContentStore
from .errors import NotFound, ValidationFailure
from .schemas import Story, StorySeries, StoryStatus, User, VocabularyLibrary


class ContentTree:
	def __init__(self) -> None:
		self._libraries: Optional[List[VocabularyLibrary]] = None
		self._series_loaded: Set[str] = set()
		self._stories_loaded: Set[str] = set()

	def invalidate(self) -> None:
		self._libraries = None
		self._series_loaded.clear()
		self._stories_loaded.clear()

	# Lazy loading

	def load_libraries(self, store: ContentStore) -> List[VocabularyLibrary]:
		if self._libraries is None:
			self._libraries = store.list_libraries()
		return self._libraries

	def load_series(self, store: ContentStore, library_id: str) -> List[StorySeries]:
		library = self._library(store, library_id)
		if library_id not in self._series_loaded:
			library.series = store.list_series(library_id)
			self._series_loaded.add(library_id)
		return library.series

	def load_stories(self, store: ContentStore, series_id: str) -> List[Story]:
		series = self._series(store, series_id)
		if series_id not in self._stories_loaded:
			series.stories = store.list_stories(series_id)
			self._stories_loaded.add(series_id)
		return series.stories

	def _library(self, store: ContentStore, library_id: str) -> VocabularyLibrary:
		for library in self.load_libraries(store):
			if library.id == library_id:
				return library
		raise NotFound(f"VocabularyLibrary {library_id} not found", resource="VocabularyLibrary")

	def _series(self, store: ContentStore, series_id: str) -> StorySeries:
		library_id = store.library_of_series(series_id)
		for series in self.load_series(store, library_id):
			if series.id == series_id:
				return series
		raise NotFound(f"StorySeries {series_id} not found", resource="StorySeries")

	def story(self, store: ContentStore, story_id: str) -> Story:
		series_id = store.series_of_story(story_id)
		for story in self.load_stories(store, series_id):
			if story.id == story_id:
				return story
		raise NotFound(f"Story {story_id} not found", resource="Story")

	# Mirrors of successful writes

	def add_library(self, store: ContentStore, library: VocabularyLibrary) -> None:
		libraries = self.load_libraries(store)
		if all(l.id != library.id for l in libraries):
			libraries.append(library)
		self._series_loaded.add(library.id)

	def update_library(self, store: ContentStore, library: VocabularyLibrary) -> None:
		node = self._library(store, library.id)
		node.title = library.title
		node.description = library.description

	def add_series(self, store: ContentStore, library_id: str, series: StorySeries) -> None:
		siblings = self.load_series(store, library_id)
		if all(s.id != series.id for s in siblings):
			siblings.append(series)
		self._stories_loaded.add(series.id)

	def update_series(self, store: ContentStore, series: StorySeries) -> None:
		node = self._series(store, series.id)
		node.title = series.title
		node.description = series.description

	def next_order(self, store: ContentStore, series_id: str) -> int:
		return len(self.load_stories(store, series_id))

	def put_story(self, store: ContentStore, series_id: str, story: Story) -> None:
		stories = self.load_stories(store, series_id)
		for index, existing in enumerate(stories):
			if existing.id == story.id:
				stories[index] = story
				return
		stories.append(story)

	def remove_story(self, store: ContentStore, series_id: str, story_id: str) -> None:
		series = self._series(store, series_id)
		series.stories = [s for s in series.stories if s.id != story_id]

	def reorder(self, store: ContentStore, series_id: str, from_index: int, to_index: int) -> List[Story]:
		"""Move one story and persist the whole resulting order (0..n-1)."""
		stories = list(self.load_stories(store, series_id))
		if not (0 <= from_index < len(stories)) or not (0 <= to_index < len(stories)):
			raise ValidationFailure(f"reorder indices out of range for {len(stories)} stories")
		moved = stories.pop(from_index)
		stories.insert(to_index, moved)
		store.save_story_orders((story.id, index) for index, story in enumerate(stories))
		for index, story in enumerate(stories):
			story.order = index
		self._series(store, series_id).stories = stories
		return stories

	def snapshot(self, store: ContentStore) -> List[Dict]:
		"""Fully expanded tree, loading every level."""
		out = []
		for library in self.load_libraries(store):
			for series in self.load_series(store, library.id):
				self.load_stories(store, series.id)
			out.append(library.model_dump(mode="json"))
		return out


def visible_stories(stories: List[Story], user: Optional[User]) -> List[Story]:
	if user is not None and user.is_admin:
		return list(stories)
	return [s for s in stories if s.status == StoryStatus.published]


_tree = ContentTree()


def get_content_tree() -> ContentTree:
	return _tree
