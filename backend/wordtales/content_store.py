from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from .errors import NotFound, PermissionDenied, ValidationFailure
from .models import StoryRow, StorySeriesRow, VocabularyLibraryRow
from .schemas import Story, StorySeries, StoryStatus, User, VocabularyLibrary


def _library(row: VocabularyLibraryRow) -> VocabularyLibrary:
	# Series are loaded lazily
	return VocabularyLibrary(id=row.id, title=row.title, description=row.description or "")


def _series(row: StorySeriesRow) -> StorySeries:
	return StorySeries(id=row.id, title=row.title, description=row.description or "")


def _story(row: StoryRow) -> Story:
	return Story(id=row.id, title=row.title, content=row.content, status=StoryStatus(row.status), order=row.order)


def _require_title(title: str) -> str:
	title = (title or "").strip()
	if not title:
		raise ValidationFailure("title is required")
	return title


class ContentStore:
	"""Library/series/story collections. Writes require the admin role."""

	def __init__(self, db: Session, actor: Optional[User] = None) -> None:
		self.db = db
		self.actor = actor

	def _require_admin(self, resource: str) -> None:
		if self.actor is not None and not self.actor.is_admin:
			raise PermissionDenied(f"write access to {resource} requires the admin role", resource=resource)

	def _get(self, model, id: str, resource: str):
		row = self.db.get(model, id)
		if row is None:
			raise NotFound(f"{resource} {id} not found", resource=resource)
		return row

	# Libraries

	def count_libraries(self) -> int:
		return self.db.query(VocabularyLibraryRow).count()

	def list_libraries(self) -> List[VocabularyLibrary]:
		rows = self.db.query(VocabularyLibraryRow).order_by(VocabularyLibraryRow.created_at.asc()).all()
		return [_library(r) for r in rows]

	def add_library(self, title: str, description: str = "") -> VocabularyLibrary:
		self._require_admin("VocabularyLibrary")
		row = VocabularyLibraryRow(title=_require_title(title), description=description or "")
		self.db.add(row)
		self.db.commit()
		return _library(row)

	def update_library(self, library_id: str, title: str, description: str = "") -> VocabularyLibrary:
		self._require_admin("VocabularyLibrary")
		row = self._get(VocabularyLibraryRow, library_id, "VocabularyLibrary")
		row.title = _require_title(title)
		row.description = description or ""
		self.db.commit()
		return _library(row)

	# Series

	def list_series(self, library_id: str) -> List[StorySeries]:
		self._get(VocabularyLibraryRow, library_id, "VocabularyLibrary")
		rows = (
			self.db.query(StorySeriesRow)
			.filter(StorySeriesRow.library_id == library_id)
			.order_by(StorySeriesRow.created_at.asc())
			.all()
		)
		return [_series(r) for r in rows]

	def add_series(self, library_id: str, title: str, description: str = "") -> StorySeries:
		self._require_admin("StorySeries")
		self._get(VocabularyLibraryRow, library_id, "VocabularyLibrary")
		row = StorySeriesRow(library_id=library_id, title=_require_title(title), description=description or "")
		self.db.add(row)
		self.db.commit()
		return _series(row)

	def update_series(self, series_id: str, title: str, description: str = "") -> StorySeries:
		self._require_admin("StorySeries")
		row = self._get(StorySeriesRow, series_id, "StorySeries")
		row.title = _require_title(title)
		row.description = description or ""
		self.db.commit()
		return _series(row)

	def library_of_series(self, series_id: str) -> str:
		return self._get(StorySeriesRow, series_id, "StorySeries").library_id

	# Stories

	def list_stories(self, series_id: str) -> List[Story]:
		self._get(StorySeriesRow, series_id, "StorySeries")
		rows = self.db.query(StoryRow).filter(StoryRow.series_id == series_id).all()
		# Stories without an order sort last, ties by creation time
		rows.sort(key=lambda r: (r.order is None, r.order or 0, r.created_at))
		return [_story(r) for r in rows]

	def get_story(self, story_id: str) -> Story:
		return _story(self._get(StoryRow, story_id, "Story"))

	def series_of_story(self, story_id: str) -> str:
		return self._get(StoryRow, story_id, "Story").series_id

	def add_story(self, series_id: str, title: str, content: str, status: StoryStatus, order: int) -> Story:
		self._require_admin("Story")
		self._get(StorySeriesRow, series_id, "StorySeries")
		if not (content or "").strip():
			raise ValidationFailure("content is required")
		row = StoryRow(series_id=series_id, title=_require_title(title), content=content, status=status.value, order=order)
		self.db.add(row)
		self.db.commit()
		return _story(row)

	def update_story(
		self,
		story_id: str,
		*,
		title: Optional[str] = None,
		content: Optional[str] = None,
		status: Optional[StoryStatus] = None,
	) -> Story:
		self._require_admin("Story")
		row = self._get(StoryRow, story_id, "Story")
		if title is not None:
			title = _require_title(title)
		if content is not None and not content.strip():
			raise ValidationFailure("content is required")
		if title is not None:
			row.title = title
		if content is not None:
			row.content = content
		if status is not None:
			row.status = status.value
		row.updated_at = datetime.utcnow()
		self.db.commit()
		return _story(row)

	def delete_story(self, story_id: str) -> None:
		self._require_admin("Story")
		row = self._get(StoryRow, story_id, "Story")
		self.db.delete(row)
		self.db.commit()

	def save_story_orders(self, assignments: Iterable[Tuple[str, int]]) -> None:
		"""Write a full ordering in one commit."""
		self._require_admin("Story")
		try:
			for story_id, order in assignments:
				row = self._get(StoryRow, story_id, "Story")
				row.order = order
		except NotFound:
			self.db.rollback()
			raise
		self.db.commit()
