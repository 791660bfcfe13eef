from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..annotation import AnnotatedSegment, extract_words, parse
from ..content_store import ContentStore
from ..content_tree import ContentTree, get_content_tree, visible_stories
from ..db import get_db
from ..deps import get_content_store, get_lifecycle
from ..errors import NotFound
from ..review import ReviewTicket, StoryLifecycle
from ..schemas import Story, StorySeries, StoryStatus, User, VocabularyLibrary
from ..word_status import WordStatusStore
from .auth import get_current_user

router = APIRouter(tags=["content"])


class TitledRequest(BaseModel):
	title: str
	description: str = ""


class StoryRequest(BaseModel):
	title: str
	content: str


class ReorderRequest(BaseModel):
	from_index: int
	to_index: int


class StoryWriteResponse(BaseModel):
	story: Story
	review: Optional[Dict[str, Any]] = None


def _review_payload(ticket: Optional[ReviewTicket]) -> Optional[Dict[str, Any]]:
	if ticket is None:
		return None
	return {"story_id": ticket.story_id, "words": ticket.words, "entries": ticket.snapshot()}


@router.get("/libraries", response_model=List[VocabularyLibrary])
async def list_libraries(store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	return [lib.model_copy(update={"series": []}) for lib in tree.load_libraries(store)]


@router.post("/libraries", status_code=201, response_model=VocabularyLibrary)
async def add_library(req: TitledRequest, store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	library = store.add_library(req.title, req.description)
	tree.add_library(store, library)
	return library


@router.put("/libraries/{library_id}", response_model=VocabularyLibrary)
async def update_library(library_id: str, req: TitledRequest, store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	library = store.update_library(library_id, req.title, req.description)
	tree.update_library(store, library)
	return library


@router.get("/libraries/{library_id}/series", response_model=List[StorySeries])
async def list_series(library_id: str, store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	return [s.model_copy(update={"stories": []}) for s in tree.load_series(store, library_id)]


@router.post("/libraries/{library_id}/series", status_code=201, response_model=StorySeries)
async def add_series(library_id: str, req: TitledRequest, store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	series = store.add_series(library_id, req.title, req.description)
	tree.add_series(store, library_id, series)
	return series


@router.put("/series/{series_id}", response_model=StorySeries)
async def update_series(series_id: str, req: TitledRequest, store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	series = store.update_series(series_id, req.title, req.description)
	tree.update_series(store, series)
	return series


@router.get("/series/{series_id}/stories", response_model=List[Story])
async def list_stories(
	series_id: str,
	user: User = Depends(get_current_user),
	store: ContentStore = Depends(get_content_store),
	tree: ContentTree = Depends(get_content_tree),
):
	return visible_stories(tree.load_stories(store, series_id), user)


@router.post("/series/{series_id}/stories", status_code=201, response_model=StoryWriteResponse)
async def add_story(series_id: str, req: StoryRequest, lifecycle: StoryLifecycle = Depends(get_lifecycle)):
	story, ticket = await lifecycle.create(series_id, req.title, req.content)
	return StoryWriteResponse(story=story, review=_review_payload(ticket))


@router.post("/series/{series_id}/reorder", response_model=List[Story])
async def reorder_stories(series_id: str, req: ReorderRequest, store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	return tree.reorder(store, series_id, req.from_index, req.to_index)


@router.get("/stories/{story_id}")
async def get_story(
	story_id: str,
	user: User = Depends(get_current_user),
	store: ContentStore = Depends(get_content_store),
	tree: ContentTree = Depends(get_content_tree),
	db: Session = Depends(get_db),
):
	story = tree.story(store, story_id)
	if not user.is_admin and story.status != StoryStatus.published:
		raise NotFound(f"Story {story_id} not found", resource="Story")
	status = WordStatusStore(db, user.phone)
	favorited = set(status.favorites())
	learned = set(status.learned())
	segments = []
	for segment in parse(story.content):
		item = segment.model_dump()
		if isinstance(segment, AnnotatedSegment):
			item["favorited"] = segment.normalized in favorited
			item["learned"] = segment.normalized in learned
		segments.append(item)
	return {"story": story, "words": extract_words(story.content), "segments": segments}


@router.put("/stories/{story_id}", response_model=StoryWriteResponse)
async def update_story(story_id: str, req: StoryRequest, lifecycle: StoryLifecycle = Depends(get_lifecycle)):
	story, ticket = await lifecycle.edit(story_id, req.title, req.content)
	return StoryWriteResponse(story=story, review=_review_payload(ticket))


@router.delete("/stories/{story_id}")
async def delete_story(story_id: str, store: ContentStore = Depends(get_content_store), tree: ContentTree = Depends(get_content_tree)):
	# Dictionary entries are shared between stories and stay behind
	series_id = store.series_of_story(story_id)
	store.delete_story(story_id)
	tree.remove_story(store, series_id, story_id)
	return {"ok": True}
