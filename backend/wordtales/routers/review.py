from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_lifecycle
from ..errors import NotFound
from ..review import ReviewBoard, StoryLifecycle, get_review_board
from ..schemas import Story, User, WordEntry
from .auth import require_admin

router = APIRouter(prefix="/reviews", tags=["review"])


class ConfirmRequest(BaseModel):
	entries: Dict[str, WordEntry] = Field(default_factory=dict)


@router.get("")
async def list_reviews(admin: User = Depends(require_admin), board: ReviewBoard = Depends(get_review_board)):
	return [
		{"story_id": t.story_id, "title": t.title, "words": t.words, "loading": t.loading}
		for t in board.pending()
	]


@router.get("/{story_id}")
async def get_review(story_id: str, admin: User = Depends(require_admin), board: ReviewBoard = Depends(get_review_board)):
	ticket = board.get(story_id)
	if ticket is None:
		raise NotFound(f"no review pending for story {story_id}", resource="Story")
	return {
		"story_id": ticket.story_id,
		"title": ticket.title,
		"complete": ticket.complete,
		"entries": ticket.snapshot(),
	}


@router.post("/{story_id}/confirm", response_model=Story)
async def confirm_review(
	story_id: str,
	req: ConfirmRequest,
	admin: User = Depends(require_admin),
	lifecycle: StoryLifecycle = Depends(get_lifecycle),
):
	return await lifecycle.confirm(story_id, req.entries)


@router.post("/{story_id}/cancel", response_model=Story)
async def cancel_review(story_id: str, admin: User = Depends(require_admin), lifecycle: StoryLifecycle = Depends(get_lifecycle)):
	return await lifecycle.cancel(story_id)
