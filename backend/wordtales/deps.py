from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from .content_store import ContentStore
from .content_tree import ContentTree, get_content_tree
from .db import get_db
from .review import ReviewBoard, StoryLifecycle, get_review_board
from .routers.auth import get_current_user
from .schemas import User
from .settings import settings
from .word_cache import SqlWordStore, WordCache, WordLookup
from .word_lookup import GeminiWordLookup


def get_word_lookup() -> WordLookup:
	return GeminiWordLookup()


def get_word_cache(db: Session = Depends(get_db)) -> WordCache:
	return WordCache(SqlWordStore(db))


def get_content_store(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> ContentStore:
	return ContentStore(db, user)


def get_lifecycle(
	store: ContentStore = Depends(get_content_store),
	tree: ContentTree = Depends(get_content_tree),
	cache: WordCache = Depends(get_word_cache),
	lookup: WordLookup = Depends(get_word_lookup),
	board: ReviewBoard = Depends(get_review_board),
) -> StoryLifecycle:
	return StoryLifecycle(
		store,
		tree,
		cache,
		lookup,
		board,
		review_required=settings.review_required,
		batch_size=settings.lookup_batch_size,
	)
