from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_word_cache, get_word_lookup
from ..errors import ValidationFailure
from ..schemas import User, WordEntry, normalize_word
from ..word_cache import WordCache, WordLookup, read_through, refresh_word
from ..word_status import WordStatusStore
from .auth import get_current_user, require_admin

router = APIRouter(prefix="/words", tags=["words"])


def _key(word: str) -> str:
	key = normalize_word(word)
	if not key:
		raise ValidationFailure("word is required")
	return key


@router.get("/{word}", response_model=WordEntry)
async def lookup_word(
	word: str,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	cache: WordCache = Depends(get_word_cache),
	lookup: WordLookup = Depends(get_word_lookup),
):
	key = _key(word)
	WordStatusStore(db, user.phone).mark_learned(key)
	return await read_through(cache, key, lookup)


@router.put("/{word}", response_model=WordEntry)
async def edit_word(word: str, entry: WordEntry, admin: User = Depends(require_admin), cache: WordCache = Depends(get_word_cache)):
	key = _key(word)
	cache.put(key, entry)
	return cache.get(key)


@router.post("/{word}/regenerate", response_model=WordEntry)
async def regenerate_word(
	word: str,
	admin: User = Depends(require_admin),
	cache: WordCache = Depends(get_word_cache),
	lookup: WordLookup = Depends(get_word_lookup),
):
	return await refresh_word(cache, _key(word), lookup)
