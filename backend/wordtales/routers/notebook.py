from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import User, normalize_word
from ..word_status import WordStatusStore
from .auth import get_current_user

router = APIRouter(prefix="/notebook", tags=["notebook"])


class WordsRequest(BaseModel):
	words: List[str]


def get_word_status(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> WordStatusStore:
	return WordStatusStore(db, user.phone)


@router.get("")
async def get_notebook(status: WordStatusStore = Depends(get_word_status)):
	return {"favorited": status.favorites(), "learned": status.learned()}


@router.post("/favorites/add")
async def add_favorites(req: WordsRequest, status: WordStatusStore = Depends(get_word_status)):
	return {"favorited": status.add_favorites(req.words)}


@router.post("/favorites/remove")
async def remove_favorites(req: WordsRequest, status: WordStatusStore = Depends(get_word_status)):
	return {"favorited": status.remove_favorites(req.words)}


@router.post("/favorites/{word}")
async def toggle_favorite(word: str, status: WordStatusStore = Depends(get_word_status)):
	return {"word": normalize_word(word), "favorited": status.toggle_favorite(word)}
