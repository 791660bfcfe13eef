from __future__ import annotations

import secrets
import string
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..content_store import ContentStore
from ..content_tree import ContentTree, get_content_tree
from ..db import get_db
from ..errors import NotFound, ValidationFailure
from ..models import ActivationCode, AuthSession, AuthUser, UserWordList
from ..schemas import User
from ..word_cache import SqlWordStore
from .auth import ensure_user_available, hash_password, require_admin, to_user

router = APIRouter(prefix="/admin", tags=["admin"])

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


class ActivationCodeOut(BaseModel):
	code: str
	isUsed: bool
	usedBy: Optional[str] = None
	usedAt: Optional[datetime] = None
	createdAt: datetime


class AddUserRequest(BaseModel):
	phone: str
	password: str
	email: Optional[str] = None


class GenerateCodesRequest(BaseModel):
	count: int = Field(default=1, ge=1, le=100)


def new_code() -> str:
	return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


@router.get("/users", response_model=List[User])
async def list_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	rows = db.query(AuthUser).order_by(AuthUser.created_at.desc()).all()
	return [to_user(r) for r in rows]


@router.post("/users", status_code=201, response_model=User)
async def add_user(req: AddUserRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	phone = (req.phone or "").strip()
	email = (req.email or "").strip() or None
	if not phone or not req.password:
		raise ValidationFailure("phone and password are required")
	ensure_user_available(db, phone, email)
	row = AuthUser(phone=phone, password_hash=hash_password(req.password), email=email, role="user", activation_code_used="ADMIN_CREATED")
	db.add(row)
	db.commit()
	return to_user(row)


@router.delete("/users/{phone}")
async def delete_user(phone: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	row = db.get(AuthUser, phone)
	if row is None:
		raise NotFound(f"user {phone} not found", resource="AuthUser")
	if row.phone == admin.phone:
		raise ValidationFailure("admins cannot delete their own account")
	db.query(AuthSession).filter(AuthSession.phone == phone).delete()
	db.query(UserWordList).filter(UserWordList.phone == phone).delete()
	db.delete(row)
	db.commit()
	return {"ok": True}


@router.get("/codes", response_model=List[ActivationCodeOut])
async def list_codes(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	rows = db.query(ActivationCode).order_by(ActivationCode.created_at.desc()).all()
	return [
		ActivationCodeOut(code=r.code, isUsed=r.is_used, usedBy=r.used_by, usedAt=r.used_at, createdAt=r.created_at)
		for r in rows
	]


@router.post("/codes", status_code=201, response_model=List[str])
async def generate_codes(req: GenerateCodesRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
	codes: List[str] = []
	while len(codes) < req.count:
		code = new_code()
		if code in codes or db.get(ActivationCode, code) is not None:
			continue
		codes.append(code)
	db.add_all([ActivationCode(code=c, is_used=False) for c in codes])
	db.commit()
	return codes


@router.get("/export")
async def export_data(
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
	tree: ContentTree = Depends(get_content_tree),
):
	store = ContentStore(db, admin)
	return {
		"exported_at": datetime.utcnow().isoformat(),
		"libraries": tree.snapshot(store),
		"dictionary": {w: e.model_dump() for w, e in SqlWordStore(db).all().items()},
	}
