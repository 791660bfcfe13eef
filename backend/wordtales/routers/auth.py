from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import secrets
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.orm import Session

from ..settings import settings
from ..db import get_db
from ..errors import Conflict, NotFound, PermissionDenied, ValidationFailure
from ..models import ActivationCode, AuthSession, AuthUser, PasswordReset
from ..schemas import User

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


def _bcrypt_safe(password: str) -> str:
	# bcrypt only considers the first 72 bytes
	password_bytes = (password or "").encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)


def to_user(row: AuthUser) -> User:
	return User(phone=row.phone, email=row.email, role=row.role, activation_code_used=row.activation_code_used)


def authenticate_user(db: Session, phone: str, password: str) -> Optional[User]:
	row = db.get(AuthUser, (phone or "").strip())
	if row and verify_password(password, row.password_hash):
		return to_user(row)
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def ensure_user_available(db: Session, phone: str, email: Optional[str]) -> None:
	if db.get(AuthUser, phone) is not None:
		raise Conflict("phone number is already registered", resource="AuthUser")
	if email and db.query(AuthUser).filter(AuthUser.email == email).first() is not None:
		raise Conflict("email is already registered", resource="AuthUser")


def ensure_seed_admin(db: Session) -> None:
	phone = settings.seed_admin_phone
	password = settings.seed_admin_password
	if not phone or not password or db.get(AuthUser, phone) is not None:
		return
	db.add(AuthUser(
		phone=phone,
		password_hash=hash_password(password),
		email=settings.seed_admin_email,
		role="admin",
		activation_code_used="SEED",
	))
	db.commit()
	logger.info("seed admin %s created", phone)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect phone or password")
	session_id = uuid.uuid4().hex
	access_token = create_access_token({"sub": user.phone, "jti": session_id})
	db.add(AuthSession(session_id=session_id, phone=user.phone))
	db.commit()
	return Token(access_token=access_token)


def _decode(token: str) -> tuple:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise credentials_exception
	phone: str | None = payload.get("sub")
	jti: str | None = payload.get("jti")
	if phone is None or jti is None:
		raise credentials_exception
	return phone, jti


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	phone, jti = _decode(token)
	# The session row must still exist; logout and admin deletion remove it
	row = db.get(AuthSession, jti)
	if not row or row.phone != phone:
		raise credentials_exception
	account = db.get(AuthUser, phone)
	if account is None:
		raise credentials_exception
	row.last_activity_at = datetime.utcnow()
	db.commit()
	return to_user(account)


def require_admin(user: User = Depends(get_current_user)) -> User:
	if not user.is_admin:
		raise PermissionDenied("this action requires the admin role", resource="admin")
	return user


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


@router.post("/logout")
async def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
	_, jti = _decode(token)
	row = db.get(AuthSession, jti)
	if row is not None:
		db.delete(row)
		db.commit()
	return {"ok": True}


class RegisterRequest(BaseModel):
	phone: str
	password: str
	email: Optional[str] = None
	activation_code: str


@router.post("/register", status_code=201, response_model=User)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	phone = (req.phone or "").strip()
	password = req.password or ""
	email = (req.email or "").strip() or None
	code = (req.activation_code or "").strip().upper()
	if not phone or not password:
		raise ValidationFailure("phone and password are required")
	if not code:
		raise ValidationFailure("activation code is required")
	ensure_user_available(db, phone, email)
	# Consume the code only if it is still unused; the user row joins the same transaction
	res = db.execute(
		update(ActivationCode)
		.where(ActivationCode.code == code, ActivationCode.is_used.is_(False))
		.values(is_used=True, used_by=phone, used_at=datetime.utcnow())
	)
	if res.rowcount != 1:
		db.rollback()
		raise ValidationFailure("activation code is invalid or already used", resource="ActivationCode")
	row = AuthUser(phone=phone, password_hash=hash_password(password), email=email, role="user", activation_code_used=code)
	db.add(row)
	db.commit()
	return to_user(row)


class PasswordResetRequest(BaseModel):
	email: str


class PasswordResetConfirm(BaseModel):
	token: str
	new_password: str


@router.post("/password-reset", status_code=202)
async def request_password_reset(req: PasswordResetRequest, db: Session = Depends(get_db)):
	email = (req.email or "").strip()
	account = db.query(AuthUser).filter(AuthUser.email == email).first() if email else None
	if account is None:
		raise NotFound("email is not registered", resource="AuthUser")
	token = secrets.token_urlsafe(32)
	expires = datetime.utcnow() + timedelta(minutes=settings.password_reset_expire_minutes)
	db.add(PasswordReset(token=token, phone=account.phone, expires_at=expires))
	db.commit()
	# No mail transport; the token is handed to whoever delivers it out of band
	logger.info("password reset issued for %s (token %s, expires %s)", email, token, expires.isoformat())
	return {"ok": True}


@router.post("/password-reset/confirm")
async def confirm_password_reset(req: PasswordResetConfirm, db: Session = Depends(get_db)):
	row = db.get(PasswordReset, req.token)
	if row is None or row.used or row.expires_at < datetime.utcnow():
		raise ValidationFailure("reset token is invalid or expired", resource="PasswordReset")
	if not req.new_password:
		raise ValidationFailure("new password is required")
	account = db.get(AuthUser, row.phone)
	if account is None:
		raise NotFound("account no longer exists", resource="AuthUser")
	account.password_hash = hash_password(req.new_password)
	row.used = True
	# Existing sessions end with the old password
	db.query(AuthSession).filter(AuthSession.phone == account.phone).delete()
	db.commit()
	return {"ok": True}
