from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Text, Boolean, JSON, ForeignKey, UniqueConstraint
from .db import Base


def _new_id() -> str:
	return uuid.uuid4().hex


class AuthUser(Base):
	__tablename__ = "auth_users"
	# The phone number doubles as the login identifier
	phone = Column(String(32), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True, unique=True)
	role = Column(String(16), default="user", nullable=False)
	activation_code_used = Column(String(32), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	phone = Column(String(32), ForeignKey("auth_users.phone", ondelete="CASCADE"), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ActivationCode(Base):
	__tablename__ = "activation_codes"
	code = Column(String(32), primary_key=True)
	is_used = Column(Boolean, default=False, nullable=False)
	used_by = Column(String(32), nullable=True)
	used_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PasswordReset(Base):
	__tablename__ = "password_resets"
	token = Column(String(64), primary_key=True)
	phone = Column(String(32), ForeignKey("auth_users.phone", ondelete="CASCADE"), nullable=False)
	expires_at = Column(DateTime, nullable=False)
	used = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class VocabularyLibraryRow(Base):
	__tablename__ = "vocabulary_libraries"
	id = Column(String(32), primary_key=True, default=_new_id)
	title = Column(String(256), nullable=False)
	description = Column(Text, default="", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class StorySeriesRow(Base):
	__tablename__ = "story_series"
	id = Column(String(32), primary_key=True, default=_new_id)
	library_id = Column(String(32), ForeignKey("vocabulary_libraries.id"), nullable=False, index=True)
	title = Column(String(256), nullable=False)
	description = Column(Text, default="", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class StoryRow(Base):
	__tablename__ = "stories"
	id = Column(String(32), primary_key=True, default=_new_id)
	series_id = Column(String(32), ForeignKey("story_series.id"), nullable=False, index=True)
	title = Column(String(256), nullable=False)
	content = Column(Text, default="", nullable=False)
	status = Column(String(16), default="caching", nullable=False)
	order = Column(Integer, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class WordDictionaryRow(Base):
	__tablename__ = "word_dictionary"
	# Lower-cased word; entries are shared by every story that mentions it
	word = Column(String(128), primary_key=True)
	details = Column(JSON, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UserWordList(Base):
	__tablename__ = "user_word_lists"
	__table_args__ = (UniqueConstraint("phone", "key", name="uq_user_word_list"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	phone = Column(String(32), nullable=False, index=True)
	key = Column(String(64), nullable=False)
	value_json = Column(Text, nullable=False, default="[]")
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
