from __future__ import annotations
from datetime import datetime, timedelta
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import AuthSession, PasswordReset
from .settings import settings


def purge_expired(db: Session) -> int:
	now = datetime.utcnow()
	threshold = now - timedelta(days=settings.session_retention_days)
	removed = 0
	# Sessions idle past the retention window
	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	removed += res.rowcount or 0
	# Reset tokens that were used or have expired
	res = db.execute(delete(PasswordReset).where((PasswordReset.used.is_(True)) | (PasswordReset.expires_at < now)))
	removed += res.rowcount or 0
	db.commit()
	return removed
