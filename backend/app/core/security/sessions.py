from __future__ import annotations

import datetime as dt

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.core.db.models import UserSession
from app.shared.utils import utcnow


def cleanup_expired_sessions(db: Session, *, now: dt.datetime | None = None) -> int:
    """Delete sessions whose expiry has passed. Returns the number removed."""
    now = now or utcnow()
    result = db.execute(delete(UserSession).where(UserSession.expires_at < now))
    db.commit()
    return result.rowcount or 0
