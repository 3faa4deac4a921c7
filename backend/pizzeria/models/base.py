from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def iso(dt: Optional[datetime]) -> Optional[str]:
    """Render a timestamp as ISO-8601 UTC with a Z suffix (SQLite hands back naive values)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')
