from __future__ import annotations
from datetime import datetime
from typing import Any, Dict
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, DateTime, UniqueConstraint

from .base import Base, utcnow, new_id, iso
from pizzeria.config.store import DEFAULT_OPENING_TIME, DEFAULT_CLOSING_TIME, DEFAULT_UPDATED_BY


class StoreSettings(Base):
    """Process-wide singleton row gating every purchase action."""
    __tablename__ = 'store_settings'
    __realtime__ = True
    # Every row claims slot 1, so a second default insert hits the unique constraint
    SINGLETON_SLOT = 1
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    slot: Mapped[int] = mapped_column(Integer, nullable=False, default=SINGLETON_SLOT)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    opening_time: Mapped[str] = mapped_column(String(5), nullable=False, default=DEFAULT_OPENING_TIME)
    closing_time: Mapped[str] = mapped_column(String(5), nullable=False, default=DEFAULT_CLOSING_TIME)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_by: Mapped[str] = mapped_column(String(64), nullable=False, default=DEFAULT_UPDATED_BY)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint('slot', name='uq_store_settings_slot'),)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'is_open': bool(self.is_open),
            'opening_time': self.opening_time,
            'closing_time': self.closing_time,
            'last_updated': iso(self.last_updated),
            'updated_by': self.updated_by,
            'created_at': iso(self.created_at),
        }
