from __future__ import annotations
"""Store open/closed gate shared by every purchase path.

The gate keeps a local copy of the singleton ``store_settings`` row. That copy
only changes from two sources: an explicit fetch, and change events arriving
on the feed. Writes (toggle, hours) go to the repository and come back to the
writer through the same feed as to every other session, so all sessions see
the same post-write value in the same order.

Closed is the default everywhere: no row yet, fetch failed, nothing loaded.
"""
import logging
import re
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pizzeria.models.base import utcnow
from pizzeria.models.store_settings import StoreSettings
from pizzeria.realtime.feed import ChangeFeed, ChangeEvent, Subscription, ANY
from pizzeria.config.store import RECONCILE_SECONDS, DEFAULT_OPENING_TIME, DEFAULT_CLOSING_TIME
from .errors import BackendError, SingletonConflict

logger = logging.getLogger(__name__)

COLLECTION = 'store_settings'
ALLOWED = 'allowed'
DENIED = 'denied'

_HHMM = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def validate_hhmm(value: Any) -> bool:
    return isinstance(value, str) and bool(_HHMM.match(value))


class Interaction:
    """Outcome of the purchase guard; truthy when the action may proceed."""
    __slots__ = ('outcome', 'message')

    def __init__(self, outcome: str, message: Optional[str] = None):
        self.outcome = outcome
        self.message = message

    @property
    def allowed(self) -> bool:
        return self.outcome == ALLOWED

    def __bool__(self):
        return self.allowed

    def to_dict(self):
        return {'outcome': self.outcome, 'allowed': self.allowed, 'message': self.message}


class SqlStoreSettingsRepository:
    """SQLAlchemy-backed persistence for the singleton row.

    ``session_getter`` returns the session to use (``pizzeria.get_db`` in the
    app). Driver errors are rolled back and re-raised as ``BackendError``.
    """

    def __init__(self, session_getter: Callable[[], Any]):
        self._session = session_getter

    def get(self) -> Optional[Dict[str, Any]]:
        session = self._session()
        try:
            row = session.execute(select(StoreSettings).order_by(StoreSettings.created_at.asc())).scalars().first()
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(str(e)) from e
        return row.to_dict() if row else None

    def insert_default(self) -> Dict[str, Any]:
        session = self._session()
        row = StoreSettings(is_open=False)
        session.add(row)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise SingletonConflict('store settings already created') from e
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(str(e)) from e
        return row.to_dict()

    def update(self, row_id: str, **fields) -> Dict[str, Any]:
        session = self._session()
        try:
            row = session.get(StoreSettings, row_id)
            if row is None:
                raise BackendError(f'store settings {row_id} not found')
            for key, value in fields.items():
                setattr(row, key, value)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise BackendError(str(e)) from e
        return row.to_dict()


class StoreStatusGate:
    """Capability ``{fetch_status, toggle, check_interaction}`` over an injected repository."""

    def __init__(self, repository, feed: ChangeFeed, support_phone: str = '',
                 reconcile_seconds: int = RECONCILE_SECONDS, clock: Callable[[], datetime] = utcnow):
        self._repo = repository
        self._feed = feed
        self.support_phone = support_phone
        self.reconcile_interval = timedelta(seconds=reconcile_seconds)
        self._clock = clock
        self._lock = threading.RLock()
        self._status: Optional[Dict[str, Any]] = None
        self._synced_at: Optional[datetime] = None
        self._subscription: Optional[Subscription] = None
        self.loading = True

    # -- subscription lifecycle -------------------------------------------------

    def open(self, fetch: bool = True) -> 'StoreStatusGate':
        with self._lock:
            if self._subscription is None:
                self._subscription = self._feed.subscribe(COLLECTION, self._on_change, event=ANY)
        if fetch:
            self.fetch_status()
        return self

    def close(self):
        with self._lock:
            if self._subscription is not None:
                self._subscription.unsubscribe()
                self._subscription = None

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # -- state ------------------------------------------------------------------

    @property
    def status(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return dict(self._status) if self._status else None

    @property
    def is_open(self) -> bool:
        with self._lock:
            return bool(self._status and self._status.get('is_open'))

    def _apply(self, row: Dict[str, Any]):
        with self._lock:
            self._status = dict(row)
            self._synced_at = self._clock()

    def _on_change(self, change: ChangeEvent):
        if change.new:
            self._apply(change.new)

    # -- operations -------------------------------------------------------------

    def fetch_status(self) -> Optional[Dict[str, Any]]:
        """Load the singleton, creating the closed default on first run.

        On backend failure the previous local state is kept and returned.
        """
        try:
            row = self._repo.get()
            if row is None:
                row = self._create_default()
        except BackendError:
            logger.exception('Failed to fetch store status; keeping previous state')
            return self.status
        finally:
            self.loading = False
        if row is not None:
            self._apply(row)
        return self.status

    def _create_default(self) -> Optional[Dict[str, Any]]:
        try:
            row = self._repo.insert_default()
            logger.info('Created default store settings (closed)')
            return row
        except SingletonConflict:
            logger.info('Store settings created concurrently; re-fetching')
            return self._repo.get()

    def reconcile_if_stale(self) -> bool:
        """Pull-based backstop for missed change events. Returns True when a fetch ran."""
        with self._lock:
            synced = self._synced_at
        if synced is not None and self._clock() - synced < self.reconcile_interval:
            return False
        self.fetch_status()
        return True

    def toggle(self, actor_label: str = 'Staff') -> Dict[str, Any]:
        """Flip the persisted ``is_open`` and return the written row.

        The flip is computed from the stored row, not the local copy, which
        may lag behind writes from other processes. The local copy is left
        alone; it updates when the change event arrives. Raises
        ``BackendError`` when the row cannot be read or written.
        """
        current = self._repo.get()
        if current is None:
            raise BackendError('store status unavailable')
        return self._repo.update(
            current['id'],
            is_open=not current['is_open'],
            last_updated=self._clock(),
            updated_by=actor_label,
        )

    def set_hours(self, opening_time: str, closing_time: str, actor_label: str = 'Staff') -> Dict[str, Any]:
        if not validate_hhmm(opening_time) or not validate_hhmm(closing_time):
            raise ValueError('opening_time and closing_time must be HH:MM')
        self.reconcile_if_stale()
        current = self.status
        if current is None:
            raise BackendError('store status unavailable')
        return self._repo.update(
            current['id'],
            opening_time=opening_time,
            closing_time=closing_time,
            last_updated=self._clock(),
            updated_by=actor_label,
        )

    def closed_message(self) -> str:
        msg = 'Store closed!'
        if self.support_phone:
            msg += f' Contact us on WhatsApp {self.support_phone}'
        return msg

    def check_interaction(self) -> Interaction:
        if self.is_open:
            return Interaction(ALLOWED)
        return Interaction(DENIED, self.closed_message())

    def formatted_hours(self) -> str:
        status = self.status or {}
        opening = status.get('opening_time') or DEFAULT_OPENING_TIME
        closing = status.get('closing_time') or DEFAULT_CLOSING_TIME
        return f"{opening} - {closing}"


__all__ = [
    'StoreStatusGate', 'SqlStoreSettingsRepository', 'Interaction', 'validate_hhmm',
    'ALLOWED', 'DENIED', 'COLLECTION'
]
