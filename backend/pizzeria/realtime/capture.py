from __future__ import annotations
"""Turn committed ORM writes into change-feed events.

Models opt in with ``__realtime__ = True`` and a ``to_dict()`` method. Rows
are snapshotted when a flush writes them and published only after the
surrounding transaction commits, so subscribers never observe rolled-back
state. Raw SQL issued through ``session.execute(text(...))`` bypasses capture.
"""
import logging
from typing import Dict, List, Tuple

from sqlalchemy import event
from sqlalchemy.orm import Session

from .feed import ChangeFeed, EVENT_INSERT, EVENT_UPDATE

logger = logging.getLogger(__name__)

_PENDING_KEY = 'pizzeria.pending_changes'


def _tracked(obj) -> bool:
    return bool(getattr(type(obj), '__realtime__', False))


def _pending(session: Session) -> Dict[Tuple[str, str], Tuple[str, dict]]:
    return session.info.setdefault(_PENDING_KEY, {})


def install_change_capture(session_factory, feed: ChangeFeed):
    """Attach flush/commit listeners to ``session_factory`` publishing into ``feed``."""

    def after_flush(session: Session, flush_context):
        pending = _pending(session)
        for obj in session.new:
            if _tracked(obj):
                key = (obj.__tablename__, obj.id)
                pending[key] = (EVENT_INSERT, obj.to_dict())
        for obj in session.dirty:
            if not _tracked(obj) or not session.is_modified(obj, include_collections=False):
                continue
            key = (obj.__tablename__, obj.id)
            # an insert followed by updates in one transaction still reads as an insert
            kind = pending[key][0] if key in pending else EVENT_UPDATE
            pending[key] = (kind, obj.to_dict())

    def after_commit(session: Session):
        pending = session.info.pop(_PENDING_KEY, None)
        if not pending:
            return
        changes: List[Tuple[str, str, dict]] = [(coll, kind, payload) for (coll, _), (kind, payload) in pending.items()]
        for collection, kind, payload in changes:
            feed.publish(collection, kind, payload)
        logger.debug('Published %d change event(s)', len(changes))

    def after_rollback(session: Session):
        session.info.pop(_PENDING_KEY, None)

    event.listen(session_factory, 'after_flush', after_flush)
    event.listen(session_factory, 'after_commit', after_commit)
    event.listen(session_factory, 'after_soft_rollback', lambda session, previous_transaction: after_rollback(session))
    return feed


__all__ = ['install_change_capture']
