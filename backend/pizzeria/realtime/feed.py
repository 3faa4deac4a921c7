from __future__ import annotations
"""In-process change feed: the push channel every session listens on.

Delivery is synchronous, at-most-once and without replay: a subscriber only
sees events published while it is subscribed, and nothing is buffered for
late joiners. Consumers needing convergence after a missed event use their
own pull-based reconcile.

Usage:
    feed = ChangeFeed()
    sub = feed.subscribe('orders', on_change, event='UPDATE', row_id=order_id)
    ...
    sub.unsubscribe()
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

EVENT_INSERT = 'INSERT'
EVENT_UPDATE = 'UPDATE'
ANY = '*'


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    event: str
    new: Dict[str, Any]
    old: Optional[Dict[str, Any]] = None

    @property
    def row_id(self) -> Optional[str]:
        return self.new.get('id') if self.new else None

    def to_dict(self) -> Dict[str, Any]:
        return {'collection': self.collection, 'event': self.event, 'new': self.new, 'old': self.old}


Handler = Callable[[ChangeEvent], None]


@dataclass(eq=False)
class Subscription:
    feed: 'ChangeFeed'
    collection: str
    handler: Handler
    event: str = ANY
    row_id: Optional[str] = None
    active: bool = field(default=True)

    def matches(self, change: ChangeEvent) -> bool:
        if self.collection != ANY and self.collection != change.collection:
            return False
        if self.event != ANY and self.event != change.event:
            return False
        if self.row_id is not None and self.row_id != change.row_id:
            return False
        return True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self.feed._remove(self)


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subs: List[Subscription] = []

    def subscribe(self, collection: str, handler: Handler, event: str = ANY, row_id: Optional[str] = None) -> Subscription:
        sub = Subscription(self, collection, handler, event.upper(), row_id)
        with self._lock:
            self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            try:
                self._subs.remove(sub)
            except ValueError:
                pass

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def publish(self, collection: str, event: str, new: Dict[str, Any], old: Optional[Dict[str, Any]] = None) -> int:
        """Deliver a change to matching subscribers; returns how many received it."""
        change = ChangeEvent(collection, event.upper(), dict(new), dict(old) if old else None)
        with self._lock:
            targets = [s for s in self._subs if s.matches(change)]
        delivered = 0
        for sub in targets:
            if not sub.active:
                continue
            try:
                sub.handler(change)
                delivered += 1
            except Exception:
                # one broken listener must not starve the others
                logger.exception('Change handler failed for %s %s', change.collection, change.event)
        return delivered


__all__ = ['ChangeFeed', 'ChangeEvent', 'Subscription', 'EVENT_INSERT', 'EVENT_UPDATE', 'ANY']
