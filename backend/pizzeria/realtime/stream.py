from __future__ import annotations
"""Server-Sent Events adapter over the change feed.

The subscription is taken when the stream object is built (inside the view),
not when the first chunk is pulled, so events committed between the response
starting and the client reading are not lost.
"""
import json
import logging
import queue
from typing import Iterator, Optional

from .feed import ChangeFeed, ChangeEvent, ANY

logger = logging.getLogger(__name__)

KEEPALIVE = ': keep-alive\n\n'


def format_sse(change: ChangeEvent) -> str:
    data = json.dumps(change.to_dict(), separators=(',', ':'))
    return f"event: {change.event.lower()}\ndata: {data}\n\n"


class EventStream:
    def __init__(self, feed: ChangeFeed, collection: str, event: str = ANY, row_id: Optional[str] = None,
                 max_queue: int = 100, heartbeat: float = 15.0):
        self._queue: 'queue.Queue[ChangeEvent]' = queue.Queue(maxsize=max_queue)
        self.heartbeat = heartbeat
        self.dropped = 0
        self._sub = feed.subscribe(collection, self._enqueue, event=event, row_id=row_id)

    def _enqueue(self, change: ChangeEvent):
        try:
            self._queue.put_nowait(change)
        except queue.Full:
            # slow client: drop rather than block the committing request
            self.dropped += 1
            logger.warning('SSE queue full, dropped %s %s', change.collection, change.event)

    def close(self):
        self._sub.unsubscribe()

    def events(self, limit: Optional[int] = None) -> Iterator[str]:
        sent = 0
        try:
            yield 'retry: 3000\n\n'
            while limit is None or sent < limit:
                try:
                    change = self._queue.get(timeout=self.heartbeat)
                except queue.Empty:
                    yield KEEPALIVE
                    continue
                yield format_sse(change)
                sent += 1
        finally:
            self.close()


__all__ = ['EventStream', 'format_sse']
