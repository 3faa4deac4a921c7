from __future__ import annotations
"""Order status lifecycle and its propagation to open sessions.

Lifecycle:
    pending -> confirmed -> preparing -> ready -> delivering -> completed
    any non-terminal state -> cancelled (staff only)

Staff move an order one step at a time. The customer may only perform
delivering -> completed ("confirm delivery"), which is idempotent once the
order is completed. Side effects are stamped at the write boundary:
entering ``confirmed`` sets ``confirmed_at`` and the delivery estimate,
entering ``completed`` sets ``delivered_at``.

Sessions (customer tracking page, staff board) never set status locally;
they wait for the committed change to come back over the feed.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from flask import abort
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pizzeria import get_db
from pizzeria.models.base import utcnow
from pizzeria.models.order import Order
from pizzeria.realtime.feed import ChangeFeed, ChangeEvent, Subscription, EVENT_INSERT, EVENT_UPDATE, ANY
from pizzeria.utils.fsm import TransitionValidator
from pizzeria.utils.validation import validate_status
from pizzeria.config.store import PREPARATION_MINUTES, RECONCILE_SECONDS

logger = logging.getLogger(__name__)

COLLECTION = 'orders'

ORDER_FSM = TransitionValidator({
    Order.STATUS_PENDING: {Order.STATUS_CONFIRMED, Order.STATUS_CANCELLED},
    Order.STATUS_CONFIRMED: {Order.STATUS_PREPARING, Order.STATUS_CANCELLED},
    Order.STATUS_PREPARING: {Order.STATUS_READY, Order.STATUS_CANCELLED},
    Order.STATUS_READY: {Order.STATUS_DELIVERING, Order.STATUS_CANCELLED},
    Order.STATUS_DELIVERING: {Order.STATUS_COMPLETED, Order.STATUS_CANCELLED},
    Order.STATUS_COMPLETED: set(),
    Order.STATUS_CANCELLED: set(),
})

# (title, description) shown on the tracking page
STATUS_INFO = {
    Order.STATUS_PENDING: ('Order received', 'Waiting for the restaurant to confirm'),
    Order.STATUS_CONFIRMED: ('Order confirmed', 'Starting to prepare your pizza'),
    Order.STATUS_PREPARING: ('Preparing', 'Your pizza is being prepared with care'),
    Order.STATUS_READY: ('Ready for delivery', 'Pizza ready, heading out for delivery'),
    Order.STATUS_DELIVERING: ('Out for delivery', 'On its way to your address'),
    Order.STATUS_COMPLETED: ('Delivered', 'Delivered successfully!'),
    Order.STATUS_CANCELLED: ('Cancelled', 'This order was cancelled'),
}

# Toast raised in a tracking session when the pushed status differs from the local one
STATUS_MESSAGES = {
    Order.STATUS_CONFIRMED: 'Order confirmed! Preparation is starting.',
    Order.STATUS_PREPARING: 'Your pizza is being prepared with care!',
    Order.STATUS_READY: 'Order ready! Heading out for delivery.',
    Order.STATUS_DELIVERING: 'Order on its way! Arriving soon.',
    Order.STATUS_COMPLETED: 'Order delivered! Thank you for your preference.',
    Order.STATUS_CANCELLED: 'Your order was cancelled. Please contact us for details.',
}

TIMELINE_LABELS = {
    Order.STATUS_PENDING: 'Received',
    Order.STATUS_CONFIRMED: 'Confirmed',
    Order.STATUS_PREPARING: 'Preparing',
    Order.STATUS_READY: 'Ready',
    Order.STATUS_DELIVERING: 'Delivering',
    Order.STATUS_COMPLETED: 'Delivered',
}


def next_status(status: str) -> Optional[str]:
    """The single forward step offered to staff for ``status`` (None when terminal)."""
    return ORDER_FSM.next_in(Order.STATUS_FLOW, status)


def load_order(order_id: str) -> Order:
    session = get_db()
    o = session.execute(select(Order).where(Order.id == order_id)).scalar_one_or_none()
    if not o:
        abort(404, description='Order not found')
    return o


class OrderStatusTracker:
    def __init__(self, preparation_minutes: int = PREPARATION_MINUTES, clock: Callable[[], datetime] = utcnow):
        self.preparation_window = timedelta(minutes=preparation_minutes)
        self._clock = clock

    def _stamp(self, o: Order, target: str):
        now = self._clock()
        if target == Order.STATUS_CONFIRMED:
            o.confirmed_at = now
            o.estimated_delivery_time = now + self.preparation_window
        elif target == Order.STATUS_COMPLETED:
            o.delivered_at = now
        elif target == Order.STATUS_CANCELLED:
            o.cancelled_at = now

    def transition(self, order_id: str, target: str, by_customer: bool = False) -> Order:
        validate_status(target, Order.ALL_STATUSES, 'status')
        o = load_order(order_id)
        if by_customer and not (o.status == Order.STATUS_DELIVERING and target == Order.STATUS_COMPLETED):
            abort(403, description='Customers may only confirm delivery')
        ORDER_FSM.assert_can_transition(o.status, target)
        previous = o.status
        o.status = target
        self._stamp(o, target)
        session = get_db()
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception('Failed to move order %s from %s to %s', order_id, previous, target)
            abort(503, description='Unable to update order, please try again')
        logger.info('Order %s %s -> %s', o.short_id, previous, target)
        return o

    def advance(self, order_id: str) -> Order:
        o = load_order(order_id)
        target = next_status(o.status)
        if target is None:
            abort(400, description=f'Order in {o.status} has no next status')
        return self.transition(order_id, target)

    def confirm_delivery(self, order_id: str) -> Order:
        """Customer-side delivering -> completed; a no-op once already completed."""
        o = load_order(order_id)
        if o.status == Order.STATUS_COMPLETED:
            return o
        if o.status != Order.STATUS_DELIVERING:
            abort(400, description='Delivery can only be confirmed while the order is out for delivery')
        return self.transition(order_id, Order.STATUS_COMPLETED, by_customer=True)

    def confirm_payment(self, order_id: str) -> Order:
        o = load_order(order_id)
        if o.payment_status == Order.PAYMENT_PAID:
            return o
        if o.status == Order.STATUS_CANCELLED:
            abort(400, description='Cannot confirm payment for a cancelled order')
        o.payment_status = Order.PAYMENT_PAID
        session = get_db()
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception('Failed to confirm payment for order %s', order_id)
            abort(503, description='Unable to confirm payment, please try again')
        return o


def tracking_view(order: Dict[str, Any], has_review: bool) -> Dict[str, Any]:
    status = order.get('status')
    title, description = STATUS_INFO.get(status, ('Processing', 'Checking order status'))
    flow = list(Order.STATUS_FLOW)
    current_index = flow.index(status) if status in flow else -1
    steps = [
        {
            'key': key,
            'label': TIMELINE_LABELS[key],
            'done': 0 <= idx <= current_index,
            'current': idx == current_index,
        }
        for idx, key in enumerate(flow)
    ]
    return {
        'order': order,
        'title': title,
        'description': description,
        'steps': steps,
        'current_step': current_index,
        'show_estimate': bool(order.get('estimated_delivery_time')) and status not in Order.TERMINAL_STATUSES,
        'can_confirm_delivery': status == Order.STATUS_DELIVERING,
        'show_review_prompt': status == Order.STATUS_COMPLETED and not has_review,
    }


class OrderTrackingSession:
    """Customer view of one order, kept current by row-level change events.

    ``review_exists`` answers "is there already a review for this order"; it
    is consulted outside event delivery, when the prompt is taken.
    ``loader`` re-reads the order as a dict for the reconcile backstop.
    """

    def __init__(self, order: Dict[str, Any], feed: ChangeFeed,
                 tracker: Optional[OrderStatusTracker] = None,
                 loader: Optional[Callable[[str], Optional[Dict[str, Any]]]] = None,
                 review_exists: Optional[Callable[[str], bool]] = None,
                 reconcile_seconds: int = RECONCILE_SECONDS,
                 clock: Callable[[], datetime] = utcnow):
        self._order = dict(order)
        self._feed = feed
        self._tracker = tracker
        self._loader = loader
        self._review_exists = review_exists
        self.reconcile_interval = timedelta(seconds=reconcile_seconds)
        self._clock = clock
        self._lock = threading.RLock()
        self._subscription: Optional[Subscription] = None
        self._synced_at = clock()
        self._review_prompt_armed = order.get('status') == Order.STATUS_COMPLETED
        self._review_prompt_shown = False
        self.notifications: List[str] = []

    @property
    def order_id(self) -> str:
        return self._order['id']

    @property
    def order(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._order)

    @property
    def status(self) -> str:
        with self._lock:
            return self._order.get('status')

    def open(self) -> 'OrderTrackingSession':
        with self._lock:
            if self._subscription is None:
                self._subscription = self._feed.subscribe(COLLECTION, self._on_update, event=EVENT_UPDATE, row_id=self.order_id)
        return self

    def close(self):
        with self._lock:
            if self._subscription is not None:
                self._subscription.unsubscribe()
                self._subscription = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _merge(self, incoming: Dict[str, Any]):
        with self._lock:
            previous = self._order.get('status')
            # whole-payload last-write-wins
            self._order = {**self._order, **incoming}
            self._synced_at = self._clock()
            current = self._order.get('status')
        if current != previous:
            message = STATUS_MESSAGES.get(current)
            if message:
                self.notifications.append(message)
            if current == Order.STATUS_COMPLETED:
                self._review_prompt_armed = True

    def _on_update(self, change: ChangeEvent):
        # late events after close are ignored
        if self._subscription is None or not change.new:
            return
        self._merge(change.new)

    def reconcile_if_stale(self) -> bool:
        if self._loader is None:
            return False
        with self._lock:
            synced = self._synced_at
        if self._clock() - synced < self.reconcile_interval:
            return False
        fresh = self._loader(self.order_id)
        if fresh is not None:
            self._merge(fresh)
        return True

    def take_review_prompt(self) -> bool:
        """True exactly once: the order is completed and has no review yet."""
        if not self._review_prompt_armed or self._review_prompt_shown:
            return False
        if self._review_exists is not None and self._review_exists(self.order_id):
            self._review_prompt_shown = True
            return False
        self._review_prompt_shown = True
        return True

    def confirm_delivery(self) -> Dict[str, Any]:
        """Ask the backend to complete the order; local state follows the echo."""
        if self._tracker is None:
            raise RuntimeError('tracking session opened without a tracker')
        return self._tracker.confirm_delivery(self.order_id).to_dict()


class OrderBoard:
    """Staff dashboard view over every order, fed by all ``orders`` changes."""

    def __init__(self, feed: ChangeFeed, orders: Optional[List[Dict[str, Any]]] = None):
        self._feed = feed
        self._lock = threading.Lock()
        self._orders: Dict[str, Dict[str, Any]] = {o['id']: dict(o) for o in (orders or [])}
        self._subscription: Optional[Subscription] = None
        self.alerts: List[str] = []

    def open(self) -> 'OrderBoard':
        if self._subscription is None:
            self._subscription = self._feed.subscribe(COLLECTION, self._on_change, event=ANY)
        return self

    def close(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _on_change(self, change: ChangeEvent):
        if not change.new or self._subscription is None:
            return
        with self._lock:
            current = self._orders.get(change.row_id, {})
            self._orders[change.row_id] = {**current, **change.new}
        if change.event == EVENT_INSERT:
            self.alerts.append(f"New order received #{change.row_id[-8:]}")

    def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            o = self._orders.get(order_id)
            return dict(o) if o else None

    def by_status(self, status: str) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [dict(o) for o in self._orders.values() if o.get('status') == status]
        return sorted(rows, key=lambda o: o.get('created_at') or '', reverse=True)


__all__ = [
    'ORDER_FSM', 'STATUS_INFO', 'STATUS_MESSAGES', 'OrderStatusTracker', 'OrderTrackingSession',
    'OrderBoard', 'next_status', 'load_order', 'tracking_view'
]
