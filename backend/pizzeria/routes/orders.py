from __future__ import annotations
from datetime import timedelta
from flask import Blueprint, request, abort, current_app
from sqlalchemy import func, select, text
from pizzeria import get_db
from pizzeria.models.base import utcnow
from pizzeria.models.customer import Customer, DeliveryAddress
from pizzeria.models.order import Order, OrderItem
from pizzeria.decorators.auth import require_permissions, require_store_open
from pizzeria.decorators.audit import audit_log
from pizzeria.services.checkout import place_order
from pizzeria.services.order_tracker import OrderStatusTracker, ORDER_FSM, load_order, next_status, tracking_view
from pizzeria.services.reviews import find_review, has_review, submit_review
from pizzeria.config.pagination import REVIEWS
from pizzeria.utils.listing import apply_filters, apply_multi_sort, apply_pagination, make_cached_list_response, normalize_pagination

orders_bp = Blueprint('orders', __name__)

PERIODS = ('today', 'week', 'month', 'year', 'all')


def _tracker() -> OrderStatusTracker:
    return OrderStatusTracker(preparation_minutes=current_app.config['PREPARATION_MINUTES'])


def _period_start(period: str):
    now = utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == 'today':
        return start_of_day
    if period == 'week':
        return start_of_day - timedelta(days=6)
    if period == 'month':
        return start_of_day.replace(day=1)
    if period == 'year':
        return start_of_day.replace(month=1, day=1)
    return None


def _with_period(q, period: str):
    start = _period_start(period)
    return q.filter(Order.created_at >= start) if start is not None else q


def _order_json(o: Order, customer: Customer = None, address: DeliveryAddress = None, items=None):
    body = o.to_dict()
    body['short_id'] = o.short_id
    body['next_status'] = next_status(o.status)
    if customer is not None:
        body['customer'] = customer.to_dict()
    if address is not None:
        body['address'] = address.to_dict()
        body['address_line'] = address.one_line()
    if items is not None:
        body['items'] = [i.to_dict() for i in items]
    if o.payment_method == 'pix':
        body['pix'] = o.pix_payload
    return body


def _order_detail(o: Order):
    session = get_db()
    items = session.execute(select(OrderItem).where(OrderItem.order_id == o.id)).scalars().all()
    return _order_json(o, session.get(Customer, o.customer_id), session.get(DeliveryAddress, o.delivery_address_id), items)


def _prefetch_order(order_id: str):
    o = get_db().get(Order, order_id)
    return o.to_dict() if o else {}


# --- Checkout (customer) ---

@orders_bp.post('')
@require_store_open
@audit_log('ORDER.CREATE', entity='Order', entity_id_key='id', meta_keys=['total_cents', 'payment_method'])
def create_order():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='JSON body required')
    body = place_order(data, delivery_fee_cents=current_app.config['DELIVERY_FEE_CENTS'])
    return body, 201


# --- Staff board ---

@orders_bp.get('')
@require_permissions('ORDERS.READ')
def list_orders():
    session = get_db()
    q = session.query(Order)
    filter_specs = {
        'status': {'op': lambda qu, v: qu.filter(Order.status == v), 'validate': lambda v: v in Order.ALL_STATUSES},
        'payment_status': {'op': lambda qu, v: qu.filter(Order.payment_status == v), 'validate': lambda v: v in Order.ALL_PAYMENT_STATUSES},
        'period': {'op': _with_period, 'validate': lambda v: v in PERIODS},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'created_at': Order.created_at,
        'updated_at': Order.updated_at,
        'status': Order.status,
        'total_cents': Order.total_cents,
    }
    q = apply_multi_sort(q, request.args.get('sort') or '-created_at', allowed, Order.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    customer_ids = {o.customer_id for o in rows}
    address_ids = {o.delivery_address_id for o in rows}
    customers = {c.id: c for c in session.execute(select(Customer).where(Customer.id.in_(customer_ids))).scalars()} if rows else {}
    addresses = {a.id: a for a in session.execute(select(DeliveryAddress).where(DeliveryAddress.id.in_(address_ids))).scalars()} if rows else {}
    rows_json = [_order_json(o, customers.get(o.customer_id), addresses.get(o.delivery_address_id)) for o in rows]
    return make_cached_list_response(rows_json, total, limit, offset)


@orders_bp.get('/stats')
@require_permissions('STATS.READ')
def order_stats():
    session = get_db()
    counts = {s: 0 for s in Order.ALL_STATUSES}
    for status, count in session.query(Order.status, func.count(Order.id)).group_by(Order.status).all():
        counts[status] = int(count)
    revenue = {}
    for period in ('today', 'month', 'year'):
        q = session.query(func.coalesce(func.sum(Order.total_cents), 0)).filter(Order.status == Order.STATUS_COMPLETED)
        revenue[period] = int(_with_period(q, period).scalar() or 0)
    return {
        'counts': counts,
        'active': sum(counts[s] for s in Order.ALL_STATUSES if s not in Order.TERMINAL_STATUSES),
        'revenue_cents': revenue,
    }


@orders_bp.get('/reviews')
@require_permissions('REVIEWS.READ')
def list_reviews():
    session = get_db()
    limit, _ = normalize_pagination(request.args.get('limit'), None, REVIEWS)
    rows = session.execute(
        text('SELECT order_id, rating, comment, created_at FROM order_reviews ORDER BY created_at DESC LIMIT :limit'),
        {'limit': limit},
    ).all()
    data = [dict(r._mapping) for r in rows]
    for r in data:
        if not isinstance(r['created_at'], str) and r['created_at'] is not None:
            r['created_at'] = r['created_at'].isoformat()
    average = round(sum(r['rating'] for r in data) / len(data), 2) if data else None
    return {'data': data, 'average_rating': average}


# --- Customer tracking ---

@orders_bp.get('/<order_id>')
def get_order(order_id: str):
    return _order_detail(load_order(order_id))


@orders_bp.get('/<order_id>/tracking')
def get_tracking(order_id: str):
    o = load_order(order_id)
    view = tracking_view(_order_detail(o), has_review(order_id))
    view['support_phone'] = current_app.config['SUPPORT_PHONE']
    return view


@orders_bp.post('/<order_id>/confirm-delivery')
@audit_log(
    'ORDER.DELIVERY_CONFIRMED',
    entity='Order',
    entity_id_key='id',
    diff_keys=['status'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id'))
)
def confirm_delivery(order_id: str):
    return _tracker().confirm_delivery(order_id).to_dict()


# --- Staff transitions ---

def _transition_route(path: str, target_status: str, action: str):
    @require_permissions('ORDERS.MANAGE')
    @audit_log(
        action,
        entity='Order',
        entity_id_key='id',
        diff_keys=['status'],
        pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id'))
    )
    def view(order_id: str):
        return _tracker().transition(order_id, target_status).to_dict()
    view.__name__ = f"order_{target_status}"
    orders_bp.add_url_rule(f'/<order_id>/{path}', view_func=view, methods=['POST'])
    return view


confirm_order = _transition_route('confirm', Order.STATUS_CONFIRMED, 'ORDER.CONFIRM')
prepare_order = _transition_route('prepare', Order.STATUS_PREPARING, 'ORDER.PREPARE')
ready_order = _transition_route('ready', Order.STATUS_READY, 'ORDER.READY')
dispatch_order = _transition_route('dispatch', Order.STATUS_DELIVERING, 'ORDER.DISPATCH')
complete_order = _transition_route('complete', Order.STATUS_COMPLETED, 'ORDER.COMPLETE')
cancel_order = _transition_route('cancel', Order.STATUS_CANCELLED, 'ORDER.CANCEL')


@orders_bp.post('/<order_id>/advance')
@require_permissions('ORDERS.MANAGE')
@audit_log(
    'ORDER.ADVANCE',
    entity='Order',
    entity_id_key='id',
    diff_keys=['status'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id'))
)
def advance_order(order_id: str):
    return _tracker().advance(order_id).to_dict()


@orders_bp.get('/<order_id>/transitions')
@require_permissions('ORDERS.READ')
def order_transitions(order_id: str):
    o = load_order(order_id)
    return {
        'status': o.status,
        'next': next_status(o.status),
        'allowed': sorted(ORDER_FSM.graph.get(o.status, set())),
        'terminal': ORDER_FSM.is_terminal(o.status),
    }


@orders_bp.post('/<order_id>/payment/confirm')
@require_permissions('PAYMENTS.CONFIRM')
@audit_log(
    'PAYMENT.CONFIRM',
    entity='Order',
    entity_id_key='id',
    diff_keys=['payment_status'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id'))
)
def confirm_payment(order_id: str):
    return _tracker().confirm_payment(order_id).to_dict()


# --- Reviews ---

@orders_bp.get('/<order_id>/review')
def get_review(order_id: str):
    load_order(order_id)
    review = find_review(order_id)
    if review is None:
        abort(404, description='No review for this order')
    return review


@orders_bp.post('/<order_id>/review')
@audit_log('REVIEW.CREATE', entity='OrderReview', entity_id_key='id', meta_keys=['order_id', 'rating'])
def create_review(order_id: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='JSON body required')
    return submit_review(order_id, data.get('rating'), data.get('comment')), 201
