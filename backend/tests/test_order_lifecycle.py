from __future__ import annotations
from datetime import datetime, timedelta
from pizzeria import get_db
from pizzeria.models.audit import AuditLog
from pizzeria.models.order import Order
from pizzeria.services.order_tracker import ORDER_FSM, next_status
from tests.test_utils_seed import auth_headers, place_order, advance_to


def _parse(ts: str) -> datetime:
    return datetime.fromisoformat(ts.replace('Z', '+00:00'))


def test_fsm_graph_shape():
    for status in Order.STATUS_FLOW[:-1]:
        assert ORDER_FSM.can_transition(status, Order.STATUS_CANCELLED)
    assert ORDER_FSM.is_terminal(Order.STATUS_COMPLETED)
    assert ORDER_FSM.is_terminal(Order.STATUS_CANCELLED)
    assert not ORDER_FSM.can_transition(Order.STATUS_PENDING, Order.STATUS_PREPARING)
    assert next_status('pending') == 'confirmed'
    assert next_status('delivering') == 'completed'
    assert next_status('completed') is None
    assert next_status('cancelled') is None


def test_confirm_sets_estimate_45_minutes(client, gate):
    order = place_order(client, gate)
    headers = auth_headers(client)
    resp = client.post(f"/orders/{order['id']}/confirm", headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['status'] == 'confirmed'
    eta = _parse(body['estimated_delivery_time']) - _parse(body['confirmed_at'])
    assert eta == timedelta(minutes=45)


def test_skipping_a_step_is_rejected(client, gate):
    order = place_order(client, gate)
    headers = auth_headers(client)
    resp = client.post(f"/orders/{order['id']}/dispatch", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'Invalid status transition pending -> delivering'


def test_full_walk_and_terminal_state(client, gate):
    order = place_order(client, gate)
    headers = auth_headers(client)
    body = advance_to(client, order['id'], 'completed', headers)
    assert body['status'] == 'completed'
    assert body['delivered_at'] is not None
    for path in ('confirm', 'cancel', 'advance'):
        assert client.post(f"/orders/{order['id']}/{path}", headers=headers).status_code == 400


def test_cancel_from_any_non_terminal_state(client, gate):
    headers = auth_headers(client)
    order = place_order(client, gate)
    advance_to(client, order['id'], 'preparing', headers)
    resp = client.post(f"/orders/{order['id']}/cancel", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'cancelled'
    assert resp.get_json()['cancelled_at'] is not None
    assert client.post(f"/orders/{order['id']}/advance", headers=headers).status_code == 400


def test_advance_moves_one_step(client, gate):
    order = place_order(client, gate)
    headers = auth_headers(client)
    assert client.post(f"/orders/{order['id']}/advance", headers=headers).get_json()['status'] == 'confirmed'
    assert client.post(f"/orders/{order['id']}/advance", headers=headers).get_json()['status'] == 'preparing'
    info = client.get(f"/orders/{order['id']}/transitions", headers=headers).get_json()
    assert info == {'status': 'preparing', 'next': 'ready', 'allowed': ['cancelled', 'ready'], 'terminal': False}


def test_transitions_require_staff(client, gate):
    order = place_order(client, gate)
    assert client.post(f"/orders/{order['id']}/confirm").status_code == 401


def test_transition_is_audited_with_diff(client, gate):
    order = place_order(client, gate)
    headers = auth_headers(client)
    client.post(f"/orders/{order['id']}/confirm", headers=headers)
    log = get_db().query(AuditLog).filter_by(action='ORDER.CONFIRM', entity_id=order['id']).one()
    assert log.meta['changes']['status'] == {'before': 'pending', 'after': 'confirmed'}


def test_customer_confirm_delivery_only_while_delivering(client, gate):
    order = place_order(client, gate)
    headers = auth_headers(client)
    early = client.post(f"/orders/{order['id']}/confirm-delivery")
    assert early.status_code == 400
    advance_to(client, order['id'], 'delivering', headers)
    first = client.post(f"/orders/{order['id']}/confirm-delivery")
    assert first.status_code == 200
    assert first.get_json()['status'] == 'completed'
    delivered_at = first.get_json()['delivered_at']
    # idempotent once completed
    second = client.post(f"/orders/{order['id']}/confirm-delivery")
    assert second.status_code == 200
    assert second.get_json()['delivered_at'] == delivered_at
    log = get_db().query(AuditLog).filter_by(action='ORDER.DELIVERY_CONFIRMED', entity_id=order['id']).first()
    assert log.actor == 'customer'


def test_unknown_order_is_404(client):
    assert client.get('/orders/does-not-exist').status_code == 404
    assert client.post('/orders/does-not-exist/confirm-delivery').status_code == 404


def test_payment_confirmation(client, gate):
    order = place_order(client, gate, payment_method='pix')
    headers = auth_headers(client)
    resp = client.post(f"/orders/{order['id']}/payment/confirm", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['payment_status'] == 'paid'
    again = client.post(f"/orders/{order['id']}/payment/confirm", headers=headers)
    assert again.get_json()['payment_status'] == 'paid'


def test_tracking_view(client, gate):
    order = place_order(client, gate)
    headers = auth_headers(client)
    view = client.get(f"/orders/{order['id']}/tracking").get_json()
    assert view['current_step'] == 0
    assert view['can_confirm_delivery'] is False
    assert view['show_review_prompt'] is False
    assert view['support_phone'] == '(21) 97540-6476'
    advance_to(client, order['id'], 'delivering', headers)
    view = client.get(f"/orders/{order['id']}/tracking").get_json()
    assert view['current_step'] == 4
    assert view['can_confirm_delivery'] is True
    assert [s['done'] for s in view['steps']] == [True, True, True, True, True, False]
    client.post(f"/orders/{order['id']}/confirm-delivery")
    view = client.get(f"/orders/{order['id']}/tracking").get_json()
    assert view['show_review_prompt'] is True
    assert view['show_estimate'] is False
