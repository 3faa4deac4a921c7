import pytest
from werkzeug.exceptions import BadRequest
from pizzeria.config.pagination import ORDER_BOARD, REVIEWS
from pizzeria.utils.listing import normalize_pagination
from tests.test_utils_seed import auth_headers, place_order, advance_to


def test_list_requires_orders_read(client):
    assert client.get('/orders').status_code == 401


def test_list_pagination_meta_and_filters(client, gate):
    headers = auth_headers(client)
    first = place_order(client, gate)
    second = place_order(client, gate)
    advance_to(client, second['id'], 'confirmed', headers)
    resp = client.get('/orders?limit=1&offset=0', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['pagination']['limit'] == 1
    assert body['pagination']['returned'] == 1
    assert body['pagination']['total'] >= 2
    confirmed = client.get('/orders?status=confirmed&limit=200', headers=headers).get_json()['data']
    ids = {o['id'] for o in confirmed}
    assert second['id'] in ids and first['id'] not in ids
    row = next(o for o in confirmed if o['id'] == second['id'])
    assert row['customer']['name'] == 'Ana Souza'
    assert row['address_line'].startswith('Rua das Laranjeiras, 120')
    assert row['next_status'] == 'preparing'


def test_list_rejects_bad_filters(client):
    headers = auth_headers(client)
    assert client.get('/orders?status=lost', headers=headers).status_code == 400
    assert client.get('/orders?period=decade', headers=headers).status_code == 400
    assert client.get('/orders?sort=-secret', headers=headers).status_code == 400
    assert client.get('/orders?limit=abc', headers=headers).status_code == 400


def test_period_today_includes_new_orders(client, gate):
    headers = auth_headers(client)
    order = place_order(client, gate)
    data = client.get('/orders?period=today&limit=200', headers=headers).get_json()['data']
    assert order['id'] in {o['id'] for o in data}


def test_multi_sort_by_total(client, gate):
    headers = auth_headers(client)
    cheap = place_order(client, gate, price_cents=1000, quantity=1)
    pricey = place_order(client, gate, price_cents=9000, quantity=1)
    data = client.get('/orders?sort=-total_cents,created_at&limit=200', headers=headers).get_json()['data']
    ids = [o['id'] for o in data]
    assert ids.index(pricey['id']) < ids.index(cheap['id'])


def test_etag_conditional(client, gate):
    headers = auth_headers(client)
    place_order(client, gate)
    first = client.get('/orders?limit=5', headers=headers)
    etag = first.headers.get('ETag')
    assert etag
    second = client.get('/orders?limit=5', headers={**headers, 'If-None-Match': etag})
    assert second.status_code == 304
    assert second.headers.get('ETag') == etag
    # a status change invalidates the validator
    newest = first.get_json()['data'][0]
    client.post(f"/orders/{newest['id']}/cancel", headers=headers)
    third = client.get('/orders?limit=5', headers={**headers, 'If-None-Match': etag})
    assert third.status_code == 200


def test_stats_counts_and_revenue(client, gate):
    admin = auth_headers(client, 'admin')
    assert client.get('/orders/stats', headers=auth_headers(client)).status_code == 403
    before = client.get('/orders/stats', headers=admin).get_json()
    order = place_order(client, gate, price_cents=2000, quantity=1)
    advance_to(client, order['id'], 'completed', admin)
    after = client.get('/orders/stats', headers=admin).get_json()
    assert after['counts']['completed'] == before['counts']['completed'] + 1
    assert after['revenue_cents']['today'] == before['revenue_cents']['today'] + 2500
    assert after['revenue_cents']['year'] >= after['revenue_cents']['month'] >= after['revenue_cents']['today']


def test_page_window_defaults_and_clamps(app_instance):
    assert normalize_pagination(None, None, ORDER_BOARD) == (100, 0)
    assert normalize_pagination(None, None, REVIEWS) == (50, 0)
    assert normalize_pagination('999', '-3', ORDER_BOARD) == (200, 0)
    assert normalize_pagination('0', '4', REVIEWS) == (1, 4)
    with pytest.raises(BadRequest):
        normalize_pagination('ten', None, ORDER_BOARD)


def test_board_uses_board_default_page_size(client):
    body = client.get('/orders', headers=auth_headers(client)).get_json()
    assert body['pagination']['limit'] == 100
