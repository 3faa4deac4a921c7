def test_openapi_spec_available(client):
    resp = client.get('/openapi.json')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['openapi'].startswith('3.')
    assert '/auth/login' in body['paths']
    assert '/store/status/toggle' in body['paths']
    assert '/realtime/{collection}' in body['paths']


def test_docs_page(client):
    resp = client.get('/docs')
    assert resp.status_code == 200
    assert b'Redoc' in resp.data or b'redoc' in resp.data


def test_order_transitions_documented(client):
    doc = client.get('/openapi.json').get_json()
    order = doc['components']['schemas']['Order']
    assert order['x-transitions'] == ['pending', 'confirmed', 'preparing', 'ready', 'delivering', 'completed', 'cancelled']
    assert order['x-transition-graph']['completed'] == []
    assert order['x-transition-graph']['pending'] == ['cancelled', 'confirmed']


def test_permissions_and_public_routes_marked(client):
    doc = client.get('/openapi.json').get_json()
    assert doc['paths']['/store/status/toggle']['post']['x-required-permissions'] == ['STORE.MANAGE']
    assert doc['paths']['/orders']['post']['security'] == []
    assert doc['paths']['/orders']['get']['x-required-permissions'] == ['ORDERS.READ']


def test_spec_is_deterministic(client):
    assert client.get('/openapi.json').get_data() == client.get('/openapi.json').get_data()
