def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert 'error' in body
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_abort_description_is_surfaced(client):
    resp = client.get('/orders/missing-order')
    assert resp.status_code == 404
    assert resp.get_json()['error']['detail'] == 'Order not found'


def test_internal_error_shape(client, monkeypatch):
    import pizzeria.routes.menu as menu_mod

    class BoomSession:
        def execute(self, *a, **k):
            raise RuntimeError('explode')

    monkeypatch.setattr(menu_mod, 'get_db', lambda: BoomSession())
    resp = client.get('/menu')
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
    assert body['error']['detail'] == 'Unexpected error'


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}
