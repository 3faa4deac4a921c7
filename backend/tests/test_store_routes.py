from datetime import datetime
from pizzeria import get_db
from pizzeria.models.audit import AuditLog
from pizzeria.services.errors import BackendError
from tests.test_utils_seed import auth_headers, set_store_open


def test_status_is_public_and_closed_by_default_shape(client, gate):
    resp = client.get('/store/status')
    assert resp.status_code == 200
    body = resp.get_json()
    assert 'is_open' in body
    assert body['formatted_hours'] == gate.formatted_hours()


def test_toggle_requires_staff_token(client):
    assert client.post('/store/status/toggle').status_code == 401


def test_staff_toggle_updates_every_session_and_audits(client, gate):
    set_store_open(gate, False)
    headers = auth_headers(client)
    resp = client.post('/store/status/toggle', headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['is_open'] is True
    assert body['updated_by'] == 'Staff'
    # the shared gate followed the change event
    assert gate.is_open is True
    assert client.get('/store/status').get_json()['is_open'] is True
    log = get_db().query(AuditLog).filter_by(action='STORE.TOGGLE').order_by(AuditLog.id.desc()).first()
    assert log is not None
    assert log.actor == 'Staff'
    assert log.meta['changes']['is_open'] == {'before': False, 'after': True}


def test_interaction_guard_denies_when_closed(client, gate):
    set_store_open(gate, False)
    resp = client.get('/store/interaction')
    assert resp.status_code == 403
    body = resp.get_json()
    assert body['outcome'] == 'denied'
    assert body['message'] == 'Store closed! Contact us on WhatsApp (21) 97540-6476'
    set_store_open(gate, True)
    resp = client.get('/store/interaction')
    assert resp.status_code == 200
    assert resp.get_json()['allowed'] is True


def test_hours_update_validates_and_persists(client, gate):
    headers = auth_headers(client, 'admin')
    bad = client.put('/store/hours', json={'opening_time': '7pm', 'closing_time': '23:00'}, headers=headers)
    assert bad.status_code == 400
    missing = client.put('/store/hours', json={'opening_time': '18:00'}, headers=headers)
    assert missing.status_code == 400
    ok = client.put('/store/hours', json={'opening_time': '18:30', 'closing_time': '23:30'}, headers=headers)
    assert ok.status_code == 200, ok.get_json()
    assert ok.get_json()['formatted_hours'] == '18:30 - 23:30'
    assert ok.get_json()['updated_by'] == 'Admin'
    assert gate.formatted_hours() == '18:30 - 23:30'
    client.put('/store/hours', json={'opening_time': '18:00', 'closing_time': '00:00'}, headers=headers)


def test_toggle_backend_failure_returns_503_and_keeps_state(client, gate, monkeypatch):
    set_store_open(gate, False)
    headers = auth_headers(client)

    def broken_update(row_id, **fields):
        raise BackendError('connection lost')

    monkeypatch.setattr(gate._repo, 'update', broken_update)
    resp = client.post('/store/status/toggle', headers=headers)
    assert resp.status_code == 503
    body = resp.get_json()
    assert body['error']['status'] == 503
    assert gate.is_open is False


def _parse(ts):
    return datetime.fromisoformat(ts.replace('Z', '+00:00'))


def test_toggle_advances_last_updated(client, gate):
    set_store_open(gate, False)
    before = _parse(client.get('/store/status').get_json()['last_updated'])
    resp = client.post('/store/status/toggle', headers=auth_headers(client))
    assert resp.status_code == 200
    after = _parse(resp.get_json()['last_updated'])
    assert after > before
    assert _parse(client.get('/store/status').get_json()['last_updated']) == after
