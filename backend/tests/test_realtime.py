import json
import pika
from pika.exceptions import AMQPConnectionError
from pizzeria.realtime.bridge import RabbitBridge
from pizzeria.realtime.feed import ChangeFeed, ChangeEvent, EVENT_UPDATE
from pizzeria.realtime.stream import EventStream, format_sse, KEEPALIVE
from tests.test_utils_seed import auth_headers


def test_format_sse():
    change = ChangeEvent('orders', 'UPDATE', {'id': 'o-1', 'status': 'ready'})
    text = format_sse(change)
    assert text.startswith('event: update\ndata: ')
    assert text.endswith('\n\n')
    payload = json.loads(text.split('data: ', 1)[1])
    assert payload['new']['status'] == 'ready'


def test_event_stream_yields_subscribed_events_then_unsubscribes():
    feed = ChangeFeed()
    stream = EventStream(feed, 'orders', row_id='o-1', heartbeat=0.01)
    feed.publish('orders', EVENT_UPDATE, {'id': 'o-2', 'status': 'ready'})
    feed.publish('orders', EVENT_UPDATE, {'id': 'o-1', 'status': 'ready'})
    chunks = list(stream.events(limit=1))
    assert chunks[0] == 'retry: 3000\n\n'
    assert '"o-1"' in chunks[1]
    assert feed.subscriber_count == 0


def test_event_stream_heartbeat_and_overflow():
    feed = ChangeFeed()
    stream = EventStream(feed, 'store_settings', max_queue=1, heartbeat=0.01)
    feed.publish('store_settings', EVENT_UPDATE, {'id': 's', 'is_open': True})
    feed.publish('store_settings', EVENT_UPDATE, {'id': 's', 'is_open': False})
    assert stream.dropped == 1
    gen = stream.events(limit=2)
    assert next(gen) == 'retry: 3000\n\n'
    assert 'true' in next(gen)
    assert next(gen) == KEEPALIVE
    gen.close()
    assert feed.subscriber_count == 0


def test_stream_route(client, feed):
    resp = client.get('/realtime/store_settings?limit=0')
    assert resp.status_code == 200
    assert resp.mimetype == 'text/event-stream'
    assert resp.get_data(as_text=True) == 'retry: 3000\n\n'
    assert client.get('/realtime/audit_logs').status_code == 404
    assert client.get('/realtime/orders?event=DELETE&id=x').status_code == 400


def test_unread_stream_releases_subscription_on_close(client, feed):
    before = feed.subscriber_count
    for _ in range(3):
        resp = client.head('/realtime/store_settings')
        assert resp.status_code == 200
        resp.close()
    assert feed.subscriber_count == before


def test_order_stream_without_id_is_staff_only(client):
    assert client.get('/realtime/orders?limit=0').status_code == 401
    resp = client.get('/realtime/orders?limit=0', headers=auth_headers(client))
    assert resp.status_code == 200
    assert client.get('/realtime/orders?limit=0&id=some-order').status_code == 200


class FakeChannel:
    def __init__(self, sink):
        self.sink = sink

    def exchange_declare(self, **kwargs):
        self.sink.append(('declare', kwargs))

    def basic_publish(self, **kwargs):
        self.sink.append(('publish', kwargs))


class FakeConnection:
    sink = []

    def __init__(self, params):
        self.params = params

    def channel(self):
        return FakeChannel(self.sink)

    def close(self):
        self.sink.append(('close', None))


def test_bridge_publishes_with_topic_routing_key(monkeypatch):
    FakeConnection.sink = []
    monkeypatch.setattr(pika, 'BlockingConnection', FakeConnection)
    feed = ChangeFeed()
    bridge = RabbitBridge.from_config({'RABBIT_HOST': 'broker', 'RABBIT_EXCHANGE': 'changes'})
    bridge.attach(feed)
    feed.publish('orders', EVENT_UPDATE, {'id': 'o-1', 'status': 'ready'})
    kinds = [k for k, _ in FakeConnection.sink]
    assert kinds == ['declare', 'publish', 'close']
    publish = FakeConnection.sink[1][1]
    assert publish['exchange'] == 'changes'
    assert publish['routing_key'] == 'orders.update'
    assert json.loads(publish['body'])['new']['id'] == 'o-1'
    bridge.detach()
    assert feed.subscriber_count == 0


def test_bridge_failure_is_swallowed(monkeypatch):
    def refuse(params):
        raise AMQPConnectionError('down')

    monkeypatch.setattr(pika, 'BlockingConnection', refuse)
    bridge = RabbitBridge('broker')
    assert bridge.publish(ChangeEvent('orders', 'INSERT', {'id': 'o-1'})) is False
