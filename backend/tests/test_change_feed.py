from pizzeria.realtime.feed import ChangeFeed, EVENT_INSERT, EVENT_UPDATE


def test_publish_reaches_matching_subscribers_only():
    feed = ChangeFeed()
    seen = []
    feed.subscribe('orders', lambda c: seen.append(('all', c.event, c.row_id)))
    feed.subscribe('orders', lambda c: seen.append(('row', c.event, c.row_id)), event='update', row_id='o-1')
    feed.subscribe('store_settings', lambda c: seen.append(('store', c.event, c.row_id)))

    assert feed.publish('orders', EVENT_UPDATE, {'id': 'o-1', 'status': 'confirmed'}) == 2
    assert feed.publish('orders', EVENT_UPDATE, {'id': 'o-2', 'status': 'confirmed'}) == 1
    assert feed.publish('orders', EVENT_INSERT, {'id': 'o-1'}) == 1
    assert seen == [
        ('all', 'UPDATE', 'o-1'), ('row', 'UPDATE', 'o-1'),
        ('all', 'UPDATE', 'o-2'),
        ('all', 'INSERT', 'o-1'),
    ]


def test_unsubscribe_is_idempotent_and_stops_delivery():
    feed = ChangeFeed()
    seen = []
    sub = feed.subscribe('orders', seen.append)
    assert feed.subscriber_count == 1
    sub.unsubscribe()
    sub.unsubscribe()
    assert feed.subscriber_count == 0
    assert feed.publish('orders', EVENT_UPDATE, {'id': 'x'}) == 0
    assert seen == []


def test_no_replay_for_late_subscribers():
    feed = ChangeFeed()
    feed.publish('orders', EVENT_INSERT, {'id': 'early'})
    seen = []
    feed.subscribe('orders', seen.append)
    assert seen == []


def test_failing_handler_does_not_block_others():
    feed = ChangeFeed()
    seen = []

    def broken(change):
        raise RuntimeError('boom')

    feed.subscribe('orders', broken)
    feed.subscribe('orders', seen.append)
    assert feed.publish('orders', EVENT_UPDATE, {'id': 'o-9'}) == 1
    assert len(seen) == 1


def test_payload_is_copied():
    feed = ChangeFeed()
    seen = []
    feed.subscribe('orders', seen.append)
    row = {'id': 'o-3', 'status': 'pending'}
    feed.publish('orders', EVENT_UPDATE, row)
    row['status'] = 'mutated'
    assert seen[0].new['status'] == 'pending'
    assert seen[0].to_dict()['collection'] == 'orders'
