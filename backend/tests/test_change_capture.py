from pizzeria import get_db
from pizzeria.models.customer import Customer
from pizzeria.models.audit import AuditLog


def _collect(feed, collection='customers'):
    seen = []
    sub = feed.subscribe(collection, seen.append)
    return seen, sub


def test_insert_and_update_published_after_commit(feed):
    seen, sub = _collect(feed)
    session = get_db()
    c = Customer(name='Capture One', phone='1111')
    session.add(c)
    session.flush()
    assert seen == []  # nothing before commit
    session.commit()
    assert [e.event for e in seen] == ['INSERT']
    assert seen[0].new['id'] == c.id
    c.phone = '2222'
    session.commit()
    assert [e.event for e in seen] == ['INSERT', 'UPDATE']
    assert seen[-1].new['phone'] == '2222'
    sub.unsubscribe()


def test_insert_then_update_in_one_transaction_reads_as_insert(feed):
    seen, sub = _collect(feed)
    session = get_db()
    c = Customer(name='Capture Two', phone='3333')
    session.add(c)
    session.flush()
    c.phone = '4444'
    session.commit()
    assert [e.event for e in seen] == ['INSERT']
    assert seen[0].new['phone'] == '4444'
    sub.unsubscribe()


def test_rollback_publishes_nothing(feed):
    seen, sub = _collect(feed)
    session = get_db()
    session.add(Customer(name='Capture Three', phone='5555'))
    session.flush()
    session.rollback()
    session.commit()
    assert seen == []
    sub.unsubscribe()


def test_untracked_models_are_not_published(feed):
    seen, sub = _collect(feed, collection='*')
    session = get_db()
    session.add(AuditLog(actor='test', action='TEST.NOOP', meta={}))
    session.commit()
    assert all(e.collection != 'audit_logs' for e in seen)
    sub.unsubscribe()
