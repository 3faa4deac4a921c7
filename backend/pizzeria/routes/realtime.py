from __future__ import annotations
from flask import Blueprint, Response, request, abort, current_app
from flask_jwt_extended import verify_jwt_in_request
from pizzeria.realtime.feed import ANY, EVENT_INSERT, EVENT_UPDATE
from pizzeria.realtime.stream import EventStream
from pizzeria.services.policy import has_permissions

realtime_bp = Blueprint('realtime', __name__)

# Collections browsers may follow. Order streams without a row filter are staff only.
STREAMABLE = ('store_settings', 'orders')


@realtime_bp.get('/<collection>')
def stream(collection: str):
    if collection not in STREAMABLE:
        abort(404, description=f'Unknown collection {collection}')
    row_id = request.args.get('id') or None
    event = (request.args.get('event') or ANY).upper()
    if event not in (ANY, EVENT_INSERT, EVENT_UPDATE):
        abort(400, description='event invalid')
    if collection == 'orders' and row_id is None:
        verify_jwt_in_request()
        if not has_permissions('ORDERS.READ'):
            abort(403, description='Missing permission')
    limit = request.args.get('limit')
    try:
        limit = int(limit) if limit is not None else None
    except ValueError:
        abort(400, description='limit must be int')
    feed = current_app.extensions['change_feed']
    events = EventStream(feed, collection, event=event, row_id=row_id)
    current_app.logger.debug('SSE subscriber on %s (event=%s, id=%s)', collection, event, row_id)
    resp = Response(
        events.events(limit=limit),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )
    # body may never be iterated (HEAD, early disconnect)
    resp.call_on_close(events.close)
    return resp
