from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from pizzeria.decorators.auth import require_permissions
from pizzeria.decorators.audit import audit_log
from pizzeria.services.errors import BackendError
from pizzeria.services.policy import current_actor
from pizzeria.services.store_status import StoreStatusGate

store_bp = Blueprint('store', __name__)


def _gate() -> StoreStatusGate:
    return current_app.extensions['store_gate']


def _status_json(gate: StoreStatusGate, status=None):
    body = dict(status if status is not None else (gate.status or {'is_open': False}))
    body['formatted_hours'] = gate.formatted_hours()
    return body


def _prefetch_status(*_):
    return _gate().status or {}


@store_bp.get('/status')
def get_status():
    gate = _gate()
    gate.reconcile_if_stale()
    body = _status_json(gate)
    body['loading'] = gate.loading
    return body


@store_bp.get('/interaction')
def check_interaction():
    gate = _gate()
    gate.reconcile_if_stale()
    decision = gate.check_interaction()
    if not decision:
        return decision.to_dict(), 403
    return decision.to_dict()


@store_bp.post('/status/toggle')
@require_permissions('STORE.MANAGE')
@audit_log(
    'STORE.TOGGLE',
    entity='StoreSettings',
    entity_id_key='id',
    diff_keys=['is_open'],
    pre_fetch=_prefetch_status,
    meta_keys=['updated_by']
)
def toggle_status():
    gate = _gate()
    try:
        written = gate.toggle(current_actor(default='Staff'))
    except BackendError:
        current_app.logger.exception('Store toggle failed')
        abort(503, description='Unable to update store status, please try again')
    current_app.logger.info('Store %s by %s', 'opened' if written['is_open'] else 'closed', written['updated_by'])
    return _status_json(gate, written)


@store_bp.put('/hours')
@require_permissions('STORE.MANAGE')
@audit_log(
    'STORE.HOURS',
    entity='StoreSettings',
    entity_id_key='id',
    diff_keys=['opening_time', 'closing_time'],
    pre_fetch=_prefetch_status,
    meta_keys=['opening_time', 'closing_time']
)
def set_hours():
    data = request.get_json(silent=True) or {}
    opening = data.get('opening_time'); closing = data.get('closing_time')
    if not opening or not closing:
        abort(400, description='opening_time & closing_time required')
    try:
        written = _gate().set_hours(opening, closing, current_actor(default='Staff'))
    except ValueError as e:
        abort(400, description=str(e))
    except BackendError:
        current_app.logger.exception('Store hours update failed')
        abort(503, description='Unable to update store hours, please try again')
    return _status_json(_gate(), written)
