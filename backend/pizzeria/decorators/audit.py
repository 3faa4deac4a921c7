from __future__ import annotations
"""Audit logging decorator for state-changing route handlers.

Usage examples:

@audit_log('STORE.TOGGLE', entity='StoreSettings', entity_id_key='id', meta_keys=['is_open', 'updated_by'])
def toggle_store(): ...

@audit_log('ORDER.CONFIRM', entity='Order', entity_id_key='id', diff_keys=['status'],
           pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')))
def confirm_order(order_id): ...

Parameters:
  action: required audit action code
  entity: optional entity label
  entity_id_key: key in the returned JSON object whose value becomes entity_id
  entity_id_arg: view argument used for entity_id when the payload lacks entity_id_key
  meta_keys: keys projected from the returned JSON into meta
  meta_builder: callable(data, rv, args, kwargs) -> dict, overrides meta_keys
  diff_keys + pre_fetch: record {'changes': {key: {'before', 'after'}}} against a snapshot
    taken before the handler ran

Handlers returning dict, (dict, status) or (dict, status, headers) are supported; the
original return value is passed through untouched. Aborted handlers are not audited.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from flask import current_app

from pizzeria.services.audit import add_audit
from pizzeria import get_db


def _extract_payload(rv: Any):
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            try:
                data = _extract_payload(rv)
                if not isinstance(data, dict):
                    data = {}
                entity_id = data.get(entity_id_key) if entity_id_key else None
                if entity_id is None and entity_id_arg:
                    entity_id = kwargs.get(entity_id_arg)
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs) or {}
                else:
                    meta = {k: data.get(k) for k in (meta_keys or []) if k in data}
                if diff_keys and before:
                    changes = {
                        k: {'before': before.get(k), 'after': data.get(k)}
                        for k in diff_keys
                        if k in before and k in data and before.get(k) != data.get(k)
                    }
                    if changes:
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                # the audited write already committed; report, do not fail the response
                current_app.logger.exception('Audit logging failed for %s', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer
