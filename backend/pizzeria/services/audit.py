from __future__ import annotations
from typing import Any, Dict, Optional
from pizzeria import get_db
from pizzeria.models.audit import AuditLog
from pizzeria.services.policy import current_actor


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. STORE.TOGGLE, ORDER.CONFIRM, REVIEW.CREATE
      entity: optional entity name (StoreSettings, Order, ...)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = get_db()
    log = AuditLog(
        actor=current_actor(),
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
