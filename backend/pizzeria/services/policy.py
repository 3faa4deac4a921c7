from __future__ import annotations
from typing import Optional, Set
from flask_jwt_extended import get_jwt, verify_jwt_in_request

CUSTOMER_ACTOR = 'customer'


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def has_permissions(*codes: str) -> bool:
    perms = current_permissions()
    return all(c in perms for c in codes)


def current_actor(default: str = CUSTOMER_ACTOR) -> str:
    """Actor label of the request: the staff token's label, else ``default``."""
    try:
        verify_jwt_in_request(optional=True)
        claims = get_jwt() or {}
    except Exception:
        # malformed/expired tokens on public endpoints are treated as anonymous
        claims = {}
    actor: Optional[str] = claims.get('actor')
    return actor or default
