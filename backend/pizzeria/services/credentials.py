from __future__ import annotations
"""Staff credentials: issue, validate and revoke access tokens.

Two shared staff accounts exist (``admin`` and ``staff``); their passwords
come from config and are only ever compared through werkzeug hashes. Tokens
are flask-jwt-extended access tokens carrying the permission list and the
actor label written into ``updated_by`` / audit rows. Revocation is a jti
blocklist consulted on every protected request.
"""
import threading
import time
from typing import Any, Dict, Mapping, Optional

from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash, check_password_hash

from pizzeria.constants.permissions import expand_role

ACCOUNTS = {
    # username -> (config key holding the password, role preset, actor label)
    'admin': ('STAFF_ADMIN_PASSWORD', 'Admin', 'Admin'),
    'staff': ('STAFF_PASSWORD', 'Staff', 'Staff'),
}

_revoked_lock = threading.Lock()
# jti -> exp (epoch seconds); entries go once the token could no longer verify
_revoked_jtis: Dict[str, Optional[float]] = {}


class StaffDirectory:
    def __init__(self, config: Mapping[str, Any]):
        self._accounts: Dict[str, Dict[str, Any]] = {}
        for username, (key, role, actor) in ACCOUNTS.items():
            raw = config.get(key)
            if not raw:
                continue
            self._accounts[username] = {
                'password_hash': generate_password_hash(raw),
                'role': role,
                'actor': actor,
            }

    def verify(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        account = self._accounts.get(username)
        if not account or not check_password_hash(account['password_hash'], password):
            return None
        return account


def issue_token(directory: StaffDirectory, username: str, password: str) -> Optional[str]:
    account = directory.verify(username, password)
    if account is None:
        return None
    claims = {
        'role': account['role'],
        'actor': account['actor'],
        'perms': expand_role(account['role']),
    }
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    return create_access_token(identity=username, additional_claims=claims)


def revoke_token(jwt_payload: Mapping[str, Any]):
    with _revoked_lock:
        _revoked_jtis[jwt_payload['jti']] = jwt_payload.get('exp')


def _drop_expired(now: float):
    expired = [jti for jti, exp in _revoked_jtis.items() if exp is not None and exp <= now]
    for jti in expired:
        del _revoked_jtis[jti]


def is_token_revoked(jwt_payload: Mapping[str, Any], now: Optional[float] = None) -> bool:
    with _revoked_lock:
        _drop_expired(time.time() if now is None else now)
        return jwt_payload.get('jti') in _revoked_jtis


def revoked_count() -> int:
    with _revoked_lock:
        return len(_revoked_jtis)


__all__ = ['StaffDirectory', 'issue_token', 'revoke_token', 'is_token_revoked', 'revoked_count']
