from __future__ import annotations
"""Reusable request-payload validation helpers.

All helpers abort with 400 and a short description so handlers can use them inline.
"""
from typing import Any, Iterable, Mapping, Optional
from flask import abort


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


def require_fields(data: Mapping[str, Any], fields: Iterable[str], label: Optional[str] = None) -> dict:
    """Return stripped string values for ``fields``; abort listing the missing ones."""
    out = {}
    missing = []
    for name in fields:
        value = data.get(name) if isinstance(data, Mapping) else None
        if isinstance(value, str):
            value = value.strip()
        if value in (None, ''):
            missing.append(name)
        else:
            out[name] = value
    if missing:
        prefix = f"{label}." if label else ''
        abort(400, description=', '.join(prefix + m for m in missing) + ' required')
    return out


def strict_int(value: Any, field_name: str, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Accept real integers only (bool and numeric strings are rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        abort(400, description=f"{field_name} must be an integer")
    if minimum is not None and value < minimum:
        abort(400, description=f"{field_name} must be >= {minimum}")
    if maximum is not None and value > maximum:
        abort(400, description=f"{field_name} must be <= {maximum}")
    return value

__all__ = ['validate_status', 'require_fields', 'strict_int']
