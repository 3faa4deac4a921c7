from __future__ import annotations
"""List endpoint plumbing: filters, multi-sort, pagination and ETag revalidation."""
import hashlib
from typing import Any, Dict, Iterable, Optional, Tuple

from flask import request, abort, make_response

from pizzeria.config.pagination import PageWindow, ORDER_BOARD


def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Generic filter builder.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': callable, 'validate': callable } }
    """
    for name, meta in specs.items():
        if name not in params or params[name] is None:
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except Exception:
                abort(400, description=f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        query = meta['op'](query, val)
    return query


def apply_multi_sort(query, sort_expr: Optional[str], allowed: dict, tie_breaker):
    """Comma-separated sort keys, '-' prefix for descending; tie_breaker keeps pages stable."""
    if not sort_expr:
        return query.order_by(tie_breaker.asc())
    clauses = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)


def normalize_pagination(limit_raw, offset_raw, window: PageWindow = ORDER_BOARD) -> Tuple[int, int]:
    try:
        limit = int(limit_raw) if limit_raw is not None else window.default
        offset = int(offset_raw) if offset_raw is not None else 0
    except (TypeError, ValueError):
        abort(400, description='limit/offset must be int')
    return max(1, min(limit, window.maximum)), max(0, offset)


def apply_pagination(q, window: PageWindow = ORDER_BOARD) -> Tuple[Any, int, int, int]:
    limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'), window)
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(rows: Iterable[dict], total: int, limit: int, offset: int) -> str:
    # id + updated_at captures every status/payment change on a row
    seed = '|'.join(f"{r.get('id')}@{r.get('updated_at') or ''}" for r in rows)
    seed = f"{seed}|{total}|{limit}|{offset}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def make_cached_list_response(rows: list, total: int, limit: int, offset: int):
    """Return a 200 list response, or 304 when If-None-Match carries the current ETag."""
    etag = compute_etag(rows, total, limit, offset)
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag:
        resp = make_response('', 304)
    else:
        resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    return resp

__all__ = ['apply_filters', 'apply_multi_sort', 'apply_pagination', 'compute_etag', 'build_list_payload', 'make_cached_list_response']
