from __future__ import annotations
"""Order reviews over parameterized SQL.

Input is validated before any statement runs: the rating must be an integer
in [1, 5] and the optional comment is trimmed and capped. One review per
order is checked here (409) since the table carries no unique constraint.
"""
import logging
from typing import Any, Dict, Optional

from flask import abort
from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from pizzeria import get_db
from pizzeria.config.store import REVIEW_COMMENT_MAX
from pizzeria.models.base import utcnow, new_id, iso
from pizzeria.models.order import Order
from pizzeria.services.order_tracker import load_order
from pizzeria.utils.validation import strict_int

logger = logging.getLogger(__name__)

_SELECT_REVIEW = text(
    'SELECT id, order_id, customer_id, rating, comment, created_at '
    'FROM order_reviews WHERE order_id = :order_id '
    'ORDER BY created_at ASC LIMIT 1'
).columns(created_at=DateTime(timezone=True))
_INSERT_REVIEW = text(
    'INSERT INTO order_reviews (id, order_id, customer_id, rating, comment, created_at) '
    'VALUES (:id, :order_id, :customer_id, :rating, :comment, :created_at)'
).bindparams(bindparam('created_at', type_=DateTime(timezone=True)))


def validate_rating(value: Any) -> int:
    return strict_int(value, 'rating', minimum=1, maximum=5)


def normalize_comment(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        abort(400, description='comment must be a string')
    value = value.strip()
    if len(value) > REVIEW_COMMENT_MAX:
        abort(400, description=f'comment must be at most {REVIEW_COMMENT_MAX} characters')
    return value or None


def _row_json(row) -> Dict[str, Any]:
    m = row._mapping
    return {
        'id': m['id'],
        'order_id': m['order_id'],
        'customer_id': m['customer_id'],
        'rating': m['rating'],
        'comment': m['comment'],
        'created_at': iso(m['created_at']),
    }


def find_review(order_id: str) -> Optional[Dict[str, Any]]:
    session = get_db()
    try:
        row = session.execute(_SELECT_REVIEW, {'order_id': order_id}).first()
    except SQLAlchemyError:
        session.rollback()
        logger.exception('Failed to read review for order %s', order_id)
        abort(503, description='Unable to load review, please try again')
    return _row_json(row) if row else None


def has_review(order_id: str) -> bool:
    return find_review(order_id) is not None


def submit_review(order_id: str, rating: Any, comment: Any = None) -> Dict[str, Any]:
    rating = validate_rating(rating)
    comment = normalize_comment(comment)
    o = load_order(order_id)
    if o.status != Order.STATUS_COMPLETED:
        abort(400, description='Only delivered orders can be reviewed')
    if find_review(order_id) is not None:
        abort(409, description='Order already reviewed')
    params = {
        'id': new_id(),
        'order_id': o.id,
        'customer_id': o.customer_id,
        'rating': rating,
        'comment': comment,
        'created_at': utcnow(),
    }
    session = get_db()
    try:
        session.execute(_INSERT_REVIEW, params)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception('Failed to store review for order %s', order_id)
        abort(503, description='Unable to submit review, please try again')
    logger.info('Review %s stars for order %s', rating, o.short_id)
    return {**params, 'created_at': iso(params['created_at'])}


__all__ = ['validate_rating', 'normalize_comment', 'find_review', 'has_review', 'submit_review']
