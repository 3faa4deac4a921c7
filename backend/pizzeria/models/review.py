from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, ForeignKey, DateTime

from .base import Base, utcnow, new_id
from pizzeria.config.store import REVIEW_COMMENT_MAX


class OrderReview(Base):
    # Written and read through parameterized SQL in services/reviews.py;
    # the mapping exists so metadata and migrations know the table.
    # One review per order is checked by the service, not by a constraint.
    __tablename__ = 'order_reviews'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(ForeignKey('orders.id'), nullable=False, index=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey('customers.id'), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(String(REVIEW_COMMENT_MAX), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
