from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, ForeignKey, DateTime, JSON

from .base import Base, utcnow, new_id, iso


class Order(Base):
    __tablename__ = 'orders'
    __realtime__ = True
    # Lifecycle status constants
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PREPARING = 'preparing'
    STATUS_READY = 'ready'
    STATUS_DELIVERING = 'delivering'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    # Linear progression offered to staff, one step at a time
    STATUS_FLOW = (
        STATUS_PENDING,
        STATUS_CONFIRMED,
        STATUS_PREPARING,
        STATUS_READY,
        STATUS_DELIVERING,
        STATUS_COMPLETED,
    )
    ALL_STATUSES = STATUS_FLOW + (STATUS_CANCELLED,)
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)

    PAYMENT_PENDING = 'pending'
    PAYMENT_PAID = 'paid'
    ALL_PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    delivery_address_id: Mapped[str] = mapped_column(ForeignKey('delivery_addresses.id'), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default=PAYMENT_PENDING)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivery_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pix_payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    estimated_delivery_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def short_id(self) -> str:
        return self.id[-8:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'delivery_address_id': self.delivery_address_id,
            'status': self.status,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'subtotal_cents': self.subtotal_cents,
            'delivery_fee_cents': self.delivery_fee_cents,
            'total_cents': self.total_cents,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
            'confirmed_at': iso(self.confirmed_at),
            'estimated_delivery_time': iso(self.estimated_delivery_time),
            'delivered_at': iso(self.delivered_at),
            'cancelled_at': iso(self.cancelled_at),
        }


class OrderItem(Base):
    __tablename__ = 'order_items'
    __realtime__ = True
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(ForeignKey('orders.id'), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(ForeignKey('products.id'), nullable=False)
    # Name snapshot so receipts survive later menu edits
    product_name: Mapped[str] = mapped_column(String(128), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'product_id': self.product_id,
            'product_name': self.product_name,
            'quantity': self.quantity,
            'unit_price_cents': self.unit_price_cents,
            'total_price_cents': self.total_price_cents,
            'notes': self.notes,
        }
