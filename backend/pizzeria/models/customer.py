from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, DateTime

from .base import Base, utcnow, new_id, iso


class Customer(Base):
    __tablename__ = 'customers'
    __realtime__ = True
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'phone': self.phone, 'created_at': iso(self.created_at)}


class DeliveryAddress(Base):
    __tablename__ = 'delivery_addresses'
    __realtime__ = True
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    street: Mapped[str] = mapped_column(String(160), nullable=False)
    number: Mapped[str] = mapped_column(String(16), nullable=False)
    complement: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    neighborhood: Mapped[str] = mapped_column(String(120), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def one_line(self) -> str:
        street = f"{self.street}, {self.number}"
        if self.complement:
            street = f"{street} ({self.complement})"
        return f"{street} - {self.neighborhood}, {self.city}"

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'street': self.street,
            'number': self.number,
            'complement': self.complement,
            'neighborhood': self.neighborhood,
            'city': self.city,
        }
