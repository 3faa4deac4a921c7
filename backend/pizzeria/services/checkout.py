from __future__ import annotations
"""Checkout: turn a validated cart into persisted customer, address, order and items.

Rows are written as separate sequential commits (customer, address, order,
then one per item). A failure part-way leaves the earlier rows in place; the
error is logged with the ids already written and surfaced as a 503.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from flask import abort
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pizzeria import get_db
from pizzeria.config.store import DELIVERY_FEE_CENTS, PAYMENT_METHODS, PIX_MERCHANT_NAME, PIX_MERCHANT_CITY
from pizzeria.models.customer import Customer, DeliveryAddress
from pizzeria.models.base import new_id
from pizzeria.models.menu import Product
from pizzeria.models.order import Order, OrderItem
from pizzeria.utils.validation import require_fields, strict_int, validate_status

logger = logging.getLogger(__name__)

MAX_ITEM_QUANTITY = 50


def build_pix_payload(order_id: str, total_cents: int, customer_name: str) -> Dict[str, Any]:
    return {
        'amount': f"{total_cents / 100:.2f}",
        'description': f'Order TALOLA - {customer_name}',
        'merchant': PIX_MERCHANT_NAME,
        'city': PIX_MERCHANT_CITY,
        'txid': f"TALOLA{order_id.replace('-', '')[:20].upper()}",
    }


def _parse_items(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list) or not raw:
        abort(400, description='items required')
    lines = []
    for idx, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            abort(400, description=f'items[{idx}] invalid')
        product_id = entry.get('product_id')
        if not product_id or not isinstance(product_id, str):
            abort(400, description=f'items[{idx}].product_id required')
        quantity = strict_int(entry.get('quantity'), f'items[{idx}].quantity', minimum=1, maximum=MAX_ITEM_QUANTITY)
        notes = entry.get('notes')
        if notes is not None and not isinstance(notes, str):
            abort(400, description=f'items[{idx}].notes must be a string')
        lines.append({'product_id': product_id, 'quantity': quantity, 'notes': (notes or '').strip() or None})
    return lines


def _price_lines(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    session = get_db()
    ids = {line['product_id'] for line in lines}
    products = {
        p.id: p for p in session.execute(select(Product).where(Product.id.in_(ids))).scalars()
    }
    priced = []
    for line in lines:
        p = products.get(line['product_id'])
        if p is None or not p.is_available:
            abort(400, description=f"Product {line['product_id']} unavailable")
        priced.append({
            **line,
            'product_name': p.name,
            'unit_price_cents': p.price_cents,
            'total_price_cents': p.price_cents * line['quantity'],
        })
    return priced


def _commit(session, what: str, written: Dict[str, str]):
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception('Checkout failed while saving %s; already written: %s', what, written)
        abort(503, description='Unable to place order, please try again')


def place_order(data: Mapping[str, Any], delivery_fee_cents: int = DELIVERY_FEE_CENTS) -> Dict[str, Any]:
    customer_in = require_fields(data.get('customer') or {}, ['name', 'phone'], label='customer')
    address_raw = data.get('address') or {}
    if not isinstance(address_raw, Mapping):
        abort(400, description='address invalid')
    address_in = require_fields(address_raw, ['street', 'number', 'neighborhood', 'city'], label='address')
    complement: Optional[str] = address_raw.get('complement')
    if complement is not None and not isinstance(complement, str):
        abort(400, description='address.complement must be a string')
    payment_method = validate_status(data.get('payment_method'), PAYMENT_METHODS, 'payment_method')
    priced = _price_lines(_parse_items(data.get('items')))

    subtotal = sum(line['total_price_cents'] for line in priced)
    total = subtotal + delivery_fee_cents

    session = get_db()
    written: Dict[str, str] = {}

    customer = Customer(name=customer_in['name'], phone=customer_in['phone'])
    session.add(customer)
    _commit(session, 'customer', written)
    written['customer'] = customer.id

    address = DeliveryAddress(
        customer_id=customer.id,
        street=address_in['street'],
        number=str(address_in['number']),
        complement=(complement or '').strip() or None,
        neighborhood=address_in['neighborhood'],
        city=address_in['city'],
    )
    session.add(address)
    _commit(session, 'delivery address', written)
    written['address'] = address.id

    order_id = new_id()
    order = Order(
        id=order_id,
        customer_id=customer.id,
        delivery_address_id=address.id,
        status=Order.STATUS_PENDING,
        payment_method=payment_method,
        payment_status=Order.PAYMENT_PENDING,
        subtotal_cents=subtotal,
        delivery_fee_cents=delivery_fee_cents,
        total_cents=total,
        pix_payload=build_pix_payload(order_id, total, customer.name) if payment_method == 'pix' else None,
    )
    session.add(order)
    _commit(session, 'order', written)
    written['order'] = order.id

    items = []
    for line in priced:
        item = OrderItem(order_id=order.id, **line)
        session.add(item)
        _commit(session, f"item {line['product_id']}", written)
        items.append(item)

    logger.info('Order %s placed: %s items, total %s cents via %s', order.short_id, len(items), total, payment_method)
    body = order.to_dict()
    body['items'] = [i.to_dict() for i in items]
    body['customer'] = customer.to_dict()
    body['address'] = address.to_dict()
    body['pix'] = order.pix_payload
    return body


__all__ = ['place_order', 'build_pix_payload']
