"""Order lifecycle rules.

These functions change the entity in place and return it. They never touch
the database; persisting the result is up to the caller.
"""
from __future__ import annotations

import random
from datetime import datetime
from decimal import Decimal
from typing import Callable

from .errors import InvalidArgument, InvalidTransition, ProductUnavailable
from .models import LineItem, Order, OrderStatus, Product
from .utils import now_utc

MIN_QUANTITY = 1
MAX_QUANTITY = 99
ORDER_NUMBER_PREFIX = "PED"


def transition_order(order: Order, new_status: OrderStatus | None, now: datetime | None = None) -> Order:
    """Move ``order`` to ``new_status``.

    Delivered orders are frozen: the only accepted target is DELIVERED again,
    which leaves the original delivery time untouched. Every other move,
    including going backwards, is allowed.
    """
    if new_status is None:
        raise InvalidTransition("New status must be given")
    if order.status == OrderStatus.DELIVERED:
        if new_status != OrderStatus.DELIVERED:
            raise InvalidTransition(f"Order {order.number} was already delivered")
        return order

    order.status = new_status
    if new_status == OrderStatus.DELIVERED:
        order.delivered_at = now or now_utc()
    return order


def add_line_item(order: Order, item: LineItem | None) -> Order:
    if item is None:
        raise InvalidArgument("Line item must be given")
    # the relationship backref sets item.order
    order.items.append(item)
    return order


def compute_total(order: Order) -> Decimal:
    return sum((item.subtotal for item in order.items), Decimal("0"))


def _check_quantity(quantity: int | None) -> int:
    # bool is an int subclass
    if not isinstance(quantity, int) or isinstance(quantity, bool) \
            or not (MIN_QUANTITY <= quantity <= MAX_QUANTITY):
        raise InvalidArgument(f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}")
    return quantity


def create_line_item(product: Product | None, quantity: int | None, notes: str | None = None) -> LineItem:
    if product is None:
        raise InvalidArgument("Product must be given")
    quantity = _check_quantity(quantity)
    if not product.available:
        raise ProductUnavailable(f"Product '{product.name}' is not available")

    unit_price = Decimal(product.price)
    return LineItem(
        product_id=product.id,
        quantity=quantity,
        unit_price=unit_price,
        subtotal=unit_price * quantity,
        notes=notes,
    )


def update_quantity(item: LineItem, new_quantity: int | None) -> LineItem:
    item.quantity = _check_quantity(new_quantity)
    item.subtotal = Decimal(item.unit_price) * item.quantity
    return item


def generate_order_number(
    exists: Callable[[str], bool],
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> str:
    """Return ``PED<yyyymmdd><nnnn>`` that ``exists`` does not know yet."""
    rng = rng or random
    stamp = (now or now_utc()).strftime("%Y%m%d")
    while True:
        number = f"{ORDER_NUMBER_PREFIX}{stamp}{rng.randrange(1000, 9999)}"
        if not exists(number):
            return number
