"""Order use cases on top of the lifecycle rules in :mod:`orders`.

Each function is one unit of work: it reads what it needs, applies the rules
and commits. Errors from the rules propagate unchanged.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable

from sqlmodel import Session, select, func, or_

from .errors import InvalidTransition, NotFound, ValidationError
from .models import LineItem, Order, OrderStatus
from .orders import add_line_item, compute_total, create_line_item, generate_order_number, transition_order, update_quantity
from .product_service import get_product
from .utils import now_utc
from .validation import check_email, check_phone, optional_text, require_text

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.IN_PREPARATION)


@dataclass
class ItemRequest:
    product_id: int
    quantity: int
    notes: str | None = None


def number_exists(session: Session, number: str) -> bool:
    return session.exec(select(Order.id).where(Order.number == number)).first() is not None


def create_order(
    session: Session,
    customer_name: str,
    items: Iterable[ItemRequest],
    customer_email: str | None = None,
    customer_phone: str | None = None,
    table_number: int | None = None,
    notes: str | None = None,
) -> Order:
    items = list(items)
    if not items:
        raise ValidationError("An order needs at least one product")
    if table_number is not None and table_number < 1:
        raise ValidationError("Table number must be 1 or greater")

    order = Order(
        number=generate_order_number(lambda n: number_exists(session, n)),
        customer_name=require_text(customer_name, "Customer name", 100),
        customer_email=check_email(customer_email),
        customer_phone=check_phone(customer_phone),
        table_number=table_number,
        notes=optional_text(notes, "Notes", 500),
        status=OrderStatus.PENDING,
        ordered_at=now_utc(),
    )
    for req in items:
        product = get_product(session, req.product_id)
        add_line_item(order, create_line_item(product, req.quantity, optional_text(req.notes, "Item notes", 200)))
    order.total = compute_total(order)

    logger.info("Creating order for customer %s", order.customer_name)
    session.add(order)
    session.commit()
    session.refresh(order)
    logger.info("Order %s created with total %s", order.number, order.total)
    return order


def get_order(session: Session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise NotFound(f"Order {order_id} not found")
    return order


def get_order_by_number(session: Session, number: str) -> Order:
    number = require_text(number, "Order number", 20)
    order = session.exec(select(Order).where(Order.number == number)).first()
    if not order:
        raise NotFound(f"Order {number} not found")
    return order


def change_order_status(session: Session, order_id: int, new_status: OrderStatus | None) -> Order:
    order = get_order(session, order_id)
    previous = order.status
    transition_order(order, new_status)
    order.updated_at = now_utc()
    session.add(order)
    session.commit()
    session.refresh(order)
    logger.info("Order %s moved from %s to %s", order.number, previous.value, order.status.value)
    return order


def _editable(order: Order) -> Order:
    if order.status == OrderStatus.DELIVERED:
        raise InvalidTransition(f"Order {order.number} was already delivered")
    return order


def _save_total(session: Session, order: Order) -> Order:
    order.total = compute_total(order)
    order.updated_at = now_utc()
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def add_item_to_order(session: Session, order_id: int, req: ItemRequest) -> Order:
    order = _editable(get_order(session, order_id))
    product = get_product(session, req.product_id)
    add_line_item(order, create_line_item(product, req.quantity, optional_text(req.notes, "Item notes", 200)))
    return _save_total(session, order)


def update_item_quantity(session: Session, order_id: int, item_id: int, quantity: int) -> Order:
    order = _editable(get_order(session, order_id))
    item = session.get(LineItem, item_id)
    if not item or item.order_id != order.id:
        raise NotFound(f"Line item {item_id} not found in order {order.number}")
    update_quantity(item, quantity)
    session.add(item)
    return _save_total(session, order)


def orders_by_status(session: Session, status: OrderStatus) -> list[Order]:
    return list(session.exec(
        select(Order).where(Order.status == status).order_by(Order.ordered_at.desc())
    ).all())


def active_orders(session: Session) -> list[Order]:
    return list(session.exec(
        select(Order).where(Order.status.in_(ACTIVE_STATUSES)).order_by(Order.ordered_at.asc())
    ).all())


def orders_for_day(session: Session, day: date | None = None) -> list[Order]:
    day = day or now_utc().date()
    start = datetime.combine(day, time.min)
    return list(session.exec(
        select(Order)
        .where(Order.ordered_at >= start, Order.ordered_at < start + timedelta(days=1))
        .order_by(Order.ordered_at.desc())
    ).all())


def orders_in_range(session: Session, start: datetime, end: datetime) -> list[Order]:
    if start is None or end is None:
        raise ValidationError("Both start and end are required")
    if not end > start:
        raise ValidationError("End must be after start")
    return list(session.exec(
        select(Order)
        .where(Order.ordered_at >= start, Order.ordered_at <= end)
        .order_by(Order.ordered_at.desc())
    ).all())


def search_orders(session: Session, text: str) -> list[Order]:
    text = require_text(text, "Search text", 100)
    return list(session.exec(
        select(Order)
        .where(or_(func.lower(Order.customer_name).contains(text.lower()), Order.customer_phone.contains(text)))
        .order_by(Order.ordered_at.desc())
    ).all())


def orders_for_table(session: Session, table_number: int,
                     excluding: OrderStatus = OrderStatus.CANCELLED) -> list[Order]:
    return list(session.exec(
        select(Order)
        .where(Order.table_number == table_number, Order.status != excluding)
        .order_by(Order.ordered_at.desc())
    ).all())


def orders_over(session: Session, amount) -> list[Order]:
    amount = Decimal(str(amount))
    return list(session.exec(
        select(Order).where(Order.total >= amount).order_by(Order.total.desc())
    ).all())


def orders_for_email(session: Session, email: str) -> list[Order]:
    """A customer's order history, newest first."""
    email = check_email(email)
    if email is None:
        raise ValidationError("Email is required")
    return list(session.exec(
        select(Order).where(Order.customer_email == email).order_by(Order.ordered_at.desc())
    ).all())
