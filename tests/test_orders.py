import random
import re
from datetime import datetime
from decimal import Decimal

import pytest

from restaurant.errors import InvalidArgument, InvalidTransition, ProductUnavailable, ValidationError
from restaurant.models import Order, OrderStatus, Product
from restaurant.orders import (
    add_line_item,
    compute_total,
    create_line_item,
    generate_order_number,
    transition_order,
    update_quantity,
)


def product(price="12.50", available=True):
    return Product(id=1, name="Ceviche", description="Pescado del dia", price=Decimal(price),
                   category="Entradas", available=available)


def order(status=OrderStatus.PENDING):
    return Order(number="PED202410221234", customer_name="Ana Torres", status=status)


def test_line_item_captures_price_and_subtotal():
    item = create_line_item(product("12.50"), 3)
    assert item.unit_price == Decimal("12.50")
    assert item.subtotal == Decimal("37.50")
    assert item.quantity == 3


def test_line_item_price_is_not_live_linked():
    p = product("10.00")
    item = create_line_item(p, 2)
    p.price = Decimal("99.00")
    update_quantity(item, 4)
    assert item.unit_price == Decimal("10.00")
    assert item.subtotal == Decimal("40.00")


def test_unavailable_product_is_rejected():
    with pytest.raises(ProductUnavailable):
        create_line_item(product(available=False), 2)


@pytest.mark.parametrize("quantity", [0, -1, 100, None, 2.5, True, "3"])
def test_line_item_quantity_bounds(quantity):
    with pytest.raises(InvalidArgument):
        create_line_item(product(), quantity)


def test_line_item_requires_product():
    with pytest.raises(InvalidArgument):
        create_line_item(None, 1)


@pytest.mark.parametrize("quantity", [1, 99])
def test_line_item_quantity_limits_are_inclusive(quantity):
    assert create_line_item(product("2.00"), quantity).subtotal == Decimal("2.00") * quantity


@pytest.mark.parametrize("quantity", [0, 100, None, 2.5, True])
def test_update_quantity_bounds(quantity):
    item = create_line_item(product(), 1)
    with pytest.raises(InvalidArgument):
        update_quantity(item, quantity)
    assert item.quantity == 1


def test_invalid_argument_is_a_validation_error():
    assert issubclass(InvalidArgument, ValidationError)


def test_total_follows_every_added_item():
    o = order()
    assert compute_total(o) == Decimal("0")
    expected = Decimal("0")
    for price, qty in [("12.50", 2), ("8.00", 1), ("3.75", 4)]:
        item = create_line_item(product(price), qty)
        add_line_item(o, item)
        expected += Decimal(price) * qty
        assert compute_total(o) == expected
        assert compute_total(o) == sum(i.subtotal for i in o.items)
    assert len(o.items) == 3


def test_compute_total_does_not_write_total():
    o = order()
    add_line_item(o, create_line_item(product("5.00"), 2))
    assert compute_total(o) == Decimal("10.00")
    assert o.total == Decimal("0")


def test_add_line_item_links_order():
    o = order()
    item = create_line_item(product(), 1)
    add_line_item(o, item)
    assert item.order is o
    assert o.items == [item]


def test_add_line_item_rejects_none():
    with pytest.raises(InvalidArgument):
        add_line_item(order(), None)


def test_transition_requires_status():
    with pytest.raises(InvalidTransition):
        transition_order(order(), None)


@pytest.mark.parametrize("target", [s for s in OrderStatus if s != OrderStatus.DELIVERED])
def test_delivered_orders_are_frozen(target):
    o = order(OrderStatus.DELIVERED)
    with pytest.raises(InvalidTransition):
        transition_order(o, target)
    assert o.status == OrderStatus.DELIVERED


def test_delivered_to_delivered_keeps_first_timestamp():
    o = order()
    first = datetime(2024, 10, 22, 20, 15)
    transition_order(o, OrderStatus.DELIVERED, now=first)
    transition_order(o, OrderStatus.DELIVERED, now=datetime(2024, 10, 22, 21, 0))
    assert o.status == OrderStatus.DELIVERED
    assert o.delivered_at == first


def test_any_move_allowed_before_delivery():
    o = order(OrderStatus.READY)
    transition_order(o, OrderStatus.PENDING)
    assert o.status == OrderStatus.PENDING
    transition_order(o, OrderStatus.CANCELLED)
    transition_order(o, OrderStatus.IN_PREPARATION)
    assert o.status == OrderStatus.IN_PREPARATION
    assert o.delivered_at is None


def test_delivery_stamps_time():
    o = order(OrderStatus.READY)
    transition_order(o, OrderStatus.DELIVERED)
    assert o.delivered_at is not None


def test_order_number_format():
    number = generate_order_number(lambda n: False, now=datetime(2024, 10, 22, 13, 0), rng=random.Random(7))
    assert re.fullmatch(r"PED20241022\d{4}", number)
    assert 1000 <= int(number[-4:]) < 9999


def test_order_number_retries_until_unique():
    seen = []

    def exists(number):
        seen.append(number)
        return len(seen) < 3

    number = generate_order_number(exists, now=datetime(2024, 10, 22), rng=random.Random(1))
    assert len(seen) == 3
    assert number == seen[-1]
