from __future__ import annotations
import logging
from datetime import timedelta
from decimal import Decimal

from sqlmodel import Session, select, func

from .errors import NotFound, ValidationError
from .models import Product
from .utils import now_utc
from .validation import optional_text, require_text

logger = logging.getLogger(__name__)


def _check_price(price) -> Decimal:
    if price is None:
        raise ValidationError("Price is required")
    price = Decimal(str(price))
    if price <= 0:
        raise ValidationError("Price must be greater than 0")
    if price != price.quantize(Decimal("0.01")):
        raise ValidationError("Price must have at most 2 decimals")
    return price


def create_product(session: Session, name: str, description: str, price, category: str,
                   image_url: str | None = None, available: bool = True) -> Product:
    product = Product(
        name=require_text(name, "Product name", 100),
        description=require_text(description, "Description", 500),
        price=_check_price(price),
        category=require_text(category, "Category", 50),
        image_url=optional_text(image_url, "Image URL", 255),
        available=available,
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def get_product(session: Session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise NotFound(f"Product {product_id} not found")
    return product


def update_product(session: Session, product_id: int, **changes) -> Product:
    """Apply the given field changes; ``None`` values are ignored."""
    product = get_product(session, product_id)
    if changes.get("name") is not None:
        product.name = require_text(changes["name"], "Product name", 100)
    if changes.get("description") is not None:
        product.description = require_text(changes["description"], "Description", 500)
    if changes.get("price") is not None:
        product.price = _check_price(changes["price"])
    if changes.get("category") is not None:
        product.category = require_text(changes["category"], "Category", 50)
    if changes.get("image_url") is not None:
        product.image_url = optional_text(changes["image_url"], "Image URL", 255)
    if changes.get("available") is not None:
        product.available = bool(changes["available"])
    product.updated_at = now_utc()
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


def set_product_availability(session: Session, product_id: int, available: bool) -> Product:
    product = update_product(session, product_id, available=available)
    logger.info("Product %s is now %s", product.id, "available" if available else "unavailable")
    return product


def list_products(session: Session, only_available: bool = False) -> list[Product]:
    stmt = select(Product)
    if only_available:
        stmt = stmt.where(Product.available == True)  # noqa: E712
    return list(session.exec(stmt.order_by(Product.category, Product.name)).all())


def products_by_category(session: Session, category: str) -> list[Product]:
    return list(session.exec(
        select(Product)
        .where(Product.category == category, Product.available == True)  # noqa: E712
        .order_by(Product.name)
    ).all())


def products_in_price_range(session: Session, low, high) -> list[Product]:
    low, high = Decimal(str(low)), Decimal(str(high))
    if low > high:
        raise ValidationError("Minimum price must not exceed maximum price")
    return list(session.exec(
        select(Product)
        .where(Product.price >= low, Product.price <= high, Product.available == True)  # noqa: E712
        .order_by(Product.price)
    ).all())


def search_products(session: Session, text: str) -> list[Product]:
    text = require_text(text, "Search text", 100)
    return list(session.exec(
        select(Product)
        .where(func.lower(Product.name).contains(text.lower()), Product.available == True)  # noqa: E712
        .order_by(Product.name)
    ).all())


def list_categories(session: Session) -> list[str]:
    rows = session.exec(
        select(Product.category).where(Product.available == True).distinct().order_by(Product.category)  # noqa: E712
    ).all()
    return list(rows)


def count_by_category(session: Session, category: str) -> int:
    return session.exec(
        select(func.count()).select_from(Product)
        .where(Product.category == category, Product.available == True)  # noqa: E712
    ).one()


def recent_products(session: Session, days: int = 30) -> list[Product]:
    since = now_utc() - timedelta(days=days)
    return list(session.exec(
        select(Product)
        .where(Product.created_at >= since, Product.available == True)  # noqa: E712
        .order_by(Product.created_at.desc())
    ).all())
