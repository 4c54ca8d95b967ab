# Overview: Service-layer operations for the local product mirror.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Product
from fieldstock.validation import coerce_cents


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(active_only: bool = True) -> list[Product]:
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.id).all()


def upsert_product(*, sku: str, name: str, unit_price_cents) -> Product:
    """
    Create or refresh a product mirrored from the catalog.

    WHY upsert: the catalog owns products; re-syncing the same sku must not
    fail, it updates name and price.
    """
    if not sku or not sku.strip():
        raise ValidationError("sku is required")
    if not name or not name.strip():
        raise ValidationError("name is required")
    price = coerce_cents(unit_price_cents, "unit_price_cents")

    product = db.session.query(Product).filter_by(sku=sku.strip()).first()
    if product is None:
        product = Product(sku=sku.strip(), name=name.strip(), unit_price_cents=price, is_active=True)
        db.session.add(product)
    else:
        product.name = name.strip()
        product.unit_price_cents = price
    db.session.flush()
    return product
