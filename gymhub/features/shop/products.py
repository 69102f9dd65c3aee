"""
gymhub/features/shop/products.py

Product catalog (public listing, owner-managed CRUD).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.orm import Session

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.database import cart_items, new_id, order_items, products
from gymhub.core.errors import ConflictError, NotFoundError, ValidationError
from gymhub.core.logging import log_event
from gymhub.core.money import to_money
from gymhub.models.shop import Product, ProductCreate, ProductUpdate


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        price=to_money(row.price),
        stock=row.stock,
        description=row.description,
        image_url=row.image_url,
        created_at=as_utc(row.created_at),
    )


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def list_products(db: Session) -> List[Product]:
    rows = db.execute(select(products).order_by(products.c.created_at.desc())).fetchall()
    return [_row_to_product(row) for row in rows]


def get_product(db: Session, product_id: str) -> Optional[Product]:
    row = db.execute(select(products).where(products.c.id == product_id)).first()
    return _row_to_product(row) if row else None


def create_product(db: Session, data: ProductCreate, now: Optional[datetime] = None) -> Product:
    name = _clean_text(data.name)
    if not name or data.price is None:
        raise ValidationError("Name and price are required")

    product_id = new_id()
    created_at = normalize_now(now)
    db.execute(
        insert(products).values(
            id=product_id,
            name=name,
            description=_clean_text(data.description),
            image_url=_clean_text(data.image_url),
            price=to_money(data.price),
            stock=data.stock if data.stock is not None else 0,
            created_at=created_at,
            updated_at=created_at,
        )
    )
    db.commit()
    return get_product(db, product_id)


def update_product(db: Session, product_id: str, data: ProductUpdate, now: Optional[datetime] = None) -> Product:
    if get_product(db, product_id) is None:
        raise NotFoundError("Product not found")

    changes = {field: getattr(data, field) for field in data.model_fields_set}
    for field in ("name", "description", "image_url"):
        if field in changes:
            changes[field] = _clean_text(changes[field])
    if "name" in changes and not changes["name"]:
        raise ValidationError("Name cannot be empty")
    if "price" in changes:
        if changes["price"] is None:
            raise ValidationError("Price cannot be empty")
        changes["price"] = to_money(changes["price"])
    if "stock" in changes and changes["stock"] is None:
        changes["stock"] = 0

    if changes:
        changes["updated_at"] = normalize_now(now)
        db.execute(update(products).where(products.c.id == product_id).values(**changes))
        db.commit()
    return get_product(db, product_id)


def delete_product(db: Session, product_id: str) -> None:
    """
    Delete a product that no order references.

    Cart lines pointing at it go in the same transaction.

    Raises:
        NotFoundError: If the product doesn't exist
        ConflictError: If order history references the product
    """
    if get_product(db, product_id) is None:
        raise NotFoundError("Product not found")

    referenced = db.execute(
        select(func.count()).select_from(order_items).where(order_items.c.product_id == product_id)
    ).scalar()
    if referenced:
        raise ConflictError(
            "Cannot delete product because it is referenced by existing orders. Consider archiving instead."
        )

    try:
        db.execute(delete(cart_items).where(cart_items.c.product_id == product_id))
        db.execute(delete(products).where(products.c.id == product_id))
        db.commit()
    except Exception:
        db.rollback()
        raise
    log_event("info", "product.deleted", event_type="product.deleted", extra={"product_id": product_id})
