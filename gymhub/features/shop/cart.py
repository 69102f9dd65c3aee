"""
gymhub/features/shop/cart.py

Shopping cart.

Cart lines hold only product and quantity; unit prices are always read from
the live product row. The cart view previews the monthly free-product
discount the next order would receive.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from gymhub.core.clock import normalize_now
from gymhub.core.database import cart_items, new_id, products, users
from gymhub.core.errors import NotFoundError, ValidationError
from gymhub.core.money import ZERO, to_money
from gymhub.features.entitlements.service import get_free_products_remaining
from gymhub.features.shop.freebies import allocate_freebies, flatten_unit_prices
from gymhub.models.shop import CartLine, CartSummary


def load_cart_lines(db: Session, user_id: str) -> List[CartLine]:
    """Cart lines joined with live product price and stock, newest first."""
    rows = db.execute(
        select(
            cart_items.c.id,
            cart_items.c.product_id,
            cart_items.c.quantity,
            products.c.name,
            products.c.price,
            products.c.stock,
        )
        .select_from(cart_items.join(products, cart_items.c.product_id == products.c.id))
        .where(cart_items.c.user_id == user_id)
        .order_by(cart_items.c.created_at.desc(), cart_items.c.id)
    ).fetchall()
    return [
        CartLine(
            id=row.id,
            product_id=row.product_id,
            product_name=row.name,
            quantity=row.quantity,
            unit_price=to_money(row.price),
            stock=row.stock,
        )
        for row in rows
    ]


def get_cart_summary(db: Session, user_id: str, now: Optional[datetime] = None) -> CartSummary:
    lines = load_cart_lines(db, user_id)
    subtotal = to_money(sum((line.line_total for line in lines), ZERO))

    limit = db.execute(select(users.c.free_products_per_month).where(users.c.id == user_id)).scalar() or 0
    remaining = get_free_products_remaining(db, user_id, now)
    allocation = allocate_freebies(flatten_unit_prices(lines), remaining)

    return CartSummary(
        lines=lines,
        subtotal=subtotal,
        potential_discount=allocation.discount,
        effective_total=max(ZERO, subtotal - allocation.discount),
        freebies_remaining=remaining,
        freebies_limit=limit,
    )


def _require_product(db: Session, product_id: Optional[str]):
    if not product_id:
        raise ValidationError("productId is required")
    row = db.execute(select(products).where(products.c.id == product_id)).first()
    if not row:
        raise NotFoundError("Product not found")
    return row


def _find_line(db: Session, user_id: str, product_id: str):
    return db.execute(
        select(cart_items)
        .where(cart_items.c.user_id == user_id)
        .where(cart_items.c.product_id == product_id)
    ).first()


def add_to_cart(
    db: Session, user_id: str, product_id: Optional[str], quantity: Optional[int] = None, now: Optional[datetime] = None
) -> None:
    """Add units of a product; quantities accumulate, default is one unit."""
    _require_product(db, product_id)
    qty = quantity if quantity is not None and quantity > 0 else 1

    existing = _find_line(db, user_id, product_id)
    if existing:
        db.execute(update(cart_items).where(cart_items.c.id == existing.id).values(quantity=existing.quantity + qty))
    else:
        db.execute(
            insert(cart_items).values(
                id=new_id(), user_id=user_id, product_id=product_id, quantity=qty, created_at=normalize_now(now)
            )
        )
    db.commit()


def remove_from_cart(db: Session, user_id: str, product_id: Optional[str], quantity: Optional[int] = None) -> str:
    """
    Remove a line, or set it to ``quantity`` clamped to available stock.

    Returns a short status message for the caller.
    """
    if not product_id:
        raise ValidationError("productId is required")
    existing = _find_line(db, user_id, product_id)
    if not existing:
        raise NotFoundError("Item not in cart")

    if quantity is not None and quantity > 0:
        stock = db.execute(select(products.c.stock).where(products.c.id == product_id)).scalar() or 0
        new_quantity = min(quantity, stock)
        if new_quantity < 1:
            db.execute(delete(cart_items).where(cart_items.c.id == existing.id))
            db.commit()
            return "Item removed from cart"
        db.execute(update(cart_items).where(cart_items.c.id == existing.id).values(quantity=new_quantity))
        db.commit()
        return "Cart updated"

    db.execute(delete(cart_items).where(cart_items.c.id == existing.id))
    db.commit()
    return "Removed from cart"


def update_cart(
    db: Session, user_id: str, product_id: Optional[str], quantity: Optional[int], now: Optional[datetime] = None
) -> str:
    """Set a line to an absolute quantity; zero removes it."""
    if not product_id or quantity is None:
        raise ValidationError("productId and quantity are required")
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative")
    _require_product(db, product_id)

    existing = _find_line(db, user_id, product_id)
    if quantity == 0:
        if existing:
            db.execute(delete(cart_items).where(cart_items.c.id == existing.id))
            db.commit()
        return "Item removed from cart"

    if existing:
        db.execute(update(cart_items).where(cart_items.c.id == existing.id).values(quantity=quantity))
    else:
        db.execute(
            insert(cart_items).values(
                id=new_id(), user_id=user_id, product_id=product_id, quantity=quantity, created_at=normalize_now(now)
            )
        )
    db.commit()
    return "Cart updated"


def clear_cart(db: Session, user_id: str) -> None:
    db.execute(delete(cart_items).where(cart_items.c.user_id == user_id))
    db.commit()
