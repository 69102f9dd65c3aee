"""
Shop API: products, cart and orders.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import get_current_principal, require_owner
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.money import format_money
from gymhub.core.serialization import CamelModel, dump, dump_all
from gymhub.features.notifications.mailer import Mailer, get_mailer
from gymhub.features.shop.cart import add_to_cart, clear_cart, get_cart_summary, remove_from_cart, update_cart
from gymhub.features.shop.orders import get_order, list_orders, place_order
from gymhub.features.shop.products import create_product, delete_product, list_products, update_product
from gymhub.models.shop import ProductCreate, ProductUpdate
from gymhub.models.user import Principal

router = APIRouter(prefix="/api/shop", tags=["shop"])


class CartItemRequest(CamelModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = None


class OrderRequest(CamelModel):
    payment_method: Optional[str] = None


@router.get("/products")
def products(db: Session = Depends(get_db)) -> Dict:
    return {"products": dump_all(list_products(db))}


@router.post("/products", status_code=201)
def create(
    body: ProductCreate,
    _: Principal = Depends(require_owner),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    return {"message": "Product created", "product": dump(create_product(db, body, now=now))}


@router.put("/products/{product_id}")
def update(
    product_id: str,
    body: ProductUpdate,
    _: Principal = Depends(require_owner),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    return {"message": "Product updated", "product": dump(update_product(db, product_id, body, now=now))}


@router.delete("/products/{product_id}")
def delete(product_id: str, _: Principal = Depends(require_owner), db: Session = Depends(get_db)) -> Dict:
    delete_product(db, product_id)
    return {"message": "Product deleted"}


@router.get("/cart")
def cart(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    summary = get_cart_summary(db, principal.id, now=now)
    return {
        "items": dump_all(summary.lines),
        "subtotal": format_money(summary.subtotal),
        "potentialDiscount": format_money(summary.potential_discount),
        "effectiveTotal": format_money(summary.effective_total),
        "freebiesRemaining": summary.freebies_remaining,
        "freebiesLimit": summary.freebies_limit,
    }


@router.post("/cart/add")
def cart_add(
    body: CartItemRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    add_to_cart(db, principal.id, body.product_id, body.quantity, now=now)
    return {"message": "Added to cart"}


@router.post("/cart/remove")
def cart_remove(
    body: CartItemRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Dict:
    return {"message": remove_from_cart(db, principal.id, body.product_id, body.quantity)}


@router.post("/cart/update")
def cart_update(
    body: CartItemRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    return {"message": update_cart(db, principal.id, body.product_id, body.quantity, now=now)}


@router.post("/cart/clear")
def cart_clear(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)) -> Dict:
    clear_cart(db, principal.id)
    return {"message": "Cart cleared"}


@router.post("/orders", status_code=201)
def create_order(
    body: OrderRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    mailer: Mailer = Depends(get_mailer),
) -> Dict:
    order = place_order(db, principal.id, body.payment_method, now=now, notifier=mailer)
    return {"message": "Order created", "order": dump(order)}


@router.get("/orders")
def orders(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)) -> Dict:
    return {"orders": dump_all(list_orders(db, principal))}


@router.get("/orders/{order_id}")
def order(order_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)) -> Dict:
    return {"order": dump(get_order(db, principal, order_id))}
