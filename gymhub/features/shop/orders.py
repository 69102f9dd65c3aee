"""
gymhub/features/shop/orders.py

Order settlement.

Turns the user's cart into a CONFIRMED order. Stock checks, the free-product
discount, the order rows, stock decrements and clearing the cart all happen
in one transaction; the confirmation email is sent only after commit.
"""

from datetime import datetime
from typing import Dict, List, Optional, Union

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.database import cart_items, new_id, order_items, orders, products, users
from gymhub.core.errors import EmptyCartError, InsufficientStockError, NotFoundError, PermissionError
from gymhub.core.logging import log_event
from gymhub.core.money import ZERO, to_money
from gymhub.features.entitlements.service import get_free_products_remaining
from gymhub.features.notifications.mailer import Mailer, send_order_confirmation
from gymhub.features.shop.cart import load_cart_lines
from gymhub.features.shop.freebies import allocate_freebies, flatten_unit_prices
from gymhub.models.shop import Order, OrderItem, OrderStatus, PaymentMethod
from gymhub.models.user import Principal, Role


def resolve_payment_method(requested: Union[PaymentMethod, str, None]) -> PaymentMethod:
    """UPI when explicitly requested, cash on delivery otherwise."""
    value = requested.value if isinstance(requested, PaymentMethod) else (requested or "")
    return PaymentMethod.UPI if value.upper() == PaymentMethod.UPI.value else PaymentMethod.COD


def place_order(
    db: Session,
    user_id: str,
    payment_method: Union[PaymentMethod, str, None] = None,
    now: Optional[datetime] = None,
    notifier: Optional[Mailer] = None,
) -> Order:
    """
    Check out the user's cart.

    Raises:
        NotFoundError: If the user doesn't exist
        EmptyCartError: If the cart has no lines
        InsufficientStockError: If any line asks for more than is in stock
    """
    at = normalize_now(now)
    method = resolve_payment_method(payment_method)

    try:
        # Lock the user row so concurrent checkouts read "used this month" one at a time
        user_row = db.execute(select(users).where(users.c.id == user_id).with_for_update()).first()
        if not user_row:
            raise NotFoundError("User not found")

        lines = load_cart_lines(db, user_id)
        if not lines:
            raise EmptyCartError()
        for line in lines:
            if line.stock < line.quantity:
                raise InsufficientStockError(line.product_id, line.product_name)

        remaining = get_free_products_remaining(db, user_id, at)
        allocation = allocate_freebies(flatten_unit_prices(lines), remaining)
        subtotal = to_money(sum((line.line_total for line in lines), ZERO))
        total = max(ZERO, subtotal - allocation.discount)

        order_id = new_id()
        db.execute(
            insert(orders).values(
                id=order_id,
                user_id=user_id,
                payment_method=method.value,
                status=OrderStatus.CONFIRMED.value,
                total=total,
                created_at=at,
            )
        )

        items: List[OrderItem] = []
        for line in lines:
            item_id = new_id()
            db.execute(
                insert(order_items).values(
                    id=item_id,
                    order_id=order_id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_at_purchase=line.unit_price,
                )
            )
            decremented = db.execute(
                update(products)
                .where(products.c.id == line.product_id)
                .where(products.c.stock >= line.quantity)
                .values(stock=products.c.stock - line.quantity)
            )
            if decremented.rowcount != 1:
                raise InsufficientStockError(line.product_id, line.product_name)
            items.append(
                OrderItem(
                    id=item_id,
                    order_id=order_id,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    price_at_purchase=line.unit_price,
                )
            )

        db.execute(delete(cart_items).where(cart_items.c.user_id == user_id))
        db.commit()
    except Exception:
        db.rollback()
        raise

    order = Order(
        id=order_id,
        user_id=user_id,
        payment_method=method,
        status=OrderStatus.CONFIRMED,
        total=total,
        created_at=at,
        items=items,
        subtotal=subtotal,
        discount=allocation.discount,
        user_name=user_row.name,
        user_email=user_row.email,
    )
    log_event(
        "info",
        "order.placed",
        user_id=user_id,
        event_type="order.placed",
        extra={"order_id": order_id, "total": str(total), "free_units": allocation.free_units},
    )

    if notifier is not None:
        send_order_confirmation(notifier, user_row.name, user_row.email, order)
    return order


def _load_items(db: Session, order_ids: List[str]) -> Dict[str, List[OrderItem]]:
    if not order_ids:
        return {}
    rows = db.execute(
        select(order_items, products.c.name.label("product_name"))
        .select_from(order_items.join(products, order_items.c.product_id == products.c.id))
        .where(order_items.c.order_id.in_(order_ids))
    ).fetchall()
    grouped: Dict[str, List[OrderItem]] = {order_id: [] for order_id in order_ids}
    for row in rows:
        grouped[row.order_id].append(
            OrderItem(
                id=row.id,
                order_id=row.order_id,
                product_id=row.product_id,
                product_name=row.product_name,
                quantity=row.quantity,
                price_at_purchase=to_money(row.price_at_purchase),
            )
        )
    return grouped


def _order_query():
    return select(orders, users.c.name.label("user_name"), users.c.email.label("user_email")).select_from(
        orders.join(users, orders.c.user_id == users.c.id)
    )


def _row_to_order(row, items: List[OrderItem]) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        payment_method=PaymentMethod(row.payment_method),
        status=OrderStatus(row.status),
        total=to_money(row.total),
        created_at=as_utc(row.created_at),
        items=items,
        user_name=row.user_name,
        user_email=row.user_email,
    )


def list_orders(db: Session, principal: Principal) -> List[Order]:
    """Owners see every order; everyone else only their own. Newest first."""
    query = _order_query().order_by(orders.c.created_at.desc(), orders.c.id)
    if principal.role != Role.OWNER:
        query = query.where(orders.c.user_id == principal.id)
    rows = db.execute(query).fetchall()
    items = _load_items(db, [row.id for row in rows])
    return [_row_to_order(row, items.get(row.id, [])) for row in rows]


def get_order(db: Session, principal: Principal, order_id: str) -> Order:
    """
    Raises:
        NotFoundError: If the order doesn't exist
        PermissionError: If the caller is neither an owner nor the buyer
    """
    row = db.execute(_order_query().where(orders.c.id == order_id)).first()
    if not row:
        raise NotFoundError("Order not found")
    if principal.role != Role.OWNER and row.user_id != principal.id:
        raise PermissionError("Forbidden")
    return _row_to_order(row, _load_items(db, [row.id]).get(row.id, []))
