"""
Tests for the shopping cart and its freebie preview.
"""
from decimal import Decimal

import pytest

from gymhub.core.errors import NotFoundError, ValidationError
from gymhub.features.shop.cart import (
    add_to_cart,
    clear_cart,
    get_cart_summary,
    load_cart_lines,
    remove_from_cart,
    update_cart,
)


def test_add_accumulates(db, make_user, make_product, now):
    user_id = make_user()
    product_id = make_product()

    add_to_cart(db, user_id, product_id, 2, now=now)
    add_to_cart(db, user_id, product_id, 3, now=now)

    lines = load_cart_lines(db, user_id)
    assert len(lines) == 1
    assert lines[0].quantity == 5


def test_add_defaults_to_one_unit(db, make_user, make_product, now):
    user_id = make_user()
    product_id = make_product()

    add_to_cart(db, user_id, product_id, None, now=now)
    add_to_cart(db, user_id, product_id, 0, now=now)

    assert load_cart_lines(db, user_id)[0].quantity == 2


def test_add_unknown_product(db, make_user, now):
    user_id = make_user()
    with pytest.raises(NotFoundError):
        add_to_cart(db, user_id, "nope", 1, now=now)


def test_summary_previews_freebies(db, active_member, make_product, now):
    user_id = active_member(free_products=2)
    add_to_cart(db, user_id, make_product(price="10.00"), 1, now=now)
    add_to_cart(db, user_id, make_product(price="5.00"), 1, now=now)
    add_to_cart(db, user_id, make_product(price="20.00"), 1, now=now)

    summary = get_cart_summary(db, user_id, now)

    assert summary.subtotal == Decimal("35.00")
    assert summary.potential_discount == Decimal("15.00")
    assert summary.effective_total == Decimal("20.00")
    assert summary.freebies_remaining == 2
    assert summary.freebies_limit == 2


def test_summary_uses_live_prices(db, make_user, make_product, now):
    from sqlalchemy import update

    from gymhub.core.database import products

    user_id = make_user()
    product_id = make_product(price="10.00")
    add_to_cart(db, user_id, product_id, 2, now=now)
    db.execute(update(products).where(products.c.id == product_id).values(price=Decimal("7.50")))
    db.commit()

    assert get_cart_summary(db, user_id, now).subtotal == Decimal("15.00")


def test_remove_clamps_to_stock(db, make_user, make_product, now):
    user_id = make_user()
    product_id = make_product(stock=3)
    add_to_cart(db, user_id, product_id, 2, now=now)

    assert remove_from_cart(db, user_id, product_id, 10) == "Cart updated"
    assert load_cart_lines(db, user_id)[0].quantity == 3


def test_remove_with_no_stock_drops_line(db, make_user, make_product, now):
    user_id = make_user()
    product_id = make_product(stock=0)
    add_to_cart(db, user_id, product_id, 2, now=now)

    assert remove_from_cart(db, user_id, product_id, 1) == "Item removed from cart"
    assert load_cart_lines(db, user_id) == []


def test_remove_without_quantity_drops_line(db, make_user, make_product, now):
    user_id = make_user()
    product_id = make_product()
    add_to_cart(db, user_id, product_id, 2, now=now)

    assert remove_from_cart(db, user_id, product_id) == "Removed from cart"
    assert load_cart_lines(db, user_id) == []


def test_remove_missing_line(db, make_user, make_product):
    user_id = make_user()
    with pytest.raises(NotFoundError, match="Item not in cart"):
        remove_from_cart(db, user_id, make_product())


def test_update_sets_absolute_quantity(db, make_user, make_product, now):
    user_id = make_user()
    product_id = make_product()
    add_to_cart(db, user_id, product_id, 5, now=now)

    assert update_cart(db, user_id, product_id, 2, now=now) == "Cart updated"
    assert load_cart_lines(db, user_id)[0].quantity == 2

    assert update_cart(db, user_id, product_id, 0, now=now) == "Item removed from cart"
    assert load_cart_lines(db, user_id) == []


def test_update_rejects_negative(db, make_user, make_product, now):
    user_id = make_user()
    with pytest.raises(ValidationError, match="negative"):
        update_cart(db, user_id, make_product(), -1, now=now)


def test_clear(db, make_user, make_product, now):
    user_id = make_user()
    add_to_cart(db, user_id, make_product(), 1, now=now)
    add_to_cart(db, user_id, make_product(), 1, now=now)

    clear_cart(db, user_id)
    assert load_cart_lines(db, user_id) == []
