"""
Monthly free-product allocation.

Given the unit prices in a cart and the number of free units the user still
has this month, mark the cheapest units free and report the discount.
"""

from decimal import Decimal
from typing import Iterable, List

from gymhub.core.money import ZERO, to_money
from gymhub.models.shop import CartLine, FreebieAllocation


def flatten_unit_prices(lines: Iterable[CartLine]) -> List[Decimal]:
    """One price entry per unit across all cart lines."""
    prices: List[Decimal] = []
    for line in lines:
        prices.extend([to_money(line.unit_price)] * line.quantity)
    return prices


def allocate_freebies(unit_prices: Iterable[Decimal], remaining: int) -> FreebieAllocation:
    prices = sorted(to_money(price) for price in unit_prices)
    if remaining <= 0 or not prices:
        return FreebieAllocation(free_unit_prices=[], discount=ZERO)

    free = prices[: min(remaining, len(prices))]
    return FreebieAllocation(free_unit_prices=free, discount=to_money(sum(free, ZERO)))
