"""
Rental charge arithmetic for equipment line items.

Rental houses bill by the day, week (7 days) and four-week period (28 days).
A period is billed with as many whole long units as fit, and the leftover
days are never charged more than one unit of the next longer tier.
"""

import math

from ..models.invoice import EquipmentItem

DAYS_PER_WEEK = 7
DAYS_PER_FOUR_WEEKS = 28


def _tiered_cost(days: int, tiers: list[tuple[int, float]]) -> float:
    """tiers: (unit length in days, rate) ordered longest first, rates all > 0."""
    if days <= 0:
        return 0.0

    (unit_days, rate), shorter = tiers[0], tiers[1:]
    if not shorter:
        return rate * math.ceil(days / unit_days)

    units, remainder = divmod(days, unit_days)
    remainder_cost = _tiered_cost(remainder, shorter)
    return units * rate + min(remainder_cost, rate)


def calculate_expected_amount(
    day_rate: float,
    week_rate: float,
    four_week_rate: float,
    rental_days: int,
) -> float:
    """
    Expected charge for renting one item for rental_days at the given rates.

    Missing rates (0 or negative) drop out of the tiering. With no usable rate
    the result is 0.

    Examples:
        >>> calculate_expected_amount(125, 325, 650, 10)
        650.0
        >>> calculate_expected_amount(125, 325, 650, 3)
        325.0
        >>> calculate_expected_amount(100, 0, 0, 3)
        300.0
    """
    days = int(rental_days or 0)
    if days <= 0:
        return 0.0

    tiers = [
        (unit_days, float(rate))
        for unit_days, rate in (
            (DAYS_PER_FOUR_WEEKS, four_week_rate),
            (DAYS_PER_WEEK, week_rate),
            (1, day_rate),
        )
        if rate and rate > 0
    ]
    if not tiers:
        return 0.0

    return round(_tiered_cost(days, tiers), 2)


def compute_actual_amount(item: EquipmentItem, rental_days: int | None = None) -> float:
    """
    The amount actually billed for an item.

    Uses the printed line amount when there is one, otherwise estimates it
    from the item's rates over its own rental_days (falling back to the
    invoice-level rental_days, then 1).
    """
    if item.amount and item.amount > 0:
        return round(float(item.amount), 2)

    days = item.rental_days or rental_days or 1
    return calculate_expected_amount(item.day_rate, item.week_rate, item.four_week_rate, days)
