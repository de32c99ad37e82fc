"""Discount clamping."""

from __future__ import annotations


def clamp_discount(requested: float, subtotal: float) -> float:
    """Bound a requested discount to [0, subtotal].

    Args:
        requested: Discount typed by the operator, in money.
        subtotal: Basket subtotal before discount.

    Returns:
        The discount that will actually be applied. The resulting total
        is never negative.

    Examples:
        >>> clamp_discount(50000, 200000)
        50000
        >>> clamp_discount(250000, 200000)
        200000
        >>> clamp_discount(-10, 200000)
        0
    """
    return max(0, min(requested, subtotal))


def discount_from_percentage(subtotal: float, percentage: float) -> float:
    """Discount worth ``percentage`` (a fraction, 0.1 = 10%) of the subtotal."""
    return clamp_discount(subtotal * percentage, subtotal)
