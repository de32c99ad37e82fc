"""Sale settlement engine.

Turns a basket snapshot, a discount and the payment specification into a
SaleTotal. The computation is pure: it reads only its arguments and is
cheap enough to run on every basket edit (O(items + payments)).
"""

from __future__ import annotations

from typing import Iterable

from pos_settlement.settlement.commission import DEFAULT_POLICY, CommissionPolicy
from pos_settlement.settlement.discount import clamp_discount
from pos_settlement.settlement.types import (
    LineItem,
    MultiPayment,
    PaymentSpec,
    SaleTotal,
    SinglePayment,
)


def profit_margin(profit: float, revenue: float) -> float:
    """Profit as a percentage of revenue, 0 when there is no revenue."""
    return (profit / revenue) * 100 if revenue > 0 else 0.0


def compute_total(
    items: Iterable[LineItem],
    discount: float,
    payment: PaymentSpec,
    policy: CommissionPolicy = DEFAULT_POLICY,
) -> SaleTotal:
    """Compute the full money breakdown of a basket.

    Steps:
    1. subtotal and total cost are summed over the lines
    2. the discount is clamped to [0, subtotal] and taken off the subtotal
    3. commissions and surcharges come from the single instrument applied
       to the total, or from the explicit entries in multi-payment mode
    4. profit and margin are derived from the discounted total

    In multi-payment mode the commission of each entry is the value frozen
    when the entry was added; surcharges are recomputed from entry amounts.

    Args:
        items: Basket lines.
        discount: Requested discount in money (clamped, never rejected).
        payment: SinglePayment or MultiPayment.
        policy: Commission/surcharge rates. Defaults to the built-in table.

    Returns:
        SaleTotal for this snapshot. An empty basket yields all zeros.

    Raises:
        TypeError: If payment is neither SinglePayment nor MultiPayment.

    Examples:
        >>> from pos_settlement.settlement.types import PaymentInstrument
        >>> line = LineItem("p1", "Phone", 2, unit_cost=60000, unit_price=100000)
        >>> result = compute_total([line], 0, SinglePayment(PaymentInstrument.CARD))
        >>> result.final_total
        206000.0
    """
    items = list(items)

    subtotal = sum(item.total_revenue for item in items)
    total_cost = sum(item.total_cost for item in items)
    applied_discount = clamp_discount(discount, subtotal)
    total = subtotal - applied_discount

    if isinstance(payment, SinglePayment):
        total_commissions = policy.commission(payment.instrument, total)
        customer_surcharge = policy.surcharge(payment.instrument, total)
    elif isinstance(payment, MultiPayment):
        total_commissions = sum(entry.commission for entry in payment.entries)
        customer_surcharge = sum(
            policy.surcharge(entry.instrument, entry.amount) for entry in payment.entries
        )
    else:
        raise TypeError(f"Unsupported payment specification: {type(payment).__name__}")

    final_total = total + customer_surcharge
    total_profit = total - total_cost - total_commissions

    return SaleTotal(
        subtotal=float(subtotal),
        applied_discount=float(applied_discount),
        total=float(total),
        total_cost=float(total_cost),
        total_commissions=float(total_commissions),
        customer_surcharge=float(customer_surcharge),
        final_total=float(final_total),
        total_profit=float(total_profit),
        profit_margin=float(profit_margin(total_profit, total)),
    )
