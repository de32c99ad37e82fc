"""Store-credit reconciliation.

Store credit is always consulted last: it only fills whatever gap the
explicit payment entries leave, and is never consumed ahead of them.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from pos_settlement.settlement.types import PaymentEntry, PaymentInstrument

DEFAULT_EPSILON = 0.01


def paid_without_credit(entries: Iterable[PaymentEntry]) -> float:
    """Sum of entry amounts paid with anything other than store credit."""
    return sum(e.amount for e in entries if e.instrument is not PaymentInstrument.STORE_CREDIT)


def credit_used(customer_credit: float, total: float, entries: Iterable[PaymentEntry]) -> float:
    """Portion of the customer's credit that will be applied.

    Args:
        customer_credit: Available store-credit balance (>= 0).
        total: Amount to settle.
        entries: Payment entries already entered.

    Returns:
        min(customer_credit, max(0, total - paid_without_credit)).

    Examples:
        >>> credit_used(50000, 150000, [PaymentEntry(PaymentInstrument.CASH, 120000)])
        30000
    """
    gap = max(0, total - paid_without_credit(entries))
    return min(customer_credit, gap)


def total_paid(
    entries: Sequence[PaymentEntry],
    customer_credit: float,
    apply_credit: bool,
    total: float,
) -> float:
    """Everything paid so far, including credit when it is being applied.

    When credit is applied, store-credit entries are replaced by the credit
    actually drawn from the balance, so the same balance is never counted
    twice.
    """
    if apply_credit and customer_credit > 0:
        return paid_without_credit(entries) + credit_used(customer_credit, total, entries)
    return sum(e.amount for e in entries)


def remaining(total: float, paid: float) -> float:
    """Unpaid remainder, never negative."""
    return max(0, total - paid)


def can_checkout(
    remaining_amount: float,
    entries: Sequence[PaymentEntry],
    applied_credit: float = 0.0,
    epsilon: float = DEFAULT_EPSILON,
) -> bool:
    """Whether payments are complete enough to finalize the sale.

    The remainder must be within ``epsilon`` and something must actually be
    paying: at least one entry, or store credit covering the whole amount.
    """
    if remaining_amount > epsilon:
        return False
    return len(entries) > 0 or applied_credit > 0
