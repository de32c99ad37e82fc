"""Settlement domain module.

This module prices a basket and reconciles its payments:

- **CommissionPolicy**: instrument -> seller commission and customer surcharge
- **compute_total**: subtotal, clamped discount, commissions, profit, margin
- **credit_used / total_paid / remaining**: store-credit reconciliation
- **CourtesyLedger**: gifted items and their effect on real profit
- **basket**: immutable sale form state and its transitions
- **build_sale_payload**: the finalized record handed to persistence

Example:
    >>> from pos_settlement.settlement import (
    ...     LineItem, PaymentInstrument, SinglePayment, compute_total,
    ... )
    >>> line = LineItem("p1", "Phone", 2, unit_cost=60000, unit_price=100000)
    >>> result = compute_total([line], 50000, SinglePayment(PaymentInstrument.CASH))
    >>> result.profit_margin
    20.0
"""

from pos_settlement.settlement.api import build_sale_payload
from pos_settlement.settlement.commission import DEFAULT_POLICY, CommissionPolicy, InstrumentRates
from pos_settlement.settlement.courtesy import CourtesyItem, CourtesyLedger, RealProfit, real_profit
from pos_settlement.settlement.credit import can_checkout, credit_used, remaining, total_paid
from pos_settlement.settlement.discount import clamp_discount
from pos_settlement.settlement.engine import compute_total
from pos_settlement.settlement.types import (
    Customer,
    LineItem,
    MultiPayment,
    PaymentEntry,
    PaymentInstrument,
    Product,
    SaleTotal,
    SinglePayment,
)

__all__ = [
    "DEFAULT_POLICY",
    "CommissionPolicy",
    "CourtesyItem",
    "CourtesyLedger",
    "Customer",
    "InstrumentRates",
    "LineItem",
    "MultiPayment",
    "PaymentEntry",
    "PaymentInstrument",
    "Product",
    "RealProfit",
    "SaleTotal",
    "SinglePayment",
    "build_sale_payload",
    "can_checkout",
    "clamp_discount",
    "compute_total",
    "credit_used",
    "real_profit",
    "remaining",
    "total_paid",
]
