"""POS Settlement - sale pricing, payment reconciliation and sales reporting.

This package provides the money logic behind a point-of-sale checkout and
the reports built on the sales it records:

- **Settlement**: basket pricing, discounts, card commissions and
  surcharges, store-credit reconciliation, courtesy (gifted) items
- **Reporting**: filtered aggregation of persisted sales, monthly
  buckets, top products, period comparison, daily breakdown

Module Structure:
    pos_settlement.settlement: Pricing engine, basket transitions, payload
    pos_settlement.reporting: Aggregation over persisted sale records
    pos_settlement.config: SettlementConfig
    pos_settlement.exceptions: Error hierarchy

Quick Start:
    >>> from pos_settlement import (
    ...     AggregationFilter, LineItem, PaymentInstrument, SinglePayment,
    ...     aggregate, compute_total,
    ... )
    >>>
    >>> line = LineItem("p1", "Phone", 1, unit_cost=60000, unit_price=100000)
    >>> total = compute_total([line], 0, SinglePayment(PaymentInstrument.CARD))
    >>> total.final_total
    103000.0
    >>>
    >>> # Reports over persisted sale records
    >>> result = aggregate(sales, AggregationFilter("week"))
"""

__version__ = "0.1.0"

from pos_settlement.config import SettlementConfig
from pos_settlement.exceptions import (
    AggregationError,
    ConfigError,
    DataQualityError,
    NotFoundError,
    PosSettlementError,
    StockInsufficientError,
    ValidationError,
)
from pos_settlement.reporting import AggregationFilter, AggregationResult, aggregate
from pos_settlement.settlement import (
    LineItem,
    MultiPayment,
    PaymentInstrument,
    SaleTotal,
    SinglePayment,
    build_sale_payload,
    compute_total,
    credit_used,
    remaining,
    total_paid,
)
from pos_settlement.settlement import basket

__all__ = [
    "AggregationError",
    "AggregationFilter",
    "AggregationResult",
    "ConfigError",
    "DataQualityError",
    "LineItem",
    "MultiPayment",
    "NotFoundError",
    "PaymentInstrument",
    "PosSettlementError",
    "SaleTotal",
    "SettlementConfig",
    "SinglePayment",
    "StockInsufficientError",
    "ValidationError",
    "__version__",
    "aggregate",
    "basket",
    "build_sale_payload",
    "compute_total",
    "credit_used",
    "remaining",
    "total_paid",
]
