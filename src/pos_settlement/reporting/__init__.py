"""Reporting domain module.

This module aggregates persisted sale records for report screens:

- **aggregate**: totals, margin, monthly buckets, top products, all-time
  bests and an optional previous-period comparison
- **daily_breakdown**: one day's takings split for cash-register balancing
- **AggregationFilter**: date range, clock times, search and equality filters
- **AggregationRunner**: debounced, latest-wins driver around ``aggregate``

Example:
    >>> from pos_settlement.reporting import AggregationFilter, aggregate
    >>>
    >>> flt = AggregationFilter("month", payment_method="tarjeta", compare_previous=True)
    >>> result = aggregate(sales, flt)
    >>> result.historical_frame()
"""

from pos_settlement.reporting.aggregate import (
    AggregationResult,
    AllTimeBest,
    BestPeriod,
    DailyBreakdown,
    Growth,
    PeriodBucket,
    PeriodComparison,
    PeriodStats,
    TopProduct,
    aggregate,
    daily_breakdown,
)
from pos_settlement.reporting.fields import SaleType
from pos_settlement.reporting.filters import AggregationFilter, DateWindow, resolve_window
from pos_settlement.reporting.runner import AggregationRunner, AggregationState
from pos_settlement.reporting.timestamps import format_local_date, to_instant

__all__ = [
    "AggregationFilter",
    "AggregationResult",
    "AggregationRunner",
    "AggregationState",
    "AllTimeBest",
    "BestPeriod",
    "DailyBreakdown",
    "DateWindow",
    "Growth",
    "PeriodBucket",
    "PeriodComparison",
    "PeriodStats",
    "SaleType",
    "TopProduct",
    "aggregate",
    "daily_breakdown",
    "format_local_date",
    "resolve_window",
    "to_instant",
]
