"""Sales aggregation for reports.

This module turns a list of persisted sale records and a report filter into
totals, monthly buckets, top-product rankings, all-time bests and an
optional comparison with the preceding period.

Records are loaded into a one-row-per-sale DataFrame at the ingestion
boundary (timestamps normalized, money read through the courtesy-aware
accessors); everything after that is plain pandas.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from pos_settlement.config import SettlementConfig
from pos_settlement.exceptions import DataQualityError
from pos_settlement.reporting.fields import (
    SaleType,
    effective_cost,
    effective_profit,
    money,
    sale_amount,
    sale_id,
    sale_items,
    sale_type,
)
from pos_settlement.reporting.filters import (
    AggregationFilter,
    DateWindow,
    matches_attributes,
    matches_search,
    previous_window,
    resolve_window,
)
from pos_settlement.reporting.timestamps import to_instant
from pos_settlement.settlement.engine import profit_margin

logger = logging.getLogger(__name__)

SALES_COLUMNS = ["id", "instant", "amount", "profit", "cost", "discount", "type", "position"]
MONEY_COLUMNS = ["amount", "profit", "cost", "discount"]

# Item categories containing this keyword count as cellphones in the daily breakdown
PHONE_CATEGORY_KEYWORD = "celular"


# ============================================================================
# Result types
# ============================================================================


@dataclass(frozen=True)
class PeriodStats:
    total_sales: float = 0.0
    total_profit: float = 0.0
    total_cost: float = 0.0
    transaction_count: int = 0
    profit_margin: float = 0.0


@dataclass(frozen=True)
class PeriodBucket:
    """Totals for one calendar month (``period`` is YYYY-MM)."""

    period: str
    total_sales: float
    total_profit: float
    transaction_count: int
    profit_margin: float


@dataclass(frozen=True)
class TopProduct:
    product_id: str
    product_name: str
    total_sold: int
    total_revenue: float
    total_profit: float


@dataclass(frozen=True)
class BestPeriod:
    """A day (YYYY-MM-DD) or month (YYYY-MM) and its summed sale amount."""

    key: str
    amount: float


@dataclass(frozen=True)
class AllTimeBest:
    total_sales: float = 0.0
    total_profit: float = 0.0
    best_day: Optional[BestPeriod] = None
    best_month: Optional[BestPeriod] = None


@dataclass(frozen=True)
class Growth:
    """Period-over-period change.

    Attributes:
        sales_growth: Percent change in total sales.
        profit_growth: Percent change in total profit.
        transaction_growth: Percent change in transaction count.
        margin_growth: Change in profit margin, in percentage points.
    """

    sales_growth: float
    profit_growth: float
    transaction_growth: float
    margin_growth: float


@dataclass(frozen=True)
class PeriodComparison:
    current: PeriodStats
    previous: PeriodStats
    growth: Growth


@dataclass(frozen=True)
class AggregationResult:
    """Result of a report aggregation.

    Attributes:
        total_sales: Sum of sale amounts (final total, else total).
        total_profit: Sum of effective profits (real profit when gifts exist).
        total_cost: Sum of effective costs.
        total_discounts: Sum of applied discounts.
        average_transaction: total_sales / transaction_count, or 0.
        profit_margin: Profit over revenue of sales with positive revenue.
        transaction_count: Number of filtered sales, zero-revenue ones included.
        filtered_sales: The raw records that passed the filter, in input order.
        historical_data: Monthly buckets, ascending by period.
        top_products: Best products by revenue, descending.
        all_time_best: Best day and month over the full history.
        period_comparison: Present only when the filter asked for it and the
            window has a start.
    """

    total_sales: float = 0.0
    total_profit: float = 0.0
    total_cost: float = 0.0
    total_discounts: float = 0.0
    average_transaction: float = 0.0
    profit_margin: float = 0.0
    transaction_count: int = 0
    filtered_sales: List[Mapping[str, Any]] = field(default_factory=list)
    historical_data: List[PeriodBucket] = field(default_factory=list)
    top_products: List[TopProduct] = field(default_factory=list)
    all_time_best: AllTimeBest = field(default_factory=AllTimeBest)
    period_comparison: Optional[PeriodComparison] = None

    def historical_frame(self) -> pd.DataFrame:
        """Monthly buckets as a DataFrame (one row per period)."""
        columns = ["period", "total_sales", "total_profit", "transaction_count", "profit_margin"]
        return pd.DataFrame([asdict(b) for b in self.historical_data], columns=columns)

    def top_products_frame(self) -> pd.DataFrame:
        columns = ["product_id", "product_name", "total_sold", "total_revenue", "total_profit"]
        return pd.DataFrame([asdict(p) for p in self.top_products], columns=columns)


@dataclass(frozen=True)
class DailyBreakdown:
    """One day's takings split the way the cash register is balanced.

    Layaway deliveries are excluded (they bring in no new money). Regular
    sale discounts are prorated between cellphones and other products by
    revenue share.
    """

    total: float
    cellphones: float
    other_products: float
    technical_services: float
    layaway_payments: float
    percentages: Dict[str, float]
    transaction_count: int


# ============================================================================
# Ingestion
# ============================================================================


def build_sales_frame(sales: Sequence[Mapping[str, Any]], tz: str) -> pd.DataFrame:
    """Load sale records into a one-row-per-sale DataFrame.

    Records whose timestamp is missing or unresolvable are dropped with a
    warning. ``position`` points back into ``sales``.

    Raises:
        DataQualityError: If a record is not a mapping or holds non-numeric money.
    """
    rows = []
    dropped = 0
    for position, sale in enumerate(sales):
        if not isinstance(sale, Mapping):
            raise DataQualityError(
                f"Sale record at position {position} is not a mapping: {type(sale).__name__}"
            )
        instant = to_instant(sale.get("createdAt"), tz)
        if instant is None:
            dropped += 1
            continue
        rows.append(
            {
                "id": sale_id(sale),
                "instant": instant,
                "amount": sale_amount(sale),
                "profit": effective_profit(sale),
                "cost": effective_cost(sale),
                "discount": money(sale, "discount"),
                "type": sale_type(sale).value,
                "position": position,
            }
        )

    if dropped:
        logger.warning("Ignored %d sale(s) with missing or corrupt timestamps", dropped)

    frame = pd.DataFrame(rows, columns=SALES_COLUMNS)
    frame["instant"] = pd.to_datetime(frame["instant"], utc=True).dt.tz_convert(tz)
    frame[MONEY_COLUMNS] = frame[MONEY_COLUMNS].astype(float)
    frame["position"] = frame["position"].astype(int)
    return frame


def _window_mask(frame: pd.DataFrame, window: DateWindow) -> pd.Series:
    mask = pd.Series(True, index=frame.index)
    if window.start is not None:
        mask &= frame["instant"] >= window.start
    if window.end is not None:
        mask &= frame["instant"] < window.end
    return mask


def _attribute_mask(
    frame: pd.DataFrame,
    sales: Sequence[Mapping[str, Any]],
    flt: AggregationFilter,
) -> pd.Series:
    """Payment, salesperson and free-text conditions, evaluated per record."""
    keep = [
        matches_attributes(sales[pos], flt) and matches_search(sales[pos], instant, flt.search)
        for pos, instant in zip(frame["position"], frame["instant"])
    ]
    return pd.Series(keep, index=frame.index, dtype=bool)


# ============================================================================
# Calculations
# ============================================================================


def period_stats(frame: pd.DataFrame) -> PeriodStats:
    """Totals for a set of sales.

    The margin denominator only counts sales with positive revenue, so
    zero-revenue events (layaway deliveries) do not depress it; they still
    count as transactions.
    """
    total_profit = float(frame["profit"].sum())
    revenue_for_margin = float(frame.loc[frame["amount"] > 0, "amount"].sum())
    return PeriodStats(
        total_sales=float(frame["amount"].sum()),
        total_profit=total_profit,
        total_cost=float(frame["cost"].sum()),
        transaction_count=int(len(frame)),
        profit_margin=float(profit_margin(total_profit, revenue_for_margin)),
    )


def monthly_buckets(frame: pd.DataFrame) -> List[PeriodBucket]:
    """Group sales by calendar month, ascending by YYYY-MM key."""
    if frame.empty:
        return []

    grouped = (
        frame.assign(
            period=frame["instant"].dt.strftime("%Y-%m"),
            margin_revenue=frame["amount"].clip(lower=0),
        )
        .groupby("period", sort=True)
        .agg(
            total_sales=("amount", "sum"),
            total_profit=("profit", "sum"),
            transaction_count=("id", "size"),
            margin_revenue=("margin_revenue", "sum"),
        )
    )

    return [
        PeriodBucket(
            period=str(period),
            total_sales=float(row["total_sales"]),
            total_profit=float(row["total_profit"]),
            transaction_count=int(row["transaction_count"]),
            profit_margin=float(profit_margin(row["total_profit"], row["margin_revenue"])),
        )
        for period, row in grouped.iterrows()
    ]


def top_products(sales: Sequence[Mapping[str, Any]], limit: int = 10) -> List[TopProduct]:
    """Rank products by revenue across all line items of ``sales``."""
    rows = [
        {
            "product_id": str(item.get("productId") or ""),
            "product_name": str(item.get("productName") or ""),
            "quantity": money(item, "quantity"),
            "revenue": money(item, "totalRevenue"),
            "profit": money(item, "profit"),
        }
        for sale in sales
        for item in sale_items(sale)
    ]
    if not rows:
        return []

    ranked = (
        pd.DataFrame(rows)
        .groupby("product_id", sort=False)
        .agg(
            product_name=("product_name", "first"),
            total_sold=("quantity", "sum"),
            total_revenue=("revenue", "sum"),
            total_profit=("profit", "sum"),
        )
        # Stable sort keeps first-seen order among equal revenues
        .sort_values("total_revenue", ascending=False, kind="mergesort")
        .head(limit)
    )

    return [
        TopProduct(
            product_id=str(product_id),
            product_name=row["product_name"],
            total_sold=int(row["total_sold"]),
            total_revenue=float(row["total_revenue"]),
            total_profit=float(row["total_profit"]),
        )
        for product_id, row in ranked.iterrows()
    ]


def _best(series: pd.Series) -> Optional[BestPeriod]:
    if series.empty:
        return None
    key = series.idxmax()
    return BestPeriod(key=str(key), amount=float(series[key]))


def all_time_best(frame: pd.DataFrame) -> AllTimeBest:
    """Best day and month by summed sale amount over the whole frame."""
    if frame.empty:
        return AllTimeBest()

    by_day = frame.groupby(frame["instant"].dt.strftime("%Y-%m-%d"), sort=True)["amount"].sum()
    by_month = frame.groupby(frame["instant"].dt.strftime("%Y-%m"), sort=True)["amount"].sum()

    return AllTimeBest(
        total_sales=float(frame["amount"].sum()),
        total_profit=float(frame["profit"].sum()),
        best_day=_best(by_day),
        best_month=_best(by_month),
    )


def _pct_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return (current - previous) / abs(previous) * 100


def compare_periods(current: PeriodStats, previous: PeriodStats) -> PeriodComparison:
    return PeriodComparison(
        current=current,
        previous=previous,
        growth=Growth(
            sales_growth=_pct_change(current.total_sales, previous.total_sales),
            profit_growth=_pct_change(current.total_profit, previous.total_profit),
            transaction_growth=_pct_change(current.transaction_count, previous.transaction_count),
            margin_growth=current.profit_margin - previous.profit_margin,
        ),
    )


def _resolve_now(now: Any, tz: str) -> pd.Timestamp:
    if now is None:
        return pd.Timestamp.now(tz=tz)
    instant = to_instant(now, tz)
    if instant is None:
        raise ValueError(f"Cannot interpret now={now!r} as a timestamp")
    return instant


# ============================================================================
# Public entry points
# ============================================================================


def aggregate(
    sales: Sequence[Mapping[str, Any]],
    flt: Optional[AggregationFilter] = None,
    now: Any = None,
    config: Optional[SettlementConfig] = None,
) -> AggregationResult:
    """Aggregate persisted sales for a report.

    This function:
    - does NOT read from the store (the caller supplies ``sales``),
    - does NOT mutate the records it is given,
    - MAY log progress via the logging module.

    A sale passes when its timestamp falls in the resolved window, it
    matches the payment/salesperson filters, and (when a search term is
    given) its id, a product name or its local date contains the term.

    Args:
        sales: Persisted sale records (mappings with camelCase keys).
        flt: Report filter. If None, uses today's sales.
        now: Reference instant for named ranges. If None, uses the clock.
        config: Timezone and ranking limit. If None, uses defaults.

    Returns:
        AggregationResult. A custom range missing either date yields an
        empty result.

    Raises:
        DataQualityError: If a record cannot be interpreted.
        ValueError: If the filter holds malformed dates or clock times.

    Examples:
        >>> sales = [{"id": "s1", "createdAt": "2025-03-10T12:00:00",
        ...           "total": 1000, "totalProfit": 400, "totalCost": 600, "items": []}]
        >>> result = aggregate(sales, AggregationFilter("all"))
        >>> result.profit_margin
        40.0
    """
    config = config or SettlementConfig()
    flt = flt or AggregationFilter()
    tz = config.timezone
    current_now = _resolve_now(now, tz)

    window = resolve_window(flt, current_now)
    if window is None:
        logger.info("Custom date range incomplete; returning an empty report")
        return AggregationResult()

    logger.info("Aggregating %d sale record(s) for range '%s'", len(sales), flt.date_range)

    frame = build_sales_frame(sales, tz)
    attribute_mask = _attribute_mask(frame, sales, flt)
    filtered = frame[_window_mask(frame, window) & attribute_mask]
    filtered_sales = [sales[pos] for pos in filtered["position"]]

    stats = period_stats(filtered)
    total_discounts = float(filtered["discount"].sum())
    average = stats.total_sales / stats.transaction_count if stats.transaction_count else 0.0

    comparison = None
    if flt.compare_previous:
        prev = previous_window(window, current_now)
        if prev is not None:
            previous = frame[_window_mask(frame, prev) & attribute_mask]
            comparison = compare_periods(stats, period_stats(previous))

    result = AggregationResult(
        total_sales=stats.total_sales,
        total_profit=stats.total_profit,
        total_cost=stats.total_cost,
        total_discounts=total_discounts,
        average_transaction=float(average),
        profit_margin=stats.profit_margin,
        transaction_count=stats.transaction_count,
        filtered_sales=filtered_sales,
        historical_data=monthly_buckets(filtered),
        top_products=top_products(filtered_sales, config.top_products_limit),
        all_time_best=all_time_best(frame),
        period_comparison=comparison,
    )

    logger.info(
        f"Aggregation complete: {result.transaction_count} sale(s), "
        f"total={result.total_sales:.2f}, margin={result.profit_margin:.1f}%"
    )
    return result


def daily_breakdown(
    sales: Sequence[Mapping[str, Any]],
    day: Optional[date] = None,
    now: Any = None,
    config: Optional[SettlementConfig] = None,
) -> DailyBreakdown:
    """Split one day's sales for cash-register balancing.

    Args:
        sales: Persisted sale records.
        day: Local calendar day to break down. If None, the day of ``now``.
        now: Reference instant when ``day`` is None. If None, uses the clock.
        config: Timezone. If None, uses defaults.

    Returns:
        DailyBreakdown with amounts per bucket and their share of the total.
    """
    config = config or SettlementConfig()
    tz = config.timezone
    if day is None:
        day = _resolve_now(now, tz).date()

    cellphones = other_products = technical_services = layaway_payments = 0.0
    count = 0

    for sale in sales:
        instant = to_instant(sale.get("createdAt"), tz)
        if instant is None or instant.date() != day:
            continue
        kind = sale_type(sale)
        if kind is SaleType.LAYAWAY_DELIVERY:
            # Deliveries bring in no new money
            continue
        count += 1
        amount = sale_amount(sale)

        if kind is SaleType.TECHNICAL_SERVICE_PAYMENT:
            technical_services += amount
        elif kind is SaleType.LAYAWAY_PAYMENT:
            layaway_payments += amount
        elif kind is SaleType.REGULAR:
            phone_revenue = other_revenue = 0.0
            for item in sale_items(sale):
                revenue = money(item, "totalRevenue")
                if PHONE_CATEGORY_KEYWORD in str(item.get("category") or "").lower():
                    phone_revenue += revenue
                else:
                    other_revenue += revenue

            discount = money(sale, "discount")
            subtotal = money(sale, "subtotal")
            if discount > 0 and subtotal > 0:
                ratio = discount / subtotal
                phone_revenue -= phone_revenue * ratio
                other_revenue -= other_revenue * ratio

            cellphones += phone_revenue
            other_products += other_revenue

    total = cellphones + other_products + technical_services + layaway_payments

    def share(value: float) -> float:
        return value / total * 100 if total > 0 else 0.0

    return DailyBreakdown(
        total=total,
        cellphones=cellphones,
        other_products=other_products,
        technical_services=technical_services,
        layaway_payments=layaway_payments,
        percentages={
            "cellphones": share(cellphones),
            "other_products": share(other_products),
            "technical_services": share(technical_services),
            "layaway_payments": share(layaway_payments),
        },
        transaction_count=count,
    )
