"""Example: Sales Report

This example aggregates a handful of persisted sale records for the last
month, compares them with the month before, and prints the monthly buckets,
the top products and today's cash-register breakdown.

Prerequisites:
- None. In production the records come from the sales store; here they
  are built inline with createdAt values in the shapes the store produces.
"""

import asyncio

from pos_settlement.reporting import (
    AggregationFilter,
    AggregationRunner,
    aggregate,
    daily_breakdown,
)

NOW = "2025-03-15T18:00:00"

sales = [
    {
        "id": "V-1001",
        "createdAt": "2025-02-20T10:15:00",
        "total": 850000,
        "totalCost": 600000,
        "totalProfit": 250000,
        "discount": 0,
        "paymentMethod": "efectivo",
        "items": [{"productId": "p1", "productName": "Samsung Galaxy A15", "quantity": 1,
                   "totalRevenue": 850000, "profit": 250000, "category": "Celulares"}],
    },
    {
        "id": "V-1002",
        "createdAt": {"seconds": 1741968000, "nanoseconds": 0},
        "total": 75000,
        "finalTotal": 77250,
        "totalCost": 15000,
        "totalProfit": 57000,
        "realTotalCost": 20000,
        "realProfit": 52000,
        "discount": 0,
        "paymentMethod": "tarjeta",
        "courtesyItems": [{"productId": "c2", "productName": "Vidrio templado", "quantity": 1}],
        "items": [{"productId": "c1", "productName": "Forro silicona", "quantity": 3,
                   "totalRevenue": 75000, "profit": 60000, "category": "Accesorios"}],
    },
    {
        "id": "ST-88",
        "createdAt": "2025-03-15T09:30:00",
        "type": "technical_service_payment",
        "total": 120000,
        "totalCost": 40000,
        "totalProfit": 80000,
        "paymentMethod": "transferencia",
        "items": [],
    },
]

# One-shot aggregation
result = aggregate(sales, AggregationFilter("month", compare_previous=True), now=NOW)

print(f"Sales: {result.total_sales:,.0f} in {result.transaction_count} transaction(s)")
print(f"Profit: {result.total_profit:,.0f} ({result.profit_margin:.1f}%)")

print("\nMonthly buckets:")
print(result.historical_frame())

print("\nTop products:")
print(result.top_products_frame())

if result.period_comparison is not None:
    growth = result.period_comparison.growth
    print(f"\nSales growth vs previous period: {growth.sales_growth:+.1f}%")
    print(f"Margin change: {growth.margin_growth:+.1f} pts")

best = result.all_time_best
if best.best_day is not None:
    print(f"\nBest day ever: {best.best_day.key} ({best.best_day.amount:,.0f})")

# Cash-register balancing for today
today = daily_breakdown(sales, now=NOW)
print(f"\nToday: {today.total:,.0f}")
for bucket, share in today.percentages.items():
    print(f"  {bucket}: {share:.1f}%")


# Report screens go through the runner so fast typing does not race
async def load(flt):
    return sales


runner = AggregationRunner(load, clock=lambda: NOW)
state = asyncio.run(runner.request(AggregationFilter("all", search="forro")))
print(f"\nSearch 'forro': {state.result.transaction_count} sale(s), error={state.error}")
