"""Monetary field accessors for persisted sale records.

Every reporting calculation reads money through these helpers so the
courtesy rule (use real profit/cost when gifts were attached) and the
amount fallback (final total, else total) live in one place.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable, List, Mapping

from pos_settlement.exceptions import DataQualityError


class SaleType(str, Enum):
    """Discriminator stored on sale records. Missing means REGULAR."""

    REGULAR = "regular"
    LAYAWAY_PAYMENT = "layaway_payment"
    LAYAWAY_DELIVERY = "layaway_delivery"
    TECHNICAL_SERVICE_PAYMENT = "technical_service_payment"


def money(sale: Mapping[str, Any], key: str) -> float:
    """Read a monetary field, treating missing/null as 0.

    Raises:
        DataQualityError: If the field holds something non-numeric.
    """
    value = sale.get(key)
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise DataQualityError(
            f"Sale '{sale.get('id', '?')}' has non-numeric {key}: {value!r}"
        ) from e
    return 0.0 if math.isnan(number) else number


def sale_id(sale: Mapping[str, Any]) -> str:
    return str(sale.get("id") or "")


def sale_items(sale: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    return list(sale.get("items") or [])


def sale_type(sale: Mapping[str, Any]) -> SaleType:
    raw = sale.get("type")
    if not raw:
        return SaleType.REGULAR
    try:
        return SaleType(raw)
    except ValueError:
        raise DataQualityError(f"Sale '{sale_id(sale)}' has unknown type {raw!r}") from None


def has_courtesies(sale: Mapping[str, Any]) -> bool:
    return bool(sale.get("courtesyItems"))


def sale_amount(sale: Mapping[str, Any]) -> float:
    """What the customer paid: finalTotal when present, else total."""
    if sale.get("finalTotal") is not None:
        return money(sale, "finalTotal")
    return money(sale, "total")


def effective_profit(sale: Mapping[str, Any]) -> float:
    """Profit after gifted cost when courtesies exist, else nominal profit."""
    if has_courtesies(sale):
        return money(sale, "realProfit")
    return money(sale, "totalProfit")


def effective_cost(sale: Mapping[str, Any]) -> float:
    """Cost including gifted items when courtesies exist, else nominal cost."""
    if has_courtesies(sale):
        return money(sale, "realTotalCost")
    return money(sale, "totalCost")


def payment_methods(sale: Mapping[str, Any]) -> Iterable[str]:
    """Every instrument value the sale was paid with."""
    methods = []
    if sale.get("paymentMethod"):
        methods.append(str(sale["paymentMethod"]))
    for entry in sale.get("paymentMethods") or []:
        if entry.get("method"):
            methods.append(str(entry["method"]))
    return methods
