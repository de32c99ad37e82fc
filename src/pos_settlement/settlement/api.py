"""Public API for finalizing a sale.

This module turns a validated sale form into the payload handed to the
persistence collaborator. It does not write anything itself.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pos_settlement.config import SettlementConfig
from pos_settlement.settlement.basket import (
    CustomerState,
    SaleFormState,
    payment_status,
    validate_checkout,
)
from pos_settlement.settlement.commission import DEFAULT_POLICY, CommissionPolicy
from pos_settlement.settlement.courtesy import CourtesyItem, real_profit
from pos_settlement.settlement.engine import compute_total
from pos_settlement.settlement.types import LineItem, PaymentEntry

logger = logging.getLogger(__name__)


def _line_payload(item: LineItem) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "productId": item.product_id,
        "productName": item.product_name,
        "quantity": item.quantity,
        "purchasePrice": item.unit_cost,
        "salePrice": item.unit_price,
        "totalCost": item.total_cost,
        "totalRevenue": item.total_revenue,
        "profit": item.profit,
    }
    # Optional tags are only written when set
    if item.reference:
        data["referencia"] = item.reference
    if item.category:
        data["category"] = item.category
    if item.serial:
        data["imei"] = item.serial
    return data


def _payment_payload(entry: PaymentEntry) -> Dict[str, Any]:
    return {
        "method": entry.instrument.value,
        "amount": entry.amount,
        "commission": entry.commission,
    }


def _courtesy_payload(item: CourtesyItem) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "productId": item.product_id,
        "productName": item.product_name,
        "quantity": item.quantity,
        "normalPrice": item.unit_price,
        "purchasePrice": item.unit_cost,
        "totalValue": item.total_value,
        "totalCost": item.total_cost,
    }
    if item.reason:
        data["reason"] = item.reason
    if item.category:
        data["category"] = item.category
    if item.reference:
        data["referencia"] = item.reference
    if item.serial:
        data["imei"] = item.serial
    return data


def build_sale_payload(
    form: SaleFormState,
    customer_state: CustomerState,
    policy: CommissionPolicy = DEFAULT_POLICY,
    config: Optional[SettlementConfig] = None,
    salesperson: Optional[Dict[str, str]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the finalized sale record for persistence.

    This function:
    - validates the form and refuses to build an unfinished sale,
    - does NOT write to any store or decrement stock,
    - MAY log the finalized totals via the logging module.

    Args:
        form: The sale form at confirmation time.
        customer_state: Selected customer and whether credit is applied.
        policy: Commission/surcharge rates used for the totals.
        config: Checkout tolerances. If None, uses defaults.
        salesperson: Optional {"id": ..., "name": ...} of the operator.
        now: Timestamp for createdAt. If None, uses the current UTC time.

    Returns:
        Dictionary with camelCase keys matching persisted sale records.

    Raises:
        ValidationError: The first failing checkout check.
    """
    errors = validate_checkout(form, customer_state, policy, config)
    if errors:
        raise errors[0]

    customer = customer_state.selected
    assert customer is not None  # guaranteed by validate_checkout

    sale_total = compute_total(form.items, form.discount, form.payment_spec, policy)
    status = payment_status(form, customer_state, sale_total)
    created_at = (now or datetime.now(timezone.utc)).isoformat()

    payload: Dict[str, Any] = {
        "items": [_line_payload(item) for item in form.items],
        "subtotal": sale_total.subtotal,
        "discount": sale_total.applied_discount,
        "tax": 0,
        "total": sale_total.total,
        "totalCost": sale_total.total_cost,
        "totalProfit": sale_total.total_profit,
        "profitMargin": sale_total.profit_margin,
        "paymentMethod": form.instrument.value,
        "customerId": customer.id,
        "customerName": customer.name,
        "type": "regular",
        "createdAt": created_at,
    }

    if form.multi_payment and form.payments:
        payload["paymentMethods"] = [_payment_payload(p) for p in form.payments]
        payload["useMultiplePayments"] = True
        payload["totalCommissions"] = sale_total.total_commissions
        if sale_total.final_total != sale_total.total:
            payload["finalTotal"] = sale_total.final_total
            payload["customerSurcharge"] = sale_total.customer_surcharge
    else:
        payload["totalCommissions"] = sale_total.total_commissions
        if sale_total.customer_surcharge:
            payload["finalTotal"] = sale_total.final_total
            payload["customerSurcharge"] = sale_total.customer_surcharge

    if status.credit_used > 0:
        payload["creditUsed"] = status.credit_used

    if salesperson:
        payload["salesPersonId"] = salesperson.get("id", "")
        payload["salesPersonName"] = salesperson.get("name", "")

    if len(form.courtesies) > 0:
        real = real_profit(sale_total, form.courtesies)
        payload["courtesyItems"] = [_courtesy_payload(c) for c in form.courtesies]
        payload["courtesyTotalValue"] = real.courtesy_total_value
        payload["courtesyTotalCost"] = real.courtesy_total_cost
        payload["realTotalCost"] = real.real_total_cost
        payload["realProfit"] = real.real_profit

    logger.info(
        "Sale finalized: total=%.2f final_total=%.2f profit=%.2f courtesies=%d",
        sale_total.total,
        sale_total.final_total,
        sale_total.total_profit,
        len(form.courtesies),
    )
    return payload
