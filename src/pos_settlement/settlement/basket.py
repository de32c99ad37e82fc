"""Basket, payment and customer state with pure transitions.

Each transition takes the current state and returns a ``Transition``: the
next state plus the error that prevented the change, if any. A rejected
transition hands back the unchanged state, so the caller can render the
error inline and keep going. Nothing here raises for operator mistakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from pos_settlement.config import SettlementConfig
from pos_settlement.exceptions import (
    NotFoundError,
    PosSettlementError,
    StockInsufficientError,
    ValidationError,
)
from pos_settlement.settlement.commission import DEFAULT_POLICY, CommissionPolicy
from pos_settlement.settlement.courtesy import CourtesyItem, CourtesyLedger
from pos_settlement.settlement.credit import can_checkout, credit_used, remaining, total_paid
from pos_settlement.settlement.discount import clamp_discount, discount_from_percentage
from pos_settlement.settlement.engine import compute_total
from pos_settlement.settlement.types import (
    Customer,
    LineItem,
    MultiPayment,
    PaymentEntry,
    PaymentInstrument,
    PaymentSpec,
    Product,
    SaleTotal,
    SinglePayment,
)

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass(frozen=True)
class Transition(Generic[S]):
    """Outcome of a state transition.

    Attributes:
        state: The next state (the unchanged input when rejected).
        error: Why the change was rejected, or None when it was applied.
    """

    state: S
    error: Optional[PosSettlementError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SaleFormState:
    """Everything the operator has entered for the sale in progress.

    Attributes:
        items: Priced basket lines, one per product.
        discount: Discount in money, already clamped to the subtotal.
        instrument: Implicit instrument for single-payment mode.
        multi_payment: True when explicit payment entries are used.
        payments: Explicit entries (only meaningful in multi-payment mode).
        courtesies: Gifted items, outside the priced basket.
    """

    items: Tuple[LineItem, ...] = ()
    discount: float = 0.0
    instrument: PaymentInstrument = PaymentInstrument.CASH
    multi_payment: bool = False
    payments: Tuple[PaymentEntry, ...] = ()
    courtesies: CourtesyLedger = field(default_factory=CourtesyLedger)

    @property
    def payment_spec(self) -> PaymentSpec:
        if self.multi_payment:
            return MultiPayment(self.payments)
        return SinglePayment(self.instrument)

    def subtotal(self) -> float:
        return sum(item.total_revenue for item in self.items)

    def find_item(self, product_id: str) -> Optional[LineItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def quantity_of(self, product_id: str) -> int:
        item = self.find_item(product_id)
        return item.quantity if item is not None else 0


@dataclass(frozen=True)
class CustomerState:
    selected: Optional[Customer] = None
    apply_credit: bool = False


@dataclass(frozen=True)
class PaymentStatus:
    """Reconciliation of payments against the amount due.

    Attributes:
        amount_due: What the customer must pay (the final total).
        credit_used: Store credit applied against the gap.
        total_paid: Entries plus applied credit.
        remaining: Unpaid remainder, never negative.
    """

    amount_due: float
    credit_used: float
    total_paid: float
    remaining: float


def _reject(state: S, error: PosSettlementError) -> Transition[S]:
    logger.warning("Transition rejected: %s", error)
    return Transition(state, error)


def _find_product(products: Sequence[Product], product_id: str) -> Optional[Product]:
    for product in products:
        if product.id == product_id:
            return product
    return None


def _replace_item(state: SaleFormState, product_id: str, new_item: Optional[LineItem]) -> SaleFormState:
    items: List[LineItem] = []
    for item in state.items:
        if item.product_id != product_id:
            items.append(item)
        elif new_item is not None:
            items.append(new_item)
    return _reclamp(replace(state, items=tuple(items)))


def _reclamp(state: SaleFormState) -> SaleFormState:
    # A shrinking basket must never leave a discount above the new subtotal
    clamped = clamp_discount(state.discount, state.subtotal())
    if clamped == state.discount:
        return state
    return replace(state, discount=clamped)


# ============================================================================
# Basket lines
# ============================================================================


def add_product(
    state: SaleFormState,
    products: Sequence[Product],
    product_id: str,
    quantity: int = 1,
) -> Transition[SaleFormState]:
    """Add ``quantity`` units of a product, merging with an existing line.

    The combined quantity is checked against the product's current stock.

    Args:
        state: Current sale form.
        products: Current in-stock product list.
        product_id: Product to add.
        quantity: Units to add (> 0).

    Returns:
        Transition with the updated form, or the unchanged form and one of
        NotFoundError, ValidationError, StockInsufficientError.
    """
    product = _find_product(products, product_id)
    if product is None:
        return _reject(state, NotFoundError(f"Product '{product_id}' not found"))
    if quantity <= 0:
        return _reject(state, ValidationError(f"Quantity must be positive, got {quantity}"))

    existing = state.find_item(product_id)
    new_quantity = quantity + (existing.quantity if existing is not None else 0)
    if new_quantity > product.stock:
        return _reject(state, StockInsufficientError(product.name, new_quantity, product.stock))

    if existing is not None:
        # Existing lines are repriced from the current product record
        updated = replace(
            existing.with_quantity(new_quantity),
            unit_cost=product.cost,
            unit_price=product.price,
        )
        next_state = _replace_item(state, product_id, updated)
    else:
        next_state = replace(state, items=state.items + (LineItem.from_product(product, quantity),))

    logger.debug("Added %s x%d (line quantity %d)", product.name, quantity, new_quantity)
    return Transition(next_state)


def increase_quantity(
    state: SaleFormState,
    products: Sequence[Product],
    product_id: str,
) -> Transition[SaleFormState]:
    if state.find_item(product_id) is None:
        return _reject(state, NotFoundError(f"Product '{product_id}' is not in the basket"))
    return add_product(state, products, product_id, 1)


def decrease_quantity(state: SaleFormState, product_id: str) -> Transition[SaleFormState]:
    """Take one unit off a line; a line at quantity 1 is removed."""
    item = state.find_item(product_id)
    if item is None:
        return _reject(state, NotFoundError(f"Product '{product_id}' is not in the basket"))
    if item.quantity <= 1:
        return remove_product(state, product_id)
    return Transition(_replace_item(state, product_id, item.with_quantity(item.quantity - 1)))


def remove_product(state: SaleFormState, product_id: str) -> Transition[SaleFormState]:
    if state.find_item(product_id) is None:
        return _reject(state, NotFoundError(f"Product '{product_id}' is not in the basket"))
    return Transition(_replace_item(state, product_id, None))


# ============================================================================
# Discount
# ============================================================================


def set_discount(state: SaleFormState, requested: float) -> Transition[SaleFormState]:
    """Set the discount, clamped to [0, subtotal] rather than rejected."""
    return Transition(replace(state, discount=clamp_discount(requested, state.subtotal())))


def set_discount_percentage(state: SaleFormState, percentage: float) -> Transition[SaleFormState]:
    return Transition(
        replace(state, discount=discount_from_percentage(state.subtotal(), percentage))
    )


# ============================================================================
# Payments
# ============================================================================


def set_payment_instrument(
    state: SaleFormState,
    instrument: PaymentInstrument | str,
) -> Transition[SaleFormState]:
    try:
        parsed = PaymentInstrument.parse(instrument)
    except ValidationError as e:
        return _reject(state, e)
    return Transition(replace(state, instrument=parsed))


def set_multi_payment(state: SaleFormState, enabled: bool) -> Transition[SaleFormState]:
    """Switch payment mode. Entries never carry over between modes."""
    return Transition(replace(state, multi_payment=enabled, payments=()))


def add_payment(
    state: SaleFormState,
    instrument: PaymentInstrument | str,
    amount: float,
    policy: CommissionPolicy = DEFAULT_POLICY,
) -> Transition[SaleFormState]:
    """Append a payment entry, freezing its commission now.

    Only allowed in multi-payment mode. Store credit is never an entry: it
    is drawn from the selected customer's balance via ``set_apply_credit``.
    """
    if not state.multi_payment:
        return _reject(state, ValidationError("Payment entries require multi-payment mode"))
    if amount <= 0:
        return _reject(state, ValidationError(f"Payment amount must be positive, got {amount}"))
    try:
        entry = policy.new_entry(instrument, amount)
    except ValidationError as e:
        return _reject(state, e)
    if entry.instrument is PaymentInstrument.STORE_CREDIT:
        return _reject(
            state,
            ValidationError("Store credit is applied from the customer's balance, not as an entry"),
        )
    return Transition(replace(state, payments=state.payments + (entry,)))


def remove_payment(state: SaleFormState, index: int) -> Transition[SaleFormState]:
    if not 0 <= index < len(state.payments):
        return _reject(state, NotFoundError(f"No payment entry at position {index}"))
    return Transition(
        replace(state, payments=state.payments[:index] + state.payments[index + 1:])
    )


# ============================================================================
# Courtesies
# ============================================================================


def add_courtesy(
    state: SaleFormState,
    products: Sequence[Product],
    product_id: str,
    quantity: int = 1,
    reason: str | None = None,
) -> Transition[SaleFormState]:
    """Gift ``quantity`` units of a product, checked against current stock."""
    product = _find_product(products, product_id)
    if product is None:
        return _reject(state, NotFoundError(f"Product '{product_id}' not found"))
    try:
        item = CourtesyItem.from_product(product, quantity, reason)
        ledger = state.courtesies.add(item, product)
    except PosSettlementError as e:
        return _reject(state, e)
    return Transition(replace(state, courtesies=ledger))


def remove_courtesy(state: SaleFormState, index: int) -> Transition[SaleFormState]:
    try:
        ledger = state.courtesies.remove(index)
    except NotFoundError as e:
        return _reject(state, e)
    return Transition(replace(state, courtesies=ledger))


# ============================================================================
# Customer
# ============================================================================


def select_customer(state: CustomerState, customer: Optional[Customer]) -> Transition[CustomerState]:
    """Select (or clear) the customer. Credit application resets on change."""
    return Transition(CustomerState(selected=customer, apply_credit=False))


def set_apply_credit(state: CustomerState, apply: bool) -> Transition[CustomerState]:
    if apply and state.selected is None:
        return _reject(state, ValidationError("Select a customer before applying credit"))
    return Transition(replace(state, apply_credit=apply))


# ============================================================================
# Reconciliation and checkout
# ============================================================================


def payment_status(
    form: SaleFormState,
    customer_state: CustomerState,
    sale_total: SaleTotal,
) -> PaymentStatus:
    """Reconcile entered payments and store credit against the final total.

    In single-payment mode the implicit instrument covers whatever credit
    does not, so nothing remains; when that instrument is store credit
    itself, the customer's balance is all there is to pay with.

    Credit is drawn against the final total, whose surcharge was priced on
    the whole sale total.
    """
    amount_due = sale_total.final_total
    customer = customer_state.selected
    balance = customer.credit if customer is not None else 0.0
    applying = customer_state.apply_credit and customer is not None

    if not form.multi_payment and form.instrument is PaymentInstrument.STORE_CREDIT:
        used = min(balance, amount_due)
        return PaymentStatus(amount_due=amount_due, credit_used=used, total_paid=used,
                             remaining=remaining(amount_due, used))

    entries = form.payments if form.multi_payment else ()
    used = credit_used(balance, amount_due, entries) if applying else 0.0

    if not form.multi_payment:
        return PaymentStatus(amount_due=amount_due, credit_used=used, total_paid=amount_due,
                             remaining=0.0)

    paid = total_paid(entries, balance, applying, amount_due)
    return PaymentStatus(
        amount_due=amount_due,
        credit_used=used,
        total_paid=paid,
        remaining=remaining(amount_due, paid),
    )


def validate_checkout(
    form: SaleFormState,
    customer_state: CustomerState,
    policy: CommissionPolicy = DEFAULT_POLICY,
    config: SettlementConfig | None = None,
) -> List[ValidationError]:
    """Collect every reason the sale cannot be finalized yet.

    Returns:
        Validation errors in display order; empty when checkout is allowed.
    """
    config = config or SettlementConfig()
    errors: List[ValidationError] = []

    if not form.items:
        errors.append(ValidationError("Add at least one product to the sale"))
    if customer_state.selected is None:
        errors.append(ValidationError("Select a customer to complete the sale"))

    sale_total = compute_total(form.items, form.discount, form.payment_spec, policy)
    if form.items and sale_total.total <= 0:
        errors.append(ValidationError("The sale total must be greater than zero"))

    if form.multi_payment and any(
        p.instrument is PaymentInstrument.STORE_CREDIT for p in form.payments
    ):
        errors.append(
            ValidationError("Store credit is applied from the customer's balance, not as an entry")
        )
    elif not form.multi_payment and form.items and form.instrument is PaymentInstrument.STORE_CREDIT:
        status = payment_status(form, customer_state, sale_total)
        if status.remaining > config.checkout_epsilon:
            errors.append(
                ValidationError(
                    f"Customer credit does not cover the final total: "
                    f"{status.remaining:.2f} remaining"
                )
            )
    elif form.multi_payment and form.items:
        status = payment_status(form, customer_state, sale_total)
        if not can_checkout(status.remaining, form.payments, status.credit_used,
                            config.checkout_epsilon):
            errors.append(
                ValidationError(
                    f"Payments do not cover the final total: {status.remaining:.2f} remaining"
                )
            )

    return errors
