"""Shared types for the settlement engine.

Everything here is a frozen value object. Baskets are rebuilt rather than
mutated, so a snapshot handed to ``compute_total`` can never change under it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from pos_settlement.exceptions import ValidationError


class PaymentInstrument(str, Enum):
    """Closed set of payment instruments.

    Values are the strings stored on persisted sale records.
    """

    CASH = "efectivo"
    BANK_TRANSFER = "transferencia"
    CARD = "tarjeta"
    STORE_CREDIT = "credit"

    @classmethod
    def parse(cls, raw: PaymentInstrument | str) -> PaymentInstrument:
        """Resolve a stored value, an enum name or the legacy alias.

        Args:
            raw: Instrument or string such as "tarjeta", "CARD" or "crédito".

        Returns:
            The matching PaymentInstrument.

        Raises:
            ValidationError: If the string names no known instrument.

        Examples:
            >>> PaymentInstrument.parse("tarjeta")
            <PaymentInstrument.CARD: 'tarjeta'>
            >>> PaymentInstrument.parse("crédito")
            <PaymentInstrument.STORE_CREDIT: 'credit'>
        """
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip()
        for member in cls:
            if key == member.value or key.upper() == member.name:
                return member
        # Older records stored store credit as "crédito"
        if key.lower() in ("crédito", "credito"):
            return cls.STORE_CREDIT
        raise ValidationError(f"Unknown payment instrument '{raw}'")

    @property
    def label(self) -> str:
        """Human-readable label shown to the operator."""
        return _INSTRUMENT_LABELS[self]


_INSTRUMENT_LABELS = {
    PaymentInstrument.CASH: "Efectivo",
    PaymentInstrument.BANK_TRANSFER: "Transferencia",
    PaymentInstrument.CARD: "Tarjeta",
    PaymentInstrument.STORE_CREDIT: "Saldo a favor",
}


@dataclass(frozen=True)
class Product:
    """In-stock product as supplied by the inventory collaborator.

    Attributes:
        id: Product identifier.
        name: Display name.
        cost: Unit purchase cost.
        price: Unit sale price.
        stock: Units available right now.
        category: Optional category name (e.g. "Celulares").
        reference: Optional SKU or internal code.
        serial: Optional serial/IMEI for serialized goods.
    """

    id: str
    name: str
    cost: float
    price: float
    stock: int
    category: str | None = None
    reference: str | None = None
    serial: str | None = None


@dataclass(frozen=True)
class Customer:
    """Customer with a spendable store-credit balance."""

    id: str
    name: str
    credit: float = 0.0

    def __post_init__(self) -> None:
        if self.credit < 0:
            raise ValidationError(f"Customer credit cannot be negative, got {self.credit}")


@dataclass(frozen=True)
class LineItem:
    """One priced product line in the basket.

    Attributes:
        product_id: Product identifier.
        product_name: Product name at the time it was added.
        quantity: Units sold (integer > 0).
        unit_cost: Unit purchase cost snapshot.
        unit_price: Unit sale price snapshot.
        category: Optional tag carried through unchanged.
        reference: Optional tag carried through unchanged.
        serial: Optional tag carried through unchanged.
    """

    product_id: str
    product_name: str
    quantity: int
    unit_cost: float
    unit_price: float
    category: str | None = None
    reference: str | None = None
    serial: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError(
                f"Quantity for '{self.product_name}' must be positive, got {self.quantity}"
            )

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> LineItem:
        """Snapshot a product's name, cost and price into a line item."""
        return cls(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_cost=product.cost,
            unit_price=product.price,
            category=product.category,
            reference=product.reference,
            serial=product.serial,
        )

    @property
    def total_cost(self) -> float:
        return self.quantity * self.unit_cost

    @property
    def total_revenue(self) -> float:
        return self.quantity * self.unit_price

    @property
    def profit(self) -> float:
        return self.total_revenue - self.total_cost

    def with_quantity(self, quantity: int) -> LineItem:
        """Return a copy of this line with a new quantity."""
        return LineItem(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=quantity,
            unit_cost=self.unit_cost,
            unit_price=self.unit_price,
            category=self.category,
            reference=self.reference,
            serial=self.serial,
        )


@dataclass(frozen=True)
class PaymentEntry:
    """Explicit payment in multi-payment mode.

    The commission is captured when the entry is created and is never
    recomputed afterwards.
    """

    instrument: PaymentInstrument
    amount: float
    commission: float = 0.0

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValidationError(f"Payment amount must be positive, got {self.amount}")


@dataclass(frozen=True)
class SinglePayment:
    """Single-payment mode: one implicit instrument covers the whole total."""

    instrument: PaymentInstrument


@dataclass(frozen=True)
class MultiPayment:
    """Multi-payment mode: an explicit list of entries."""

    entries: tuple[PaymentEntry, ...] = ()


PaymentSpec = Union[SinglePayment, MultiPayment]


@dataclass(frozen=True)
class SaleTotal:
    """Computed money breakdown of a basket.

    Attributes:
        subtotal: Sum of line revenues.
        applied_discount: Requested discount clamped to [0, subtotal].
        total: subtotal - applied_discount.
        total_cost: Sum of line costs.
        total_commissions: Seller-absorbed instrument costs.
        customer_surcharge: Instrument surcharges paid by the customer.
        final_total: total + customer_surcharge (what the customer pays).
        total_profit: total - total_cost - total_commissions.
        profit_margin: total_profit / total * 100, or 0 when total is 0.
    """

    subtotal: float
    applied_discount: float
    total: float
    total_cost: float
    total_commissions: float
    customer_surcharge: float
    final_total: float
    total_profit: float
    profit_margin: float
