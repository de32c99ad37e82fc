"""Courtesy (gift) items attached to a sale.

Courtesy items are handed to the customer at zero price. They sit in a
side ledger next to the priced basket: they never touch subtotal, total or
commissions, but their cost is real and is subtracted from profit when the
sale is persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Tuple

from pos_settlement.exceptions import NotFoundError, StockInsufficientError, ValidationError
from pos_settlement.settlement.types import Product, SaleTotal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CourtesyItem:
    """A gifted product, priced and costed at the moment of gifting.

    Attributes:
        product_id: Product identifier.
        product_name: Product name.
        quantity: Units gifted (> 0).
        unit_price: Normal sale price per unit (what the customer did not pay).
        unit_cost: Purchase cost per unit (the real financial impact).
        reason: Optional free-text reason given by the operator.
        category: Optional tag carried through unchanged.
        reference: Optional tag carried through unchanged.
        serial: Optional tag carried through unchanged.
    """

    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    unit_cost: float
    reason: str | None = None
    category: str | None = None
    reference: str | None = None
    serial: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError(
                f"Courtesy quantity for '{self.product_name}' must be positive, got {self.quantity}"
            )

    @classmethod
    def from_product(cls, product: Product, quantity: int, reason: str | None = None) -> CourtesyItem:
        return cls(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.price,
            unit_cost=product.cost,
            reason=reason or None,
            category=product.category,
            reference=product.reference,
            serial=product.serial,
        )

    @property
    def total_value(self) -> float:
        return self.quantity * self.unit_price

    @property
    def total_cost(self) -> float:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class CourtesySummary:
    total_value: float = 0.0
    total_cost: float = 0.0


@dataclass(frozen=True)
class RealProfit:
    """Profit figures after subtracting the cost of gifted items.

    Attributes:
        courtesy_total_value: Normal sale value of everything gifted.
        courtesy_total_cost: Purchase cost of everything gifted.
        real_total_cost: Priced basket cost plus courtesy cost.
        real_profit: Priced profit minus courtesy cost.
    """

    courtesy_total_value: float
    courtesy_total_cost: float
    real_total_cost: float
    real_profit: float


@dataclass(frozen=True)
class CourtesyLedger:
    """Immutable list of courtesy items; every change returns a new ledger."""

    items: Tuple[CourtesyItem, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[CourtesyItem]:
        return iter(self.items)

    def add(self, item: CourtesyItem, product: Product) -> CourtesyLedger:
        """Append a courtesy item after re-checking the product's stock.

        The check is independent of the priced basket's own stock checks.

        Args:
            item: Courtesy item to add.
            product: Current product record, for the stock snapshot.

        Returns:
            New ledger with the item appended.

        Raises:
            NotFoundError: If the item and product ids do not match.
            StockInsufficientError: If the item quantity exceeds stock.
        """
        if item.product_id != product.id:
            raise NotFoundError(
                f"Courtesy item references product '{item.product_id}', got '{product.id}'"
            )
        if item.quantity > product.stock:
            raise StockInsufficientError(product.name, item.quantity, product.stock)
        logger.debug("Courtesy added: %s x%d", item.product_name, item.quantity)
        return CourtesyLedger(self.items + (item,))

    def remove(self, index: int) -> CourtesyLedger:
        """Drop the item at ``index``.

        Raises:
            NotFoundError: If there is no item at that position.
        """
        if not 0 <= index < len(self.items):
            raise NotFoundError(f"No courtesy item at position {index}")
        return CourtesyLedger(self.items[:index] + self.items[index + 1:])

    def summary(self) -> CourtesySummary:
        return summarize(self.items)


def summarize(items: Tuple[CourtesyItem, ...] | list[CourtesyItem]) -> CourtesySummary:
    """Total gifted value and cost of a set of courtesy items."""
    return CourtesySummary(
        total_value=float(sum(i.total_value for i in items)),
        total_cost=float(sum(i.total_cost for i in items)),
    )


def real_profit(sale_total: SaleTotal, ledger: CourtesyLedger) -> RealProfit:
    """Derive the profit that remains once gifted cost is accounted for."""
    summary = ledger.summary()
    return RealProfit(
        courtesy_total_value=summary.total_value,
        courtesy_total_cost=summary.total_cost,
        real_total_cost=sale_total.total_cost + summary.total_cost,
        real_profit=sale_total.total_profit - summary.total_cost,
    )
