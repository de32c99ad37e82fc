"""Tests for courtesy (gift) items and real profit."""

import pytest

from pos_settlement.exceptions import NotFoundError, StockInsufficientError, ValidationError
from pos_settlement.settlement import (
    LineItem,
    PaymentInstrument,
    Product,
    SinglePayment,
    compute_total,
)
from pos_settlement.settlement.courtesy import CourtesyItem, CourtesyLedger, real_profit, summarize


@pytest.fixture
def case() -> Product:
    return Product("c1", "Phone case", cost=5000, price=20000, stock=3, category="Accesorios")


def test_from_product_snapshots_price_and_cost(case) -> None:
    item = CourtesyItem.from_product(case, 2, reason="Loyal customer")

    assert item.unit_price == 20000
    assert item.unit_cost == 5000
    assert item.total_value == 40000
    assert item.total_cost == 10000
    assert item.reason == "Loyal customer"
    assert item.category == "Accesorios"


def test_empty_reason_is_dropped(case) -> None:
    assert CourtesyItem.from_product(case, 1, reason="").reason is None


def test_ledger_add_checks_stock(case) -> None:
    ledger = CourtesyLedger()
    with pytest.raises(StockInsufficientError) as exc_info:
        ledger.add(CourtesyItem.from_product(case, 4), case)

    assert exc_info.value.requested == 4
    assert exc_info.value.available == 3
    assert exc_info.value.product_name == "Phone case"
    assert len(ledger) == 0


def test_ledger_add_rejects_mismatched_product(case) -> None:
    other = Product("x", "Other", cost=1, price=2, stock=10)
    with pytest.raises(NotFoundError):
        CourtesyLedger().add(CourtesyItem.from_product(other, 1), case)


def test_ledger_is_immutable(case) -> None:
    empty = CourtesyLedger()
    one = empty.add(CourtesyItem.from_product(case, 1), case)

    assert len(empty) == 0
    assert len(one) == 1
    assert len(one.remove(0)) == 0
    with pytest.raises(NotFoundError):
        one.remove(5)


def test_zero_quantity_rejected(case) -> None:
    with pytest.raises(ValidationError):
        CourtesyItem.from_product(case, 0)


def test_courtesies_do_not_change_priced_totals(case) -> None:
    """Gifts change only the real profit, never subtotal, total or commissions."""
    items = [LineItem("p1", "Phone", 1, unit_cost=600000, unit_price=1000000)]
    sale = compute_total(items, 0, SinglePayment(PaymentInstrument.CARD))
    ledger = CourtesyLedger().add(CourtesyItem.from_product(case, 2), case)

    real = real_profit(sale, ledger)
    again = compute_total(items, 0, SinglePayment(PaymentInstrument.CARD))

    assert again == sale
    assert real.courtesy_total_value == 40000
    assert real.courtesy_total_cost == 10000
    assert real.real_total_cost == sale.total_cost + 10000
    assert real.real_profit == pytest.approx(sale.total_profit - 10000)


def test_summarize_empty() -> None:
    summary = summarize([])
    assert summary.total_value == 0
    assert summary.total_cost == 0
