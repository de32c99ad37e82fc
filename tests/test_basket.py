"""Tests for sale form transitions, checkout validation and the sale payload.

Transitions never raise for operator mistakes; they return the unchanged
state together with the error.
"""

from datetime import datetime, timezone

import pytest

from pos_settlement.exceptions import NotFoundError, StockInsufficientError, ValidationError
from pos_settlement.settlement import basket, compute_total
from pos_settlement.settlement.api import build_sale_payload
from pos_settlement.settlement.basket import CustomerState, SaleFormState
from pos_settlement.settlement.types import Customer, PaymentEntry, PaymentInstrument, Product


@pytest.fixture
def products() -> list:
    return [
        Product("p1", "Phone", cost=60000, price=100000, stock=3, category="Celulares",
                serial="356938035643809"),
        Product("c1", "Case", cost=5000, price=20000, stock=10, reference="CS-01"),
    ]


@pytest.fixture
def customer() -> Customer:
    return Customer("u1", "Ana", credit=50000)


def _form_with(products, *ids) -> SaleFormState:
    state = SaleFormState()
    for product_id in ids:
        step = basket.add_product(state, products, product_id)
        assert step.ok
        state = step.state
    return state


class TestBasketLines:
    def test_add_merges_existing_line(self, products) -> None:
        state = _form_with(products, "p1", "p1")

        assert len(state.items) == 1
        assert state.quantity_of("p1") == 2

    def test_add_unknown_product(self, products) -> None:
        step = basket.add_product(SaleFormState(), products, "nope")

        assert not step.ok
        assert isinstance(step.error, NotFoundError)
        assert step.state == SaleFormState()

    def test_add_beyond_stock_counts_merged_quantity(self, products) -> None:
        state = _form_with(products, "p1", "p1")
        step = basket.add_product(state, products, "p1", 2)

        assert isinstance(step.error, StockInsufficientError)
        assert step.error.requested == 4
        assert step.state is state

    def test_add_non_positive_quantity(self, products) -> None:
        step = basket.add_product(SaleFormState(), products, "p1", 0)
        assert isinstance(step.error, ValidationError)

    def test_merge_reprices_from_current_product(self, products) -> None:
        state = _form_with(products, "c1")
        repriced = [Product("c1", "Case", cost=6000, price=25000, stock=10)]

        state = basket.add_product(state, repriced, "c1").state
        line = state.find_item("c1")

        assert line.quantity == 2
        assert line.unit_price == 25000
        assert line.unit_cost == 6000

    def test_decrease_at_one_removes_line(self, products) -> None:
        state = _form_with(products, "p1", "c1")
        state = basket.decrease_quantity(state, "c1").state

        assert state.find_item("c1") is None
        assert state.quantity_of("p1") == 1

    def test_increase_and_decrease(self, products) -> None:
        state = _form_with(products, "p1")
        state = basket.increase_quantity(state, products, "p1").state
        assert state.quantity_of("p1") == 2

        state = basket.decrease_quantity(state, "p1").state
        assert state.quantity_of("p1") == 1

    def test_increase_missing_line(self, products) -> None:
        step = basket.increase_quantity(SaleFormState(), products, "p1")
        assert isinstance(step.error, NotFoundError)

    def test_removing_lines_reclamps_discount(self, products) -> None:
        state = _form_with(products, "p1", "c1")
        state = basket.set_discount(state, 110000).state
        assert state.discount == 110000

        state = basket.remove_product(state, "c1").state
        assert state.discount == 100000


class TestDiscountAndPayments:
    def test_discount_is_clamped(self, products) -> None:
        state = _form_with(products, "c1")

        assert basket.set_discount(state, 50000).state.discount == 20000
        assert basket.set_discount(state, -1).state.discount == 0
        assert basket.set_discount_percentage(state, 0.25).state.discount == pytest.approx(5000)

    def test_entries_require_multi_payment(self, products) -> None:
        state = _form_with(products, "p1")
        step = basket.add_payment(state, PaymentInstrument.CASH, 1000)

        assert isinstance(step.error, ValidationError)

    def test_entry_amount_must_be_positive(self, products) -> None:
        state = basket.set_multi_payment(_form_with(products, "p1"), True).state
        step = basket.add_payment(state, PaymentInstrument.CASH, 0)

        assert isinstance(step.error, ValidationError)

    def test_removing_entry_removes_its_commission(self, products) -> None:
        state = basket.set_multi_payment(_form_with(products, "p1"), True).state
        state = basket.add_payment(state, "tarjeta", 50000).state
        state = basket.add_payment(state, "efectivo", 50000).state

        assert state.payments[0].commission == pytest.approx(2000)

        state = basket.remove_payment(state, 0).state
        assert [p.instrument for p in state.payments] == [PaymentInstrument.CASH]
        assert isinstance(basket.remove_payment(state, 3).error, NotFoundError)

    def test_switching_mode_clears_entries(self, products) -> None:
        state = basket.set_multi_payment(_form_with(products, "p1"), True).state
        state = basket.add_payment(state, "efectivo", 100000).state

        state = basket.set_multi_payment(state, False).state
        assert state.payments == ()

    def test_unknown_instrument_is_rejected(self, products) -> None:
        state = _form_with(products, "p1")
        step = basket.set_payment_instrument(state, "cheque")

        assert isinstance(step.error, ValidationError)
        assert step.state.instrument is PaymentInstrument.CASH


class TestCustomerAndCourtesies:
    def test_apply_credit_requires_customer(self) -> None:
        step = basket.set_apply_credit(CustomerState(), True)
        assert isinstance(step.error, ValidationError)

    def test_selecting_customer_resets_credit(self, customer) -> None:
        state = basket.select_customer(CustomerState(), customer).state
        state = basket.set_apply_credit(state, True).state
        assert state.apply_credit

        state = basket.select_customer(state, Customer("u2", "Luis")).state
        assert not state.apply_credit

    def test_courtesy_stock_checked(self, products) -> None:
        step = basket.add_courtesy(SaleFormState(), products, "p1", 5)
        assert isinstance(step.error, StockInsufficientError)

    def test_courtesy_add_and_remove(self, products) -> None:
        state = basket.add_courtesy(SaleFormState(), products, "c1", 1, reason="Promo").state
        assert len(state.courtesies) == 1

        state = basket.remove_courtesy(state, 0).state
        assert len(state.courtesies) == 0
        assert isinstance(basket.remove_courtesy(state, 0).error, NotFoundError)


class TestCheckout:
    def test_empty_form_collects_errors(self) -> None:
        errors = basket.validate_checkout(SaleFormState(), CustomerState())

        assert len(errors) == 2
        assert all(isinstance(e, ValidationError) for e in errors)

    def test_zero_total_rejected(self, products, customer) -> None:
        form = basket.set_discount(_form_with(products, "c1"), 20000).state
        errors = basket.validate_checkout(form, CustomerState(customer))

        assert any("greater than zero" in str(e) for e in errors)

    def test_multi_payment_must_cover_final_total(self, products, customer) -> None:
        form = basket.set_multi_payment(_form_with(products, "p1"), True).state
        form = basket.add_payment(form, "tarjeta", 100000).state
        customer_state = CustomerState(customer)

        errors = basket.validate_checkout(form, customer_state)
        assert len(errors) == 1
        assert "3000.00 remaining" in str(errors[0])

        # Credit closes the surcharge gap
        customer_state = basket.set_apply_credit(customer_state, True).state
        assert basket.validate_checkout(form, customer_state) == []

    def test_multi_payment_without_entries_rejected(self, products, customer) -> None:
        form = basket.set_multi_payment(_form_with(products, "p1"), True).state
        errors = basket.validate_checkout(form, CustomerState(customer))

        assert len(errors) == 1

    def test_single_payment_status_has_nothing_remaining(self, products, customer) -> None:
        from pos_settlement.settlement import compute_total

        form = _form_with(products, "p1")
        customer_state = CustomerState(customer, apply_credit=True)
        sale = compute_total(form.items, form.discount, form.payment_spec)
        status = basket.payment_status(form, customer_state, sale)

        assert status.remaining == 0
        assert status.credit_used == 50000
        assert status.amount_due == 100000


class TestSalePayload:
    def test_payload_for_card_sale_with_courtesy(self, products, customer) -> None:
        form = _form_with(products, "p1")
        form = basket.set_payment_instrument(form, "tarjeta").state
        form = basket.add_courtesy(form, products, "c1", 1, reason="Promo").state
        now = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)

        payload = build_sale_payload(
            form,
            CustomerState(customer),
            salesperson={"id": "s1", "name": "Vendedor"},
            now=now,
        )

        assert payload["subtotal"] == 100000
        assert payload["total"] == 100000
        assert payload["paymentMethod"] == "tarjeta"
        assert payload["totalCommissions"] == pytest.approx(4000)
        assert payload["customerSurcharge"] == pytest.approx(3000)
        assert payload["finalTotal"] == pytest.approx(103000)
        assert payload["totalProfit"] == pytest.approx(36000)
        assert payload["realTotalCost"] == 65000
        assert payload["realProfit"] == pytest.approx(31000)
        assert payload["courtesyTotalValue"] == 20000
        assert payload["courtesyItems"][0]["reason"] == "Promo"
        assert payload["courtesyItems"][0]["referencia"] == "CS-01"
        assert payload["items"][0]["imei"] == "356938035643809"
        assert payload["items"][0]["category"] == "Celulares"
        assert payload["salesPersonId"] == "s1"
        assert payload["customerId"] == "u1"
        assert payload["type"] == "regular"
        assert payload["createdAt"] == "2025-03-10T15:00:00+00:00"
        assert "creditUsed" not in payload
        assert "paymentMethods" not in payload

    def test_payload_for_cash_sale_omits_surcharge(self, products, customer) -> None:
        payload = build_sale_payload(_form_with(products, "c1"), CustomerState(customer))

        assert "finalTotal" not in payload
        assert "customerSurcharge" not in payload
        assert "courtesyItems" not in payload
        assert payload["totalCommissions"] == 0

    def test_payload_for_multi_payment_with_credit(self, products, customer) -> None:
        form = basket.set_multi_payment(_form_with(products, "p1"), True).state
        form = basket.add_payment(form, "efectivo", 60000).state
        customer_state = CustomerState(customer, apply_credit=True)

        payload = build_sale_payload(form, customer_state)

        assert payload["useMultiplePayments"] is True
        assert payload["paymentMethods"] == [
            {"method": "efectivo", "amount": 60000, "commission": 0.0}
        ]
        assert payload["creditUsed"] == 40000
        assert "finalTotal" not in payload

    def test_payload_refuses_unfinished_sale(self, products) -> None:
        with pytest.raises(ValidationError, match="Select a customer"):
            build_sale_payload(_form_with(products, "p1"), CustomerState())


class TestStoreCredit:
    """Store credit can only be spent from the selected customer's balance."""

    def test_credit_entries_are_rejected(self, products) -> None:
        state = basket.set_multi_payment(_form_with(products, "p1"), True).state
        step = basket.add_payment(state, PaymentInstrument.STORE_CREDIT, 100000)

        assert isinstance(step.error, ValidationError)
        assert step.state.payments == ()

    def test_form_carrying_credit_entry_cannot_check_out(self, products) -> None:
        form = SaleFormState(
            items=_form_with(products, "p1").items,
            multi_payment=True,
            payments=(PaymentEntry(PaymentInstrument.STORE_CREDIT, 100000),),
        )
        broke = CustomerState(Customer("u9", "Sin saldo", credit=0))

        errors = basket.validate_checkout(form, broke)
        assert any("not as an entry" in str(e) for e in errors)
        with pytest.raises(ValidationError):
            build_sale_payload(form, broke)

    def test_credit_entry_and_applied_credit_are_not_double_counted(self, products) -> None:
        form = SaleFormState(
            items=_form_with(products, "p1").items,
            multi_payment=True,
            payments=(PaymentEntry(PaymentInstrument.STORE_CREDIT, 50000),),
        )
        customer_state = CustomerState(Customer("u1", "Ana", credit=50000), apply_credit=True)
        sale = compute_total(form.items, form.discount, form.payment_spec)

        status = basket.payment_status(form, customer_state, sale)

        assert status.credit_used == 50000
        assert status.total_paid == 50000
        assert status.remaining == 50000
        assert basket.validate_checkout(form, customer_state) != []

    def test_single_credit_payment_needs_enough_balance(self, products) -> None:
        form = basket.set_payment_instrument(_form_with(products, "p1"), "credit").state
        broke = CustomerState(Customer("u9", "Sin saldo", credit=0))
        short = CustomerState(Customer("u2", "Luis", credit=60000))

        errors = basket.validate_checkout(form, broke)
        assert len(errors) == 1
        assert "100000.00 remaining" in str(errors[0])

        errors = basket.validate_checkout(form, short)
        assert "40000.00 remaining" in str(errors[0])

    def test_single_credit_payment_with_enough_balance(self, products) -> None:
        form = basket.set_payment_instrument(_form_with(products, "p1"), "credit").state
        rich = CustomerState(Customer("u3", "Marta", credit=150000))

        assert basket.validate_checkout(form, rich) == []
        payload = build_sale_payload(form, rich)
        assert payload["paymentMethod"] == "credit"
        assert payload["creditUsed"] == 100000

    def test_applied_credit_is_measured_against_surcharged_total(self, products) -> None:
        """The card surcharge is priced on the whole total, credit included."""
        form = basket.set_payment_instrument(_form_with(products, "p1"), "tarjeta").state
        customer_state = CustomerState(Customer("u3", "Marta", credit=150000), apply_credit=True)
        sale = compute_total(form.items, form.discount, form.payment_spec)

        status = basket.payment_status(form, customer_state, sale)

        assert sale.customer_surcharge == pytest.approx(3000)
        assert status.amount_due == pytest.approx(103000)
        assert status.credit_used == pytest.approx(103000)
        assert status.remaining == 0
