"""Example: Checkout Workflow

This example walks one sale from an empty basket to the payload handed to
persistence: two products, a discount, a split payment closed with store
credit, and a gifted accessory.

Prerequisites:
- None. Products and customers are built inline (normally they come from
  the inventory and customer collaborators).
"""

import json
import logging

from pos_settlement import SettlementConfig, build_sale_payload, compute_total
from pos_settlement.settlement import basket
from pos_settlement.settlement.basket import CustomerState, SaleFormState
from pos_settlement.settlement.types import Customer, PaymentInstrument, Product

logging.basicConfig(level=logging.INFO)

config = SettlementConfig()
policy = config.policy()

products = [
    Product("p1", "Samsung Galaxy A15", cost=600000, price=850000, stock=4, category="Celulares"),
    Product("c1", "Forro silicona", cost=5000, price=25000, stock=20, category="Accesorios"),
]
customer = Customer("u1", "Ana Gómez", credit=40000)

# Build the basket
form = SaleFormState()
for product_id in ("p1", "c1"):
    step = basket.add_product(form, products, product_id)
    if not step.ok:
        print(f"Could not add {product_id}: {step.error}")
    form = step.state

form = basket.set_discount(form, 25000).state

# Split payment: part cash, part card
form = basket.set_multi_payment(form, True).state
form = basket.add_payment(form, PaymentInstrument.CASH, 500000, policy).state
form = basket.add_payment(form, PaymentInstrument.CARD, 320000, policy).state

# Gift a second case
form = basket.add_courtesy(form, products, "c1", 1, reason="Cliente frecuente").state

totals = compute_total(form.items, form.discount, form.payment_spec, policy)
print(f"Subtotal:     {totals.subtotal:>12,.0f}")
print(f"Discount:     {totals.applied_discount:>12,.0f}")
print(f"Total:        {totals.total:>12,.0f}")
print(f"Surcharge:    {totals.customer_surcharge:>12,.0f}")
print(f"Final total:  {totals.final_total:>12,.0f}")
print(f"Commissions:  {totals.total_commissions:>12,.0f}")
print(f"Profit:       {totals.total_profit:>12,.0f} ({totals.profit_margin:.1f}%)")

# Select the customer and let store credit close the gap
customers = basket.select_customer(CustomerState(), customer).state
customers = basket.set_apply_credit(customers, True).state

status = basket.payment_status(form, customers, totals)
print(f"\nPaid {status.total_paid:,.0f} (credit {status.credit_used:,.0f}), "
      f"remaining {status.remaining:,.0f}")

errors = basket.validate_checkout(form, customers, policy, config)
if errors:
    for error in errors:
        print(f"Cannot finalize: {error}")
else:
    payload = build_sale_payload(
        form, customers, policy, config, salesperson={"id": "v1", "name": "Carlos"}
    )
    print("\nSale payload:")
    print(json.dumps(payload, indent=2, ensure_ascii=False))
