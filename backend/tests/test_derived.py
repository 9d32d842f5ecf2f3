from datetime import datetime

import pytest

from app import derived, models


def test_profit_percent_of_zero_cost_is_zero():
    assert derived.compute_profit_percent(0, 5000) == 0.0


def test_bike_profit_needs_both_prices():
    assert derived.bike_profit(100000, None) is None
    assert derived.bike_profit(None, 120000) is None
    assert derived.bike_profit(100000, 0) is None


def test_bike_profit_and_percent():
    profit, percent = derived.bike_profit(80000, 100000)
    assert profit == 20000
    assert percent == pytest.approx(25.0)


def test_bike_loss_is_negative():
    profit, percent = derived.bike_profit(100000, 90000)
    assert profit == -10000
    assert percent == pytest.approx(-10.0)


@pytest.mark.parametrize(
    "purchase, sold, expected",
    [
        (datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 10), 0),
        (datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11), 1),
        (datetime(2024, 1, 1, 10), datetime(2024, 1, 11, 10), 10),
        (datetime(2024, 1, 1, 10), datetime(2024, 1, 11, 10, 0, 1), 11),
    ],
)
def test_days_between_rounds_up(purchase, sold, expected):
    assert derived.days_between(purchase, sold) == expected


def test_days_between_missing_date():
    assert derived.days_between(datetime(2024, 1, 1), None) is None


@pytest.mark.parametrize(
    "spent, tier",
    [
        (None, "Regular"),
        (0, "Regular"),
        (199999.99, "Regular"),
        (200000, "Premium"),
        (499999, "Premium"),
        (500000, "VIP"),
        (2500000, "VIP"),
    ],
)
def test_customer_tier_boundaries(spent, tier):
    assert derived.customer_tier(spent) == tier


@pytest.mark.parametrize(
    "total, paid, remaining, status",
    [
        (125000, 0, 125000, "pending"),
        (125000, 25000, 100000, "partial"),
        (125000, 125000, 0, "completed"),
        (0.3, 0.1 + 0.2, 0.0, "completed"),
    ],
)
def test_payment_balance(total, paid, remaining, status):
    assert derived.payment_balance(total, paid) == (remaining, status)


def test_apply_bike_fields_sets_profit_and_days():
    bike = models.Bike(
        buy_price=100000,
        sell_price=125000,
        purchase_date=datetime(2024, 1, 1),
        sell_date=datetime(2024, 1, 16),
    )
    derived.apply_bike_fields(bike)
    assert bike.profit == 25000
    assert bike.profit_percent == pytest.approx(25.0)
    assert bike.days_to_sell == 15


def test_apply_bike_fields_leaves_unsold_bike_alone():
    bike = models.Bike(buy_price=100000, purchase_date=datetime(2024, 1, 1))
    derived.apply_bike_fields(bike)
    assert bike.profit is None
    assert bike.days_to_sell is None


def test_tier_recomputed_when_customer_saved(db):
    customer = models.Customer(
        name="Anita", phone="9000000001", address="Pune", total_spent=250000, total_bikes_bought=2
    )
    db.add(customer)
    db.commit()
    assert customer.customer_type == "Premium"

    customer.total_spent = 600000
    db.commit()
    db.refresh(customer)
    assert customer.customer_type == "VIP"


def test_payment_status_recomputed_when_saved(db, admin_user):
    bike = models.Bike(
        bike_number="MH12AB0001", brand="TVS", model="Jupiter", year=2022,
        buy_price=50000, purchase_date=datetime(2024, 1, 1),
    )
    customer = models.Customer(name="Joseph", phone="9000000002", address="Goa")
    db.add_all([bike, customer])
    db.flush()
    sale = models.Sale(
        sale_number="SAL-202401-001", invoice_number="SB-2024-001",
        bike_id=bike.id, customer_id=customer.id,
        buyer_name="Joseph", buyer_phone="9000000002", buyer_address="Goa",
        selling_price=60000, discount=0, final_amount=60000,
        profit=10000, profit_percent=20, payment_mode="UPI", sold_by=admin_user.user_id,
    )
    db.add(sale)
    db.flush()
    payment = models.Payment(
        sale_id=sale.id, bike_id=bike.id, customer_id=customer.id,
        total_amount=60000, paid_amount=0,
    )
    db.add(payment)
    db.commit()
    assert (payment.remaining_amount, payment.status) == (60000, "pending")

    payment.paid_amount = 20000
    db.commit()
    db.refresh(payment)
    assert (payment.remaining_amount, payment.status) == (40000, "partial")
