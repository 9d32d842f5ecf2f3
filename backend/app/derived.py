# backend/app/derived.py
"""
Derived fields recomputed every time their owning row is persisted.

The ``compute`` functions are pure so they can be tested without a database;
the ``apply`` functions copy their results onto a model instance and are
registered as mapper listeners in app/models.py.
"""
import math
from datetime import datetime
from typing import Optional, Tuple

from app.constants import PREMIUM_THRESHOLD, VIP_THRESHOLD


def compute_profit_percent(cost: float, profit: float) -> float:
    if not cost:
        return 0.0
    return (profit / cost) * 100.0


def bike_profit(buy_price: Optional[float], sell_price: Optional[float]) -> Optional[Tuple[float, float]]:
    """
    (profit, profit_percent) when both prices are set, otherwise None.
    A zero price counts as "not set".
    """
    if not sell_price or not buy_price:
        return None
    profit = sell_price - buy_price
    return profit, compute_profit_percent(buy_price, profit)


def days_between(purchase_date: Optional[datetime], sell_date: Optional[datetime]) -> Optional[int]:
    """Whole days from purchase to sale, rounded up."""
    if purchase_date is None or sell_date is None:
        return None
    seconds = (sell_date - purchase_date).total_seconds()
    return math.ceil(seconds / 86400)


def customer_tier(total_spent: Optional[float]) -> str:
    spent = total_spent or 0
    if spent >= VIP_THRESHOLD:
        return "VIP"
    if spent >= PREMIUM_THRESHOLD:
        return "Premium"
    return "Regular"


def payment_balance(total_amount: float, paid_amount: float) -> Tuple[float, str]:
    """
    remaining = total - paid, and the status implied by how much is paid:
      0        -> pending
      < total  -> partial
      else     -> completed
    """
    total = total_amount or 0.0
    paid = paid_amount or 0.0
    # to the cent; "or" turns -0.0 into 0.0
    remaining = round(total - paid, 2) or 0.0

    if paid == 0:
        status = "pending"
    elif remaining > 0:
        status = "partial"
    else:
        status = "completed"

    return remaining, status


# ---------- Persistence hooks ----------

def apply_bike_fields(bike) -> None:
    profit = bike_profit(bike.buy_price, bike.sell_price)
    if profit is not None:
        bike.profit, bike.profit_percent = profit

    days = days_between(bike.purchase_date, bike.sell_date)
    if days is not None:
        bike.days_to_sell = days


def apply_customer_fields(customer) -> None:
    customer.customer_type = customer_tier(customer.total_spent)


def apply_payment_fields(payment) -> None:
    payment.remaining_amount, payment.status = payment_balance(
        payment.total_amount, payment.paid_amount
    )
