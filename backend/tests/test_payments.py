from datetime import datetime

import pytest
from fastapi import HTTPException

from app import models
from app.routers.payments import record_payment


@pytest.fixture
def open_payment(db, client, create_bike, sell_bike):
    """A sale whose payment is reset to unpaid so the ledger can be exercised."""
    sale = sell_bike(create_bike()["id"], selling_price=125000, discount=0).json()
    payment = db.query(models.Payment).filter(models.Payment.sale_id == sale["id"]).one()
    payment.paid_amount = 0
    db.commit()
    db.refresh(payment)
    return payment


def _pay(client, payment_id, amount, **extra):
    body = {
        "amount": amount,
        "payment_method": "UPI",
        "payment_date": "2025-01-15T12:00:00",
    }
    body.update(extra)
    return client.post(f"/payments/{payment_id}/payment", json=body)


def test_reset_payment_is_pending(open_payment):
    assert open_payment.status == "pending"
    assert open_payment.remaining_amount == 125000


def test_payments_move_status_forward(client, open_payment):
    seen = []
    for amount in (25000, 50000, 50000):
        response = _pay(client, open_payment.id, amount)
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["remaining_amount"] == body["total_amount"] - body["paid_amount"]
        assert body["remaining_amount"] >= 0
        seen.append(body["status"])

    assert seen == ["partial", "partial", "completed"]

    payment = client.get(f"/payments/{open_payment.id}").json()
    assert [log["amount"] for log in payment["logs"]] == [25000, 50000, 50000]
    assert payment["paid_amount"] == 125000


def test_overpayment_is_rejected(client, open_payment):
    assert _pay(client, open_payment.id, 100000).status_code == 200

    response = _pay(client, open_payment.id, 25000.01)
    assert response.status_code == 400
    assert response.json() == {"message": "Payment amount cannot exceed remaining amount"}

    payment = client.get(f"/payments/{open_payment.id}").json()
    assert payment["paid_amount"] == 100000
    assert len(payment["logs"]) == 1


def test_fractional_payments_settle_exactly(client, db, open_payment):
    open_payment.total_amount = 0.3
    db.commit()

    assert _pay(client, open_payment.id, 0.1).json()["status"] == "partial"
    response = _pay(client, open_payment.id, 0.2)
    assert response.status_code == 200, response.text
    assert response.json()["remaining_amount"] == 0
    assert response.json()["status"] == "completed"


def test_completed_payment_takes_no_more_money(client, create_bike, sell_bike):
    sell_bike(create_bike()["id"])
    [payment] = client.get("/payments/").json()["payments"]
    assert payment["status"] == "completed"

    response = _pay(client, payment["id"], 1)
    assert response.status_code == 400


def test_non_positive_amount_is_invalid(client, open_payment):
    response = _pay(client, open_payment.id, 0)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid input"


def test_record_payment_helper_records_user(db, open_payment, admin_user):
    payment = record_payment(
        db,
        open_payment,
        amount=1000,
        method="Cash",
        payment_date=datetime(2025, 2, 1),
        notes="token amount",
        recorded_by=admin_user.user_id,
    )
    assert payment.status == "partial"
    assert payment.logs[-1].received_by == admin_user.user_id
    assert payment.logs[-1].notes == "token amount"

    with pytest.raises(HTTPException) as exc:
        record_payment(db, payment, 10**9, "Cash", datetime(2025, 2, 2), None, admin_user.user_id)
    assert exc.value.status_code == 400


def test_update_only_touches_due_date_and_notes(client, open_payment):
    response = client.put(
        f"/payments/{open_payment.id}",
        json={"due_date": "2025-03-01T00:00:00", "notes": "call before visit", "paid_amount": 999},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["notes"] == "call before visit"
    assert body["due_date"].startswith("2025-03-01")
    assert body["paid_amount"] == 0

    assert client.delete(f"/payments/{open_payment.id}").status_code == 405


def test_unknown_payment_is_404(client):
    assert _pay(client, 77, 100).status_code == 404
    assert client.get("/payments/77").json() == {"message": "Payment not found"}


def test_payment_list_filters_and_stats(client, create_bike, sell_bike, open_payment):
    sell_bike(
        create_bike(bike_number="DL05XY9999")["id"],
        buyer_name="Farah",
        buyer_phone="9222222222",
    )

    pending = client.get("/payments/", params={"status": "pending"}).json()
    assert [p["id"] for p in pending["payments"]] == [open_payment.id]

    by_bike = client.get("/payments/", params={"search": "dl05"}).json()
    assert by_bike["total"] == 1
    assert by_bike["payments"][0]["customer"]["name"] == "Farah"
    assert client.get("/payments/", params={"search": "%"}).json()["total"] == 0

    stats = client.get("/payments/stats/overview").json()
    assert stats["total_payments"] == 2
    assert stats["pending_payments"] == 1
    assert stats["completed_payments"] == 1
    assert stats["total_remaining"] == 125000
