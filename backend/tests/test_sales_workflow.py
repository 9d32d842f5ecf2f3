import re

import pytest
from fastapi import HTTPException

from app import documents, models, schemas
from app.database import SessionLocal
from app.routers.sales import claim_bike, create_sale_record, sale_identifiers


def _payments(client):
    return client.get("/payments/").json()["payments"]


def test_sale_updates_bike_customer_and_payment(client, create_bike, sell_bike):
    bike = create_bike(buy_price=100000)

    response = sell_bike(bike["id"], selling_price=130000, discount=5000)
    assert response.status_code == 201, response.text
    sale = response.json()

    assert sale["final_amount"] == 125000
    assert sale["profit"] == 25000
    assert sale["profit_percent"] == pytest.approx(25.0)
    assert sale["payment_status"] == "Paid"
    assert sale["bike"]["bike_number"] == "KA01AB1234"
    assert sale["customer"]["phone"] == "9876543210"

    sold = client.get(f"/bikes/{bike['id']}").json()
    assert sold["status"] == "sold"
    assert sold["sell_price"] == 130000
    assert sold["sale_id"] == sale["id"]
    assert sold["sell_date"] is not None
    # bike profit tracks its own sell price, not the discounted amount
    assert sold["profit"] == sold["sell_price"] - sold["buy_price"]

    customer = client.get(f"/customers/{sale['customer_id']}").json()
    assert customer["customer"]["total_spent"] == 125000
    assert customer["customer"]["total_bikes_bought"] == 1
    assert customer["customer"]["customer_type"] == "Regular"
    assert customer["customer"]["last_purchase_date"] is not None
    assert [p["id"] for p in customer["purchases"]] == [sale["id"]]

    [payment] = _payments(client)
    assert payment["sale_id"] == sale["id"]
    assert payment["total_amount"] == 125000
    assert payment["paid_amount"] == 125000
    assert payment["remaining_amount"] == 0
    assert payment["status"] == "completed"


def test_sale_numbers_follow_period_format(client, create_bike, sell_bike):
    sale = sell_bike(create_bike()["id"]).json()
    assert re.fullmatch(r"SAL-\d{6}-\d{3}", sale["sale_number"])
    assert re.fullmatch(r"SB-\d{4}-\d{3}", sale["invoice_number"])
    assert sale["sale_number"].endswith(f"-{sale['id']:03d}")


def test_sale_identifiers_are_distinct_per_id():
    from datetime import datetime

    now = datetime(2025, 3, 9)
    assert sale_identifiers(7, now) == ("SAL-202503-007", "SB-2025-007")
    assert sale_identifiers(1234, now) == ("SAL-202503-1234", "SB-2025-1234")


def test_refetch_keeps_final_amount(client, create_bike, sell_bike):
    created = sell_bike(create_bike()["id"], selling_price=99999.5, discount=0.5).json()
    fetched = client.get(f"/sales/{created['id']}").json()
    assert fetched["final_amount"] == fetched["selling_price"] - fetched["discount"]
    assert fetched["final_amount"] == 99999.0


def test_selling_a_sold_bike_is_rejected(client, create_bike, sell_bike):
    bike = create_bike()
    assert sell_bike(bike["id"]).status_code == 201

    before = client.get("/customers/").json()["customers"][0]

    response = sell_bike(bike["id"], buyer_phone="9111111111", buyer_name="Someone Else")
    assert response.status_code == 400
    assert response.json() == {"message": "Bike is not available for sale"}

    assert client.get("/sales/").json()["total"] == 1
    customers = client.get("/customers/").json()["customers"]
    assert len(customers) == 1
    assert customers[0]["total_spent"] == before["total_spent"]


def test_reserved_bike_cannot_be_sold(client, create_bike, sell_bike):
    bike = create_bike(status="reserved")
    response = sell_bike(bike["id"])
    assert response.status_code == 400
    assert client.get("/sales/").json()["total"] == 0


def test_unknown_bike_is_404(client, sell_bike):
    response = sell_bike(999)
    assert response.status_code == 404
    assert response.json() == {"message": "Bike not found"}


def test_discount_above_price_is_rejected(client, create_bike, sell_bike):
    bike = create_bike()
    response = sell_bike(bike["id"], selling_price=1000, discount=2000)
    assert response.status_code == 400
    assert client.get(f"/bikes/{bike['id']}").json()["status"] == "available"


def test_invalid_payment_mode_reports_field(client, create_bike, sell_bike):
    response = sell_bike(create_bike()["id"], payment_mode="Barter")
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid input"
    assert any(e["field"] == "payment_mode" for e in body["errors"])


def test_existing_customer_is_reused(client, create_bike, sell_bike):
    existing = client.post(
        "/customers/",
        json={"name": "Ravi K", "phone": "9876543210", "address": "Old address"},
    ).json()

    first = sell_bike(create_bike(bike_number="KA01AA0001")["id"], selling_price=150000, discount=0)
    second = sell_bike(create_bike(bike_number="KA01AA0002")["id"], selling_price=100000, discount=0)
    assert first.status_code == second.status_code == 201
    assert first.json()["customer_id"] == second.json()["customer_id"] == existing["id"]

    detail = client.get(f"/customers/{existing['id']}").json()["customer"]
    assert detail["total_bikes_bought"] == 2
    assert detail["total_spent"] == 250000
    assert detail["customer_type"] == "Premium"
    # profile keeps its own name; the sale keeps the buyer snapshot
    assert detail["name"] == "Ravi K"
    assert second.json()["buyer_name"] == "Ravi Kumar"


def test_free_sale_has_no_payment_record(client, create_bike, sell_bike):
    response = sell_bike(create_bike()["id"], selling_price=5000, discount=5000)
    assert response.status_code == 201
    assert response.json()["final_amount"] == 0
    assert _payments(client) == []


def test_failed_invoice_rolls_back_everything(client, create_bike, sell_bike, monkeypatch):
    bike = create_bike()

    def broken_invoice(sale, bike, customer):
        raise RuntimeError("disk full")

    monkeypatch.setattr(documents, "render_invoice", broken_invoice)

    response = sell_bike(bike["id"])
    assert response.status_code == 500
    assert response.json() == {"message": "Server error"}

    assert client.get(f"/bikes/{bike['id']}").json()["status"] == "available"
    assert client.get("/sales/").json()["total"] == 0
    assert client.get("/customers/").json()["total"] == 0
    assert _payments(client) == []


def test_claim_bike_only_succeeds_once(db, create_bike):
    bike = create_bike()
    assert claim_bike(db, bike["id"]) is True
    assert claim_bike(db, bike["id"]) is False
    db.commit()
    assert db.get(models.Bike, bike["id"]).status == "sold"


def test_seller_with_stale_view_loses_the_bike(client, create_bike, sell_bike, admin_user):
    bike = create_bike()
    late = SessionLocal()
    try:
        assert late.get(models.Bike, bike["id"]).status == "available"
        assert sell_bike(bike["id"]).status_code == 201

        payload = schemas.SaleCreate(
            bike_id=bike["id"],
            buyer_name="Anil Rao",
            buyer_phone="9123456780",
            buyer_address="4 Park Street, Mysuru",
            selling_price=128000,
            payment_mode="UPI",
        )
        with pytest.raises(HTTPException) as exc:
            create_sale_record(late, payload, admin_user)
    finally:
        late.close()

    assert exc.value.status_code == 400
    assert exc.value.detail == "Bike is not available for sale"

    assert client.get("/sales/").json()["total"] == 1
    customers = client.get("/customers/").json()
    assert [c["phone"] for c in customers["customers"]] == ["9876543210"]
    sold = client.get(f"/bikes/{bike['id']}").json()
    assert sold["sell_price"] == 130000
    assert len(_payments(client)) == 1


def test_invoice_written_and_downloadable(client, create_bike, sell_bike, storage):
    sale = sell_bike(create_bike()["id"]).json()
    assert sale["invoice_path"] == f"/invoices/invoice-{sale['invoice_number']}.pdf"
    assert (storage / "invoices" / f"invoice-{sale['invoice_number']}.pdf").exists()

    response = client.get(f"/sales/invoice/{sale['id']}")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert f"invoice-{sale['invoice_number']}.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_invoice_download_missing(client, create_bike, sell_bike, storage):
    assert client.get("/sales/invoice/42").status_code == 404

    sale = sell_bike(create_bike()["id"]).json()
    (storage / "invoices" / f"invoice-{sale['invoice_number']}.pdf").unlink()
    response = client.get(f"/sales/invoice/{sale['id']}")
    assert response.status_code == 404
    assert response.json() == {"message": "Invoice file not found"}


def test_only_notes_can_change_on_a_sale(client, create_bike, sell_bike):
    sale = sell_bike(create_bike()["id"]).json()

    response = client.put(f"/sales/{sale['id']}", json={"notes": "delivered", "selling_price": 1})
    assert response.status_code == 200
    assert response.json()["notes"] == "delivered"
    assert response.json()["selling_price"] == 130000

    assert client.delete(f"/sales/{sale['id']}").status_code == 405


def test_sales_list_search_and_stats(client, create_bike, sell_bike):
    sell_bike(create_bike(bike_number="KA01AA0001")["id"], buyer_name="Meera", buyer_phone="9000000010")
    sell_bike(create_bike(bike_number="KA01AA0002")["id"], buyer_name="Arjun", buyer_phone="9000000011")

    listed = client.get("/sales/", params={"search": "meer"}).json()
    assert listed["total"] == 1
    assert listed["sales"][0]["buyer_name"] == "Meera"

    stats = client.get("/sales/stats/overview").json()
    assert stats["total_sales"] == 2
    assert stats["total_revenue"] == 250000
    assert stats["total_profit"] == 50000
    assert stats["avg_sale_amount"] == 125000
