def _person(client, **overrides):
    body = {"person_name": "Sharma Finance", "person_type": "Finance Company", "contact_number": "9555555555"}
    body.update(overrides)
    response = client.post("/finance/", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _transaction(client, finance_id, amount, payment_date="2025-02-10T10:00:00", **overrides):
    body = {
        "finance_id": finance_id,
        "amount": amount,
        "payment_method": "Bank Transfer",
        "purpose": "EMI",
        "payment_date": payment_date,
    }
    body.update(overrides)
    return client.post("/finance/transactions", json=body)


def test_new_person_starts_with_zero_totals(client):
    person = _person(client)
    assert person["total_amount_paid"] == 0
    assert person["total_transactions"] == 0
    assert person["status"] == "active"


def test_transactions_move_person_totals(client, admin_user):
    person = _person(client)
    first = _transaction(client, person["id"], 15000, "2025-01-10T10:00:00")
    second = _transaction(client, person["id"], 5000, "2025-02-10T10:00:00")
    assert first.status_code == second.status_code == 201
    assert second.json()["paid_by"] == admin_user.user_id
    assert second.json()["finance"]["person_name"] == "Sharma Finance"

    detail = client.get(f"/finance/{person['id']}").json()
    assert detail["finance"]["total_amount_paid"] == 20000
    assert detail["finance"]["total_transactions"] == 2
    assert detail["finance"]["last_payment_date"].startswith("2025-02-10")
    assert [t["amount"] for t in detail["transactions"]] == [5000, 15000]


def test_transaction_for_unknown_person_is_404(client):
    response = _transaction(client, 321, 1000)
    assert response.status_code == 404
    assert client.get("/finance/transactions").json()["total"] == 0


def test_transaction_amount_must_be_positive(client):
    person = _person(client)
    assert _transaction(client, person["id"], 0).status_code == 400


def test_transaction_list_filters(client):
    a = _person(client)
    b = _person(client, person_name="HDFC", person_type="Bank")
    _transaction(client, a["id"], 1000, "2025-01-01T00:00:00")
    _transaction(client, a["id"], 2000, "2025-03-01T00:00:00")
    _transaction(client, b["id"], 3000, "2025-03-05T00:00:00")

    only_a = client.get("/finance/transactions", params={"finance_id": a["id"]}).json()
    assert [t["amount"] for t in only_a["transactions"]] == [2000, 1000]

    march = client.get("/finance/transactions", params={"date_from": "2025-03-01T00:00:00"}).json()
    assert march["total"] == 2


def test_person_list_search_and_filters(client):
    _person(client)
    _person(client, person_name="HDFC", person_type="Bank", status="inactive", email="Loans@HDFC.in")

    assert client.get("/finance/", params={"search": "hdfc.in"}).json()["total"] == 1
    banks = client.get("/finance/", params={"person_type": "Bank"}).json()
    assert [p["person_name"] for p in banks["finance_persons"]] == ["HDFC"]
    assert client.get("/finance/", params={"status": "active"}).json()["total"] == 1


def test_update_keeps_totals(client):
    person = _person(client)
    _transaction(client, person["id"], 7000)
    response = client.put(
        f"/finance/{person['id']}",
        json={"status": "inactive", "total_amount_paid": 0, "notes": "closed"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"
    assert response.json()["total_amount_paid"] == 7000


def test_delete_guarded_by_transactions(client):
    busy = _person(client)
    _transaction(client, busy["id"], 100)
    response = client.delete(f"/finance/{busy['id']}")
    assert response.status_code == 400
    assert response.json() == {"message": "Cannot delete finance person with existing transactions"}

    idle = _person(client, person_name="Idle Lender", person_type="Individual")
    assert client.delete(f"/finance/{idle['id']}").status_code == 200
    assert client.get(f"/finance/{idle['id']}").status_code == 404


def test_finance_stats(client):
    a = _person(client)
    _person(client, person_name="Old Lender", person_type="Other", status="inactive")
    _transaction(client, a["id"], 1000)
    _transaction(client, a["id"], 3000)

    stats = client.get("/finance/stats/overview").json()
    assert stats == {
        "total_finance_persons": 2,
        "total_amount_paid": 4000,
        "active_persons": 1,
        "total_transactions": 2,
        "total_amount": 4000,
        "avg_transaction_amount": 2000,
    }
