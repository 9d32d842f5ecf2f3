from app.listing import like_pattern


def _stock(create_bike):
    create_bike(bike_number="AB10CD0001", brand="Honda", model="Activa 6G", buy_price=60000,
                purchase_date="2024-01-05T09:00:00")
    create_bike(bike_number="AB10CD0002", brand="Yamaha", model="FZ-S", buy_price=90000,
                purchase_date="2024-02-05T09:00:00")
    create_bike(bike_number="AB10CD0003", brand="Honda", model="Hornet 2.0", buy_price=120000,
                purchase_date="2024-03-05T09:00:00")


def test_default_page_and_meta(client, create_bike):
    _stock(create_bike)
    body = client.get("/bikes/").json()
    assert body["total"] == 3
    assert body["total_pages"] == 1
    assert body["current_page"] == 1
    assert len(body["bikes"]) == 3


def test_pagination(client, create_bike):
    _stock(create_bike)
    page = client.get("/bikes/", params={"limit": 2, "page": 2, "sort_by": "buy_price", "sort_order": "asc"}).json()
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert [b["buy_price"] for b in page["bikes"]] == [120000]


def test_search_is_case_insensitive_across_fields(client, create_bike):
    _stock(create_bike)
    assert client.get("/bikes/", params={"search": "hornet"}).json()["total"] == 1
    assert client.get("/bikes/", params={"search": "cd000"}).json()["total"] == 3
    assert client.get("/bikes/", params={"search": "yamaha"}).json()["total"] == 1


def test_search_wildcards_match_literally(client, create_bike):
    _stock(create_bike)
    create_bike(bike_number="AB10CD0004", brand="TVS", model="Apache_RR 310")
    assert client.get("/bikes/", params={"search": "_"}).json()["total"] == 1
    assert client.get("/bikes/", params={"search": "%"}).json()["total"] == 0
    assert client.get("/bikes/", params={"search": "cd000_"}).json()["total"] == 0


def test_like_pattern_escapes_wildcards():
    assert like_pattern("50%_off\\") == "%50\\%\\_off\\\\%"


def test_equality_filters_combine_with_search(client, create_bike):
    _stock(create_bike)
    body = client.get("/bikes/", params={"brand": "Honda", "search": "activa"}).json()
    assert [b["model"] for b in body["bikes"]] == ["Activa 6G"]
    assert client.get("/bikes/", params={"status": "sold"}).json()["total"] == 0


def test_sort_by_any_column(client, create_bike):
    _stock(create_bike)
    body = client.get("/bikes/", params={"sort_by": "purchase_date", "sort_order": "asc"}).json()
    assert [b["bike_number"] for b in body["bikes"]] == ["AB10CD0001", "AB10CD0002", "AB10CD0003"]


def test_unknown_sort_column_is_rejected(client):
    response = client.get("/bikes/", params={"sort_by": "horsepower"})
    assert response.status_code == 400
    assert response.json() == {"message": "Cannot sort by 'horsepower'."}


def test_bad_page_number_is_invalid(client):
    response = client.get("/bikes/", params={"page": 0})
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "query.page"


def test_date_range_is_inclusive(client):
    for day in ("2025-01-01", "2025-01-15", "2025-02-01"):
        client.post(
            "/expenses/",
            json={
                "title": f"Rent {day}",
                "category": "Office Rent",
                "amount": 20000,
                "payment_method": "Bank Transfer",
                "expense_date": f"{day}T00:00:00",
            },
        )

    body = client.get(
        "/expenses/",
        params={"date_from": "2025-01-01T00:00:00", "date_to": "2025-01-15T00:00:00"},
    ).json()
    assert sorted(e["title"] for e in body["expenses"]) == ["Rent 2025-01-01", "Rent 2025-01-15"]
