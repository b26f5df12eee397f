def _item(client, headers, **body):
    response = client.post("/api/items", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_item_defaults(client, headers):
    item = _item(client, headers, name=" Screen protector ", unit_price="12.5", sku="", category="")

    assert item["name"] == "Screen protector"
    assert item["unit_price"] == "12.50"
    assert item["unit"] == "each"
    assert item["sku"] is None
    assert item["category"] is None
    assert item["is_active"] is True


def test_item_validation(client, headers):
    assert client.post("/api/items", json={"name": ""}, headers=headers).status_code == 400
    assert client.post("/api/items", json={"name": "X", "unit_price": "abc"}, headers=headers).status_code == 400
    assert client.post("/api/items", json={"name": "X", "unit_price": -1}, headers=headers).status_code == 400


def test_search_and_categories(client, headers):
    _item(client, headers, name="Battery", category="Parts", sku="BAT-1")
    _item(client, headers, name="Screen", category="Parts")
    _item(client, headers, name="Diagnostics", description="Full check", category="Labour")

    by_category = client.get("/api/items?category=Parts", headers=headers).json()
    assert [i["name"] for i in by_category] == ["Battery", "Screen"]

    by_sku = client.get("/api/items?search=bat-", headers=headers).json()
    assert [i["name"] for i in by_sku] == ["Battery"]

    by_description = client.get("/api/items?search=CHECK", headers=headers).json()
    assert [i["name"] for i in by_description] == ["Diagnostics"]

    categories = client.get("/api/items/categories", headers=headers).json()
    assert categories == [{"name": "Labour", "count": 1}, {"name": "Parts", "count": 2}]


def test_update_and_soft_delete(client, headers):
    item = _item(client, headers, name="Battery", unit_price=30)

    updated = client.patch(f"/api/items/{item['id']}", json={"unit_price": "32.99", "unit": ""}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["unit_price"] == "32.99"
    assert updated.json()["unit"] == "each"

    assert client.delete(f"/api/items/{item['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/items/{item['id']}", headers=headers).status_code == 404
    assert client.get("/api/items", headers=headers).json() == []


def test_items_are_tenant_scoped(client, headers, other_headers):
    item = _item(client, headers, name="Battery")

    assert client.get(f"/api/items/{item['id']}", headers=other_headers).status_code == 404
    assert client.patch(f"/api/items/{item['id']}", json={"name": "Mine"}, headers=other_headers).status_code == 404


def test_bulk_category(client, headers):
    first = _item(client, headers, name="Battery")
    second = _item(client, headers, name="Screen")

    response = client.post(
        "/api/items/bulk-category",
        json={"ids": [first["id"], second["id"]], "category": "Parts"},
        headers=headers,
    )

    assert response.json() == {"updated": 2}
    assert {i["category"] for i in client.get("/api/items", headers=headers).json()} == {"Parts"}


def test_bulk_operations_are_all_or_nothing(client, headers, other_headers):
    mine = _item(client, headers, name="Battery")
    theirs = _item(client, other_headers, name="Cable")

    response = client.post(
        "/api/items/bulk-delete",
        json={"ids": [mine["id"], theirs["id"]]},
        headers=headers,
    )

    assert response.status_code == 404
    assert response.json()["ids"] == [theirs["id"]]
    assert client.get(f"/api/items/{mine['id']}", headers=headers).status_code == 200

    deleted = client.post("/api/items/bulk-delete", json={"ids": [mine["id"]]}, headers=headers)
    assert deleted.json() == {"updated": 1}
    assert client.get("/api/items", headers=headers).json() == []


def test_bulk_requires_ids(client, headers):
    response = client.post("/api/items/bulk-delete", json={"ids": []}, headers=headers)

    assert response.status_code == 400


def test_search_treats_wildcards_literally(client, headers):
    _item(client, headers, name="Battery 50% off")
    _item(client, headers, name="Screen")
    _item(client, headers, name="Cable_usb")

    assert [i["name"] for i in client.get("/api/items?search=50%", headers=headers).json()] == ["Battery 50% off"]
    assert [i["name"] for i in client.get("/api/items?search=_", headers=headers).json()] == ["Cable_usb"]


def test_soft_deleted_item_keeps_invoice_lines(client, headers):
    item = _item(client, headers, name="Battery", unit_price="30.00")
    invoice = client.post(
        "/api/invoices",
        json={
            "customerInfo": {"name": "Ahmed Ali"},
            "items": [{"name": item["name"], "quantity": 2, "price": item["unit_price"]}],
        },
        headers=headers,
    ).json()["invoice"]

    assert client.delete(f"/api/items/{item['id']}", headers=headers).status_code == 200

    stored = client.get(f"/api/invoices/{invoice['id']}", headers=headers).json()["invoice"]
    assert [(line["name"], line["price"], line["total"]) for line in stored["items"]] == [
        ("Battery", "30.00", "60.00")
    ]
