import logging

SERVICE_ITEM = {"name": "Service", "quantity": 2, "price": 50, "total": 100}


def _create_invoice(client, headers, customer_info, items=None, **extra):
    body = {"customerInfo": customer_info, "items": [SERVICE_ITEM] if items is None else items, **extra}
    return client.post("/api/invoices", json=body, headers=headers)


def test_invoice_without_layout_defaults_to_pending(client, headers):
    response = _create_invoice(client, headers, {"name": "Ahmed Ali"})

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == "Invoice created successfully"
    invoice = body["invoice"]
    assert invoice["status"] == "pending"
    assert invoice["subtotal"] == "100.00"
    assert invoice["tax_amount"] == "0.00"
    assert invoice["total_amount"] == "100.00"
    assert invoice["layout_id"] is None
    assert invoice["customer"]["name"] == "Ahmed Ali"
    assert invoice["customer"]["phone"] is None
    assert [item["total"] for item in invoice["items"]] == ["100.00"]


def test_similar_customer_requires_confirmation(client, headers):
    first = _create_invoice(client, headers, {"name": "Ahmed Ali"})
    assert first.status_code == 201

    blocked = _create_invoice(client, headers, {"name": "Ahmad Ali"})
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "similar_customers"
    assert [c["name"] for c in blocked.json()["similarCustomers"]] == ["Ahmed Ali"]

    forced = _create_invoice(client, headers, {"name": "Ahmad Ali", "forceCreate": True})
    assert forced.status_code == 201
    assert forced.json()["invoice"]["customer"]["name"] == "Ahmad Ali"

    names = sorted(c["name"] for c in client.get("/api/customers", headers=headers).json())
    assert names == ["Ahmad Ali", "Ahmed Ali"]


def test_exact_match_must_be_selected(client, headers):
    first = _create_invoice(client, headers, {"name": "Ahmed Ali"}).json()["invoice"]

    blocked = _create_invoice(client, headers, {"name": "  ahmed ali "})
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "customer_exists"
    assert blocked.json()["existingCustomer"]["id"] == first["customer_id"]

    selected = _create_invoice(
        client,
        headers,
        {"id": first["customer_id"], "name": "Ahmed Ali", "phone": "+9647700000000"},
    )
    assert selected.status_code == 201
    assert selected.json()["invoice"]["customer_id"] == first["customer_id"]
    # contact details refreshed from the invoice
    assert selected.json()["invoice"]["customer"]["phone"] == "+9647700000000"


def test_selected_customer_of_other_tenant(client, headers, other_headers):
    foreign = _create_invoice(client, other_headers, {"name": "Sara Khan"}).json()["invoice"]

    response = _create_invoice(client, headers, {"id": foreign["customer_id"], "name": "Sara Khan"})

    assert response.status_code == 404


def test_invalid_items_rejected(client, headers):
    assert _create_invoice(client, headers, {"name": "A"}, items=[]).status_code == 400
    bad_quantity = {"name": "X", "quantity": 0, "price": 5}
    assert _create_invoice(client, headers, {"name": "A"}, items=[bad_quantity]).status_code == 400
    wrong_total = {"name": "X", "quantity": 2, "price": 5, "total": 15}
    assert _create_invoice(client, headers, {"name": "A"}, items=[wrong_total]).status_code == 400
    nameless = {"name": " ", "quantity": 1, "price": 5}
    assert _create_invoice(client, headers, {"name": "A"}, items=[nameless]).status_code == 400
    assert _create_invoice(client, headers, {"name": " "}).status_code == 400
    # nothing was written
    assert client.get("/api/customers", headers=headers).json() == []


def test_invalid_status_rejected(client, headers):
    response = _create_invoice(client, headers, {"name": "A"}, status="archived")

    assert response.status_code == 400


def test_form_data_checked_against_layout(client, headers):
    layout = client.post(
        "/api/layouts",
        json={
            "name": "Repair",
            "sections": [
                {
                    "title": "Device",
                    "fields": [
                        {
                            "label": "Extras",
                            "type": "checkboxes",
                            "options": [{"label": "Gift Wrap"}, {"label": "Express"}],
                        }
                    ],
                }
            ],
        },
        headers=headers,
    ).json()
    section = layout["sections"][0]
    key = f"{section['id']}_{section['fields'][0]['id']}"

    bad = _create_invoice(client, headers, {"name": "A"}, layoutId=layout["id"], formData={key: ["cheap"]})
    assert bad.status_code == 400

    good = _create_invoice(client, headers, {"name": "A"}, layoutId=layout["id"], formData={key: ["express"]})
    assert good.status_code == 201
    assert good.json()["invoice"]["form_data"] == {key: ["express"]}
    assert good.json()["invoice"]["layout"] == {"id": layout["id"], "name": "Repair"}


def test_unknown_layout_rejected(client, headers, other_headers):
    foreign = client.post("/api/layouts", json={"name": "Foreign"}, headers=other_headers).json()

    response = _create_invoice(client, headers, {"name": "A"}, layoutId=foreign["id"])

    assert response.status_code == 404
    assert response.json() == {"error": "Layout not found or access denied"}


def test_list_invoices_paginated(client, headers):
    for name in ["Alpha Co", "Bravo Ltd", "Charlie Inc"]:
        assert _create_invoice(client, headers, {"name": name}).status_code == 201

    page = client.get("/api/invoices?page=1&limit=2", headers=headers).json()
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
    assert len(page["invoices"]) == 2

    last = client.get("/api/invoices?page=2&limit=2", headers=headers).json()
    assert len(last["invoices"]) == 1

    seen = {i["id"] for i in page["invoices"]} | {i["id"] for i in last["invoices"]}
    assert len(seen) == 3


def test_list_invoices_by_status(client, headers):
    _create_invoice(client, headers, {"name": "Alpha Co"}, status="done")
    _create_invoice(client, headers, {"name": "Bravo Ltd"})

    done = client.get("/api/invoices?status=done", headers=headers).json()

    assert [i["customer"]["name"] for i in done["invoices"]] == ["Alpha Co"]
    assert done["pagination"]["total"] == 1


def test_get_invoice_of_other_tenant(client, headers, other_headers):
    invoice = _create_invoice(client, headers, {"name": "Alpha Co"}).json()["invoice"]

    assert client.get(f"/api/invoices/{invoice['id']}", headers=other_headers).status_code == 404


def test_update_invoice_replaces_items(client, headers):
    invoice = _create_invoice(client, headers, {"name": "Ahmed Ali"}).json()["invoice"]

    response = client.put(
        f"/api/invoices/{invoice['id']}",
        json={
            "customerInfo": {"name": "ahmed ali"},
            "items": [
                {"name": "Screen", "quantity": 1, "price": "80.50"},
                {"name": "Labour", "quantity": "1.5", "price": 20},
            ],
            "status": "working",
        },
        headers=headers,
    )

    assert response.status_code == 200, response.text
    updated = response.json()["invoice"]
    assert updated["customer_id"] == invoice["customer_id"]
    assert updated["status"] == "working"
    assert [item["name"] for item in updated["items"]] == ["Screen", "Labour"]
    assert updated["totals"]["subtotal"] == "110.50"
    assert updated["total_amount"] == "110.50"


def test_delete_invoice(client, headers):
    invoice = _create_invoice(client, headers, {"name": "Ahmed Ali"}).json()["invoice"]

    response = client.delete(f"/api/invoices/{invoice['id']}", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Invoice deleted successfully"}
    assert client.get(f"/api/invoices/{invoice['id']}", headers=headers).status_code == 404
    assert client.delete(f"/api/invoices/{invoice['id']}", headers=headers).status_code == 404


def test_status_change_notifies_customer(client, headers, notifier):
    invoice = _create_invoice(client, headers, {"name": "Ahmed Ali", "phone": "+9647700000000"}).json()["invoice"]

    response = client.patch(
        f"/api/invoices/{invoice['id']}/status",
        json={"status": "done", "extra_note": "Pick up after 5pm"},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["invoice"]["status"] == "done"
    assert body["whatsapp"]["success"] is True
    assert notifier.sent == [
        ("+9647700000000", "Your invoice is done. Thank you for your business!\n\nPick up after 5pm")
    ]


def test_status_change_without_phone_skips_notification(client, headers, notifier):
    invoice = _create_invoice(client, headers, {"name": "Ahmed Ali"}).json()["invoice"]

    response = client.patch(
        f"/api/invoices/{invoice['id']}/status",
        json={"status": "working"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["whatsapp"]["success"] is False
    assert notifier.sent == []


def test_failed_notification_keeps_status(client, headers, notifier):
    notifier.success = False
    invoice = _create_invoice(client, headers, {"name": "Ahmed Ali", "phone": "+100"}).json()["invoice"]

    response = client.patch(
        f"/api/invoices/{invoice['id']}/status",
        json={"status": "refused"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["whatsapp"]["success"] is False
    stored = client.get(f"/api/invoices/{invoice['id']}", headers=headers).json()["invoice"]
    assert stored["status"] == "refused"


def test_failed_contact_update_keeps_invoice(client, engine, headers, caplog):
    customer = client.post(
        "/api/customers", json={"name": "Ahmed Ali", "phone": "+100"}, headers=headers
    ).json()
    with engine.begin() as conn:
        conn.exec_driver_sql(
            "CREATE TRIGGER lock_customers BEFORE UPDATE ON customers "
            "BEGIN SELECT RAISE(ABORT, 'customers are read-only'); END"
        )

    with caplog.at_level(logging.WARNING, logger="repario.services.customers"):
        response = _create_invoice(
            client, headers, {"id": customer["id"], "name": "Ahmed Ali", "phone": "+200"}
        )

    assert response.status_code == 201, response.text
    invoice = response.json()["invoice"]
    assert invoice["customer_id"] == customer["id"]
    assert invoice["customer"]["phone"] == "+100"
    assert "Failed to update contact info" in caplog.text
    assert client.get(f"/api/invoices/{invoice['id']}", headers=headers).status_code == 200
