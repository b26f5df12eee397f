from sqlalchemy import func, select

from repario.db.schema import invoice_status_settings, profiles
from repario.services.status_settings import (
    DEFAULT_STATUS_MESSAGES,
    ensure_status_settings_for_user,
    get_status_setting,
)


def _profile(conn, user_id="u1"):
    conn.execute(profiles.insert().values(id=user_id, email=f"{user_id}@example.com", password_hash="x"))
    return user_id


def _rows(conn, user_id):
    return conn.execute(
        select(invoice_status_settings).where(invoice_status_settings.c.user_id == user_id)
    ).mappings().all()


def test_ensure_is_idempotent(engine):
    with engine.begin() as conn:
        user_id = _profile(conn)
        ensure_status_settings_for_user(conn, user_id)
        ensure_status_settings_for_user(conn, user_id)
        rows = _rows(conn, user_id)

    assert len(rows) == 4
    assert {row["status"]: row["default_message"] for row in rows} == DEFAULT_STATUS_MESSAGES


def test_ensure_fills_only_missing_rows(engine):
    with engine.begin() as conn:
        user_id = _profile(conn)
        conn.execute(
            invoice_status_settings.insert().values(
                id="s1", user_id=user_id, status="done", default_message="Custom", send_whatsapp=False
            )
        )
        ensure_status_settings_for_user(conn, user_id)
        rows = {row["status"]: row for row in _rows(conn, user_id)}

    assert len(rows) == 4
    assert rows["done"]["default_message"] == "Custom"
    assert rows["done"]["send_whatsapp"] is False


def test_get_status_setting_self_heals(engine):
    with engine.begin() as conn:
        user_id = _profile(conn)
        setting = get_status_setting(conn, user_id, "working")
        count = conn.execute(select(func.count()).select_from(invoice_status_settings)).scalar_one()

    assert setting.default_message == DEFAULT_STATUS_MESSAGES["working"]
    assert count == 4


def test_status_settings_api(client, headers):
    listed = client.get("/api/status-settings", headers=headers).json()
    assert [s["status"] for s in listed] == ["pending", "working", "done", "refused"]
    assert all(s["send_whatsapp"] and s["allow_extra_note"] for s in listed)

    response = client.put(
        "/api/status-settings",
        json=[
            {"status": "done", "default_message": "Ready for pickup", "allow_extra_note": False},
            {"status": "archived", "default_message": "ignored"},
            {"status": "refused", "default_message": "Sorry", "allow_extra_note": True, "send_whatsapp": False},
        ],
        headers=headers,
    )

    assert response.status_code == 200
    by_status = {s["status"]: s for s in response.json()}
    assert set(by_status) == {"pending", "working", "done", "refused"}
    assert by_status["done"] == {
        "status": "done",
        "default_message": "Ready for pickup",
        "allow_extra_note": False,
        "send_whatsapp": True,
    }
    assert by_status["refused"]["send_whatsapp"] is False


def test_disabled_status_sends_nothing(client, headers, notifier):
    client.put(
        "/api/status-settings",
        json=[{"status": "done", "default_message": "Done", "send_whatsapp": False}],
        headers=headers,
    )
    invoice = client.post(
        "/api/invoices",
        json={
            "customerInfo": {"name": "Ahmed Ali", "phone": "+100"},
            "items": [{"name": "Service", "quantity": 1, "price": 10}],
        },
        headers=headers,
    ).json()["invoice"]

    response = client.patch(f"/api/invoices/{invoice['id']}/status", json={"status": "done"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["whatsapp"]["success"] is False
    assert notifier.sent == []
