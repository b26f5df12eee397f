# repario/services/status_settings.py
"""
Per-user notification settings for the four invoice statuses.

Rows are created lazily: the first read for a user inserts whatever rows are
missing from `DEFAULT_STATUS_MESSAGES`, keyed on `(user_id, status)` so that
repeated or concurrent calls never produce duplicates.
"""

import logging
from typing import Dict, Iterable, List

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection

from repario.db.schema import invoice_status_settings, new_id
from repario.errors import NotFound
from repario.models.invoices import InvoiceStatus
from repario.models.status_settings import StatusSettingIn, StatusSettingOut

logger = logging.getLogger(__name__)

VALID_STATUSES = [status.value for status in InvoiceStatus]

DEFAULT_STATUS_MESSAGES: Dict[str, str] = {
    "pending": "Your invoice is pending. We will start processing it shortly.",
    "working": "We are currently working on your invoice.",
    "done": "Your invoice is done. Thank you for your business!",
    "refused": "Your invoice has been refused. Please contact support for details.",
}

_STATUS_ORDER = {status: index for index, status in enumerate(VALID_STATUSES)}


def _insert_for(conn: Connection):
    if conn.dialect.name == "postgresql":
        return pg_insert(invoice_status_settings)
    return sqlite_insert(invoice_status_settings)


def _count_for_user(conn: Connection, user_id: str) -> int:
    return conn.execute(
        select(func.count())
        .select_from(invoice_status_settings)
        .where(invoice_status_settings.c.user_id == user_id)
    ).scalar_one()


def ensure_status_settings_for_user(conn: Connection, user_id: str) -> None:
    if _count_for_user(conn, user_id) >= len(VALID_STATUSES):
        return

    rows = [
        {
            "id": new_id(),
            "user_id": user_id,
            "status": status,
            "default_message": DEFAULT_STATUS_MESSAGES[status],
            "allow_extra_note": True,
            "send_whatsapp": True,
        }
        for status in VALID_STATUSES
    ]
    stmt = _insert_for(conn).values(rows).on_conflict_do_nothing(
        index_elements=["user_id", "status"]
    )
    conn.execute(stmt)
    logger.info("Created default status settings for user %s", user_id)


def _sorted(rows) -> List[StatusSettingOut]:
    out = [StatusSettingOut.model_validate(dict(row)) for row in rows]
    return sorted(out, key=lambda s: _STATUS_ORDER.get(s.status, len(_STATUS_ORDER)))


def list_status_settings(conn: Connection, user_id: str) -> List[StatusSettingOut]:
    ensure_status_settings_for_user(conn, user_id)
    rows = conn.execute(
        select(invoice_status_settings).where(invoice_status_settings.c.user_id == user_id)
    ).mappings().all()
    return _sorted(rows)


def get_status_setting(conn: Connection, user_id: str, status: str) -> StatusSettingOut:
    query = (
        select(invoice_status_settings)
        .where(invoice_status_settings.c.user_id == user_id)
        .where(invoice_status_settings.c.status == status)
    )
    row = conn.execute(query).mappings().first()
    if row is None:
        ensure_status_settings_for_user(conn, user_id)
        row = conn.execute(query).mappings().first()
    if row is None:
        raise NotFound("Status setting not found")
    return StatusSettingOut.model_validate(dict(row))


def update_status_settings(
    conn: Connection, user_id: str, settings: Iterable[StatusSettingIn]
) -> List[StatusSettingOut]:
    # last entry wins for a repeated status
    rows = {}
    for setting in settings:
        if setting.status not in _STATUS_ORDER:
            logger.info("Ignoring status setting for unknown status %r", setting.status)
            continue
        rows[setting.status] = {
            "id": new_id(),
            "user_id": user_id,
            "status": setting.status,
            "default_message": setting.default_message or "",
            "allow_extra_note": setting.allow_extra_note,
            "send_whatsapp": True if setting.send_whatsapp is None else setting.send_whatsapp,
        }

    if rows:
        stmt = _insert_for(conn).values(list(rows.values()))
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "status"],
            set_={
                "default_message": stmt.excluded.default_message,
                "allow_extra_note": stmt.excluded.allow_extra_note,
                "send_whatsapp": stmt.excluded.send_whatsapp,
            },
        )
        conn.execute(stmt)

    return list_status_settings(conn, user_id)
