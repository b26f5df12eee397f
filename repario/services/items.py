# repario/services/items.py

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.engine import Connection

from repario.db.schema import items, new_id, utcnow
from repario.errors import NotFound, ValidationFailed
from repario.models.items import CategoryCount, ItemIn, ItemOut

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "each"

_LIKE_SPECIAL = re.compile(r"[\\%_]")


def _text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_unit_price(value) -> Decimal:
    """Numbers and numeric strings; missing or empty means 0."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationFailed("Unit price must be a number")
    if not price.is_finite() or price < 0:
        raise ValidationFailed("Unit price must be a valid positive number")
    return price


def _active_item_query(user_id: str):
    return (
        select(items)
        .where(items.c.user_id == user_id)
        .where(items.c.is_active.is_(True))
    )


def list_items(
    conn: Connection,
    user_id: str,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> List[ItemOut]:
    query = _active_item_query(user_id)

    if category:
        query = query.where(items.c.category == category)

    if search and search.strip():
        term = _LIKE_SPECIAL.sub(r"\\\g<0>", search.strip().lower())
        pattern = f"%{term}%"
        query = query.where(
            or_(
                *(
                    func.lower(column).like(pattern, escape="\\")
                    for column in (items.c.name, items.c.description, items.c.sku, items.c.category)
                )
            )
        )

    rows = conn.execute(query.order_by(items.c.name)).mappings().all()
    return [ItemOut.model_validate(dict(row)) for row in rows]


def list_categories(conn: Connection, user_id: str) -> List[CategoryCount]:
    rows = conn.execute(
        select(items.c.category, func.count().label("count"))
        .where(items.c.user_id == user_id)
        .where(items.c.is_active.is_(True))
        .where(items.c.category.is_not(None))
        .group_by(items.c.category)
        .order_by(items.c.category)
    ).all()
    return [CategoryCount(name=category, count=count) for category, count in rows]


def get_item(conn: Connection, user_id: str, item_id: str) -> ItemOut:
    row = conn.execute(
        _active_item_query(user_id).where(items.c.id == item_id)
    ).mappings().first()
    if row is None:
        raise NotFound("Item not found")
    return ItemOut.model_validate(dict(row))


def create_item(conn: Connection, user_id: str, data: ItemIn) -> ItemOut:
    name = _text(data.name)
    if not name:
        raise ValidationFailed("Item name is required and must be a non-empty string")

    item_id = new_id()
    conn.execute(
        insert(items).values(
            id=item_id,
            user_id=user_id,
            name=name,
            description=_text(data.description),
            unit_price=parse_unit_price(data.unit_price),
            unit=_text(data.unit) or DEFAULT_UNIT,
            sku=_text(data.sku),
            category=_text(data.category),
            is_active=True,
        )
    )
    logger.info("Created item %s for user %s", item_id, user_id)
    return get_item(conn, user_id, item_id)


def update_item(conn: Connection, user_id: str, item_id: str, data: ItemIn) -> ItemOut:
    get_item(conn, user_id, item_id)

    changes = data.model_dump(exclude_unset=True)
    values = {}
    if "name" in changes:
        name = _text(changes["name"])
        if not name:
            raise ValidationFailed("Item name is required and must be a non-empty string")
        values["name"] = name
    if "unit_price" in changes:
        values["unit_price"] = parse_unit_price(changes["unit_price"])
    if "unit" in changes:
        values["unit"] = _text(changes["unit"]) or DEFAULT_UNIT
    for key in ("description", "sku", "category"):
        if key in changes:
            values[key] = _text(changes[key])

    if values:
        conn.execute(
            update(items)
            .where(items.c.id == item_id)
            .where(items.c.user_id == user_id)
            .values(**values, updated_at=utcnow())
        )
    return get_item(conn, user_id, item_id)


def delete_item(conn: Connection, user_id: str, item_id: str) -> None:
    get_item(conn, user_id, item_id)
    conn.execute(
        update(items)
        .where(items.c.id == item_id)
        .where(items.c.user_id == user_id)
        .values(is_active=False, updated_at=utcnow())
    )


def _require_active(conn: Connection, user_id: str, ids: Sequence[str]) -> List[str]:
    wanted = list(dict.fromkeys(ids))
    found = set(
        conn.execute(
            select(items.c.id)
            .where(items.c.user_id == user_id)
            .where(items.c.is_active.is_(True))
            .where(items.c.id.in_(wanted))
        ).scalars()
    )
    missing = [item_id for item_id in wanted if item_id not in found]
    if missing:
        raise NotFound("Item not found", ids=missing)
    return wanted


def bulk_delete_items(conn: Connection, user_id: str, ids: Sequence[str]) -> int:
    wanted = _require_active(conn, user_id, ids)
    conn.execute(
        update(items)
        .where(items.c.user_id == user_id)
        .where(items.c.id.in_(wanted))
        .values(is_active=False, updated_at=utcnow())
    )
    return len(wanted)


def bulk_set_category(conn: Connection, user_id: str, ids: Sequence[str], category: Optional[str]) -> int:
    wanted = _require_active(conn, user_id, ids)
    conn.execute(
        update(items)
        .where(items.c.user_id == user_id)
        .where(items.c.id.in_(wanted))
        .values(category=_text(category), updated_at=utcnow())
    )
    return len(wanted)
