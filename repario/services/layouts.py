# repario/services/layouts.py
"""
Layout designer: layouts, their sections, fields and field options.

All functions take an open `Connection`; callers run each operation inside
`engine.begin()` so that multi-step writes (default switching, deletion with
reassignment, deep copies) commit or roll back as a unit.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection

from repario.db.schema import (
    invoices,
    layout_field_options,
    layout_fields,
    layout_sections,
    layouts,
    new_id,
    utcnow,
)
from repario.errors import Conflict, NotFound, ValidationFailed
from repario.models.layouts import (
    FieldIn,
    FieldOut,
    FieldType,
    FieldUpdate,
    LayoutIn,
    LayoutOut,
    LayoutRef,
    LayoutUpdate,
    OptionIn,
    OptionOut,
    SectionIn,
    SectionOut,
    SectionUpdate,
)
from repario.services.fields import has_options, normalize_options

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


# ---- Lookups ----

def get_owned_layout(conn: Connection, user_id: str, layout_id: str):
    row = conn.execute(
        select(layouts)
        .where(layouts.c.id == layout_id)
        .where(layouts.c.user_id == user_id)
    ).mappings().first()
    if row is None:
        raise NotFound("Layout not found")
    return row


def _get_section(conn: Connection, layout_id: str, section_id: str):
    row = conn.execute(
        select(layout_sections)
        .where(layout_sections.c.id == section_id)
        .where(layout_sections.c.layout_id == layout_id)
    ).mappings().first()
    if row is None:
        raise NotFound("Section not found")
    return row


def _get_field(conn: Connection, section_id: str, field_id: str):
    row = conn.execute(
        select(layout_fields)
        .where(layout_fields.c.id == field_id)
        .where(layout_fields.c.section_id == section_id)
    ).mappings().first()
    if row is None:
        raise NotFound("Field not found")
    return row


def _next_sort_order(conn: Connection, column, parent_column, parent_id: str) -> int:
    current = conn.execute(
        select(func.max(column)).where(parent_column == parent_id)
    ).scalar_one()
    return 0 if current is None else current + 1


# ---- Tree loading ----

def _load_fields(conn: Connection, section_ids: List[str]) -> Dict[str, List[FieldOut]]:
    fields_by_section: Dict[str, List[FieldOut]] = defaultdict(list)
    if not section_ids:
        return fields_by_section

    field_rows = conn.execute(
        select(layout_fields)
        .where(layout_fields.c.section_id.in_(section_ids))
        .order_by(layout_fields.c.sort_order, layout_fields.c.label)
    ).mappings().all()

    options_by_field: Dict[str, List[OptionOut]] = defaultdict(list)
    field_ids = [row["id"] for row in field_rows]
    if field_ids:
        option_rows = conn.execute(
            select(layout_field_options)
            .where(layout_field_options.c.field_id.in_(field_ids))
            .order_by(layout_field_options.c.sort_order, layout_field_options.c.label)
        ).mappings().all()
        for row in option_rows:
            options_by_field[row["field_id"]].append(
                OptionOut(
                    id=row["id"],
                    label=row["label"],
                    value=row["value"],
                    sort_order=row["sort_order"],
                )
            )

    for row in field_rows:
        fields_by_section[row["section_id"]].append(
            FieldOut(
                id=row["id"],
                label=row["label"],
                type=row["type"],
                placeholder=row["placeholder"],
                required=row["required"],
                sort_order=row["sort_order"],
                options=options_by_field.get(row["id"], []),
            )
        )
    return fields_by_section


def _load_sections(conn: Connection, layout_ids: List[str]) -> Dict[str, List[SectionOut]]:
    sections_by_layout: Dict[str, List[SectionOut]] = defaultdict(list)
    if not layout_ids:
        return sections_by_layout

    section_rows = conn.execute(
        select(layout_sections)
        .where(layout_sections.c.layout_id.in_(layout_ids))
        .order_by(layout_sections.c.sort_order, layout_sections.c.title)
    ).mappings().all()
    fields_by_section = _load_fields(conn, [row["id"] for row in section_rows])

    for row in section_rows:
        sections_by_layout[row["layout_id"]].append(
            SectionOut(
                id=row["id"],
                title=row["title"],
                sort_order=row["sort_order"],
                fields=fields_by_section.get(row["id"], []),
            )
        )
    return sections_by_layout


def _to_layout_out(row, sections: List[SectionOut]) -> LayoutOut:
    return LayoutOut(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        is_default=row["is_default"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        sections=sections,
    )


def list_layouts(conn: Connection, user_id: str) -> List[LayoutOut]:
    rows = conn.execute(
        select(layouts)
        .where(layouts.c.user_id == user_id)
        .order_by(layouts.c.created_at.desc())
    ).mappings().all()
    sections = _load_sections(conn, [row["id"] for row in rows])
    return [_to_layout_out(row, sections.get(row["id"], [])) for row in rows]


def get_layout(conn: Connection, user_id: str, layout_id: str) -> LayoutOut:
    row = get_owned_layout(conn, user_id, layout_id)
    sections = _load_sections(conn, [row["id"]])
    return _to_layout_out(row, sections.get(row["id"], []))


def _get_section_out(conn: Connection, section_row) -> SectionOut:
    fields = _load_fields(conn, [section_row["id"]])
    return SectionOut(
        id=section_row["id"],
        title=section_row["title"],
        sort_order=section_row["sort_order"],
        fields=fields.get(section_row["id"], []),
    )


def _get_field_out(conn: Connection, section_id: str, field_id: str) -> FieldOut:
    for field in _load_fields(conn, [section_id]).get(section_id, []):
        if field.id == field_id:
            return field
    raise NotFound("Field not found")


# ---- Inserts shared by create and copy ----

def _insert_options(conn: Connection, field_id: str, field_type: FieldType, options: Optional[Iterable[OptionIn]]) -> None:
    rows = normalize_options(field_type, options)
    if rows:
        conn.execute(
            insert(layout_field_options),
            [{"id": new_id(), "field_id": field_id, **row} for row in rows],
        )


def _insert_field(conn: Connection, section_id: str, field: FieldIn, sort_order: int) -> str:
    field_id = new_id()
    conn.execute(
        insert(layout_fields).values(
            id=field_id,
            section_id=section_id,
            label=field.label.strip(),
            type=field.type.value,
            placeholder=field.placeholder,
            required=field.required,
            sort_order=sort_order,
        )
    )
    _insert_options(conn, field_id, field.type, field.options)
    return field_id


def _insert_section(conn: Connection, layout_id: str, section: SectionIn, sort_order: int) -> str:
    section_id = new_id()
    conn.execute(
        insert(layout_sections).values(
            id=section_id,
            layout_id=layout_id,
            title=section.title.strip(),
            sort_order=sort_order,
        )
    )
    for index, field in enumerate(section.fields):
        _insert_field(
            conn,
            section_id,
            field,
            field.sort_order if field.sort_order is not None else index,
        )
    return section_id


def _field_as_input(field: FieldOut, label: Optional[str] = None) -> FieldIn:
    return FieldIn(
        label=label or field.label,
        type=field.type,
        placeholder=field.placeholder,
        required=field.required,
        sort_order=field.sort_order,
        options=[
            OptionIn(label=option.label, value=option.value, sort_order=option.sort_order)
            for option in field.options
        ],
    )


def _section_as_input(section: SectionOut, title: Optional[str] = None) -> SectionIn:
    return SectionIn(
        title=title or section.title,
        sort_order=section.sort_order,
        fields=[_field_as_input(field) for field in section.fields],
    )


# ---- Layouts ----

def _clear_default(conn: Connection, user_id: str, keep_layout_id: Optional[str] = None) -> None:
    stmt = (
        update(layouts)
        .where(layouts.c.user_id == user_id)
        .where(layouts.c.is_default.is_(True))
    )
    if keep_layout_id is not None:
        stmt = stmt.where(layouts.c.id != keep_layout_id)
    conn.execute(stmt.values(is_default=False, updated_at=utcnow()))


def set_default_layout(conn: Connection, user_id: str, layout_id: str) -> None:
    """Make `layout_id` the user's only default layout."""
    get_owned_layout(conn, user_id, layout_id)
    _clear_default(conn, user_id, keep_layout_id=layout_id)
    conn.execute(
        update(layouts)
        .where(layouts.c.id == layout_id)
        .values(is_default=True, updated_at=utcnow())
    )


def create_layout(conn: Connection, user_id: str, data: LayoutIn) -> LayoutOut:
    if data.is_default:
        _clear_default(conn, user_id)

    layout_id = new_id()
    conn.execute(
        insert(layouts).values(
            id=layout_id,
            user_id=user_id,
            name=data.name.strip(),
            description=data.description or "",
            is_default=data.is_default,
        )
    )
    for index, section in enumerate(data.sections):
        _insert_section(
            conn,
            layout_id,
            section,
            section.sort_order if section.sort_order is not None else index,
        )

    logger.info("Created layout %s for user %s", layout_id, user_id)
    return get_layout(conn, user_id, layout_id)


def update_layout(conn: Connection, user_id: str, layout_id: str, data: LayoutUpdate) -> LayoutOut:
    get_owned_layout(conn, user_id, layout_id)
    changes = data.model_dump(exclude_unset=True)

    values = {}
    if changes.get("name") is not None:
        values["name"] = changes["name"].strip()
    if "description" in changes:
        values["description"] = changes["description"] or ""
    if changes.get("is_default") is False:
        values["is_default"] = False

    if values:
        values["updated_at"] = utcnow()
        conn.execute(
            update(layouts)
            .where(layouts.c.id == layout_id)
            .where(layouts.c.user_id == user_id)
            .values(**values)
        )
    if changes.get("is_default") is True:
        set_default_layout(conn, user_id, layout_id)

    return get_layout(conn, user_id, layout_id)


def delete_layout(
    conn: Connection,
    user_id: str,
    layout_id: str,
    reassign_to: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Delete a layout, resolving invoices that still reference it.

    With referencing invoices and neither `reassign_to` nor `force`, raise a
    conflict carrying the invoice count and the user's other layouts. With
    `reassign_to` the invoices move to that layout; with `force` their
    `layout_id` is set to NULL.
    """
    get_owned_layout(conn, user_id, layout_id)

    invoice_count = conn.execute(
        select(func.count())
        .select_from(invoices)
        .where(invoices.c.layout_id == layout_id)
        .where(invoices.c.user_id == user_id)
    ).scalar_one()

    if invoice_count > 0:
        if reassign_to:
            if reassign_to == layout_id:
                raise ValidationFailed("Invalid target layout for reassignment")
            try:
                get_owned_layout(conn, user_id, reassign_to)
            except NotFound:
                raise ValidationFailed("Invalid target layout for reassignment")

            conn.execute(
                update(invoices)
                .where(invoices.c.layout_id == layout_id)
                .where(invoices.c.user_id == user_id)
                .values(layout_id=reassign_to, updated_at=utcnow())
            )
            logger.info("Reassigned %s invoices from layout %s to %s", invoice_count, layout_id, reassign_to)
        elif force:
            conn.execute(
                update(invoices)
                .where(invoices.c.layout_id == layout_id)
                .where(invoices.c.user_id == user_id)
                .values(layout_id=None, updated_at=utcnow())
            )
            logger.info("Detached %s invoices from layout %s", invoice_count, layout_id)
        else:
            others = conn.execute(
                select(layouts.c.id, layouts.c.name)
                .where(layouts.c.user_id == user_id)
                .where(layouts.c.id != layout_id)
                .order_by(layouts.c.name)
            ).mappings().all()
            raise Conflict(
                "layout_in_use",
                message=f"This layout is being used by {invoice_count} invoice(s)",
                invoiceCount=invoice_count,
                availableLayouts=[LayoutRef(**row).model_dump() for row in others],
                canForceDelete=True,
            )

    conn.execute(
        delete(layouts)
        .where(layouts.c.id == layout_id)
        .where(layouts.c.user_id == user_id)
    )
    logger.info("Deleted layout %s", layout_id)


def duplicate_layout(conn: Connection, user_id: str, layout_id: str, name: Optional[str] = None) -> LayoutOut:
    source = get_layout(conn, user_id, layout_id)
    copy = LayoutIn(
        name=(name or "").strip() or f"{source.name}{COPY_SUFFIX}",
        description=source.description,
        is_default=False,
        sections=[_section_as_input(section) for section in source.sections],
    )
    return create_layout(conn, user_id, copy)


# ---- Sections ----

def add_section(conn: Connection, user_id: str, layout_id: str, data: SectionIn) -> SectionOut:
    get_owned_layout(conn, user_id, layout_id)
    sort_order = data.sort_order
    if sort_order is None:
        sort_order = _next_sort_order(conn, layout_sections.c.sort_order, layout_sections.c.layout_id, layout_id)
    section_id = _insert_section(conn, layout_id, data, sort_order)
    return _get_section_out(conn, _get_section(conn, layout_id, section_id))


def update_section(conn: Connection, user_id: str, layout_id: str, section_id: str, data: SectionUpdate) -> SectionOut:
    get_owned_layout(conn, user_id, layout_id)
    _get_section(conn, layout_id, section_id)

    values = {}
    if data.title is not None:
        values["title"] = data.title.strip()
    if data.sort_order is not None:
        values["sort_order"] = data.sort_order
    if values:
        conn.execute(
            update(layout_sections)
            .where(layout_sections.c.id == section_id)
            .values(**values)
        )
    return _get_section_out(conn, _get_section(conn, layout_id, section_id))


def delete_section(conn: Connection, user_id: str, layout_id: str, section_id: str) -> None:
    get_owned_layout(conn, user_id, layout_id)
    _get_section(conn, layout_id, section_id)
    conn.execute(delete(layout_sections).where(layout_sections.c.id == section_id))


def reorder_sections(conn: Connection, user_id: str, layout_id: str, section_ids: List[str]) -> LayoutOut:
    get_owned_layout(conn, user_id, layout_id)
    existing = set(
        conn.execute(
            select(layout_sections.c.id).where(layout_sections.c.layout_id == layout_id)
        ).scalars().all()
    )
    if len(section_ids) != len(set(section_ids)) or set(section_ids) != existing:
        raise ValidationFailed("section_ids must list every section of the layout exactly once")

    for position, section_id in enumerate(section_ids):
        conn.execute(
            update(layout_sections)
            .where(layout_sections.c.id == section_id)
            .values(sort_order=position)
        )
    return get_layout(conn, user_id, layout_id)


def copy_section(conn: Connection, user_id: str, layout_id: str, section_id: str, target_layout_id: str) -> SectionOut:
    get_owned_layout(conn, user_id, layout_id)
    source_row = _get_section(conn, layout_id, section_id)
    source = _get_section_out(conn, source_row)
    get_owned_layout(conn, user_id, target_layout_id)

    sort_order = _next_sort_order(conn, layout_sections.c.sort_order, layout_sections.c.layout_id, target_layout_id)
    new_section_id = _insert_section(
        conn,
        target_layout_id,
        _section_as_input(source, title=f"{source.title}{COPY_SUFFIX}"),
        sort_order,
    )
    return _get_section_out(conn, _get_section(conn, target_layout_id, new_section_id))


# ---- Fields ----

def add_field(conn: Connection, user_id: str, layout_id: str, section_id: str, data: FieldIn) -> FieldOut:
    get_owned_layout(conn, user_id, layout_id)
    _get_section(conn, layout_id, section_id)
    sort_order = data.sort_order
    if sort_order is None:
        sort_order = _next_sort_order(conn, layout_fields.c.sort_order, layout_fields.c.section_id, section_id)
    field_id = _insert_field(conn, section_id, data, sort_order)
    return _get_field_out(conn, section_id, field_id)


def update_field(
    conn: Connection,
    user_id: str,
    layout_id: str,
    section_id: str,
    field_id: str,
    data: FieldUpdate,
) -> FieldOut:
    get_owned_layout(conn, user_id, layout_id)
    _get_section(conn, layout_id, section_id)
    current = _get_field(conn, section_id, field_id)

    values = {}
    if data.label is not None:
        values["label"] = data.label.strip()
    if "placeholder" in data.model_fields_set:
        values["placeholder"] = data.placeholder
    if data.required is not None:
        values["required"] = data.required
    if data.sort_order is not None:
        values["sort_order"] = data.sort_order
    if data.type is not None:
        values["type"] = data.type.value

    if values:
        conn.execute(
            update(layout_fields)
            .where(layout_fields.c.id == field_id)
            .values(**values)
        )

    field_type = data.type or FieldType(current["type"])
    replace_options = data.options is not None or not has_options(field_type)
    if replace_options:
        conn.execute(
            delete(layout_field_options).where(layout_field_options.c.field_id == field_id)
        )
        _insert_options(conn, field_id, field_type, data.options)

    return _get_field_out(conn, section_id, field_id)


def delete_field(conn: Connection, user_id: str, layout_id: str, section_id: str, field_id: str) -> None:
    get_owned_layout(conn, user_id, layout_id)
    _get_section(conn, layout_id, section_id)
    _get_field(conn, section_id, field_id)
    conn.execute(delete(layout_fields).where(layout_fields.c.id == field_id))


def copy_field(
    conn: Connection,
    user_id: str,
    layout_id: str,
    section_id: str,
    field_id: str,
    target_layout_id: str,
    target_section_id: str,
) -> FieldOut:
    get_owned_layout(conn, user_id, layout_id)
    _get_section(conn, layout_id, section_id)
    source = _get_field_out(conn, section_id, field_id)

    get_owned_layout(conn, user_id, target_layout_id)
    _get_section(conn, target_layout_id, target_section_id)

    sort_order = _next_sort_order(conn, layout_fields.c.sort_order, layout_fields.c.section_id, target_section_id)
    new_field_id = _insert_field(
        conn,
        target_section_id,
        _field_as_input(source, label=f"{source.label}{COPY_SUFFIX}"),
        sort_order,
    )
    return _get_field_out(conn, target_section_id, new_field_id)
