# repario/services/invoices.py

import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection

from repario.db.schema import customers, invoice_items, invoices, layouts, new_id, utcnow
from repario.errors import NotFound, ValidationFailed
from repario.models.customers import CustomerRef
from repario.models.invoices import (
    InvoiceIn,
    InvoiceItemIn,
    InvoiceItemOut,
    InvoiceListResponse,
    InvoiceOut,
    InvoiceStatus,
    InvoiceTotals,
    Pagination,
)
from repario.models.layouts import LayoutRef
from repario.services.customers import resolve_customer
from repario.services.fields import validate_form_data
from repario.services.layouts import get_layout
from repario.services.similarity import NameMatcher
from repario.services.totals import CENT, calculate_invoice_totals, line_total, round_money

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


def validate_items(items: List[InvoiceItemIn]) -> List[dict]:
    """
    Check line items and return the rows to store.

    The stored total is always recomputed as quantity * price; a total sent
    by the client must agree with it to the cent.
    """
    if not items:
        raise ValidationFailed("At least one item is required")

    rows = []
    for index, item in enumerate(items):
        position = index + 1
        name = (item.name or "").strip()
        if not name:
            raise ValidationFailed(f"Item {position}: name is required")
        if not item.quantity.is_finite() or item.quantity <= 0:
            raise ValidationFailed(f"Item {position}: quantity must be greater than 0")
        if not item.price.is_finite() or item.price < 0:
            raise ValidationFailed(f"Item {position}: price must not be negative")

        total = line_total(item.quantity, item.price)
        if item.total is not None:
            if not item.total.is_finite() or item.total < 0:
                raise ValidationFailed(f"Item {position}: total must not be negative")
            if abs(round_money(item.total) - total) > CENT:
                raise ValidationFailed(
                    f"Item {position}: total {item.total} does not match quantity x price ({total})"
                )

        rows.append(
            {
                "name": name,
                "description": (item.description or "").strip() or None,
                "quantity": item.quantity,
                "price": round_money(item.price),
                "total": total,
                "sort_order": index,
            }
        )
    return rows


def _checked_form_data(conn: Connection, user_id: str, layout_id: Optional[str], form_data) -> dict:
    layout = None
    if layout_id:
        try:
            layout = get_layout(conn, user_id, layout_id)
        except NotFound:
            raise NotFound("Layout not found or access denied")
    return validate_form_data(layout, form_data)


def _insert_items(conn: Connection, invoice_id: str, rows: Iterable[dict]) -> None:
    conn.execute(
        insert(invoice_items),
        [{"id": new_id(), "invoice_id": invoice_id, **row} for row in rows],
    )


def _load_items(conn: Connection, invoice_ids: List[str]) -> Dict[str, List[InvoiceItemOut]]:
    by_invoice: Dict[str, List[InvoiceItemOut]] = {invoice_id: [] for invoice_id in invoice_ids}
    if not invoice_ids:
        return by_invoice
    rows = conn.execute(
        select(invoice_items)
        .where(invoice_items.c.invoice_id.in_(invoice_ids))
        .order_by(invoice_items.c.sort_order)
    ).mappings().all()
    for row in rows:
        by_invoice[row["invoice_id"]].append(InvoiceItemOut.model_validate(dict(row)))
    return by_invoice


def _invoice_query():
    return (
        select(
            invoices,
            customers.c.name.label("customer_name"),
            customers.c.phone.label("customer_phone"),
            customers.c.address.label("customer_address"),
            layouts.c.name.label("layout_name"),
        )
        .join(customers, customers.c.id == invoices.c.customer_id)
        .outerjoin(layouts, layouts.c.id == invoices.c.layout_id)
    )


def _to_invoice_out(row, items: List[InvoiceItemOut]) -> InvoiceOut:
    data = dict(row)
    totals = InvoiceTotals(
        subtotal=data["subtotal"],
        tax_rate=data["tax_rate"],
        tax_amount=data["tax_amount"],
        total_amount=data["total_amount"],
    )
    customer = CustomerRef(
        id=data["customer_id"],
        name=data.pop("customer_name"),
        phone=data.pop("customer_phone"),
        address=data.pop("customer_address"),
    )
    layout_name = data.pop("layout_name")
    layout = LayoutRef(id=data["layout_id"], name=layout_name) if data["layout_id"] else None
    return InvoiceOut(
        **data,
        customer=customer,
        layout=layout,
        items=items,
        totals=totals,
    )


def get_invoice(conn: Connection, user_id: str, invoice_id: str) -> InvoiceOut:
    row = conn.execute(
        _invoice_query()
        .where(invoices.c.id == invoice_id)
        .where(invoices.c.user_id == user_id)
    ).mappings().first()
    if row is None:
        raise NotFound("Invoice not found")
    return _to_invoice_out(row, _load_items(conn, [invoice_id])[invoice_id])


def list_invoices(
    conn: Connection,
    user_id: str,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    status: Optional[InvoiceStatus] = None,
) -> InvoiceListResponse:
    count_query = select(func.count()).select_from(invoices).where(invoices.c.user_id == user_id)
    query = _invoice_query().where(invoices.c.user_id == user_id)
    if status is not None:
        count_query = count_query.where(invoices.c.status == status.value)
        query = query.where(invoices.c.status == status.value)

    total = conn.execute(count_query).scalar_one()
    rows = conn.execute(
        query.order_by(invoices.c.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).mappings().all()

    items_by_invoice = _load_items(conn, [row["id"] for row in rows])
    return InvoiceListResponse(
        invoices=[_to_invoice_out(row, items_by_invoice[row["id"]]) for row in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


def create_invoice(conn: Connection, user_id: str, data: InvoiceIn, matcher: NameMatcher) -> InvoiceOut:
    """Resolve the customer, then write the header and its items in the caller's transaction."""
    item_rows = validate_items(data.items)
    form_data = _checked_form_data(conn, user_id, data.layout_id, data.form_data)
    customer = resolve_customer(conn, user_id, data.customer_info, matcher)
    totals = calculate_invoice_totals(item_rows)

    invoice_id = new_id()
    conn.execute(
        insert(invoices).values(
            id=invoice_id,
            user_id=user_id,
            customer_id=customer["id"],
            layout_id=data.layout_id or None,
            form_data=form_data,
            status=(data.status or InvoiceStatus.pending).value,
            **totals.model_dump(),
        )
    )
    _insert_items(conn, invoice_id, item_rows)

    logger.info(
        "Created invoice %s for customer %s (total %s)",
        invoice_id, customer["id"], totals.total_amount,
    )
    return get_invoice(conn, user_id, invoice_id)


def update_invoice(
    conn: Connection, user_id: str, invoice_id: str, data: InvoiceIn, matcher: NameMatcher
) -> InvoiceOut:
    """Rewrite an invoice in place; its line items are replaced as a whole."""
    current = get_invoice(conn, user_id, invoice_id)

    item_rows = validate_items(data.items)
    form_data = _checked_form_data(conn, user_id, data.layout_id, data.form_data)
    customer = resolve_customer(conn, user_id, data.customer_info, matcher, confirmed=True)
    totals = calculate_invoice_totals(item_rows)

    conn.execute(
        update(invoices)
        .where(invoices.c.id == invoice_id)
        .where(invoices.c.user_id == user_id)
        .values(
            customer_id=customer["id"],
            layout_id=data.layout_id or None,
            form_data=form_data,
            status=(data.status or current.status).value,
            updated_at=utcnow(),
            **totals.model_dump(),
        )
    )
    conn.execute(delete(invoice_items).where(invoice_items.c.invoice_id == invoice_id))
    _insert_items(conn, invoice_id, item_rows)

    logger.info("Updated invoice %s", invoice_id)
    return get_invoice(conn, user_id, invoice_id)


def delete_invoice(conn: Connection, user_id: str, invoice_id: str) -> None:
    result = conn.execute(
        delete(invoices)
        .where(invoices.c.id == invoice_id)
        .where(invoices.c.user_id == user_id)
    )
    if result.rowcount == 0:
        raise NotFound("Invoice not found")
    logger.info("Deleted invoice %s", invoice_id)


def change_status(
    conn: Connection, user_id: str, invoice_id: str, status: InvoiceStatus
) -> Tuple[InvoiceOut, Optional[str]]:
    """Set the status; returns the invoice and the customer phone to notify."""
    get_invoice(conn, user_id, invoice_id)
    conn.execute(
        update(invoices)
        .where(invoices.c.id == invoice_id)
        .where(invoices.c.user_id == user_id)
        .values(status=status.value, updated_at=utcnow())
    )
    invoice = get_invoice(conn, user_id, invoice_id)
    return invoice, invoice.customer.phone if invoice.customer else None
