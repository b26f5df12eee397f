# repario/services/customers.py
"""
Customer resolution for invoices and the customer directory.

Resolution order for a candidate customer:

1. an explicitly selected customer (`info.id`) is reused and its contact
   details are refreshed from the candidate;
2. an exact, case-insensitive name match that was not explicitly selected
   is rejected so the user has to pick it from the suggestions;
3. names similar to existing customers are rejected unless `forceCreate`
   confirms a distinct customer;
4. anything else creates a new customer.

Invoice edits skip steps 2 and 3: the customer was already confirmed when
the invoice was first written.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from repario.db.schema import customers, invoices, new_id, utcnow
from repario.errors import Conflict, NotFound, ValidationFailed
from repario.models.customers import (
    CustomerHistoryResponse,
    CustomerHistorySummary,
    CustomerInfo,
    CustomerInvoiceOut,
    CustomerOut,
    CustomerRef,
    CustomerUpdate,
)
from repario.services.similarity import NameMatcher, normalize_name

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _ref(row) -> dict:
    return CustomerRef(
        id=row["id"],
        name=row["name"],
        phone=row["phone"],
        address=row["address"],
    ).model_dump()


def list_customers(conn: Connection, user_id: str) -> List[CustomerOut]:
    rows = conn.execute(
        select(customers)
        .where(customers.c.user_id == user_id)
        .order_by(customers.c.name)
    ).mappings().all()
    return [CustomerOut.model_validate(dict(row)) for row in rows]


def get_customer_row(conn: Connection, user_id: str, customer_id: str):
    row = conn.execute(
        select(customers)
        .where(customers.c.id == customer_id)
        .where(customers.c.user_id == user_id)
    ).mappings().first()
    if row is None:
        raise NotFound("Customer not found")
    return row


def get_customer(conn: Connection, user_id: str, customer_id: str) -> CustomerOut:
    return CustomerOut.model_validate(dict(get_customer_row(conn, user_id, customer_id)))


def _find_exact(rows, name: str):
    target = normalize_name(name)
    for row in rows:
        if normalize_name(row["name"]) == target:
            return row
    return None


def _insert_customer(conn: Connection, user_id: str, info: CustomerInfo):
    customer_id = new_id()
    conn.execute(
        insert(customers).values(
            id=customer_id,
            user_id=user_id,
            name=info.name.strip(),
            phone=_clean(info.phone),
            address=_clean(info.address),
        )
    )
    logger.info("Created customer %s for user %s", customer_id, user_id)
    return get_customer_row(conn, user_id, customer_id)


def enrich_contact(conn: Connection, row, info: CustomerInfo) -> None:
    """
    Overwrite the stored phone/address with non-empty, different candidate
    values. Failure is logged and swallowed; it never fails the invoice.
    """
    values = {}
    phone, address = _clean(info.phone), _clean(info.address)
    if phone and phone != row["phone"]:
        values["phone"] = phone
    if address and address != row["address"]:
        values["address"] = address
    if not values:
        return

    try:
        with conn.begin_nested():
            conn.execute(
                update(customers)
                .where(customers.c.id == row["id"])
                .values(**values, updated_at=utcnow())
            )
    except SQLAlchemyError as exc:
        logger.warning("Failed to update contact info of customer %s: %s", row["id"], exc)


def _check_duplicates(rows, info: CustomerInfo, matcher: NameMatcher) -> None:
    exact = _find_exact(rows, info.name)
    if exact is not None:
        raise Conflict(
            f"Customer \"{exact['name']}\" already exists. Select it from the suggestions.",
            code="customer_exists",
            existingCustomer=_ref(exact),
        )

    if not info.force_create:
        similar = matcher.find_similar(info.name, rows)
        if similar:
            names = ", ".join(row["name"] for row in similar)
            raise Conflict(
                f"Similar customer names already exist: {names}. "
                "Please use an existing customer or choose a more distinctive name.",
                code="similar_customers",
                similarCustomers=[_ref(row) for row in similar],
            )


def _user_customers(conn: Connection, user_id: str):
    return conn.execute(
        select(customers).where(customers.c.user_id == user_id)
    ).mappings().all()


def resolve_customer(
    conn: Connection,
    user_id: str,
    info: CustomerInfo,
    matcher: NameMatcher,
    confirmed: bool = False,
):
    """Return the customer row an invoice should reference, creating it if needed."""
    if not info.name or not info.name.strip():
        raise ValidationFailed("Customer name is required")

    if info.id:
        try:
            row = get_customer_row(conn, user_id, info.id)
        except NotFound:
            raise NotFound("Customer not found or access denied")
        enrich_contact(conn, row, info)
        return get_customer_row(conn, user_id, info.id)

    rows = _user_customers(conn, user_id)

    if confirmed:
        exact = _find_exact(rows, info.name)
        if exact is not None:
            enrich_contact(conn, exact, info)
            return get_customer_row(conn, user_id, exact["id"])
    else:
        _check_duplicates(rows, info, matcher)

    return _insert_customer(conn, user_id, info)


def create_customer(conn: Connection, user_id: str, info: CustomerInfo, matcher: NameMatcher) -> CustomerOut:
    if not info.name or not info.name.strip():
        raise ValidationFailed("Customer name is required")
    _check_duplicates(_user_customers(conn, user_id), info, matcher)
    return CustomerOut.model_validate(dict(_insert_customer(conn, user_id, info)))


def update_customer(conn: Connection, user_id: str, customer_id: str, data: CustomerUpdate) -> CustomerOut:
    get_customer_row(conn, user_id, customer_id)

    values = {}
    if data.name is not None:
        if not data.name.strip():
            raise ValidationFailed("Customer name is required")
        values["name"] = data.name.strip()
    if "phone" in data.model_fields_set:
        values["phone"] = _clean(data.phone)
    if "address" in data.model_fields_set:
        values["address"] = _clean(data.address)

    if values:
        conn.execute(
            update(customers)
            .where(customers.c.id == customer_id)
            .where(customers.c.user_id == user_id)
            .values(**values, updated_at=utcnow())
        )
    return get_customer(conn, user_id, customer_id)


def delete_customer(conn: Connection, user_id: str, customer_id: str) -> None:
    get_customer_row(conn, user_id, customer_id)

    invoice_count = conn.execute(
        select(func.count())
        .select_from(invoices)
        .where(invoices.c.customer_id == customer_id)
        .where(invoices.c.user_id == user_id)
    ).scalar_one()
    if invoice_count > 0:
        raise Conflict(
            "Cannot delete customer with existing invoices",
            details=f"This customer has {invoice_count} invoice(s). Please delete the invoices first.",
        )

    conn.execute(
        delete(customers)
        .where(customers.c.id == customer_id)
        .where(customers.c.user_id == user_id)
    )


def customer_history(conn: Connection, user_id: str, customer_id: str) -> CustomerHistoryResponse:
    customer = get_customer(conn, user_id, customer_id)

    rows = conn.execute(
        select(
            invoices.c.id,
            invoices.c.status,
            invoices.c.total_amount,
            invoices.c.created_at,
        )
        .where(invoices.c.customer_id == customer_id)
        .where(invoices.c.user_id == user_id)
        .order_by(invoices.c.created_at.desc())
    ).mappings().all()

    history = [CustomerInvoiceOut(**row) for row in rows]
    total = sum((invoice.total_amount for invoice in history), Decimal("0.00"))

    return CustomerHistoryResponse(
        customer=customer,
        invoices=history,
        summary=CustomerHistorySummary(
            invoice_count=len(history),
            total_amount=total,
            last_invoice_date=history[0].created_at if history else None,
        ),
    )
