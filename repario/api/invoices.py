# repario/api/invoices.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from repario.core.security import get_current_user
from repario.db.engine import get_engine
from repario.models.auth import CurrentUser
from repario.models.invoices import (
    InvoiceCreatedOut,
    InvoiceEnvelope,
    InvoiceIn,
    InvoiceListResponse,
    InvoiceStatus,
    StatusChangeIn,
    StatusChangeOut,
)
from repario.services import invoices as service
from repario.services.notifications import Notifier, get_notifier, notify_status_change
from repario.services.similarity import NameMatcher, get_name_matcher
from repario.services.status_settings import get_status_setting

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(service.DEFAULT_PAGE_SIZE, ge=1, le=100),
    status: Optional[InvoiceStatus] = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> InvoiceListResponse:
    """
    Returns one page of the user's invoices, newest first, optionally filtered by status.
    """
    with engine.connect() as conn:
        return service.list_invoices(conn, user.user_id, page=page, limit=limit, status=status)


@router.get("/{invoice_id}", response_model=InvoiceEnvelope)
def get_invoice(
    invoice_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> InvoiceEnvelope:
    with engine.connect() as conn:
        invoice = service.get_invoice(conn, user.user_id, invoice_id)
    return InvoiceEnvelope(invoice=invoice)


@router.post("", response_model=InvoiceCreatedOut, status_code=201)
def create_invoice(
    data: InvoiceIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    matcher: NameMatcher = Depends(get_name_matcher),
) -> InvoiceCreatedOut:
    """
    Create an invoice with its line items.

    The customer is resolved from `customerInfo` first; a 409 asks the caller
    to pick an existing customer or to resend with `forceCreate`.
    """
    with engine.begin() as conn:
        invoice = service.create_invoice(conn, user.user_id, data, matcher)
    return InvoiceCreatedOut(message="Invoice created successfully", invoice=invoice)


@router.put("/{invoice_id}", response_model=InvoiceEnvelope)
def update_invoice(
    invoice_id: str,
    data: InvoiceIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    matcher: NameMatcher = Depends(get_name_matcher),
) -> InvoiceEnvelope:
    with engine.begin() as conn:
        invoice = service.update_invoice(conn, user.user_id, invoice_id, data, matcher)
    return InvoiceEnvelope(invoice=invoice)


@router.patch("/{invoice_id}/status", response_model=StatusChangeOut)
def change_invoice_status(
    invoice_id: str,
    data: StatusChangeIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    notifier: Notifier = Depends(get_notifier),
) -> StatusChangeOut:
    """
    Update the status, then notify the customer per the user's status settings.
    The notification result never affects the stored status.
    """
    with engine.begin() as conn:
        invoice, phone = service.change_status(conn, user.user_id, invoice_id, data.status)
        setting = get_status_setting(conn, user.user_id, data.status.value)

    logger.info("Invoice %s is now %s", invoice_id, data.status.value)
    whatsapp = notify_status_change(notifier, setting, phone, data.extra_note)
    return StatusChangeOut(invoice=invoice, whatsapp=whatsapp)


@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> dict:
    with engine.begin() as conn:
        service.delete_invoice(conn, user.user_id, invoice_id)
    return {"message": "Invoice deleted successfully"}
