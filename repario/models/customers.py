# repario/models/customers.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CustomerOut(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerRef(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerInfo(BaseModel):
    """Candidate customer sent with an invoice or a customer create request.

    `id` is set when the user picked an existing customer from the
    suggestion list; `forceCreate` confirms that a name similar to existing
    customers really is a different customer.
    """

    id: Optional[str] = None
    name: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None
    force_create: bool = Field(default=False, alias="forceCreate")

    class Config:
        populate_by_name = True


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerInvoiceOut(BaseModel):
    id: str
    status: str
    total_amount: Decimal
    created_at: datetime


class CustomerHistorySummary(BaseModel):
    invoice_count: int = Field(alias="invoiceCount")
    total_amount: Decimal = Field(alias="totalAmount")
    last_invoice_date: Optional[datetime] = Field(default=None, alias="lastInvoiceDate")

    class Config:
        populate_by_name = True


class CustomerHistoryResponse(BaseModel):
    customer: CustomerOut
    invoices: List[CustomerInvoiceOut]
    summary: CustomerHistorySummary
