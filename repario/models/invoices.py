# repario/models/invoices.py

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from repario.models.customers import CustomerInfo, CustomerRef
from repario.models.layouts import LayoutRef


class InvoiceStatus(str, Enum):
    pending = "pending"
    working = "working"
    done = "done"
    refused = "refused"


class InvoiceItemIn(BaseModel):
    name: str = ""
    description: Optional[str] = None
    quantity: Decimal
    price: Decimal
    total: Optional[Decimal] = None


class InvoiceIn(BaseModel):
    customer_info: CustomerInfo = Field(alias="customerInfo")
    layout_id: Optional[str] = Field(default=None, alias="layoutId")
    # keyed by "{sectionId}_{fieldId}"; checkbox fields hold a list of values
    form_data: Dict[str, Any] = Field(default_factory=dict, alias="formData")
    items: List[InvoiceItemIn] = []
    status: Optional[InvoiceStatus] = None

    class Config:
        populate_by_name = True


class StatusChangeIn(BaseModel):
    status: InvoiceStatus
    extra_note: Optional[str] = None


class InvoiceTotals(BaseModel):
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal


class InvoiceItemOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    quantity: Decimal
    price: Decimal
    total: Decimal
    sort_order: int

    class Config:
        from_attributes = True


class InvoiceOut(BaseModel):
    id: str
    customer_id: str
    layout_id: Optional[str] = None
    form_data: Dict[str, Any] = {}
    status: InvoiceStatus
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None
    customer: Optional[CustomerRef] = None
    layout: Optional[LayoutRef] = None
    items: List[InvoiceItemOut] = []
    totals: Optional[InvoiceTotals] = None


class InvoiceEnvelope(BaseModel):
    invoice: InvoiceOut


class InvoiceCreatedOut(InvoiceEnvelope):
    message: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")

    class Config:
        populate_by_name = True


class InvoiceListResponse(BaseModel):
    invoices: List[InvoiceOut]
    pagination: Pagination


class NotificationResult(BaseModel):
    success: bool
    details: Any = None


class StatusChangeOut(BaseModel):
    invoice: InvoiceOut
    whatsapp: NotificationResult
