# repario/db/schema.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    MetaData, Table, Column, String, Boolean, Integer, DateTime,
    Numeric, ForeignKey, CheckConstraint, UniqueConstraint, Text, JSON
)

metadata = MetaData()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


profiles = Table(
    "profiles",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("display_name", String(255)),
    Column("phone", String(50)),
    Column("logo_url", Text),
    Column("role", String(20), nullable=False, default="user"),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
)

customers = Table(
    "customers",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("user_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("phone", String(50)),
    Column("address", Text),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
)

items = Table(
    "items",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("user_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("unit_price", Numeric(12, 2), nullable=False, default=0),
    Column("unit", String(50), nullable=False, default="each"),
    Column("sku", String(120)),
    Column("category", String(120)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
    CheckConstraint("unit_price >= 0", name="ck_items_unit_price_nonneg"),
)

layouts = Table(
    "layouts",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("user_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("is_default", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
)

layout_sections = Table(
    "layout_sections",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("layout_id", String(36), ForeignKey("layouts.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("sort_order", Integer, nullable=False, default=0),
)

layout_fields = Table(
    "layout_fields",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("section_id", String(36), ForeignKey("layout_sections.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("label", String(255), nullable=False),
    Column("type", String(20), nullable=False),
    Column("placeholder", Text),
    Column("required", Boolean, nullable=False, default=False),
    Column("sort_order", Integer, nullable=False, default=0),
    CheckConstraint(
        "type IN ('input', 'description', 'dropdown', 'checkboxes')",
        name="ck_layout_fields_type",
    ),
)

layout_field_options = Table(
    "layout_field_options",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("field_id", String(36), ForeignKey("layout_fields.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("label", String(255), nullable=False),
    Column("value", String(255), nullable=False),
    Column("sort_order", Integer, nullable=False, default=0),
)

invoices = Table(
    "invoices",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("user_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("customer_id", String(36), ForeignKey("customers.id"), nullable=False, index=True),
    Column("layout_id", String(36), ForeignKey("layouts.id", ondelete="SET NULL"), nullable=True, index=True),
    Column("form_data", JSON, nullable=False, default=dict),
    Column("status", String(20), nullable=False, default="pending"),
    Column("subtotal", Numeric(12, 2), nullable=False),
    Column("tax_rate", Numeric(8, 4), nullable=False),
    Column("tax_amount", Numeric(12, 2), nullable=False),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow),
    CheckConstraint(
        "status IN ('pending', 'working', 'done', 'refused')",
        name="ck_invoices_status",
    ),
    CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_nonneg"),
)

invoice_items = Table(
    "invoice_items",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("invoice_id", String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("quantity", Numeric(12, 3), nullable=False),
    Column("price", Numeric(12, 2), nullable=False),
    Column("total", Numeric(12, 2), nullable=False),
    Column("sort_order", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_pos"),
    CheckConstraint("price >= 0", name="ck_invoice_items_price_nonneg"),
)

invoice_status_settings = Table(
    "invoice_status_settings",
    metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("user_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
    Column("status", String(20), nullable=False),
    Column("default_message", Text, nullable=False, default=""),
    Column("allow_extra_note", Boolean, nullable=False, default=True),
    Column("send_whatsapp", Boolean, nullable=False, default=True),
    UniqueConstraint("user_id", "status", name="uq_invoice_status_settings_user_status"),
)
