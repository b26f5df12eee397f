# repario/models/items.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class ItemOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    unit_price: Decimal
    unit: str
    sku: Optional[str] = None
    category: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ItemIn(BaseModel):
    # unit_price arrives as a number or a numeric string from the catalog form
    name: Optional[str] = None
    description: Optional[str] = None
    unit_price: Optional[Union[Decimal, str]] = None
    unit: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None


class CategoryCount(BaseModel):
    name: str
    count: int


class BulkDeleteIn(BaseModel):
    ids: List[str] = Field(min_length=1)


class BulkCategoryIn(BaseModel):
    ids: List[str] = Field(min_length=1)
    category: Optional[str] = None


class BulkResult(BaseModel):
    updated: int
