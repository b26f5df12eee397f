# repario/models/layouts.py

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    input = "input"
    description = "description"
    dropdown = "dropdown"
    checkboxes = "checkboxes"


# ---- Input ----

class OptionIn(BaseModel):
    label: str = Field(min_length=1)
    value: Optional[str] = None
    sort_order: Optional[int] = None


class FieldIn(BaseModel):
    label: str = Field(min_length=1)
    type: FieldType
    placeholder: Optional[str] = None
    required: bool = False
    sort_order: Optional[int] = None
    options: Optional[List[OptionIn]] = None


class FieldUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1)
    type: Optional[FieldType] = None
    placeholder: Optional[str] = None
    required: Optional[bool] = None
    sort_order: Optional[int] = None
    # None keeps the stored options, a list replaces them
    options: Optional[List[OptionIn]] = None


class SectionIn(BaseModel):
    title: str = Field(min_length=1)
    sort_order: Optional[int] = None
    fields: List[FieldIn] = []


class SectionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    sort_order: Optional[int] = None


class SectionOrderIn(BaseModel):
    section_ids: List[str]


class LayoutIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    is_default: bool = Field(default=False, alias="isDefault")
    sections: List[SectionIn] = []

    class Config:
        populate_by_name = True


class LayoutUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_default: Optional[bool] = Field(default=None, alias="isDefault")

    class Config:
        populate_by_name = True


class DuplicateLayoutIn(BaseModel):
    name: Optional[str] = None


class CopySectionIn(BaseModel):
    target_layout_id: str = Field(alias="targetLayoutId")

    class Config:
        populate_by_name = True


class CopyFieldIn(BaseModel):
    target_layout_id: str = Field(alias="targetLayoutId")
    target_section_id: str = Field(alias="targetSectionId")

    class Config:
        populate_by_name = True


# ---- Output ----

class OptionOut(BaseModel):
    id: str
    label: str
    value: str
    sort_order: int


class FieldOut(BaseModel):
    id: str
    label: str
    type: FieldType
    placeholder: Optional[str] = None
    required: bool
    sort_order: int
    options: List[OptionOut] = []


class SectionOut(BaseModel):
    id: str
    title: str
    sort_order: int
    fields: List[FieldOut] = []


class LayoutOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_default: bool = Field(alias="isDefault")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    sections: List[SectionOut] = []

    class Config:
        populate_by_name = True


class LayoutRef(BaseModel):
    id: str
    name: str
