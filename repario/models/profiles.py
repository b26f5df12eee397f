# repario/models/profiles.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr


class Role(str, Enum):
    admin = "admin"
    manager = "manager"
    user = "user"


class ProfileOut(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None
    phone: Optional[str] = None
    logo_url: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    phone: Optional[str] = None
    logo_url: Optional[str] = None


class AdminProfileUpdate(ProfileUpdate):
    role: Optional[Role] = None


class AdminUserCreate(BaseModel):
    # presence is checked by the route so the error names every field
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class AdminUserCreatedOut(BaseModel):
    message: str
    user: ProfileOut
