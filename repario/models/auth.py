# repario/models/auth.py

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class CurrentUser(BaseModel):
    user_id: str
    email: str
    role: str = "user"


class RegisterIn(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")

    class Config:
        populate_by_name = True


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshIn(BaseModel):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

    class Config:
        populate_by_name = True


class AuthUserOut(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = Field(default=None, alias="fullName")
    role: str

    class Config:
        populate_by_name = True


class TokenPairOut(BaseModel):
    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")

    class Config:
        populate_by_name = True


class AuthOut(TokenPairOut):
    message: str
    user: AuthUserOut
