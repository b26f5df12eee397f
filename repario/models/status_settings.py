# repario/models/status_settings.py

from typing import Optional

from pydantic import BaseModel


class StatusSettingOut(BaseModel):
    status: str
    default_message: str
    allow_extra_note: bool
    send_whatsapp: bool

    class Config:
        from_attributes = True


class StatusSettingIn(BaseModel):
    # unknown statuses are dropped by the service, not rejected
    status: str
    default_message: Optional[str] = ""
    allow_extra_note: bool = False
    send_whatsapp: Optional[bool] = None
