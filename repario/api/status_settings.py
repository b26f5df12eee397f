# repario/api/status_settings.py

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from repario.core.security import get_current_user
from repario.db.engine import get_engine
from repario.models.auth import CurrentUser
from repario.models.status_settings import StatusSettingIn, StatusSettingOut
from repario.services import status_settings as service

router = APIRouter(prefix="/api/status-settings", tags=["status-settings"])


@router.get("", response_model=List[StatusSettingOut])
def list_status_settings(
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> List[StatusSettingOut]:
    """
    Return the four status settings, creating the defaults on first access.
    """
    with engine.begin() as conn:
        return service.list_status_settings(conn, user.user_id)


@router.put("", response_model=List[StatusSettingOut])
def update_status_settings(
    data: List[StatusSettingIn],
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> List[StatusSettingOut]:
    with engine.begin() as conn:
        return service.update_status_settings(conn, user.user_id, data)
