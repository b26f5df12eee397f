# repario/api/layouts.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.engine import Engine

from repario.core.security import get_current_user
from repario.db.engine import get_engine
from repario.models.auth import CurrentUser
from repario.models.layouts import (
    CopyFieldIn,
    CopySectionIn,
    DuplicateLayoutIn,
    FieldIn,
    FieldOut,
    FieldUpdate,
    LayoutIn,
    LayoutOut,
    LayoutUpdate,
    SectionIn,
    SectionOrderIn,
    SectionOut,
    SectionUpdate,
)
from repario.services import layouts as service

router = APIRouter(prefix="/api/layouts", tags=["layouts"])


@router.get("", response_model=List[LayoutOut])
def list_layouts(
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> List[LayoutOut]:
    """
    Return the user's layouts, newest first, each with its full section/field tree.
    """
    with engine.connect() as conn:
        return service.list_layouts(conn, user.user_id)


@router.get("/{layout_id}", response_model=LayoutOut)
def get_layout(
    layout_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> LayoutOut:
    with engine.connect() as conn:
        return service.get_layout(conn, user.user_id, layout_id)


@router.post("", response_model=LayoutOut, status_code=201)
def create_layout(
    data: LayoutIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> LayoutOut:
    with engine.begin() as conn:
        return service.create_layout(conn, user.user_id, data)


@router.patch("/{layout_id}", response_model=LayoutOut)
def update_layout(
    layout_id: str,
    data: LayoutUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> LayoutOut:
    with engine.begin() as conn:
        return service.update_layout(conn, user.user_id, layout_id, data)


@router.delete("/{layout_id}", status_code=204)
def delete_layout(
    layout_id: str,
    reassign_to: Optional[str] = Query(default=None, alias="reassignTo"),
    force: bool = Query(default=False),
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> Response:
    """
    Delete a layout. Invoices still using it block the delete (409) unless
    they are moved with `reassignTo` or detached with `force=true`.
    """
    with engine.begin() as conn:
        service.delete_layout(conn, user.user_id, layout_id, reassign_to=reassign_to, force=force)
    return Response(status_code=204)


@router.post("/{layout_id}/duplicate", response_model=LayoutOut, status_code=201)
def duplicate_layout(
    layout_id: str,
    data: Optional[DuplicateLayoutIn] = None,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> LayoutOut:
    with engine.begin() as conn:
        return service.duplicate_layout(conn, user.user_id, layout_id, name=data.name if data else None)


# ---- Sections ----

@router.post("/{layout_id}/sections", response_model=SectionOut, status_code=201)
def add_section(
    layout_id: str,
    data: SectionIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> SectionOut:
    with engine.begin() as conn:
        return service.add_section(conn, user.user_id, layout_id, data)


@router.put("/{layout_id}/sections/order", response_model=LayoutOut)
def reorder_sections(
    layout_id: str,
    data: SectionOrderIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> LayoutOut:
    with engine.begin() as conn:
        return service.reorder_sections(conn, user.user_id, layout_id, data.section_ids)


@router.patch("/{layout_id}/sections/{section_id}", response_model=SectionOut)
def update_section(
    layout_id: str,
    section_id: str,
    data: SectionUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> SectionOut:
    with engine.begin() as conn:
        return service.update_section(conn, user.user_id, layout_id, section_id, data)


@router.delete("/{layout_id}/sections/{section_id}", status_code=204)
def delete_section(
    layout_id: str,
    section_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> Response:
    with engine.begin() as conn:
        service.delete_section(conn, user.user_id, layout_id, section_id)
    return Response(status_code=204)


@router.post("/{layout_id}/sections/{section_id}/copy", response_model=SectionOut, status_code=201)
def copy_section(
    layout_id: str,
    section_id: str,
    data: CopySectionIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> SectionOut:
    with engine.begin() as conn:
        return service.copy_section(conn, user.user_id, layout_id, section_id, data.target_layout_id)


# ---- Fields ----

@router.post("/{layout_id}/sections/{section_id}/fields", response_model=FieldOut, status_code=201)
def add_field(
    layout_id: str,
    section_id: str,
    data: FieldIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> FieldOut:
    with engine.begin() as conn:
        return service.add_field(conn, user.user_id, layout_id, section_id, data)


@router.patch("/{layout_id}/sections/{section_id}/fields/{field_id}", response_model=FieldOut)
def update_field(
    layout_id: str,
    section_id: str,
    field_id: str,
    data: FieldUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> FieldOut:
    with engine.begin() as conn:
        return service.update_field(conn, user.user_id, layout_id, section_id, field_id, data)


@router.delete("/{layout_id}/sections/{section_id}/fields/{field_id}", status_code=204)
def delete_field(
    layout_id: str,
    section_id: str,
    field_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> Response:
    with engine.begin() as conn:
        service.delete_field(conn, user.user_id, layout_id, section_id, field_id)
    return Response(status_code=204)


@router.post(
    "/{layout_id}/sections/{section_id}/fields/{field_id}/copy",
    response_model=FieldOut,
    status_code=201,
)
def copy_field(
    layout_id: str,
    section_id: str,
    field_id: str,
    data: CopyFieldIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> FieldOut:
    with engine.begin() as conn:
        return service.copy_field(
            conn,
            user.user_id,
            layout_id,
            section_id,
            field_id,
            data.target_layout_id,
            data.target_section_id,
        )
