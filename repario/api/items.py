# repario/api/items.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from repario.core.security import get_current_user
from repario.db.engine import get_engine
from repario.models.auth import CurrentUser
from repario.models.items import (
    BulkCategoryIn,
    BulkDeleteIn,
    BulkResult,
    CategoryCount,
    ItemIn,
    ItemOut,
)
from repario.services import items as service

router = APIRouter(prefix="/api/items", tags=["items"])


@router.get("", response_model=List[ItemOut])
def list_items(
    category: Optional[str] = Query(default=None, description="Exact category name"),
    search: Optional[str] = Query(
        default=None,
        description="Case-insensitive match on name, description, sku or category",
    ),
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> List[ItemOut]:
    with engine.connect() as conn:
        return service.list_items(conn, user.user_id, category=category, search=search)


@router.get("/categories", response_model=List[CategoryCount])
def list_categories(
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> List[CategoryCount]:
    with engine.connect() as conn:
        return service.list_categories(conn, user.user_id)


@router.get("/{item_id}", response_model=ItemOut)
def get_item(
    item_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> ItemOut:
    with engine.connect() as conn:
        return service.get_item(conn, user.user_id, item_id)


@router.post("", response_model=ItemOut, status_code=201)
def create_item(
    data: ItemIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> ItemOut:
    with engine.begin() as conn:
        return service.create_item(conn, user.user_id, data)


@router.patch("/{item_id}", response_model=ItemOut)
def update_item(
    item_id: str,
    data: ItemIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> ItemOut:
    with engine.begin() as conn:
        return service.update_item(conn, user.user_id, item_id, data)


@router.delete("/{item_id}")
def delete_item(
    item_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> dict:
    with engine.begin() as conn:
        service.delete_item(conn, user.user_id, item_id)
    return {"message": "Item deleted successfully"}


@router.post("/bulk-delete", response_model=BulkResult)
def bulk_delete_items(
    data: BulkDeleteIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> BulkResult:
    """
    Soft delete several items at once; nothing changes if any id is unknown.
    """
    with engine.begin() as conn:
        updated = service.bulk_delete_items(conn, user.user_id, data.ids)
    return BulkResult(updated=updated)


@router.post("/bulk-category", response_model=BulkResult)
def bulk_set_category(
    data: BulkCategoryIn,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> BulkResult:
    with engine.begin() as conn:
        updated = service.bulk_set_category(conn, user.user_id, data.ids, data.category)
    return BulkResult(updated=updated)
