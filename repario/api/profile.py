# repario/api/profile.py

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection, Engine

from repario.core.security import get_current_user, hash_password, require_admin
from repario.db.engine import get_engine
from repario.db.schema import new_id, profiles, utcnow
from repario.errors import Conflict, NotFound, ValidationFailed
from repario.models.auth import CurrentUser
from repario.models.profiles import (
    AdminProfileUpdate,
    AdminUserCreate,
    AdminUserCreatedOut,
    ProfileOut,
    ProfileUpdate,
    Role,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profile"])

# never expose password_hash
_PUBLIC_COLUMNS = [
    profiles.c.id,
    profiles.c.email,
    profiles.c.display_name,
    profiles.c.phone,
    profiles.c.logo_url,
    profiles.c.role,
    profiles.c.created_at,
]


def _get_profile(conn: Connection, user_id: str) -> ProfileOut:
    row = conn.execute(
        select(*_PUBLIC_COLUMNS).where(profiles.c.id == user_id)
    ).mappings().first()
    if row is None:
        raise NotFound("User not found")
    return ProfileOut.model_validate(dict(row))


def _apply_update(conn: Connection, user_id: str, changes: dict) -> None:
    if "role" in changes and changes["role"] is not None:
        changes["role"] = changes["role"].value
    if changes:
        conn.execute(
            update(profiles)
            .where(profiles.c.id == user_id)
            .values(**changes, updated_at=utcnow())
        )


@router.get("/api/profile", response_model=ProfileOut)
def get_profile(
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> ProfileOut:
    with engine.connect() as conn:
        return _get_profile(conn, user.user_id)


@router.patch("/api/profile", response_model=ProfileOut)
def update_profile(
    data: ProfileUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> ProfileOut:
    with engine.begin() as conn:
        _apply_update(conn, user.user_id, data.model_dump(exclude_unset=True))
        return _get_profile(conn, user.user_id)


@router.get("/api/admin/users", response_model=List[ProfileOut])
def list_users(
    admin: CurrentUser = Depends(require_admin),
    engine: Engine = Depends(get_engine),
) -> List[ProfileOut]:
    with engine.connect() as conn:
        rows = conn.execute(
            select(*_PUBLIC_COLUMNS).order_by(profiles.c.created_at.desc())
        ).mappings().all()
    return [ProfileOut.model_validate(dict(row)) for row in rows]


@router.post("/api/admin/users", response_model=AdminUserCreatedOut, status_code=201)
def create_user(
    data: AdminUserCreate,
    admin: CurrentUser = Depends(require_admin),
    engine: Engine = Depends(get_engine),
) -> AdminUserCreatedOut:
    full_name = (data.full_name or "").strip()
    phone = (data.phone or "").strip()
    if not data.email or not data.password or not full_name or not phone or not data.role:
        raise ValidationFailed("All fields are required: email, password, full_name, phone, role")
    if data.role not in {role.value for role in Role}:
        raise ValidationFailed("Invalid role. Must be admin, manager, or user")

    email = data.email.lower()
    with engine.begin() as conn:
        existing = conn.execute(
            select(profiles.c.id).where(profiles.c.email == email)
        ).first()
        if existing is not None:
            raise Conflict("User already exists")

        user_id = new_id()
        conn.execute(
            insert(profiles).values(
                id=user_id,
                email=email,
                password_hash=hash_password(data.password),
                display_name=full_name,
                phone=phone,
                role=data.role,
            )
        )
        profile = _get_profile(conn, user_id)

    logger.info("Admin %s created user %s", admin.user_id, user_id)
    return AdminUserCreatedOut(message="User created successfully", user=profile)


@router.patch("/api/admin/users/{user_id}", response_model=ProfileOut)
def update_user(
    user_id: str,
    data: AdminProfileUpdate,
    admin: CurrentUser = Depends(require_admin),
    engine: Engine = Depends(get_engine),
) -> ProfileOut:
    with engine.begin() as conn:
        _get_profile(conn, user_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("role") is None:
            changes.pop("role", None)
        _apply_update(conn, user_id, changes)
        profile = _get_profile(conn, user_id)

    logger.info("Admin %s updated user %s", admin.user_id, user_id)
    return profile
