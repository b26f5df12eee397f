# repario/api/auth.py

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from repario.core.config import get_settings
from repario.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    strip_time_claims,
    token_payload_for,
    verify_password,
)
from repario.db.engine import get_engine
from repario.db.schema import new_id, profiles
from repario.errors import AuthenticationFailed, Conflict, PermissionDenied, ValidationFailed
from repario.models.auth import AuthOut, AuthUserOut, LoginIn, RefreshIn, RegisterIn, TokenPairOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_response(profile, message: str) -> AuthOut:
    payload = token_payload_for(profile)
    return AuthOut(
        message=message,
        user=AuthUserOut(
            id=profile["id"],
            email=profile["email"],
            full_name=profile["display_name"],
            role=profile["role"],
        ),
        access_token=create_access_token(payload),
        refresh_token=create_refresh_token(payload),
    )


@router.post("/register", response_model=AuthOut, status_code=201)
def register(data: RegisterIn, engine: Engine = Depends(get_engine)) -> AuthOut:
    if not data.email or not data.password:
        raise ValidationFailed("Email and password are required")

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
                display_name=(data.full_name or "").strip() or None,
                role="user",
            )
        )
        profile = conn.execute(
            select(profiles).where(profiles.c.id == user_id)
        ).mappings().one()

    logger.info("Registered user %s", user_id)
    return _auth_response(profile, "User registered successfully")


@router.post("/login", response_model=AuthOut)
def login(data: LoginIn, engine: Engine = Depends(get_engine)) -> AuthOut:
    if not data.email or not data.password:
        raise ValidationFailed("Email and password are required")

    with engine.connect() as conn:
        profile = conn.execute(
            select(profiles).where(profiles.c.email == data.email.strip().lower())
        ).mappings().first()

    if profile is None or not verify_password(data.password, profile["password_hash"]):
        logger.info("Failed login attempt")
        raise AuthenticationFailed("Invalid credentials")

    return _auth_response(profile, "Login successful")


@router.post("/refresh", response_model=TokenPairOut)
def refresh(data: RefreshIn) -> TokenPairOut:
    if not data.refresh_token:
        raise AuthenticationFailed("Refresh token required")

    claims = decode_token(data.refresh_token, get_settings().JWT_REFRESH_SECRET)
    if claims is None:
        raise PermissionDenied("Invalid refresh token")

    payload = strip_time_claims(claims)
    return TokenPairOut(
        access_token=create_access_token(payload),
        refresh_token=create_refresh_token(payload),
    )
