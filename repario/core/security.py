# repario/core/security.py
"""
Password hashing, JWT issuing and the request authentication dependencies.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.engine import Engine

from repario.core.config import get_settings
from repario.db.engine import get_engine
from repario.db.schema import profiles
from repario.errors import AuthenticationFailed, PermissionDenied
from repario.models.auth import CurrentUser

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Registered claims dropped before a refreshed token is signed again
REGISTERED_TIME_CLAIMS = ("exp", "iat", "nbf")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # unknown or malformed hash
        return False


def _encode(payload: Dict[str, Any], secret: str) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    to_encode = dict(payload)
    to_encode.update(
        {
            "iat": now,
            "exp": now + timedelta(days=settings.TOKEN_EXPIRE_DAYS),
        }
    )
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def create_access_token(payload: Dict[str, Any]) -> str:
    return _encode(payload, get_settings().JWT_SECRET)


def create_refresh_token(payload: Dict[str, Any]) -> str:
    return _encode(payload, get_settings().JWT_REFRESH_SECRET)


def decode_token(token: str, secret: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None when the token is invalid or expired."""
    try:
        return jwt.decode(token, secret, algorithms=[get_settings().JWT_ALGORITHM])
    except JWTError:
        return None


def strip_time_claims(claims: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in claims.items() if k not in REGISTERED_TIME_CLAIMS}


def token_payload_for(profile) -> Dict[str, Any]:
    return {"sub": profile["id"], "email": profile["email"], "role": profile["role"]}


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationFailed("Access token required")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise AuthenticationFailed("Access token required")
    return token


def get_current_user(
    token: str = Depends(get_bearer_token),
    engine: Engine = Depends(get_engine),
) -> CurrentUser:
    claims = decode_token(token, get_settings().JWT_SECRET)
    if not claims or not claims.get("sub"):
        raise PermissionDenied("Invalid or expired token")

    with engine.connect() as conn:
        profile = conn.execute(
            select(profiles.c.id, profiles.c.email, profiles.c.role)
            .where(profiles.c.id == claims["sub"])
        ).mappings().first()

    if profile is None:
        raise PermissionDenied("User profile not found")

    return CurrentUser(
        user_id=profile["id"],
        email=profile["email"],
        role=profile["role"] or "user",
    )


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != "admin":
        raise PermissionDenied("Admin privileges required")
    return user
