from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Header, HTTPException, status

from config.settings import get_settings
from services.models import Actor, UserRole, parse_enum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    access_token: str
    role: UserRole = UserRole.CLIENT
    email: Optional[str] = None

    def to_actor(self) -> Actor:
        return Actor(role=self.role, id=self.user_id, email=self.email)


def _raise_auth_error(message: str, status_code: int = status.HTTP_401_UNAUTHORIZED) -> None:
    raise HTTPException(
        status_code=status_code,
        detail={"code": "unauthorized", "message": message},
    )


async def _fetch_user(access_token: str) -> Dict[str, Any]:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "configuration_error", "message": "Supabase credentials missing"},
        )

    headers = {
        "Authorization": f"Bearer {access_token}",
        "apikey": settings.supabase_key,
        "Content-Type": "application/json",
    }
    async with httpx.AsyncClient(timeout=10) as client:
        response = await client.get(f"{settings.supabase_url}/auth/v1/user", headers=headers)

    if response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        _raise_auth_error("Invalid or expired access token")
    if response.status_code >= 400:
        logger.error(f"Token validation failed upstream with status {response.status_code}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": "upstream_error", "message": "Failed to validate access token"},
        )

    payload = response.json()
    if not payload.get("id"):
        _raise_auth_error("Access token missing user id")
    return payload


def resolve_role(user: Dict[str, Any]) -> UserRole:
    """Read the user's role from Supabase metadata; users without one are clients."""
    raw = (user.get("app_metadata") or {}).get("role") or (user.get("user_metadata") or {}).get("role")
    if not raw:
        return UserRole.CLIENT
    try:
        return parse_enum(UserRole, raw)
    except ValueError:
        logger.warning(f"User {user.get('id')} has unrecognized role {raw!r}")
        _raise_auth_error("Account role is not recognized", status.HTTP_403_FORBIDDEN)


async def get_auth_context(authorization: Optional[str] = Header(default=None)) -> AuthContext:
    if not authorization:
        _raise_auth_error("Authorization header missing")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        _raise_auth_error("Authorization header must be Bearer token")

    access_token = parts[1].strip()
    if not access_token:
        _raise_auth_error("Access token missing")

    user = await _fetch_user(access_token)
    return AuthContext(
        user_id=user["id"],
        access_token=access_token,
        role=resolve_role(user),
        email=user.get("email"),
    )
