"""
Identity and profile store.

Accounts live in Supabase auth; each account has a row in the
``user_profiles`` table keyed by the auth user id. Sessions handed out after
an OTP login are our own HS256 JWTs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from supabase import AsyncClient

from app.config import JWT_ALGORITHM, JWT_EXPIRY_DAYS, JWT_SECRET
from app.services.supabase_client import upstream_errors

logger = logging.getLogger(__name__)

PROFILE_TABLE = "user_profiles"
DEFAULT_ROLE = "user"


def create_session_token(account_id: str, email: str) -> str:
    """Create a signed JWT for the given account."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> dict[str, Any]:
    """Decode and verify a session JWT. Raises jwt.PyJWTError."""
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])


class IdentityService:
    """Supabase-backed accounts and profiles."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def create_account(self, email: str, password: str | None = None) -> str:
        """Create a confirmed auth user and return its id."""
        attributes: dict[str, Any] = {"email": email, "email_confirm": True}
        if password:
            attributes["password"] = password
        with upstream_errors("create user"):
            resp = await self._client.auth.admin.create_user(attributes)
        logger.info("Created auth user %s", resp.user.id)
        return resp.user.id

    async def delete_account(self, account_id: str) -> None:
        with upstream_errors("delete user"):
            await self._client.auth.admin.delete_user(account_id)
        logger.info("Deleted auth user %s", account_id)

    async def upsert_profile(self, account_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        row = {"id": account_id, "role": DEFAULT_ROLE, **fields}
        with upstream_errors("upsert profile"):
            resp = await self._client.table(PROFILE_TABLE).upsert(row).execute()
        return resp.data[0] if resp.data else row

    async def find_account_by_email(self, email: str) -> dict[str, Any] | None:
        with upstream_errors("find profile"):
            resp = await (
                self._client.table(PROFILE_TABLE).select("*").eq("email", email).limit(1).execute()
            )
        return resp.data[0] if resp.data else None

    def create_session(self, account: dict[str, Any]) -> str:
        return create_session_token(str(account["id"]), account.get("email", ""))

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        """Password login through Supabase; returns its session and user."""
        with upstream_errors("sign in"):
            resp = await self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        return {
            "session": resp.session.model_dump(mode="json") if resp.session else None,
            "user": resp.user.model_dump(mode="json") if resp.user else None,
        }
