"""
Supabase gateway.

Holds the module-level async client (opened in the app lifespan) and the
repository the pass-through routers use for class, ledger, admin-request,
profile and avatar storage calls. Each method is a single request to the
managed service; provider errors surface as UpstreamError, transport
errors as StoreUnavailable.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx
from supabase import (
    AsyncClient,
    AuthError,
    PostgrestAPIError,
    StorageException,
    acreate_client,
)

from app.config import AVATAR_BUCKET, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL, supabase_configured
from app.errors import StoreUnavailable, UpstreamError

logger = logging.getLogger(__name__)

# ── Module-level client ───────────────────────────────────────────────────

_client: AsyncClient | None = None


async def init_supabase() -> None:
    """Create the service-role client if credentials are configured."""
    global _client
    if not supabase_configured():
        logger.warning("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set, Supabase calls will fail")
        return
    _client = await acreate_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
    logger.info("Supabase client ready for %s", SUPABASE_URL)


async def close_supabase() -> None:
    global _client
    _client = None


def get_supabase() -> AsyncClient:
    if _client is None:
        raise StoreUnavailable("Supabase belum dikonfigurasi")
    return _client


@contextmanager
def upstream_errors(action: str) -> Iterator[None]:
    """Translate supabase-py exceptions raised inside the block."""
    try:
        yield
    except (PostgrestAPIError, AuthError, StorageException) as exc:
        message = getattr(exc, "message", None) or str(exc)
        logger.warning("Supabase %s rejected: %s", action, message)
        raise UpstreamError(message) from exc
    except httpx.HTTPError as exc:
        logger.error("Supabase %s unreachable: %s", action, exc)
        raise StoreUnavailable() from exc


def _first(rows: list[dict[str, Any]] | None) -> dict[str, Any] | None:
    return rows[0] if rows else None


# ══════════════════════════════════════════════════════════════════════════
#                           KAS REPOSITORY
# ══════════════════════════════════════════════════════════════════════════

ADMIN_REQUEST_COLUMNS = "request_id, user_id, kelas_id, status, created_at"


class KasRepository:
    """Table and storage access for the kas app."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    # ── Kelas ──────────────────────────────────────────────────────────

    async def list_kelas(self) -> list[dict[str, Any]]:
        with upstream_errors("list kelas"):
            resp = await self._client.table("kelas").select("*").order("nama_kelas").execute()
        return resp.data

    # ── Ledger (pemasukan / pengeluaran) ───────────────────────────────

    async def insert_entry(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        with upstream_errors(f"insert {table}"):
            resp = await self._client.table(table).insert(payload).execute()
        row = _first(resp.data)
        if row is None:
            raise UpstreamError(f"{table}: insert tidak mengembalikan data")
        return row

    async def list_entries(self, table: str, kelas_id: Any = None) -> list[dict[str, Any]]:
        query = self._client.table(table).select("*").order("created_at", desc=True)
        if kelas_id is not None:
            query = query.eq("kelas_id", kelas_id)
        with upstream_errors(f"list {table}"):
            resp = await query.execute()
        return resp.data

    # ── Admin requests ─────────────────────────────────────────────────

    async def create_admin_request(self, user_id: str, kelas_id: Any) -> dict[str, Any]:
        return await self.insert_entry(
            "admin_requests",
            {"user_id": user_id, "kelas_id": kelas_id, "status": "pending"},
        )

    async def list_admin_requests(self) -> list[dict[str, Any]]:
        with upstream_errors("list admin_requests"):
            resp = await (
                self._client.table("admin_requests")
                .select(ADMIN_REQUEST_COLUMNS)
                .order("created_at", desc=True)
                .execute()
            )
        return resp.data

    async def update_admin_request(self, request_id: str, status: str) -> dict[str, Any] | None:
        with upstream_errors("update admin_requests"):
            resp = await (
                self._client.table("admin_requests")
                .update({"status": status})
                .eq("request_id", request_id)
                .execute()
            )
        return _first(resp.data)

    # ── Profiles ───────────────────────────────────────────────────────

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        with upstream_errors("get profile"):
            resp = await (
                self._client.table("user_profiles").select("*").eq("id", user_id).limit(1).execute()
            )
        return _first(resp.data)

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        with upstream_errors("update profile"):
            resp = await (
                self._client.table("user_profiles").update(fields).eq("id", user_id).execute()
            )
        return _first(resp.data)

    async def set_role(self, user_id: str, role: str) -> dict[str, Any] | None:
        return await self.update_profile(user_id, {"role": role})

    # ── Storage ────────────────────────────────────────────────────────

    async def upload_avatar(self, filename: str, content: bytes, content_type: str) -> str:
        """Upload under a timestamped name and return the public URL."""
        ext = os.path.splitext(filename or "")[1]
        path = f"avatars/{int(time.time() * 1000)}{ext}"
        bucket = self._client.storage.from_(AVATAR_BUCKET)
        with upstream_errors("upload avatar"):
            await bucket.upload(
                path,
                content,
                {"content-type": content_type, "upsert": "true"},
            )
            url = await bucket.get_public_url(path)
        logger.info("Uploaded avatar %s (%d bytes)", path, len(content))
        return url
