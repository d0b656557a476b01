"""
Local OTP store on SQLite (aiosqlite).

Only one-time password records are kept here; everything else the app
reads or writes lives in Supabase (see app.services.supabase_client).
The schema is applied on every connect and is idempotent.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import aiosqlite

from app.config import DB_PATH
from app.models import OtpRecord

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None


async def init_db() -> None:
    """Connect to DB_PATH and apply the schema."""
    global _db
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the connection opened by init_db, if any."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """The connection opened by init_db."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


# ── Schema ────────────────────────────────────────────────────────────────

# One row per email: issuing a new code replaces the previous one.
_SCHEMA = """
CREATE TABLE IF NOT EXISTS otp_codes (
    id          TEXT PRIMARY KEY,
    email       TEXT NOT NULL UNIQUE,
    code        TEXT NOT NULL,
    expires_at  TEXT NOT NULL,
    used        INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_otp_expires ON otp_codes(expires_at);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_otp(row: aiosqlite.Row) -> OtpRecord:
    return OtpRecord(
        id=row["id"],
        email=row["email"],
        code=row["code"],
        expires_at=datetime.fromisoformat(row["expires_at"]),
        used=bool(row["used"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# ══════════════════════════════════════════════════════════════════════════
#                         OTP REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def upsert_otp(
    email: str,
    code: str,
    *,
    ttl_seconds: int,
    now: datetime | None = None,
) -> OtpRecord:
    """
    Store a fresh code for ``email``, replacing any earlier record.

    The row gets a new id, so a verification that already looked up the old
    record can no longer mark it used.
    """
    db = get_db()
    issued_at = now or _now()
    record = OtpRecord(
        id=str(uuid4()),
        email=email,
        code=code,
        expires_at=issued_at + timedelta(seconds=ttl_seconds),
        used=False,
        created_at=issued_at,
    )

    await db.execute(
        """
        INSERT INTO otp_codes (id, email, code, expires_at, used, created_at)
        VALUES (?, ?, ?, ?, 0, ?)
        ON CONFLICT(email) DO UPDATE SET
            id = excluded.id,
            code = excluded.code,
            expires_at = excluded.expires_at,
            used = 0,
            created_at = excluded.created_at
        """,
        (
            record.id, record.email, record.code,
            record.expires_at.isoformat(), record.created_at.isoformat(),
        ),
    )
    await db.commit()
    return record


async def find_latest_unused_otp(email: str, code: str) -> OtpRecord | None:
    """Newest unused record for this email/code pair, expired or not."""
    db = get_db()
    async with db.execute(
        """
        SELECT * FROM otp_codes
        WHERE email = ? AND code = ? AND used = 0
        ORDER BY created_at DESC
        LIMIT 1
        """,
        (email, code),
    ) as cur:
        row = await cur.fetchone()
    return _row_to_otp(row) if row else None


async def get_otp(email: str) -> OtpRecord | None:
    """Current record for an email regardless of state."""
    db = get_db()
    async with db.execute(
        "SELECT * FROM otp_codes WHERE email = ?", (email,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_otp(row) if row else None


async def mark_otp_used(otp_id: str) -> bool:
    """
    Consume a code. Returns True only for the caller whose update flipped
    ``used`` from 0 to 1; every other caller gets False.
    """
    db = get_db()
    cur = await db.execute(
        "UPDATE otp_codes SET used = 1 WHERE id = ? AND used = 0", (otp_id,)
    )
    await db.commit()
    return cur.rowcount == 1


async def purge_expired_otps(before: datetime | None = None) -> int:
    """Delete records that expired before ``before`` (default: now)."""
    db = get_db()
    cutoff = (before or _now()).isoformat()
    cur = await db.execute("DELETE FROM otp_codes WHERE expires_at < ?", (cutoff,))
    await db.commit()
    if cur.rowcount:
        logger.info("Purged %d expired OTP records", cur.rowcount)
    return cur.rowcount
