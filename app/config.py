"""
Settings for the kas backend, read once from the environment at import.

Defaults target local development; a ``.env`` next to the project root
is honoured when present.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# .env must be loaded before the getenv calls below
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
SERVICE_NAME: str = "kas-backend"

CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file (OTP codes live here, everything else in Supabase)
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "kas_backend.db"))

# ── Supabase ──────────────────────────────────────────────────────────────

SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
AVATAR_BUCKET: str = os.getenv("AVATAR_BUCKET", "avatars")


def supabase_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)


# ── JWT ───────────────────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRY_DAYS: int = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

# ── OTP ───────────────────────────────────────────────────────────────────

OTP_TTL_SECONDS: int = int(os.getenv("OTP_TTL_SECONDS", "300"))

# ── Rate limits (slowapi / limits notation) ───────────────────────────────

RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_GENERAL: str = os.getenv("RATE_LIMIT_GENERAL", "100/15 minutes")
RATE_LIMIT_OTP: str = os.getenv("RATE_LIMIT_OTP", "3/5 minutes")

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", SMTP_USERNAME or "noreply@kas.local")
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Recipient of "new admin request" notifications. Empty disables them.
ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "")

# "auto" | "true" | "false"; "false" keeps mail on the console even with credentials
SMTP_MODE: str = os.getenv("SMTP_ENABLED", "auto").strip().lower()


def smtp_enabled() -> bool:
    """Whether mail goes out over SMTP rather than to the log.

    In ``auto`` mode that depends on host and credentials being set;
    ``true`` forces SMTP and will fail at send time if they are missing.
    """
    if SMTP_MODE in ("true", "false"):
        return SMTP_MODE == "true"
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)
