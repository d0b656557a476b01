"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • in-memory Supabase stand-ins (identity + repository, no network)
  • a recording mailer
  • a temporary SQLite database (via app lifespan)

The `client` fixture runs the full lifespan (DB init / shutdown) so that
OTP endpoints backed by SQLite work correctly in tests.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app import db
from app.dependencies import get_identity, get_mailer, get_repository
from app.main import app
from tests.mocks.models import MOCK_PROFILE
from tests.mocks.services import FakeIdentity, FakeMailer, FakeRepository


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def identity() -> FakeIdentity:
    fake = FakeIdentity()
    fake.add_profile(MOCK_PROFILE)
    return fake


@pytest.fixture()
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def _test_env(monkeypatch, tmp_path, identity, repository, mailer):
    """
    Internal fixture that points the DB at a temp file, keeps the lifespan
    away from Supabase and swaps the collaborators for in-memory fakes.
    """
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "test.db"))

    async def _no_supabase() -> None:
        return None

    monkeypatch.setattr("app.main.init_supabase", _no_supabase)

    app.dependency_overrides[get_identity] = lambda: identity
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_mailer] = lambda: mailer

    # ── Disable rate limiting in tests ────────────────────────────────
    from app.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)

    yield

    app.dependency_overrides.clear()


@pytest.fixture()
def client(_test_env) -> TestClient:
    """
    FastAPI TestClient with fake collaborators and a temp DB.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
async def otp_db(monkeypatch, tmp_path):
    """An initialised OTP database for service-level tests (no app)."""
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "otp.db"))
    await db.init_db()
    yield db
    await db.close_db()
