"""Tests for rate limiting behaviour."""

import time

import limits.storage.memory as memory_storage
import pytest
from fastapi.testclient import TestClient

from app.main import app
from tests.mocks.services import FakeClock


class TestRateLimiting:
    """Verify the otp and general windows."""

    @pytest.fixture()
    def limiter_clock(self, monkeypatch) -> FakeClock:
        """Freeze the clock the in-memory limit storage reads."""
        clock = FakeClock(time.time())
        monkeypatch.setattr(memory_storage, "time", clock)
        return clock

    @pytest.fixture()
    def limited_client(self, _test_env, limiter_clock):
        """
        TestClient with rate limiting **enabled** (unlike the default
        `client` fixture which disables it for convenience).
        """
        from app.rate_limit import limiter

        limiter.enabled = True
        # Reset in-memory state so previous tests don't pollute counts
        limiter.reset()

        with TestClient(app, raise_server_exceptions=False) as tc:
            yield tc

        limiter.enabled = False
        limiter.reset()

    def _request_otp(self, client):
        return client.post("/auth/request-otp", json={"email": "test@example.com"})

    def test_fourth_otp_request_rejected(self, limited_client):
        """POST /auth/request-otp is limited to 3 requests per 5 minutes."""
        for i in range(3):
            resp = self._request_otp(limited_client)
            assert resp.status_code == 200, f"Request {i + 1} should succeed"

        resp = self._request_otp(limited_client)
        assert resp.status_code == 429
        assert resp.json() == {
            "error": "rate_limited",
            "message": "Terlalu sering minta OTP, coba lagi nanti",
        }

    def test_rejected_request_sends_no_mail(self, limited_client, mailer):
        for _ in range(4):
            self._request_otp(limited_client)
        assert len(mailer.outbox) == 3

    def test_new_window_allows_requests_again(self, limited_client, limiter_clock):
        for _ in range(3):
            assert self._request_otp(limited_client).status_code == 200
        assert self._request_otp(limited_client).status_code == 429

        limiter_clock.advance(5 * 60 + 1)

        assert self._request_otp(limited_client).status_code == 200

    def test_still_limited_inside_window(self, limited_client, limiter_clock):
        for _ in range(3):
            self._request_otp(limited_client)

        limiter_clock.advance(4 * 60)

        assert self._request_otp(limited_client).status_code == 429

    def test_general_limit_covers_other_routes(self, limited_client):
        """Every route shares the 100 per 15 minutes budget."""
        for i in range(100):
            resp = limited_client.get("/")
            assert resp.status_code == 200, f"Request {i + 1} should not be rate-limited"

        resp = limited_client.get("/kelas")
        assert resp.status_code == 429
        assert resp.json()["error"] == "rate_limited"

    def test_otp_requests_count_toward_general_limit(self, limited_client):
        for _ in range(3):
            assert self._request_otp(limited_client).status_code == 200

        for i in range(97):
            resp = limited_client.post(
                "/auth/verify-otp",
                json={"email": "test@example.com", "otp_code": "000000"},
            )
            # 400 (wrong OTP) is fine – we just need it not to be 429 yet
            assert resp.status_code == 400, f"Request {i + 4} should not be rate-limited"

        assert limited_client.get("/").status_code == 429

    def test_general_window_resets(self, limited_client, limiter_clock):
        for _ in range(100):
            limited_client.get("/")
        assert limited_client.get("/").status_code == 429

        limiter_clock.advance(15 * 60 + 1)

        assert limited_client.get("/").status_code == 200

    def test_general_limit_spans_routers_and_rejected_requests(self, limited_client):
        """Requests that fail validation, lookup or auth still use the budget."""
        calls = [
            lambda: limited_client.get("/pemasukan"),
            lambda: limited_client.get("/admin-requests"),
            lambda: limited_client.get("/profile/nobody"),  # 404
            lambda: limited_client.post("/pengeluaran", json={}),  # 400
            lambda: limited_client.get("/auth/me"),  # 401
        ]
        for i in range(100):
            resp = calls[i % len(calls)]()
            assert resp.status_code != 429, f"Request {i + 1} should not be rate-limited"

        resp = limited_client.put("/profile/nobody", json={"absen": 1})
        assert resp.status_code == 429
        assert resp.json() == {
            "error": "rate_limited",
            "message": "Terlalu banyak request, coba lagi nanti",
        }
