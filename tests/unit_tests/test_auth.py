"""Tests for the /auth endpoints and the password register/login routes."""

from datetime import datetime, timedelta, timezone

import pytest

from app.dependencies import get_otp_service
from app.main import app
from app.services.otp import OtpService
from tests.mocks.models import MOCK_PROFILE


class _Clock:
    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def clock(_test_env, identity, mailer) -> _Clock:
    """Drive OTP expiry from the test instead of the wall clock."""
    clock = _Clock()
    app.dependency_overrides[get_otp_service] = lambda: OtpService(
        identity, mailer, ttl_seconds=300, clock=clock
    )
    return clock


def _request_code(client, mailer, email: str) -> str:
    resp = client.post("/auth/request-otp", json={"email": email})
    assert resp.status_code == 200
    return mailer.last_code(email)


class TestRequestOtp:
    def test_request_otp_success(self, client, mailer):
        resp = client.post("/auth/request-otp", json={"email": "test@example.com"})
        assert resp.status_code == 200
        assert resp.json() == {"message": "OTP terkirim"}
        assert mailer.outbox[-1]["to"] == "test@example.com"

    def test_response_does_not_leak_code(self, client, mailer):
        resp = client.post("/auth/request-otp", json={"email": "test@example.com"})
        assert mailer.last_code("test@example.com") not in resp.text

    def test_no_format_validation(self, client):
        resp = client.post("/auth/request-otp", json={"email": "not-an-email"})
        assert resp.status_code == 200

    @pytest.mark.parametrize("payload", [{}, {"email": ""}])
    def test_missing_email(self, client, payload):
        resp = client.post("/auth/request-otp", json=payload)
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_mail_failure_is_500(self, client, mailer):
        mailer.fail = True
        resp = client.post("/auth/request-otp", json={"email": "test@example.com"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "mail_dispatch_failed"


class TestVerifyOtpLogin:
    def test_login_returns_token_and_sets_cookie(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])

        resp = client.post(
            "/auth/verify-otp",
            json={"email": MOCK_PROFILE["email"], "otp_code": code},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "login ok"
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["id"] == MOCK_PROFILE["id"]
        assert "session" in resp.cookies

    def test_code_cannot_be_reused(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])
        body = {"email": MOCK_PROFILE["email"], "otp_code": code}

        assert client.post("/auth/verify-otp", json=body).status_code == 200

        resp = client.post("/auth/verify-otp", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_code"

    def test_wrong_code(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])
        wrong = "100000" if code != "100000" else "100001"

        resp = client.post(
            "/auth/verify-otp",
            json={"email": MOCK_PROFILE["email"], "otp_code": wrong},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_code"

    def test_unknown_email_indistinguishable_from_wrong_code(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])
        wrong = "100000" if code != "100000" else "100001"

        known = client.post(
            "/auth/verify-otp", json={"email": MOCK_PROFILE["email"], "otp_code": wrong}
        )
        unknown = client.post(
            "/auth/verify-otp", json={"email": "ghost@example.com", "otp_code": wrong}
        )
        assert known.status_code == unknown.status_code == 400
        assert known.json() == unknown.json()

    def test_expired_after_six_minutes(self, client, mailer, clock):
        code = _request_code(client, mailer, "a@example.com")
        clock.now += timedelta(minutes=6)

        resp = client.post("/auth/verify-otp", json={"email": "a@example.com", "otp_code": code})
        assert resp.status_code == 400
        assert resp.json()["error"] == "expired_code"

    def test_login_without_account(self, client, mailer):
        code = _request_code(client, mailer, "new@example.com")

        resp = client.post("/auth/verify-otp", json={"email": "new@example.com", "otp_code": code})
        assert resp.status_code == 404
        assert resp.json()["error"] == "account_not_found"

    def test_missing_code(self, client):
        resp = client.post("/auth/verify-otp", json={"email": "a@example.com"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"


class TestVerifyOtpRegistration:
    def test_register_creates_profile_with_user_role(self, client, mailer, identity):
        code = _request_code(client, mailer, "budi@example.com")

        resp = client.post(
            "/auth/verify-otp",
            json={
                "email": "budi@example.com",
                "otp_code": code,
                "full_name": "Budi",
                "password": "x",
                "kelas_id": 1,
                "absen": 7,
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "register ok"
        profile = identity.profiles[data["user_id"]]
        assert profile["role"] == "user"
        assert profile["full_name"] == "Budi"
        assert profile["kelas_id"] == 1
        assert profile["absen"] == 7

    def test_password_without_name_rejected_before_consuming(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])

        resp = client.post(
            "/auth/verify-otp",
            json={"email": MOCK_PROFILE["email"], "otp_code": code, "password": "x"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

        # the code is still usable for a plain login
        resp = client.post(
            "/auth/verify-otp", json={"email": MOCK_PROFILE["email"], "otp_code": code}
        )
        assert resp.status_code == 200

    def test_provisioning_failure_is_500(self, client, mailer, identity):
        identity.fail_profile = True
        code = _request_code(client, mailer, "budi@example.com")

        resp = client.post(
            "/auth/verify-otp",
            json={"email": "budi@example.com", "otp_code": code, "full_name": "Budi"},
        )
        assert resp.status_code == 500
        assert resp.json()["error"] == "provisioning_failed"

    def test_fresh_code_can_register_after_profile_failure(self, client, mailer, identity):
        identity.fail_profile = True
        code = _request_code(client, mailer, "budi@example.com")
        client.post(
            "/auth/verify-otp",
            json={"email": "budi@example.com", "otp_code": code, "full_name": "Budi"},
        )

        identity.fail_profile = False
        code = _request_code(client, mailer, "budi@example.com")
        resp = client.post(
            "/auth/verify-otp",
            json={"email": "budi@example.com", "otp_code": code, "full_name": "Budi"},
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "register ok"


class TestSession:
    def test_me_after_otp_login(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])
        client.post("/auth/verify-otp", json={"email": MOCK_PROFILE["email"], "otp_code": code})

        resp = client.get("/auth/me")
        assert resp.status_code == 200
        assert resp.json()["id"] == MOCK_PROFILE["id"]
        assert resp.json()["email"] == MOCK_PROFILE["email"]

    def test_me_with_bearer_token(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])
        token = client.post(
            "/auth/verify-otp", json={"email": MOCK_PROFILE["email"], "otp_code": code}
        ).json()["access_token"]
        client.cookies.clear()

        resp = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["id"] == MOCK_PROFILE["id"]

    def test_me_unauthenticated(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"

    def test_me_with_garbage_token(self, client):
        resp = client.get("/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_logout_clears_session_cookie(self, client, mailer):
        code = _request_code(client, mailer, MOCK_PROFILE["email"])
        client.post("/auth/verify-otp", json={"email": MOCK_PROFILE["email"], "otp_code": code})

        resp = client.post("/auth/logout")
        assert resp.status_code == 200
        assert resp.json() == {"message": "logout ok"}
        set_cookie = resp.headers["set-cookie"]
        assert set_cookie.startswith("session=")
        assert "Max-Age=0" in set_cookie

    def test_logout_requires_session(self, client):
        resp = client.post("/auth/logout")
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"


class TestPasswordFlow:
    def test_register_then_login(self, client, identity):
        resp = client.post(
            "/register",
            json={"email": "dewi@example.com", "password": "rahasia", "full_name": "Dewi"},
        )
        assert resp.status_code == 200
        user_id = resp.json()["user_id"]
        assert identity.profiles[user_id]["role"] == "user"

        resp = client.post("/login", json={"email": "dewi@example.com", "password": "rahasia"})
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == user_id
        assert resp.json()["session"]["access_token"]

    def test_register_requires_fields(self, client):
        resp = client.post("/register", json={"email": "dewi@example.com"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_register_duplicate_reports_provider_message(self, client):
        resp = client.post(
            "/register",
            json={"email": MOCK_PROFILE["email"], "password": "x", "full_name": "Siti"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "upstream_error"
        assert "already been registered" in resp.json()["message"]

    def test_login_bad_password(self, client):
        resp = client.post("/login", json={"email": "dewi@example.com", "password": "salah"})
        assert resp.status_code == 400
