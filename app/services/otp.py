"""
One-time password issuance and verification.

Lifecycle of a record (one per email, see app.db):

    Created ──verify ok──▶ Verified   (used = 1, terminal)
       │
       └──now > expires_at──▶ Expired (inert, terminal)

Issuing a new code for an email replaces the previous record, so an older
code stops working as soon as a new one is requested.

A code is consumed *before* the account/session step runs and is never
given back, even if that step fails: each code redeems at most once.
A registration whose profile write fails deletes the auth user it just
created, so a fresh code can register the same email again.
"""

from __future__ import annotations

import logging
import secrets
import sqlite3
from collections.abc import Callable
from datetime import datetime, timezone

from app import db
from app.config import OTP_TTL_SECONDS
from app.errors import (
    AccountNotFound,
    AlreadyUsed,
    ExpiredCode,
    InvalidCode,
    ProvisioningFailed,
    StoreUnavailable,
    UpstreamError,
)
from app.models import LoginResponse, OtpRecord, Registration, RegistrationResponse
from app.services.email import Mailer
from app.services.identity import IdentityService

logger = logging.getLogger(__name__)

CODE_MIN = 100_000
CODE_MAX = 999_999

# Identity collaborator failures, rejected or unreachable
IDENTITY_ERRORS = (UpstreamError, StoreUnavailable)


def generate_code() -> str:
    """Uniformly random 6-digit code in 100000..999999."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OtpService:
    def __init__(
        self,
        identity: IdentityService,
        mailer: Mailer,
        *,
        ttl_seconds: int = OTP_TTL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._identity = identity
        self._mailer = mailer
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    # ── Issuance ───────────────────────────────────────────────────────

    async def request_otp(self, email: str) -> OtpRecord:
        """
        Issue a code for ``email`` and mail it.

        The stored record is returned for callers inside the process; it
        must never be echoed to the client.
        """
        code = generate_code()
        try:
            record = await db.upsert_otp(
                email, code, ttl_seconds=self._ttl_seconds, now=self._clock()
            )
        except sqlite3.Error as exc:
            logger.exception("Could not store OTP for %s", email)
            raise StoreUnavailable() from exc

        # Mail failures propagate; the stored code stays redeemable.
        await self._mailer.send_otp(email, code, self._ttl_seconds)
        logger.info("OTP issued for %s, expires %s", email, record.expires_at.isoformat())
        return record

    # ── Verification ───────────────────────────────────────────────────

    async def verify_otp(
        self,
        email: str,
        code: str,
        registration: Registration | None = None,
    ) -> RegistrationResponse | LoginResponse:
        await self._consume(email, code)

        if registration is not None:
            return await self._register(email, registration)
        return await self._login(email)

    async def _consume(self, email: str, code: str) -> OtpRecord:
        try:
            record = await db.find_latest_unused_otp(email, code)
            if record is None:
                # Same answer for unknown email and wrong code.
                raise InvalidCode()

            if record.is_expired(self._clock()):
                raise ExpiredCode()

            if not await db.mark_otp_used(record.id):
                logger.info("OTP for %s consumed by a concurrent request", email)
                raise AlreadyUsed()
        except sqlite3.Error as exc:
            logger.exception("OTP store failed while verifying %s", email)
            raise StoreUnavailable() from exc
        return record

    async def _register(self, email: str, registration: Registration) -> RegistrationResponse:
        try:
            account_id = await self._identity.create_account(email, registration.password)
        except IDENTITY_ERRORS as exc:
            raise ProvisioningFailed(f"Registrasi gagal: {exc.message}") from exc

        try:
            await self._identity.upsert_profile(
                account_id,
                {
                    "email": email,
                    "full_name": registration.full_name,
                    "kelas_id": registration.kelas_id,
                    "absen": registration.absen,
                },
            )
        except IDENTITY_ERRORS as exc:
            # An auth user without a profile would lock the email out; remove it.
            await self._discard_account(account_id)
            raise ProvisioningFailed(f"Registrasi gagal: {exc.message}") from exc

        logger.info("Registered %s via OTP as %s", email, account_id)
        return RegistrationResponse(message="register ok", user_id=account_id)

    async def _discard_account(self, account_id: str) -> None:
        try:
            await self._identity.delete_account(account_id)
        except IDENTITY_ERRORS:
            logger.exception("Could not remove auth user %s after a failed profile write", account_id)

    async def _login(self, email: str) -> LoginResponse:
        try:
            account = await self._identity.find_account_by_email(email)
        except IDENTITY_ERRORS as exc:
            raise ProvisioningFailed(f"Login gagal: {exc.message}") from exc
        if account is None:
            raise AccountNotFound()

        token = self._identity.create_session(account)
        logger.info("OTP login for %s", email)
        return LoginResponse(message="login ok", access_token=token, user=account)
