"""
Error taxonomy.

Every failure a client can see is an ``AppError`` subclass carrying a
machine-readable ``code`` and an HTTP status. The handlers in ``app.main``
turn them into ``{"error": code, "message": message}`` bodies.
"""

from __future__ import annotations


class AppError(Exception):
    code = "internal_error"
    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


# ── 4xx ───────────────────────────────────────────────────────────────────


class ValidationError(AppError):
    code = "validation_error"
    status_code = 400
    default_message = "request tidak valid"


class RateLimited(AppError):
    code = "rate_limited"
    status_code = 429
    default_message = "Terlalu banyak request, coba lagi nanti"


class InvalidCode(AppError):
    """No unused code matches this email/code pair."""

    code = "invalid_code"
    status_code = 400
    default_message = "Kode OTP salah"


class ExpiredCode(AppError):
    code = "expired_code"
    status_code = 400
    default_message = "Kode OTP kedaluwarsa, minta kode baru"


class AlreadyUsed(AppError):
    """Lost the race to consume a code."""

    code = "already_used"
    status_code = 400
    default_message = "Kode OTP sudah dipakai"


class AccountNotFound(AppError):
    code = "account_not_found"
    status_code = 404
    default_message = "Akun tidak ditemukan, silakan registrasi"


class UpstreamError(AppError):
    """Supabase rejected a request (constraint, auth or storage error)."""

    code = "upstream_error"
    status_code = 400
    default_message = "request ditolak"


# ── 5xx ───────────────────────────────────────────────────────────────────


class ProvisioningFailed(AppError):
    code = "provisioning_failed"
    status_code = 500
    default_message = "Gagal membuat akun atau sesi"


class MailDispatchFailed(AppError):
    code = "mail_dispatch_failed"
    status_code = 500
    default_message = "Gagal mengirim email"


class StoreUnavailable(AppError):
    code = "store_unavailable"
    status_code = 500
    default_message = "Penyimpanan tidak tersedia"
