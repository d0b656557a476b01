"""
Email service: sends OTP codes and admin notifications via SMTP.

Without SMTP settings (local development) the message is logged instead
of sent, so the OTP can be read from the server output.

OTP mail is on the critical path: a failed send raises MailDispatchFailed.
Admin notifications are best-effort: failures are logged and dropped.
"""

from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

import aiosmtplib

from app.config import (
    ADMIN_EMAIL,
    SMTP_FROM_EMAIL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
    smtp_enabled,
)
from app.errors import MailDispatchFailed

logger = logging.getLogger(__name__)

SENDER_NAME = "Kas App"


def _build_otp_html(code: str, ttl_minutes: int) -> str:
    return f"""
    <html>
    <body style="font-family:sans-serif;color:#333">
      <h2>Kode OTP Kas App</h2>
      <p>Gunakan kode berikut untuk masuk atau mendaftar:</p>
      <div style="background:#f0f0f0;padding:15px;text-align:center;
                  font-size:24px;font-weight:bold;letter-spacing:5px">
        {code}
      </div>
      <p>Kode berlaku selama {ttl_minutes} menit dan hanya bisa dipakai sekali.</p>
      <p style="font-size:0.9em;color:#888">
        Abaikan email ini jika kamu tidak meminta kode.
      </p>
    </body>
    </html>
    """


def _build_admin_request_html(data: dict[str, Any]) -> str:
    return f"""
    <p>Hai Admin,</p>
    <p>Ada <b>pengajuan admin</b> baru:</p>
    <ul>
      <li>request_id: <code>{data.get("request_id")}</code></li>
      <li>user_id: <code>{data.get("user_id")}</code></li>
      <li>kelas_id: <code>{data.get("kelas_id")}</code></li>
      <li>status: <b>{data.get("status")}</b></li>
      <li>waktu: {data.get("created_at")}</li>
    </ul>
    <p>Silakan approve/reject lewat panel admin kamu.</p>
    """


class Mailer:
    """Sends transactional email through SMTP (or the console in dev mode)."""

    async def send(self, to_email: str, subject: str, html_body: str, plain: str = "") -> None:
        """
        Send one message. Raises MailDispatchFailed if the SMTP exchange fails.
        """
        # ── Console fallback (dev mode) ───────────────────────────────
        if not smtp_enabled():
            logger.info(
                "📧 [DEV] Would send email to %s:\n  Subject: %s\n%s",
                to_email,
                subject,
                plain or html_body,
            )
            return

        # ── Real SMTP send ────────────────────────────────────────────
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"{SENDER_NAME}" <{SMTP_FROM_EMAIL}>'
        msg["To"] = to_email
        if plain:
            msg.attach(MIMEText(plain, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=SMTP_HOST,
                port=SMTP_PORT,
                username=SMTP_USERNAME,
                password=SMTP_PASSWORD,
                start_tls=SMTP_USE_TLS,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.exception("Failed to send email to %s", to_email)
            raise MailDispatchFailed() from exc
        logger.info("Email sent to %s (%s)", to_email, subject)

    async def send_otp(self, to_email: str, code: str, ttl_seconds: int) -> None:
        ttl_minutes = max(1, ttl_seconds // 60)
        plain = (
            f"Kode OTP kamu: {code}\n"
            f"Berlaku {ttl_minutes} menit dan hanya bisa dipakai sekali."
        )
        await self.send(
            to_email,
            "Kode OTP Kas App",
            _build_otp_html(code, ttl_minutes),
            plain,
        )

    async def notify_admin_request(self, data: dict[str, Any]) -> bool:
        """Tell the admin about a new admin request. Never raises."""
        if not ADMIN_EMAIL:
            logger.debug("ADMIN_EMAIL not set, skipping admin notification")
            return False
        try:
            await self.send(ADMIN_EMAIL, "Pengajuan Admin Baru", _build_admin_request_html(data))
        except MailDispatchFailed:
            logger.warning("Admin notification for request %s not sent", data.get("request_id"))
            return False
        return True
