import logging
from datetime import UTC, datetime
from typing import Annotated, Any

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, Response, status

from app.config import ENVIRONMENT, JWT_EXPIRY_DAYS
from app.services.email import Mailer
from app.services.identity import IdentityService, decode_session_token
from app.services.otp import OtpService
from app.services.supabase_client import KasRepository, get_supabase

logger = logging.getLogger(__name__)


# ── Collaborators ──────────────────────────────────────────────────────────


def get_repository() -> KasRepository:
    return KasRepository(get_supabase())


def get_identity() -> IdentityService:
    return IdentityService(get_supabase())


def get_mailer() -> Mailer:
    return Mailer()


def get_otp_service(
    identity: Annotated[IdentityService, Depends(get_identity)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> OtpService:
    return OtpService(identity, mailer)


Repository = Annotated[KasRepository, Depends(get_repository)]
Identity = Annotated[IdentityService, Depends(get_identity)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
Otp = Annotated[OtpService, Depends(get_otp_service)]


# ── JWT / Session ──────────────────────────────────────────────────────────


def create_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key="session",
        value=token,
        httponly=True,
        samesite="lax",
        secure=ENVIRONMENT == "production",
        max_age=JWT_EXPIRY_DAYS * 86400,
    )


def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def get_current_user(
    session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    token = session or _bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Please log in via /auth/verify-otp",
        )

    try:
        payload = decode_session_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
        ) from None
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session. Please log in again.",
        ) from None

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload.",
        )

    return {
        "id": payload["sub"],
        "email": payload.get("email"),
        "issued_at": datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
    }


CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]
