"""
Authentication endpoints – email OTP flow plus the password register/login
pass-throughs to Supabase auth.
"""

from typing import Any, Dict, Union

from fastapi import APIRouter, Request, Response

from app.dependencies import CurrentUser, Identity, Otp, create_session_cookie
from app.errors import ValidationError
from app.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OtpRequest,
    OtpVerifyRequest,
    RegisterRequest,
    Registration,
    RegistrationResponse,
)
from app.rate_limit import otp_limit

router = APIRouter(tags=["auth"])


@router.post(
    "/auth/request-otp",
    response_model=MessageResponse,
    operation_id="requestOtp",
    summary="Send a one-time password to the given email",
)
@otp_limit
async def request_otp(request: Request, body: OtpRequest, otp: Otp) -> MessageResponse:
    """
    Generate a 6-digit OTP, store it (replacing any earlier code for this
    email) and send it by email. The code itself is never returned.
    """
    await otp.request_otp(body.email)
    return MessageResponse(message="OTP terkirim")


@router.post(
    "/auth/verify-otp",
    response_model=Union[RegistrationResponse, LoginResponse],
    operation_id="verifyOtp",
    summary="Verify an OTP, then register or log in",
)
async def verify_otp(
    body: OtpVerifyRequest, response: Response, otp: Otp
) -> Union[RegistrationResponse, LoginResponse]:
    """
    With ``full_name``/``password`` the verified email gets a new account and
    profile. Without them the existing account is logged in and a session
    JWT is returned (and set as the ``session`` cookie).
    """
    registration = None
    if body.is_registration:
        if not body.full_name:
            raise ValidationError("full_name wajib untuk registrasi")
        registration = Registration(
            full_name=body.full_name,
            password=body.password,
            kelas_id=body.kelas_id,
            absen=body.absen,
        )

    result = await otp.verify_otp(body.email, body.otp_code, registration)
    if isinstance(result, LoginResponse):
        create_session_cookie(response, result.access_token)
    return result


@router.get(
    "/auth/me",
    operation_id="getMe",
    summary="Claims of the current session",
)
async def get_me(current_user: CurrentUser) -> Dict[str, Any]:
    return current_user


@router.post(
    "/auth/logout",
    response_model=MessageResponse,
    operation_id="logout",
    summary="Clear the session cookie",
)
async def logout(current_user: CurrentUser, response: Response) -> MessageResponse:
    response.delete_cookie("session")
    return MessageResponse(message="logout ok")


# ── Password flow (Supabase auth) ─────────────────────────────────────────


@router.post(
    "/register",
    response_model=RegistrationResponse,
    operation_id="register",
    summary="Create an account with a password",
)
async def register(body: RegisterRequest, identity: Identity) -> RegistrationResponse:
    user_id = await identity.create_account(body.email, body.password)
    await identity.upsert_profile(
        user_id,
        {
            "email": body.email,
            "full_name": body.full_name,
            "kelas_id": body.kelas_id,
            "absen": body.absen,
        },
    )
    return RegistrationResponse(message="register ok", user_id=user_id)


@router.post(
    "/login",
    operation_id="login",
    summary="Password login; returns the Supabase session",
)
async def login(body: LoginRequest, identity: Identity) -> Dict[str, Any]:
    return await identity.sign_in_with_password(body.email, body.password)
