"""
Rate limiting configuration using slowapi.

Two categories, both keyed on client IP:
  • general: 100 per 15 minutes, shared by every route
  • otp:     3 per 5 minutes on the OTP request endpoint (mail spam)

``general`` runs as an app-wide FastAPI dependency, so it counts every
request that reaches a route, including ones later rejected for a bad body
or a missing session. ``otp`` is a regular slowapi route decorator.

Both use the limiter's in-memory ``limits`` storage; windows are fixed and
start at the first request of the client.
"""

from fastapi import Request
from limits import parse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.config import RATE_LIMIT_ENABLED, RATE_LIMIT_GENERAL, RATE_LIMIT_OTP
from app.errors import RateLimited

GENERAL = RATE_LIMIT_GENERAL
OTP = RATE_LIMIT_OTP

OTP_MESSAGE = "Terlalu sering minta OTP, coba lagi nanti"

limiter = Limiter(
    key_func=get_remote_address,
    strategy="fixed-window",
    enabled=RATE_LIMIT_ENABLED,
)

otp_limit = limiter.limit(OTP, error_message=OTP_MESSAGE)

_general_item = parse(GENERAL)


async def enforce_general_limit(request: Request) -> None:
    """Count the request against the client's ``general`` window."""
    if not limiter.enabled:
        return
    if not limiter.limiter.hit(_general_item, get_remote_address(request), "general"):
        raise RateLimited()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render a slowapi rejection in the app's error format."""
    error = RateLimited(exc.limit.error_message if exc.limit and exc.limit.error_message else None)
    return JSONResponse(error.to_dict(), status_code=error.status_code)
