"""
Rate Limiting for the SEIO API
==============================
Implements rate limiting using slowapi. Storage defaults to in-process memory
and can point at any limits-compatible backend via RATE_LIMIT_STORAGE_URI.

Special endpoints have their own limits:
- /auth/login: 10 req/min (brute force protection)
- /auth/register: 5 req/min
- /auth/forgot-password: 3 req/min
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import logger


LOGIN_LIMIT = "10/minute"
REGISTER_LIMIT = "5/minute"
PASSWORD_RESET_LIMIT = "3/minute"


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key.

    Authenticated requests are keyed by user ID (set on request.state by the
    auth dependency), anonymous ones by client IP.
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON body with a Retry-After header.
    """
    retry_after = "60"

    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "detail": "Too many requests. Please slow down.",
            "limit": str(exc.detail),
            "retry_after_seconds": int(retry_after),
        },
        headers={
            "Retry-After": retry_after,
        }
    )
