"""
Fixed-window request limits, one counter per route group.

- api: every /api route (100 per 15 minutes)
- auth: login and logout (5 per 15 minutes)
- create: POST routes that create resources (10 per minute)

Counters are keyed by the user id of a valid bearer token, otherwise by the
client address. Limits are raised far out of the way when ENVIRONMENT=test.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from auth import identity_user_id, optional_identity
from config import Config

logger = logging.getLogger(__name__)


def get_client_key(request: Request) -> str:
    identity = optional_identity(request.headers.get("Authorization"))
    if identity:
        return f"user:{identity_user_id(identity)}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_key,
    storage_uri="memory://",
    strategy="fixed-window",
)

api_limit = limiter.shared_limit(
    Config.API_RATE_LIMIT,
    scope="api",
    error_message="Too many requests from this IP, please try again later.",
)

auth_limit = limiter.shared_limit(
    Config.AUTH_RATE_LIMIT,
    scope="auth",
    error_message="Too many authentication attempts, please try again later.",
)

create_limit = limiter.shared_limit(
    Config.CREATE_RATE_LIMIT,
    scope="create",
    error_message="Too many create requests, please try again later.",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded for {get_client_key(request)}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={"success": False, "error": exc.detail},
    )
