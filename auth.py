from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from config import Config
from errors import AuthenticationError, ConfigurationError
from logging_config import log_security_event

BEARER_PREFIX = "Bearer "

authorization_header = APIKeyHeader(
    name="Authorization",
    auto_error=False
)


def create_access_token(user_id: str, now: Optional[datetime] = None) -> str:
    """Sign a token carrying the user id under both `id` and `userId`."""
    secret = Config.JWT_SECRET
    if not secret:
        raise ConfigurationError()
    issued = now or datetime.now(timezone.utc)
    to_encode = {
        "id": user_id,
        "userId": user_id,
        "iat": issued,
        "exp": issued + Config.token_lifetime(),
    }
    return jwt.encode(to_encode, secret, algorithm=Config.JWT_ALGORITHM)


def extract_bearer_token(header: Optional[str]) -> str:
    if not header or not header.startswith(BEARER_PREFIX):
        raise AuthenticationError("Access denied. Invalid authorization header format.")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Access denied. No token provided.")
    return token


def decode_token(token: str) -> dict:
    """Verify signature and expiry and return the claims.

    Raises ConfigurationError when no signing secret is configured and
    AuthenticationError for every token problem.
    """
    secret = Config.JWT_SECRET
    if not secret:
        raise ConfigurationError()
    try:
        payload = jwt.decode(token, secret, algorithms=[Config.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired. Please login again.")
    except JWTClaimsError:
        raise AuthenticationError("Token verification failed.")
    except JWTError:
        raise AuthenticationError("Invalid token format.")
    if not (payload.get("id") or payload.get("userId")):
        raise AuthenticationError("Invalid token payload.")
    return payload


def identity_user_id(identity: dict) -> str:
    return identity.get("userId") or identity.get("id")


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def get_current_user(
    request: Request,
    header: Optional[str] = Depends(authorization_header)
) -> dict:
    details = {"url": request.url.path, "method": request.method}
    token = extract_bearer_token(header)
    try:
        identity = decode_token(token)
    except ConfigurationError:
        log_security_event("Missing JWT_SECRET", _client_ip(request), **details)
        raise
    except AuthenticationError as exc:
        log_security_event(exc.message.rstrip("."), _client_ip(request), **details)
        raise

    request.state.user = identity
    return identity


def optional_identity(header: Optional[str]) -> Optional[dict]:
    """Same checks as get_current_user, but None instead of an error."""
    try:
        return decode_token(extract_bearer_token(header))
    except (AuthenticationError, ConfigurationError):
        return None


async def get_optional_user(
    request: Request,
    header: Optional[str] = Depends(authorization_header)
) -> Optional[dict]:
    identity = optional_identity(header)
    if identity is not None:
        request.state.user = identity
    return identity
