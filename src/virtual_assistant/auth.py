"""Authentication module for the virtual assistant API.

Tokens are JWTs carrying the user's id in a ``user_id`` claim. They are issued
at signup/login as an httpOnly ``token`` cookie and are also accepted as an
``Authorization: Bearer`` header.

Modes:
- jwt mode (default): requires a valid token
- dev mode: additionally accepts an X-User-Id header (for development/testing)

Environment Variables:
    ASSISTANT_AUTH_MODE: Authentication mode (jwt|dev), defaults to "jwt"
    JWT_SECRET_KEY: Secret key for signing and validating tokens
    JWT_ALGORITHM: JWT algorithm (default: HS256)
    JWT_EXPIRES_DAYS: Token lifetime in days (default: 7)
"""

import logging
import os
import uuid
from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

TOKEN_COOKIE_NAME = "token"
DEFAULT_TOKEN_DAYS = 7

# Security scheme for JWT bearer tokens
security = HTTPBearer(auto_error=False)


def get_auth_mode() -> str:
    """Get the configured authentication mode ("jwt" or "dev")."""
    return os.getenv("ASSISTANT_AUTH_MODE", "jwt").lower()


def get_token_lifetime() -> timedelta:
    """Get the token lifetime from JWT_EXPIRES_DAYS (default: 7 days)."""
    try:
        days = int(os.getenv("JWT_EXPIRES_DAYS", str(DEFAULT_TOKEN_DAYS)))
    except ValueError:
        days = DEFAULT_TOKEN_DAYS
    return timedelta(days=days)


def _get_secret_key() -> str:
    secret_key = os.getenv("JWT_SECRET_KEY")
    if not secret_key:
        logger.error("JWT_SECRET_KEY not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication not properly configured",
        )
    return secret_key


def _get_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


def _is_uuid(value: object) -> bool:
    try:
        uuid.UUID(str(value))
    except (ValueError, AttributeError):
        return False
    return True


def create_access_token(user_id: str, now: datetime | None = None) -> str:
    """Issue a signed token for a user.

    Args:
        user_id: User ID to embed in the ``user_id`` claim
        now: Issue time (defaults to the current UTC time)

    Returns:
        Encoded JWT string
    """
    issued_at = now or datetime.now(UTC)
    payload = {
        "user_id": user_id,
        "iat": issued_at,
        "exp": issued_at + get_token_lifetime(),
    }
    return jwt.encode(payload, _get_secret_key(), algorithm=_get_algorithm())


def validate_jwt_token(token: str) -> str:
    """Validate JWT token and extract user_id.

    Args:
        token: JWT token string

    Returns:
        User ID extracted from token claims

    Raises:
        HTTPException: If token is invalid or missing required claims
    """
    secret_key = _get_secret_key()

    try:
        payload = jwt.decode(token, secret_key, algorithms=[_get_algorithm()])
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid JWT token: %s", type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired authentication token",
        ) from None

    # Try common claim names: user_id, userId, sub (subject)
    user_id = payload.get("user_id") or payload.get("userId") or payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing user_id claim")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user identifier",
        )

    if not _is_uuid(user_id):
        logger.warning("JWT token contains invalid user_id format")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: user identifier must be a valid UUID",
        )

    return str(user_id)


async def get_optional_user(
    token: Annotated[str | None, Cookie(alias=TOKEN_COOKIE_NAME)] = None,
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> str | None:
    """Resolve the current user ID, or None when the request carries no identity.

    A token that is present but invalid is still rejected with 401.

    Behavior by auth mode:
    - jwt: bearer token, else ``token`` cookie
    - dev: X-User-Id header first, then the jwt sources

    Raises:
        HTTPException: 401 for invalid tokens, 500 for an unknown auth mode
    """
    auth_mode = get_auth_mode()

    if auth_mode not in ("jwt", "dev"):
        logger.error("Unknown authentication mode: %s", auth_mode)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Invalid authentication configuration",
        )

    if auth_mode == "dev" and x_user_id:
        if _is_uuid(x_user_id):
            logger.debug("Dev mode: Using user_id from X-User-Id header: %s", x_user_id)
            return x_user_id
        logger.warning("Dev mode: Invalid X-User-Id format, ignoring header")

    raw_token = credentials.credentials if credentials and credentials.credentials else token
    if not raw_token:
        return None

    user_id = validate_jwt_token(raw_token)
    logger.debug("Authenticated user_id: %s", user_id)
    return user_id


async def get_current_user(
    user_id: Annotated[str | None, Depends(get_optional_user)],
) -> str:
    """Require an authenticated user.

    Raises:
        HTTPException: 401 if the request carries no identity
    """
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token missing",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


# Type aliases for dependency injection
CurrentUser = Annotated[str, Depends(get_current_user)]
OptionalUser = Annotated[str | None, Depends(get_optional_user)]
