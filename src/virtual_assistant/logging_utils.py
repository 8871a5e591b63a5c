"""Logging utilities with secret redaction and request context.

Provides:
- Redaction of JWTs, Google API keys and authorization values
- Structured logging helpers
- Request ID context management
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any

# Context variable for request ID (thread-safe and async-safe)
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

SECRET_PATTERNS = [
    # JSON Web Tokens (header.payload.signature, base64url)
    (
        re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),
        "jwt_***REDACTED***",
    ),
    # Google API keys
    (re.compile(r"AIza[0-9A-Za-z_-]{20,}"), "AIza***REDACTED***"),
]

# Authorization header values and key-bearing query parameters
AUTH_VALUE_PATTERN = re.compile(
    r"((?:Authorization|x-goog-api-key)[:\s]+(?:Bearer\s+)?)([^\s,;]+)",
    re.IGNORECASE,
)
KEY_PARAM_PATTERN = re.compile(r"([?&](?:key|token)=)([^&\s]+)", re.IGNORECASE)

# Client-supplied request IDs must be short tokens (no whitespace or control chars)
REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,64}")


def redact_secrets(text: str | None) -> str:
    """Redact secrets from text (tokens, API keys, auth headers).

    Args:
        text: Text that may contain secrets

    Returns:
        Text with secrets redacted
    """
    if text is None:
        return ""

    if not isinstance(text, str):
        text = str(text)

    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)

    text = AUTH_VALUE_PATTERN.sub(r"\1***REDACTED***", text)
    text = KEY_PARAM_PATTERN.sub(r"\1***REDACTED***", text)

    return text


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID; a new one is generated when it is
            missing or not a short token

    Returns:
        The request ID that was set
    """
    if request_id is None or not REQUEST_ID_PATTERN.fullmatch(request_id):
        request_id = str(uuid.uuid4())

    _request_id_var.set(request_id)
    return request_id


def get_request_id() -> str | None:
    """Get the request ID for the current context."""
    return _request_id_var.get()


def clear_request_id() -> None:
    """Clear the request ID from the current context."""
    _request_id_var.set(None)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **kwargs: Any,
) -> None:
    """Log a message with structured context (request_id, user_id, etc.).

    Values are redacted before they are written. None values are skipped.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, logging.ERROR, etc.)
        message: Log message
        **kwargs: Additional structured fields to include
    """
    parts = [message]

    request_id = get_request_id()
    if request_id:
        parts.append(f"request_id={request_id}")

    for key, value in kwargs.items():
        if value is None:
            continue
        parts.append(f"{key}={redact_secrets(str(value))}")

    logger.log(level, " | ".join(parts))


def log_info(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """Log an info message with structured context."""
    log_with_context(logger, logging.INFO, message, **kwargs)


def log_warning(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """Log a warning message with structured context."""
    log_with_context(logger, logging.WARNING, message, **kwargs)


def log_error(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    """Log an error message with structured context."""
    log_with_context(logger, logging.ERROR, message, **kwargs)
