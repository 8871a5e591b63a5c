"""Outcome taxonomy for the assistant command pipeline.

Every request ends in exactly one ``Outcome``. Each outcome belongs to one
``StatusClass``, and the transport maps a status class to an HTTP status.
"""

from enum import Enum
from typing import Any


class StatusClass(str, Enum):
    """Transport-level class of a terminal outcome."""

    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    UPSTREAM_FAILURE = "upstream_failure"
    SERVER_ERROR = "server_error"


class Outcome(str, Enum):
    """Terminal outcome of one pipeline run."""

    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"
    UPSTREAM_INVALID = "upstream_invalid"
    PARSE_FAILURE = "parse_failure"
    UNRECOGNIZED_INTENT = "unrecognized_intent"
    INTERNAL_ERROR = "internal_error"


OUTCOME_STATUS_CLASSES: dict[Outcome, StatusClass] = {
    Outcome.SUCCESS: StatusClass.SUCCESS,
    Outcome.UNAUTHORIZED: StatusClass.UNAUTHORIZED,
    Outcome.VALIDATION_ERROR: StatusClass.CLIENT_ERROR,
    Outcome.NOT_FOUND: StatusClass.NOT_FOUND,
    Outcome.STORAGE_ERROR: StatusClass.SERVER_ERROR,
    Outcome.UPSTREAM_INVALID: StatusClass.UPSTREAM_FAILURE,
    Outcome.PARSE_FAILURE: StatusClass.CLIENT_ERROR,
    Outcome.UNRECOGNIZED_INTENT: StatusClass.CLIENT_ERROR,
    Outcome.INTERNAL_ERROR: StatusClass.SERVER_ERROR,
}

HTTP_STATUS_CODES: dict[StatusClass, int] = {
    StatusClass.SUCCESS: 200,
    StatusClass.CLIENT_ERROR: 400,
    StatusClass.UNAUTHORIZED: 401,
    StatusClass.NOT_FOUND: 404,
    StatusClass.UPSTREAM_FAILURE: 502,
    StatusClass.SERVER_ERROR: 500,
}


def status_class_for(outcome: Outcome) -> StatusClass:
    """Return the status class an outcome is reported under."""
    return OUTCOME_STATUS_CLASSES[outcome]


def http_status_for(status_class: StatusClass) -> int:
    """Return the HTTP status code for a status class."""
    return HTTP_STATUS_CODES[status_class]


class AssistantError(Exception):
    """Base class for terminal pipeline failures.

    Attributes:
        outcome: The failure kind
        message: Caller-facing message (safe to return to clients)
        details: Extra caller-facing fields merged into the response body
    """

    outcome: Outcome = Outcome.INTERNAL_ERROR
    default_message: str = "Ask assistant failed"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def status_class(self) -> StatusClass:
        return status_class_for(self.outcome)


class UnauthorizedError(AssistantError):
    outcome = Outcome.UNAUTHORIZED
    default_message = "Unauthorized"


class CommandValidationError(AssistantError):
    outcome = Outcome.VALIDATION_ERROR
    default_message = "Missing command"


class UserNotFoundError(AssistantError):
    outcome = Outcome.NOT_FOUND
    default_message = "User not found"


class StorageError(AssistantError):
    outcome = Outcome.STORAGE_ERROR
    default_message = "Failed to save command history"


class UpstreamInvalidError(AssistantError):
    outcome = Outcome.UPSTREAM_INVALID
    default_message = "Assistant returned invalid response"


class ResponseParseError(AssistantError):
    """The model replied, but no usable payload could be extracted.

    ``raw`` carries a bounded excerpt of the model text.
    """

    outcome = Outcome.PARSE_FAILURE
    default_message = "Could not parse assistant response"


class UnrecognizedIntentError(AssistantError):
    """The payload parsed, but its ``type`` has no routing strategy."""

    outcome = Outcome.UNRECOGNIZED_INTENT
    default_message = "Unrecognized assistant command type"

    def __init__(self, intent_type: str, response_text: str = "") -> None:
        super().__init__(type=intent_type, response=response_text)
        self.intent_type = intent_type
        self.response_text = response_text


class InternalError(AssistantError):
    outcome = Outcome.INTERNAL_ERROR
    default_message = "Ask assistant failed"
