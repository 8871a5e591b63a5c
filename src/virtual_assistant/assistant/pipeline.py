"""Command pipeline for the conversational assistant.

One call to ``CommandPipeline.handle_command`` runs, in order:

1. authorization (a user id must be present)
2. input validation (non-empty command)
3. user lookup
4. history append (durable before the model is called)
5. model invocation
6. response parsing
7. intent routing

Each stage can end the request. Failures are never recovered mid-stream; the
first one becomes the single terminal ``PipelineResult``.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from typing import Any, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from virtual_assistant.db.users import User
from virtual_assistant.llm.provider import LLMProvider, LLMProviderError
from virtual_assistant.logging_utils import log_error, log_info, log_warning

from .errors import (
    AssistantError,
    CommandValidationError,
    InternalError,
    Outcome,
    ResponseParseError,
    StatusClass,
    UnauthorizedError,
    UpstreamInvalidError,
    UserNotFoundError,
    status_class_for,
)
from .history import HistoryStore
from .response_parser import ParseFailure, parse_model_response
from .router import IntentRouter, RoutingResult

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "User"
DEFAULT_ASSISTANT_NAME = "Assistant"

Clock = Callable[[], datetime]


class UserRepository(Protocol):
    def get_by_id(self, user_id: str) -> User | None: ...

    def save_history(self, user: User) -> None: ...


def get_assistant_timezone() -> tzinfo | None:
    """Get the timezone for computed intents from ASSISTANT_TIMEZONE.

    Returns None (server local time) when unset or unknown.
    """
    name = os.getenv("ASSISTANT_TIMEZONE")
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown ASSISTANT_TIMEZONE=%r, using server local time", name)
        return None


def system_clock() -> datetime:
    """Current time in the configured assistant timezone (local time by default)."""
    tz = get_assistant_timezone()
    if tz is None:
        return datetime.now(UTC).astimezone()
    return datetime.now(tz)


@dataclass
class PipelineResult:
    """Terminal result of one command."""

    outcome: Outcome
    message: str | None = None
    body: dict[str, Any] = field(default_factory=dict)
    intent_type: str | None = None

    @property
    def status_class(self) -> StatusClass:
        return status_class_for(self.outcome)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def success(cls, routed: RoutingResult) -> "PipelineResult":
        return cls(
            outcome=Outcome.SUCCESS,
            body={"success": True, **routed.to_dict()},
            intent_type=routed.type,
        )

    @classmethod
    def failure(cls, error: AssistantError) -> "PipelineResult":
        return cls(
            outcome=error.outcome,
            message=error.message,
            body={"success": False, "message": error.message, **error.details},
            intent_type=error.details.get("type"),
        )


class CommandPipeline:
    """Turn a user command into a routed assistant answer."""

    def __init__(
        self,
        repository: UserRepository,
        llm_provider: LLMProvider,
        history_store: HistoryStore | None = None,
        router: IntentRouter | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self.repository = repository
        self.llm_provider = llm_provider
        self.history_store = history_store or HistoryStore(repository)
        self.router = router or IntentRouter()
        self.clock = clock

    def handle_command(self, user_id: str | None, command_text: Any) -> PipelineResult:
        """Run the pipeline and return its single terminal result.

        Never raises: unexpected faults are logged and reported as an internal
        error without exposing their details.
        """
        try:
            routed = self._run(user_id, command_text)
        except AssistantError as e:
            log_warning(
                logger,
                "Assistant command failed",
                user_id=user_id,
                outcome=e.outcome.value,
                reason=e.message,
            )
            return PipelineResult.failure(e)
        except Exception as e:
            logger.exception("Unexpected error handling assistant command")
            log_error(logger, "Assistant command crashed", user_id=user_id, error=type(e).__name__)
            return PipelineResult.failure(InternalError())

        log_info(logger, "Assistant command routed", user_id=user_id, type=routed.type)
        return PipelineResult.success(routed)

    def _run(self, user_id: str | None, command_text: Any) -> RoutingResult:
        if not user_id:
            raise UnauthorizedError()

        if not isinstance(command_text, str) or not command_text.strip():
            raise CommandValidationError()

        user = self.repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()

        self.history_store.append(user, command_text, self.clock())

        raw_reply = self._generate(user, command_text)

        parsed = parse_model_response(raw_reply, command_text)
        if isinstance(parsed, ParseFailure):
            log_warning(
                logger,
                "Could not parse model reply",
                user_id=user_id,
                reason=parsed.reason,
                reply_length=len(raw_reply),
            )
            raise ResponseParseError(raw=parsed.raw_excerpt)

        return self.router.route(parsed, self.clock())

    def _generate(self, user: User, command_text: str) -> str:
        user_name = user.name or DEFAULT_USER_NAME
        assistant_name = user.assistant_name or DEFAULT_ASSISTANT_NAME

        try:
            raw_reply = self.llm_provider.generate(command_text, assistant_name, user_name)
        except LLMProviderError as e:
            log_warning(logger, "Model call failed", user_id=user.id, error=str(e))
            raise UpstreamInvalidError() from e

        if not isinstance(raw_reply, str) or not raw_reply:
            log_warning(
                logger,
                "Empty or invalid reply from model",
                user_id=user.id,
                reply_type=type(raw_reply).__name__,
            )
            raise UpstreamInvalidError()

        return raw_reply
