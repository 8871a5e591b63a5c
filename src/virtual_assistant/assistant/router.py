"""Intent router: map a parsed intent type to a response strategy."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .errors import UnrecognizedIntentError
from .response_parser import ParsedIntent

logger = logging.getLogger(__name__)

# Fixed English names, independent of the process locale
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass
class RoutingResult:
    """Routed answer for one command."""

    type: str
    user_input: str
    response: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "userInput": self.user_input,
            "response": self.response,
        }


def format_date(now: datetime) -> str:
    return f"current date is {now:%Y-%m-%d}"


def format_time(now: datetime) -> str:
    # 12-hour clock, zero padded: "03:05 PM"
    hour = now.hour % 12 or 12
    marker = "AM" if now.hour < 12 else "PM"
    return f"current time is {hour:02d}:{now.minute:02d} {marker}"


def format_day(now: datetime) -> str:
    return f"today is {WEEKDAY_NAMES[now.weekday()]}"


def format_month(now: datetime) -> str:
    return f"this month is {MONTH_NAMES[now.month - 1]}"


class IntentRouter:
    """Dispatch parsed intents by ``type``.

    Computed intents (date, time, day, month) are answered from the clock;
    pass-through intents forward the model's response text unchanged and leave
    acting on ``type`` to the client. Anything else is rejected.
    """

    COMPUTED_INTENTS: dict[str, Callable[[datetime], str]] = {
        "get-date": format_date,
        "get-time": format_time,
        "get-day": format_day,
        "get-month": format_month,
    }

    PASS_THROUGH_INTENTS = frozenset(
        {
            "google-search",
            "youtube-search",
            "youtube-play",
            "general",
            "calculator-open",
            "instagram-open",
            "facebook-open",
            "weather-show",
        }
    )

    def is_known(self, intent_type: str) -> bool:
        return intent_type in self.COMPUTED_INTENTS or intent_type in self.PASS_THROUGH_INTENTS

    def route(self, intent: ParsedIntent, now: datetime) -> RoutingResult:
        """Produce the response for ``intent``.

        Args:
            intent: Intent parsed from the model reply
            now: Current time, read when the intent is routed

        Returns:
            RoutingResult with the response text

        Raises:
            UnrecognizedIntentError: If ``intent.type`` is not a known intent
        """
        compute = self.COMPUTED_INTENTS.get(intent.type)
        if compute is not None:
            return RoutingResult(
                type=intent.type,
                user_input=intent.user_input,
                response=compute(now),
            )

        if intent.type in self.PASS_THROUGH_INTENTS:
            return RoutingResult(
                type=intent.type,
                user_input=intent.user_input,
                response=intent.response_text,
            )

        logger.warning("Unrecognized intent type from model: %s", intent.type)
        raise UnrecognizedIntentError(intent.type, intent.response_text)
