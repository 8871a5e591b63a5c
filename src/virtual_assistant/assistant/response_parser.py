"""Extract a structured intent from free-form model output."""

import json
import re
from dataclasses import dataclass
from typing import Any

DEFAULT_INTENT_TYPE = "general"
RAW_EXCERPT_LIMIT = 1000

# Greedy: first "{" through last "}". Prose around a single object is tolerated;
# several objects, or braces inside the prose, produce a span that fails to decode.
_PAYLOAD_SPAN = re.compile(r"\{[\s\S]*\}")


@dataclass
class ParsedIntent:
    """Intent declared by the model for one command."""

    type: str
    user_input: str
    response_text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "userInput": self.user_input,
            "response": self.response_text,
        }


@dataclass
class ParseFailure:
    """No usable payload in the model output.

    ``raw_excerpt`` is at most RAW_EXCERPT_LIMIT characters of the original text.
    """

    raw_excerpt: str
    reason: str


def _excerpt(text: str) -> str:
    return text[:RAW_EXCERPT_LIMIT]


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value) if isinstance(value, (dict, list)) else str(value)


def parse_model_response(raw_text: Any, original_command: str) -> ParsedIntent | ParseFailure:
    """Parse the first-to-last brace span of ``raw_text`` into a ParsedIntent.

    Missing fields fall back to: ``type`` -> "general" (also for ""),
    ``userInput`` -> ``original_command``, ``response`` -> "". Other falsy
    types such as 0 or false are kept as text. Never raises on malformed input.
    """
    if not isinstance(raw_text, str):
        return ParseFailure(raw_excerpt=_excerpt(str(raw_text)), reason="no_payload")

    match = _PAYLOAD_SPAN.search(raw_text)
    if not match:
        return ParseFailure(raw_excerpt=_excerpt(raw_text), reason="no_payload")

    try:
        payload = json.loads(match.group(0))
    except (json.JSONDecodeError, RecursionError):
        return ParseFailure(raw_excerpt=_excerpt(raw_text), reason="invalid_json")

    intent_type = payload.get("type")
    user_input = payload.get("userInput")
    response_text = payload.get("response")

    return ParsedIntent(
        type=_as_text(intent_type) if intent_type not in (None, "") else DEFAULT_INTENT_TYPE,
        user_input=_as_text(user_input) if user_input is not None else original_command,
        response_text=_as_text(response_text) if response_text is not None else "",
    )
