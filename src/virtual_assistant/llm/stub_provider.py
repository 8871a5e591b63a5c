"""Stub LLM provider for offline development and testing."""

import json

from virtual_assistant.llm.provider import LLMProvider


class StubLLMProvider(LLMProvider):
    """Deterministic provider that answers every command as a general intent.

    The reply is wrapped in a sentence of prose so the response parser's
    embedded-payload handling is exercised in dev mode too.
    """

    name = "stub"

    def generate(self, command: str, assistant_name: str, user_name: str) -> str | None:
        payload = {
            "type": "general",
            "userInput": command,
            "response": f"{assistant_name} heard you, {user_name}: {command}",
        }
        return f"Here is my answer: {json.dumps(payload)}"
