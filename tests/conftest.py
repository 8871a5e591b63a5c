"""pytest configuration for virtual assistant tests."""

import os
import sys
import uuid
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add src directory to path so tests can import virtual_assistant
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Set DUCKDB_PATH to :memory: for all tests to ensure test isolation
os.environ["DUCKDB_PATH"] = ":memory:"

# Token signing and an offline model provider for API tests
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-virtual-assistant")
os.environ["ASSISTANT_AUTH_MODE"] = "jwt"
os.environ["ASSISTANT_LLM_PROVIDER"] = "stub"

from virtual_assistant.db import init_db  # noqa: E402
from virtual_assistant.db.users import create_user  # noqa: E402
from virtual_assistant.llm.provider import LLMProvider, LLMProviderError  # noqa: E402

# Friday, 15 March 2024, 14:05 UTC
FIXED_NOW = datetime(2024, 3, 15, 14, 5, 0, tzinfo=UTC)


class FakeLLMProvider(LLMProvider):
    """Provider that returns a canned reply and records its calls."""

    name = "fake"

    def __init__(self, reply=None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def generate(self, command: str, assistant_name: str, user_name: str):
        self.calls.append((command, assistant_name, user_name))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def db_conn():
    """Create an in-memory database connection for testing."""
    conn = init_db(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def user(db_conn):
    """A stored user with default assistant settings."""
    return create_user(
        db_conn,
        name="Ada",
        email=f"ada-{uuid.uuid4().hex[:8]}@example.com",
        password_hash="pbkdf2_sha256$1$00$00",
    )


@pytest.fixture
def fixed_clock():
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def fake_llm():
    """Fake model provider; set ``reply`` or ``error`` in the test."""
    return FakeLLMProvider()


@pytest.fixture
def llm_error():
    """A transport error as raised by real providers."""
    return LLMProviderError("Gemini request timed out after 30.0s")
