"""API tests for accounts, authentication and the assistant endpoint."""

import os
import uuid
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from virtual_assistant import api
from virtual_assistant.api import app, get_command_pipeline
from virtual_assistant.assistant.history import HistoryStore
from virtual_assistant.assistant.pipeline import CommandPipeline
from virtual_assistant.auth import create_access_token
from virtual_assistant.db.users import DBUserRepository, get_user_by_id
from virtual_assistant.metrics import get_metrics_collector


@pytest.fixture
def client():
    """Create a fresh test client (own cookie jar)."""
    return TestClient(app)


@pytest.fixture
def assistant_pipeline(fake_llm, fixed_clock):
    """Route the assistant endpoint through a pipeline backed by the fake model."""
    repository = DBUserRepository(api.get_db())
    pipeline = CommandPipeline(
        repository=repository,
        llm_provider=fake_llm,
        history_store=HistoryStore(repository, max_items=100),
        clock=fixed_clock,
    )
    app.dependency_overrides[get_command_pipeline] = lambda: pipeline
    yield pipeline
    app.dependency_overrides.pop(get_command_pipeline, None)


def _unique_email() -> str:
    return f"user-{uuid.uuid4().hex[:10]}@example.com"


def _signup(client: TestClient, email: str | None = None, password: str = "secret123"):
    return client.post(
        "/api/auth/signup",
        json={"name": "Ada", "email": email or _unique_email(), "password": password},
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-Id"]


def test_request_id_echoed_when_safe(client):
    response = client.get("/health", headers={"X-Request-Id": "req-abc.123"})

    assert response.headers["X-Request-Id"] == "req-abc.123"


def test_oversized_request_id_is_replaced(client):
    response = client.get("/health", headers={"X-Request-Id": "r" * 500})

    echoed = response.headers["X-Request-Id"]
    assert echoed != "r" * 500
    assert uuid.UUID(echoed)


class TestSignUp:
    def test_signup_sets_cookie_and_hides_password(self, client):
        email = _unique_email()
        response = _signup(client, email=email.upper())

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["data"]["email"] == email
        assert data["data"]["assistantName"] == "Assistant"
        assert data["data"]["history"] == []
        assert "password" not in str(data).lower()
        assert "token" in response.cookies

    @pytest.mark.parametrize(
        "body",
        [
            {"email": "a@b.co", "password": "secret123"},
            {"name": "Ada", "password": "secret123"},
            {"name": "Ada", "email": "a@b.co"},
        ],
    )
    def test_missing_fields(self, client, body):
        response = client.post("/api/auth/signup", json=body)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Name, email and password are required",
        }

    def test_short_password(self, client):
        response = _signup(client, password="123")

        assert response.status_code == 400
        assert "at least 6" in response.json()["message"]

    def test_invalid_email(self, client):
        response = _signup(client, email="not-an-email")

        assert response.status_code == 400
        assert response.json()["message"] == "Please provide a valid email"

    def test_duplicate_email(self, client):
        email = _unique_email()
        assert _signup(client, email=email).status_code == 201

        response = _signup(TestClient(app), email=email)

        assert response.status_code == 400
        assert response.json()["message"] == "Email already exists"


class TestLogin:
    def test_login_success(self, client):
        email = _unique_email()
        _signup(TestClient(app), email=email)

        response = client.post("/api/auth/login", json={"email": email, "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["message"] == "Logged in successfully"
        assert "token" in response.cookies

    def test_wrong_password(self, client):
        email = _unique_email()
        _signup(TestClient(app), email=email)

        response = client.post("/api/auth/login", json={"email": email, "password": "wrong-pass"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email or password"

    def test_unknown_email(self, client):
        response = client.post(
            "/api/auth/login", json={"email": _unique_email(), "password": "secret123"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email or password"

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": _unique_email()})

        assert response.status_code == 400

    def test_logout_clears_cookie(self, client):
        _signup(client)

        response = client.get("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}
        assert client.get("/api/user/current").status_code == 401


class TestCurrentUser:
    def test_current_user_from_cookie(self, client):
        user_id = _signup(client).json()["data"]["id"]

        response = client.get("/api/user/current")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user_id

    def test_current_user_from_bearer(self, client):
        user_id = _signup(TestClient(app)).json()["data"]["id"]
        token = create_access_token(user_id)

        response = client.get("/api/user/current", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user_id

    def test_unauthenticated(self, client):
        response = client.get("/api/user/current")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Authentication token missing"}

    def test_invalid_token(self, client):
        client.cookies.set("token", "garbage")

        response = client.get("/api/user/current")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_unknown_user(self, client):
        token = create_access_token(str(uuid.uuid4()))

        response = client.get("/api/user/current", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    def test_dev_mode_header(self, client):
        user_id = _signup(TestClient(app)).json()["data"]["id"]

        with patch.dict(os.environ, {"ASSISTANT_AUTH_MODE": "dev"}):
            response = client.get("/api/user/current", headers={"X-User-Id": user_id})

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user_id


class TestUpdateAssistant:
    def test_update_name_and_image(self, client):
        _signup(client)

        response = client.post(
            "/api/user/update",
            json={"assistantName": "  Jarvis ", "imageUrl": " https://img.example/j.png "},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["assistantName"] == "Jarvis"
        assert data["assistantImage"] == "https://img.example/j.png"

    @pytest.mark.parametrize("name", ["", "   ", 42])
    def test_invalid_name(self, client, name):
        _signup(client)

        response = client.post("/api/user/update", json={"assistantName": name})

        assert response.status_code == 400
        assert response.json()["message"] == "assistantName must be a non-empty string"

    def test_name_too_long(self, client):
        _signup(client)

        response = client.post("/api/user/update", json={"assistantName": "x" * 41})

        assert response.status_code == 400
        assert "too long" in response.json()["message"]

    def test_nothing_to_update(self, client):
        _signup(client)

        response = client.post("/api/user/update", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "No valid fields provided to update"

    def test_requires_auth(self, client):
        response = client.post("/api/user/update", json={"assistantName": "Jarvis"})

        assert response.status_code == 401


class TestAskToAssistant:
    def test_end_to_end_get_date(self, client, assistant_pipeline, fake_llm):
        user_id = _signup(client).json()["data"]["id"]
        fake_llm.reply = '{"type":"get-date","userInput":"what\'s the date","response":""}'

        response = client.post("/api/user/asktoassistant", json={"command": "what's the date"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "type": "get-date",
            "userInput": "what's the date",
            "response": "current date is 2024-03-15",
        }
        with api.get_db().cursor() as conn:
            stored = get_user_by_id(conn, user_id)
        assert [entry.text for entry in stored.history] == ["what's the date"]

    def test_history_visible_on_current_user(self, client, assistant_pipeline, fake_llm):
        _signup(client)
        fake_llm.reply = '{"type":"general","response":"hi"}'

        client.post("/api/user/asktoassistant", json={"command": "hello"})
        data = client.get("/api/user/current").json()["data"]

        assert [entry["text"] for entry in data["history"]] == ["hello"]
        assert data["history"][0]["createdAt"].startswith("2024-03-15T14:05:00")

    def test_unauthenticated(self, client, assistant_pipeline, fake_llm):
        response = client.post("/api/user/asktoassistant", json={"command": "hello"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Unauthorized"}
        assert fake_llm.calls == []

    def test_no_body_and_no_identity_is_unauthorized(self, client, assistant_pipeline, fake_llm):
        response = client.post("/api/user/asktoassistant")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Unauthorized"}
        assert fake_llm.calls == []

    def test_no_body_is_missing_command(self, client, assistant_pipeline):
        _signup(client)

        response = client.post("/api/user/asktoassistant")

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Missing command"}

    def test_missing_command(self, client, assistant_pipeline):
        _signup(client)

        response = client.post("/api/user/asktoassistant", json={"command": "   "})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Missing command"}

    def test_unknown_user(self, client, assistant_pipeline):
        token = create_access_token(str(uuid.uuid4()))

        response = client.post(
            "/api/user/asktoassistant",
            json={"command": "hello"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 404

    def test_model_failure(self, client, assistant_pipeline, fake_llm, llm_error):
        _signup(client)
        fake_llm.error = llm_error

        response = client.post("/api/user/asktoassistant", json={"command": "hello"})

        assert response.status_code == 502
        assert response.json() == {
            "success": False,
            "message": "Assistant returned invalid response",
        }

    def test_unparseable_reply(self, client, assistant_pipeline, fake_llm):
        _signup(client)
        fake_llm.reply = "I'm not sure what you mean."

        response = client.post("/api/user/asktoassistant", json={"command": "blorp"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Could not parse assistant response",
            "raw": "I'm not sure what you mean.",
        }

    def test_unrecognized_type(self, client, assistant_pipeline, fake_llm):
        _signup(client)
        fake_llm.reply = '{"type":"play-music","response":"Playing"}'

        response = client.post("/api/user/asktoassistant", json={"command": "play music"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Unrecognized assistant command type",
            "type": "play-music",
            "response": "Playing",
        }

    def test_stub_provider_without_override(self, client, monkeypatch):
        """The default pipeline works offline with the stub provider."""
        monkeypatch.setattr(api, "_command_pipeline", None)
        _signup(client)

        response = client.post("/api/user/asktoassistant", json={"command": "hello"})

        assert response.status_code == 200
        assert response.json()["type"] == "general"
        assert response.json()["userInput"] == "hello"

    def test_malformed_body(self, client):
        response = client.post(
            "/api/user/asktoassistant",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request body"


class TestMetricsEndpoint:
    def test_disabled_by_default(self, client, monkeypatch):
        monkeypatch.delenv("ASSISTANT_ENABLE_METRICS", raising=False)

        assert client.get("/api/metrics").status_code == 404

    def test_nothing_recorded_when_disabled(
        self, client, assistant_pipeline, fake_llm, monkeypatch
    ):
        monkeypatch.delenv("ASSISTANT_ENABLE_METRICS", raising=False)
        collector = get_metrics_collector()
        collector.reset()
        _signup(client)
        fake_llm.reply = '{"type":"general","response":"hi"}'

        for _ in range(5):
            client.post("/api/user/asktoassistant", json={"command": "hello"})

        assert len(collector.command_latencies) == 0
        assert collector.outcome_counts == {}

    def test_records_assistant_outcomes(self, client, assistant_pipeline, fake_llm, monkeypatch):
        monkeypatch.setenv("ASSISTANT_ENABLE_METRICS", "true")
        get_metrics_collector().reset()
        _signup(client)
        fake_llm.reply = '{"type":"get-time"}'

        client.post("/api/user/asktoassistant", json={"command": "time?"})
        client.post("/api/user/asktoassistant", json={"command": ""})
        snapshot = client.get("/api/metrics").json()

        assert snapshot["intent_counts"] == {"get-time": 1}
        assert snapshot["outcome_counts"] == {"success": 1, "validation_error": 1}
        get_metrics_collector().reset()
