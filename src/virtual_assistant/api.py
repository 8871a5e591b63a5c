"""FastAPI backend for the virtual assistant.

Routes:
- /api/auth/*: signup, login, logout (JWT in an httpOnly cookie)
- /api/user/*: current user, assistant settings, assistant commands
"""

import logging
import os
import re
import time
from typing import Any

import duckdb
from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from virtual_assistant.assistant import (
    CommandPipeline,
    HistoryStore,
    get_max_history_items,
    http_status_for,
)
from virtual_assistant.auth import (
    TOKEN_COOKIE_NAME,
    CurrentUser,
    OptionalUser,
    create_access_token,
    get_token_lifetime,
)
from virtual_assistant.db import init_db
from virtual_assistant.db.users import (
    DBUserRepository,
    DuplicateEmailError,
    create_user,
    get_user_by_email,
    get_user_by_id,
    update_assistant_settings,
)
from virtual_assistant.llm import get_llm_provider
from virtual_assistant.logging_utils import clear_request_id, log_info, set_request_id
from virtual_assistant.metrics import get_metrics_collector, is_metrics_enabled
from virtual_assistant.models import (
    AskAssistantRequest,
    AssistantReply,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    SignUpRequest,
    UpdateAssistantRequest,
    UserEnvelope,
    UserResponse,
)
from virtual_assistant.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
MAX_NAME_LENGTH = 50
MAX_ASSISTANT_NAME_LENGTH = 40

app = FastAPI(
    title="Virtual Assistant API",
    version="1.0.0",
    description="Accounts, authentication and a conversational assistant endpoint",
)


def get_cors_origins() -> list[str]:
    """Allowed browser origins from ASSISTANT_CORS_ORIGINS (comma-separated)."""
    raw = os.getenv("ASSISTANT_CORS_ORIGINS", "http://localhost:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def is_cookie_secure() -> bool:
    """Whether the auth cookie is marked Secure (ASSISTANT_COOKIE_SECURE=true)."""
    return os.getenv("ASSISTANT_COOKIE_SECURE", "false").lower() in ("true", "1", "yes")


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Database connection (initialized lazily)
_db_conn: duckdb.DuckDBPyConnection | None = None
_command_pipeline: CommandPipeline | None = None


def get_db() -> duckdb.DuckDBPyConnection:
    """Get or initialize database connection.

    Uses DUCKDB_PATH environment variable or defaults to data/virtual_assistant.db.
    Tests set DUCKDB_PATH=:memory: in conftest.py for isolation.
    """
    global _db_conn
    if _db_conn is None:
        _db_conn = init_db()
    return _db_conn


def get_command_pipeline() -> CommandPipeline:
    """Get or initialize the assistant command pipeline."""
    global _command_pipeline
    if _command_pipeline is None:
        try:
            llm_provider = get_llm_provider()
        except ValueError as e:
            logger.error("Assistant model provider is not configured: %s", e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Ask assistant failed",
            ) from e

        repository = DBUserRepository(get_db())
        _command_pipeline = CommandPipeline(
            repository=repository,
            llm_provider=llm_provider,
            history_store=HistoryStore(repository, max_items=get_max_history_items()),
        )
        logger.info("Command pipeline ready: provider=%s", llm_provider.name)
    return _command_pipeline


def _set_auth_cookie(response: Response, user_id: str) -> None:
    token = create_access_token(user_id)
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=is_cookie_secure(),
        samesite="strict",
        max_age=int(get_token_lifetime().total_seconds()),
    )


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Attach a request ID to the logging context and the response."""
    request_id = set_request_id(request.headers.get("X-Request-Id"))
    try:
        response = await call_next(request)
    finally:
        clear_request_id()
    response.headers["X-Request-Id"] = request_id
    return response


@app.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok")


@app.post("/api/auth/signup", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def sign_up(request: SignUpRequest, response: Response) -> UserEnvelope:
    """Register a user, set the auth cookie and return the public user."""
    if not request.name or not request.email or not request.password:
        raise _bad_request("Name, email and password are required")

    name = request.name.strip()
    email = request.email.strip().lower()

    if not name or len(name) > MAX_NAME_LENGTH:
        raise _bad_request(f"Name must be 1-{MAX_NAME_LENGTH} characters")

    if not EMAIL_PATTERN.match(email):
        raise _bad_request("Please provide a valid email")

    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise _bad_request(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    with get_db().cursor() as conn:
        if get_user_by_email(conn, email) is not None:
            raise _bad_request("Email already exists")
        try:
            user = create_user(
                conn,
                name=name,
                email=email,
                password_hash=hash_password(request.password),
            )
        except DuplicateEmailError:
            raise _bad_request("Email already exists") from None

    _set_auth_cookie(response, user.id)
    log_info(logger, "User registered", user_id=user.id)

    return UserEnvelope(
        message="User registered successfully",
        data=UserResponse.model_validate(user.to_public_dict()),
    )


@app.post("/api/auth/login", response_model=UserEnvelope)
def login(request: LoginRequest, response: Response) -> UserEnvelope:
    """Check credentials, set the auth cookie and return the public user."""
    if not request.email or not request.password:
        raise _bad_request("Email and password are required")

    with get_db().cursor() as conn:
        user = get_user_by_email(conn, request.email)

    if user is None or not verify_password(request.password, user.password_hash):
        raise _bad_request("Invalid email or password")

    _set_auth_cookie(response, user.id)
    log_info(logger, "User logged in", user_id=user.id)

    return UserEnvelope(
        message="Logged in successfully",
        data=UserResponse.model_validate(user.to_public_dict()),
    )


@app.api_route("/api/auth/logout", methods=["GET", "POST"], response_model=MessageResponse)
def logout(response: Response) -> MessageResponse:
    """Clear the auth cookie."""
    response.delete_cookie(
        key=TOKEN_COOKIE_NAME,
        httponly=True,
        secure=is_cookie_secure(),
        samesite="strict",
    )
    return MessageResponse(success=True, message="Logged out successfully")


@app.get("/api/user/current", response_model=UserEnvelope)
def get_current_user_profile(user_id: CurrentUser) -> UserEnvelope:
    """Return the authenticated user without the password hash."""
    with get_db().cursor() as conn:
        user = get_user_by_id(conn, user_id)

    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return UserEnvelope(data=UserResponse.model_validate(user.to_public_dict()))


@app.post("/api/user/update", response_model=UserEnvelope)
def update_assistant(request: UpdateAssistantRequest, user_id: CurrentUser) -> UserEnvelope:
    """Update the assistant's name and/or image URL."""
    assistant_name: str | None = None
    assistant_image: str | None = None

    if request.assistant_name is not None:
        if not isinstance(request.assistant_name, str) or not request.assistant_name.strip():
            raise _bad_request("assistantName must be a non-empty string")
        if len(request.assistant_name) > MAX_ASSISTANT_NAME_LENGTH:
            raise _bad_request(
                f"assistantName too long (max {MAX_ASSISTANT_NAME_LENGTH} chars)"
            )
        assistant_name = request.assistant_name.strip()

    if request.image_url:
        if not isinstance(request.image_url, str):
            raise _bad_request("imageUrl must be a string")
        assistant_image = request.image_url.strip() or None

    if assistant_name is None and assistant_image is None:
        raise _bad_request("No valid fields provided to update")

    with get_db().cursor() as conn:
        user = update_assistant_settings(
            conn,
            user_id,
            assistant_name=assistant_name,
            assistant_image=assistant_image,
        )

    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    log_info(logger, "Assistant settings updated", user_id=user_id)
    return UserEnvelope(data=UserResponse.model_validate(user.to_public_dict()))


@app.post(
    "/api/user/asktoassistant",
    response_model=AssistantReply,
    responses={
        400: {"model": MessageResponse},
        401: {"model": MessageResponse},
        404: {"model": MessageResponse},
        500: {"model": MessageResponse},
        502: {"model": MessageResponse},
    },
)
def ask_to_assistant(
    user_id: OptionalUser,
    request: AskAssistantRequest | None = None,
    pipeline: CommandPipeline = Depends(get_command_pipeline),
) -> JSONResponse:
    """Send a command to the assistant and return the routed answer.

    Identity and body are both optional at the transport level so the
    pipeline reports a missing identity (401) before a missing command (400).
    """
    start = time.perf_counter()
    command = request.command if request is not None else None
    result = pipeline.handle_command(user_id, command)
    latency_ms = (time.perf_counter() - start) * 1000

    if is_metrics_enabled():
        get_metrics_collector().record_command(
            result.intent_type, result.outcome.value, latency_ms
        )

    return JSONResponse(
        status_code=http_status_for(result.status_class),
        content=result.body,
    )


@app.get("/api/metrics")
def get_metrics() -> dict[str, Any]:
    """Return in-process assistant metrics (enabled by ASSISTANT_ENABLE_METRICS)."""
    if not is_metrics_enabled():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return get_metrics_collector().get_snapshot()


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors in the same shape as assistant failures."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 rather than 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Invalid request body",
            "errors": [
                {"loc": list(error.get("loc", [])), "msg": error.get("msg", "")}
                for error in exc.errors()
            ],
        },
    )
