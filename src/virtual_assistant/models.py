"""Pydantic models for the virtual assistant API.

Field names follow the JSON the web client sends and expects (camelCase
aliases where the client uses them).
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignUpRequest(BaseModel):
    """Signup request. Presence and format are checked by the endpoint."""

    name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    """Login request."""

    email: str | None = None
    password: str | None = None


class UpdateAssistantRequest(BaseModel):
    """Assistant settings update; either field may be omitted."""

    model_config = ConfigDict(populate_by_name=True)

    assistant_name: Any = Field(default=None, alias="assistantName")
    image_url: Any = Field(default=None, alias="imageUrl")


class AskAssistantRequest(BaseModel):
    """Assistant command. Any JSON value is accepted; the pipeline validates it."""

    command: Any = None


class HistoryEntryResponse(BaseModel):
    """One history entry."""

    text: str
    created_at: datetime = Field(..., alias="createdAt")


class UserResponse(BaseModel):
    """Public view of a user (never includes the password hash)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    assistant_name: str = Field(..., alias="assistantName")
    assistant_image: str | None = Field(default=None, alias="assistantImage")
    history: list[HistoryEntryResponse] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class UserEnvelope(BaseModel):
    """Success envelope carrying a user."""

    success: bool = True
    message: str | None = None
    data: UserResponse


class MessageResponse(BaseModel):
    """Success or failure with a message only."""

    success: bool
    message: str


class AssistantReply(BaseModel):
    """Successful assistant answer."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    type: str
    user_input: str = Field(..., alias="userInput")
    response: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
