"""API request / response models."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from models.base import CamelModel


class ChatTurn(CamelModel):
    """One prior turn of an assistant conversation."""

    role: Literal["user", "model", "assistant"]
    content: str


class ChatContext(CamelModel):
    """Where the learner or instructor is when asking."""

    lesson_id: str | None = None
    course_id: str | None = None
    user_role: Literal["learner", "instructor"] | None = None


class ChatRequest(CamelModel):
    """POST /api/chat — request body."""

    message: str = Field(min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)
    context: ChatContext | None = None


class ChatResponse(CamelModel):
    """POST /api/chat — response body."""

    response: str


class HealthResponse(CamelModel):
    """GET /api/health — response body."""

    status: str = "healthy"
    backends: list[str] = Field(default_factory=list)
    credentials_available: bool = True
    pending_tasks: int = 0
