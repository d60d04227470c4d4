"""Progress event emitted by the course generation orchestrator.

Events are transient, read-only snapshots pushed to a caller-supplied sink;
the engine never stores them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from models.base import CamelModel
from models.course import Course, CurriculumPlan, LessonArtifact


class ProgressStep(str, Enum):
    CURRICULUM = "curriculum"
    LESSON = "lesson"
    RETRY = "retry"
    FINALIZE = "finalize"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


class ProgressEvent(CamelModel):
    """``{step, message, progress, currentLesson?, totalLessons?, data?, lesson?, course?, error?}``."""

    model_config = ConfigDict(frozen=True)

    step: ProgressStep
    message: str
    progress: float = Field(ge=0.0, le=100.0)
    current_lesson: int | None = None
    total_lessons: int | None = None
    attempt: int | None = None
    max_attempts: int | None = None
    data: CurriculumPlan | None = None
    lesson: LessonArtifact | None = None
    course: Course | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict without the unset optional keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
