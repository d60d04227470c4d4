"""Course generation models.

Three families live here:

- ``CurriculumSpec``: the user's read-only generation parameters;
- ``CurriculumPlan`` / ``ModuleOutline`` / ``LessonOutline``: the normalized
  curriculum returned by the first pipeline stage;
- ``LessonArtifact`` and its parts (content blocks, quiz, flashcards, key
  points, mind map), assembled lesson by lesson, and the final ``Course``.

Everything the model emits passes through the normalizers in
``services.normalizers`` before it reaches these classes, so every field has
a safe default.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from models.base import CamelModel


class ContentType(str, Enum):
    """Tags used for guideline lookup and queue interval selection."""

    CURRICULUM = "curriculum"
    LESSON_CONTENT = "lesson_content"
    QUIZ = "quiz"
    FLASHCARD = "flashcard"
    KEYPOINTS = "keypoints"
    MINDMAP = "mindmap"
    CHAT = "chat"


class CurriculumSpec(CamelModel):
    """User-supplied generation parameters.  Never mutated by the engine."""

    model_config = ConfigDict(frozen=True)

    subject: str
    course_title: str = ""
    topic: str = ""
    academic_level: str = "Beginner"
    difficulty: str = "beginner"
    duration: int = Field(default=60, gt=0, description="Total course minutes")
    course_type: str = "general"
    module_count: int = Field(default=2, ge=1, le=20)
    lessons_per_module: int = Field(default=2, ge=1, le=20)
    include_quiz: bool = True
    include_flashcards: bool = False
    include_mindmap: bool = False
    include_keypoints: bool = False
    tone: str = "friendly"
    learning_style: str = "balanced"
    additional_instructions: str = ""

    @property
    def total_lessons(self) -> int:
        return self.module_count * self.lessons_per_module

    @property
    def display_title(self) -> str:
        return self.course_title or f"{self.subject}: {self.topic}".rstrip(": ")


# ── Curriculum ────────────────────────────────────────────────


class LessonOutline(CamelModel):
    title: str
    description: str = ""
    objectives: list[str] = Field(default_factory=list)
    order: int = 1
    duration: int = 30
    module_index: int = 1
    module_title: str = ""
    order_in_module: int = 1


class ModuleOutline(CamelModel):
    title: str
    description: str = ""
    order: int = 1
    lesson_titles: list[str] = Field(default_factory=list)


class CurriculumPlan(CamelModel):
    """Normalized curriculum: ``{title, description, objectives, modules, lessons}``."""

    title: str
    description: str = ""
    objectives: list[str] = Field(default_factory=list)
    modules: list[ModuleOutline] = Field(default_factory=list)
    lessons: list[LessonOutline] = Field(default_factory=list)


# ── Lesson artifacts ──────────────────────────────────────────


class ContentBlock(CamelModel):
    title: str = "Lesson Content"
    type: str = "rich_text"
    content: str = ""
    order: int = 1


class QuizQuestion(CamelModel):
    id: str
    question: str
    type: str = "multiple_choice"
    options: list[str] = Field(default_factory=list)
    correct_answer: str = ""
    explanation: str = ""


class Quiz(CamelModel):
    title: str = "Quiz"
    questions: list[QuizQuestion] = Field(default_factory=list)
    passing_score: int = 70
    attempts: int = 3


class Flashcard(CamelModel):
    front: str
    back: str
    difficulty: str = "medium"
    hint: str | None = None


class KeyPoint(CamelModel):
    point: str
    explanation: str = ""
    importance: str = "medium"
    examples: str | None = None


class MindMapNode(CamelModel):
    id: str
    label: str
    children: list[str] = Field(default_factory=list)


class MindMap(CamelModel):
    title: str = "Mind Map"
    nodes: list[MindMapNode] = Field(default_factory=list)


class LessonArtifact(LessonOutline):
    """One lesson, built incrementally: contents first, then optional features."""

    id: str | None = None
    course_title: str = ""
    contents: list[ContentBlock] = Field(default_factory=list)
    quiz: Quiz | None = None
    flashcards: list[Flashcard] = Field(default_factory=list)
    key_points: list[KeyPoint] = Field(default_factory=list)
    mind_map: MindMap | None = None
    is_ai_generated: bool = True
    generation_attempts: int = 1

    @classmethod
    def from_outline(cls, outline: LessonOutline, course_title: str = "") -> LessonArtifact:
        return cls(**outline.model_dump(), course_title=course_title)

    def to_record(self) -> dict[str, Any]:
        """Serialize for the persistence store (camelCase, no ``id``)."""
        return self.model_dump(by_alias=True, exclude={"id"})


class Course(CurriculumPlan):
    """The finished course: curriculum plus fully assembled lessons."""

    lessons: list[LessonArtifact] = Field(default_factory=list)  # type: ignore[assignment]
    is_complete: bool = False
    is_ai_generated: bool = True
