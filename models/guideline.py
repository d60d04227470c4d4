"""Content guideline records stored in the ``aiGuidelines`` table."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from models.base import CamelModel


class GuidelineCategory(str, Enum):
    CONTENT = "content"
    CURRICULUM = "curriculum"
    ASSESSMENT = "assessment"
    GENERAL = "general"


class GuidelinePriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Guideline(CamelModel):
    """One instruction block prepended to generation prompts."""

    id: str = ""
    title: str
    description: str = ""
    category: GuidelineCategory = GuidelineCategory.GENERAL
    priority: GuidelinePriority = GuidelinePriority.MEDIUM
    guideline: str
    is_active: bool = True
    applies_to: list[str] = Field(default_factory=lambda: ["all"])
    tags: list[str] = Field(default_factory=list)

    def applies(self, content_type: str) -> bool:
        return content_type in self.applies_to or "all" in self.applies_to
