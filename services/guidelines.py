"""Guideline provider — builds the preamble prepended to every generation prompt.

Active guidelines are loaded from the ``aiGuidelines`` table and cached for
``cache_seconds``.  When the table is empty or the store is unreachable, the
hardcoded default block is used instead, so a preamble is always present.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from pydantic import ValidationError

from config.prompts.guidelines import (
    DEFAULT_GUIDELINES,
    DEFAULT_GUIDELINES_PROMPT,
    GUIDELINES_FOOTER,
    GUIDELINES_HEADER,
)
from models.guideline import Guideline, GuidelineCategory, GuidelinePriority
from services.lesson_store import LessonStore

logger = logging.getLogger(__name__)

GUIDELINES_TABLE = "aiGuidelines"

_CATEGORY_BY_CONTENT_TYPE: dict[str, GuidelineCategory] = {
    "curriculum": GuidelineCategory.CURRICULUM,
    "lesson_content": GuidelineCategory.CONTENT,
    "keypoints": GuidelineCategory.CONTENT,
    "mindmap": GuidelineCategory.CONTENT,
    "quiz": GuidelineCategory.ASSESSMENT,
    "flashcard": GuidelineCategory.ASSESSMENT,
    "chat": GuidelineCategory.GENERAL,
}

_SECTIONS = (
    (GuidelinePriority.HIGH, "CRITICAL GUIDELINES (Must Follow):"),
    (GuidelinePriority.MEDIUM, "IMPORTANT GUIDELINES:"),
    (GuidelinePriority.LOW, "ADDITIONAL GUIDELINES:"),
)


def category_for(content_type: str) -> GuidelineCategory:
    return _CATEGORY_BY_CONTENT_TYPE.get(content_type, GuidelineCategory.GENERAL)


class GuidelineService:
    """Content-type-scoped guideline preamble backed by a :class:`LessonStore`."""

    def __init__(
        self,
        store: LessonStore | None,
        cache_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._cache_seconds = cache_seconds
        self._clock = clock
        self._guidelines: list[Guideline] = []
        self._loaded_at: float | None = None

    async def load(self, force: bool = False) -> list[Guideline]:
        """Active guidelines, reloaded once the cache has expired."""
        now = self._clock()
        fresh = (
            self._loaded_at is not None
            and now - self._loaded_at < self._cache_seconds
        )
        if fresh and not force:
            return self._guidelines
        if self._store is None:
            return []

        try:
            rows = await self._store.list(GUIDELINES_TABLE)
        except Exception:
            logger.exception("Failed to load AI guidelines, using defaults")
            return []

        guidelines: list[Guideline] = []
        for row in rows:
            try:
                guideline = Guideline.model_validate(row)
            except ValidationError as exc:
                logger.warning("Skipping malformed guideline %s: %s", row.get("id"), exc)
                continue
            if guideline.is_active:
                guidelines.append(guideline)

        self._guidelines = guidelines
        self._loaded_at = now
        logger.info("Loaded %d active AI guidelines", len(guidelines))
        return guidelines

    def invalidate(self) -> None:
        self._loaded_at = None

    async def build_guidelines_prompt(
        self,
        content_type: str,
        category: GuidelineCategory | str | None = None,
    ) -> str:
        """Render the guideline preamble for *content_type*.

        High-priority guidelines come first, then those in *category*, then
        those that apply to *content_type*; duplicates keep their first slot.
        """
        guidelines = await self.load()
        if category is None:
            category = category_for(content_type)
        category_value = category.value if isinstance(category, GuidelineCategory) else category

        merged: dict[str, Guideline] = {}
        for group in (
            [g for g in guidelines if g.priority == GuidelinePriority.HIGH],
            [g for g in guidelines if g.category.value == category_value],
            [g for g in guidelines if g.applies(content_type)],
        ):
            for guideline in group:
                merged.setdefault(guideline.id or guideline.title, guideline)

        if not merged:
            return DEFAULT_GUIDELINES_PROMPT

        lines = [GUIDELINES_HEADER, ""]
        for priority, heading in _SECTIONS:
            section = [g for g in merged.values() if g.priority == priority]
            if not section:
                continue
            lines.append(heading)
            for index, guideline in enumerate(section, start=1):
                lines.append(f"{index}. {guideline.title}: {guideline.guideline}")
            lines.append("")
        lines.append(GUIDELINES_FOOTER)
        return "\n".join(lines) + "\n"

    async def seed_defaults(self) -> int:
        """Insert the default guideline set into an empty table; returns rows added."""
        if self._store is None:
            return 0
        existing = await self._store.list(GUIDELINES_TABLE)
        if existing:
            return 0
        for guideline in DEFAULT_GUIDELINES:
            record = guideline.model_dump(by_alias=True, mode="json", exclude={"id"})
            record["createdBy"] = "system"
            await self._store.insert(GUIDELINES_TABLE, record)
        self.invalidate()
        logger.info("Seeded %d default AI guidelines", len(DEFAULT_GUIDELINES))
        return len(DEFAULT_GUIDELINES)
