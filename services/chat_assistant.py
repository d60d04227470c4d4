"""Course-aware chat assistant.

Answers learner / instructor questions through the same Generation Request
Queue as course generation (content type ``chat``, which the queue spaces
further apart).  The prompt carries a contextual preamble built from the
current lesson and course records.
"""

from __future__ import annotations

import logging
from typing import Sequence

from config.prompts.chat import (
    CONTEXT_FOOTER,
    INSTRUCTOR_HINT,
    LEARNER_HINT,
    build_chat_prompt,
)
from models.course import ContentType
from models.request import ChatContext, ChatTurn
from services.generation_queue import GenerationQueue
from services.lesson_store import LessonStore

logger = logging.getLogger(__name__)

COURSES_TABLE = "courses"
LESSONS_TABLE = "lessons"
CONTENT_EXCERPT_CHARS = 200


class ChatAssistant:
    def __init__(self, queue: GenerationQueue, store: LessonStore | None = None) -> None:
        self._queue = queue
        self._store = store

    async def generate_response(
        self,
        history: Sequence[ChatTurn],
        prompt: str,
        context: ChatContext | None = None,
    ) -> str:
        """Answer *prompt* given prior turns and optional lesson/course context."""
        context_info = await self.build_context(context) if context else ""
        text = await self._queue.submit(
            build_chat_prompt(prompt, history, context_info),
            ContentType.CHAT.value,
        )
        return text.strip()

    async def build_context(self, context: ChatContext) -> str:
        """Render the contextual preamble; lookup failures leave it partial."""
        lines: list[str] = []
        try:
            if context.lesson_id and self._store is not None:
                lesson = await self._store.get(LESSONS_TABLE, context.lesson_id)
                if lesson:
                    lines.extend(_lesson_lines(lesson))
            if context.course_id and self._store is not None:
                course = await self._store.get(COURSES_TABLE, context.course_id)
                if course:
                    lines.append(f"Current Course: {course.get('title', '')}")
                    lines.append(f"Course Description: {course.get('description', '')}")
                    lines.append(f"Level: {course.get('level', '')}")
        except Exception:
            logger.exception("Error building chat context, answering without it")

        if context.user_role == "instructor":
            lines.extend(["", INSTRUCTOR_HINT])
        elif context.user_role == "learner":
            lines.extend(["", LEARNER_HINT])

        if not lines:
            return ""
        lines.extend(["", CONTEXT_FOOTER])
        return "\n".join(lines)


def _lesson_lines(lesson: dict) -> list[str]:
    lines = [
        f"Current Lesson: {lesson.get('title', '')}",
        f"Description: {lesson.get('description', '')}",
    ]
    contents = lesson.get("contents") or []
    if contents:
        lines.append("Lesson Content:")
        for index, block in enumerate(contents, start=1):
            excerpt = str(block.get("content") or "")[:CONTENT_EXCERPT_CHARS]
            lines.append(f"{index}. {block.get('type', 'rich_text')}: {excerpt}...")
    key_points = lesson.get("keyPoints") or []
    if key_points:
        lines.append("Key Points:")
        lines.extend(f"- {point.get('point', '')}" for point in key_points)
    return lines
