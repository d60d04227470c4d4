"""Coerce extracted JSON into the engine's typed content models.

One normalizer per content type.  Each accepts whatever ``json_extractor``
returned (dict, list, scalar or ``None``) and always returns a well-typed
model, filling safe defaults for missing or malformed fields.  None of them
raise: deciding whether an empty result is acceptable is the caller's job.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from models.course import (
    ContentBlock,
    CurriculumPlan,
    CurriculumSpec,
    Flashcard,
    KeyPoint,
    LessonOutline,
    MindMap,
    MindMapNode,
    ModuleOutline,
    Quiz,
    QuizQuestion,
)

logger = logging.getLogger(__name__)

_DIFFICULTIES = ("easy", "medium", "hard")
_IMPORTANCE = ("high", "medium", "low")


# ── Coercion helpers ──────────────────────────────────────────


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip() or default
    if isinstance(value, (int, float, bool)):
        return str(value)
    return default


def _first_text(data: dict, *keys: str, default: str = "") -> str:
    for key in keys:
        text = _text(data.get(key))
        if text:
            return text
    return default


def _int(value: Any, default: int, minimum: int = 1) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and math.isfinite(value):
        return max(minimum, int(value))
    if isinstance(value, str):
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            return max(minimum, int(digits))
    return default


def _strings(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [t for t in (_text(v) for v in value) if t]
    return []


def _items(value: Any, *keys: str) -> list:
    """The list in *value* itself, or under the first matching key of a dict."""
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in keys:
            found = value.get(key)
            if isinstance(found, list):
                return found
    return []


def _choice(value: Any, allowed: tuple[str, ...], default: str) -> str:
    text = _text(value).lower()
    return text if text in allowed else default


# ── Curriculum ────────────────────────────────────────────────


def normalize_curriculum(value: Any, spec: CurriculumSpec) -> CurriculumPlan:
    """Return ``{title, description, objectives, modules, lessons}``.

    Handles three shapes:
    - modules carrying nested ``lessons``: flattened in module order;
    - top-level ``lessons`` with or without a ``modules`` list: lessons are
      chunked by ``spec.lessons_per_module``, reusing provided module titles
      and synthesizing the rest;
    - a bare list: treated as the lesson list.

    The returned plan may have no lessons; the orchestrator treats that as fatal.
    """
    data = value if isinstance(value, dict) else {"lessons": value if isinstance(value, list) else []}

    title = _first_text(data, "title", "courseTitle", default=spec.display_title)
    description = _text(data.get("description"))
    objectives = _strings(data.get("objectives"))

    raw_modules = [m for m in _items(data.get("modules")) if isinstance(m, dict)]
    nested = any(isinstance(m.get("lessons"), list) and m["lessons"] for m in raw_modules)

    if nested:
        modules, lessons = _flatten_modules(raw_modules)
    else:
        raw_lessons = [l for l in _items(data.get("lessons")) if isinstance(l, (dict, str))]
        modules, lessons = _chunk_lessons(raw_lessons, raw_modules, spec, title)

    default_duration = max(1, spec.duration // max(1, len(lessons))) if lessons else 30
    for lesson in lessons:
        if lesson.duration <= 0:
            lesson.duration = default_duration

    if not data.get("modules") and lessons:
        logger.info(
            "Curriculum had no modules, synthesized %d from %d lessons",
            len(modules), len(lessons),
        )

    return CurriculumPlan(
        title=title,
        description=description,
        objectives=objectives,
        modules=modules,
        lessons=lessons,
    )


def _lesson(raw: Any, order: int) -> LessonOutline:
    if isinstance(raw, str):
        return LessonOutline(title=raw.strip() or f"Lesson {order}", order=order, duration=0)
    return LessonOutline(
        title=_first_text(raw, "title", "name", default=f"Lesson {order}"),
        description=_text(raw.get("description")),
        objectives=_strings(raw.get("objectives")),
        order=order,
        duration=_int(raw.get("duration"), 0, minimum=0),
    )


def _flatten_modules(raw_modules: list[dict]) -> tuple[list[ModuleOutline], list[LessonOutline]]:
    modules: list[ModuleOutline] = []
    lessons: list[LessonOutline] = []
    for raw_module in raw_modules:
        raw_lessons = [l for l in _items(raw_module.get("lessons")) if isinstance(l, (dict, str))]
        if not raw_lessons:
            continue
        module_index = len(modules) + 1
        module_title = _first_text(raw_module, "title", "name", default=f"Module {module_index}")
        module = ModuleOutline(
            title=module_title,
            description=_text(raw_module.get("description")),
            order=module_index,
        )
        for position, raw_lesson in enumerate(raw_lessons, start=1):
            lesson = _lesson(raw_lesson, len(lessons) + 1)
            lesson.module_index = module_index
            lesson.module_title = module_title
            lesson.order_in_module = position
            lessons.append(lesson)
            module.lesson_titles.append(lesson.title)
        modules.append(module)
    return modules, lessons


def _chunk_lessons(
    raw_lessons: list,
    raw_modules: list[dict],
    spec: CurriculumSpec,
    course_title: str,
) -> tuple[list[ModuleOutline], list[LessonOutline]]:
    lessons = [_lesson(raw, order) for order, raw in enumerate(raw_lessons, start=1)]
    size = spec.lessons_per_module
    modules: list[ModuleOutline] = []
    for start in range(0, len(lessons), size):
        chunk = lessons[start:start + size]
        module_index = start // size + 1
        provided = raw_modules[module_index - 1] if module_index <= len(raw_modules) else None
        if provided is not None:
            module_title = _first_text(provided, "title", "name", default=f"Module {module_index}")
            module_description = _text(provided.get("description"))
        else:
            module_title = f"Module {module_index}: {chunk[0].title}"
            module_description = (
                f"Lessons {chunk[0].order} to {chunk[-1].order} of {course_title}"
            )
        modules.append(
            ModuleOutline(
                title=module_title,
                description=module_description,
                order=module_index,
                lesson_titles=[lesson.title for lesson in chunk],
            )
        )
        for position, lesson in enumerate(chunk, start=1):
            lesson.module_index = module_index
            lesson.module_title = module_title
            lesson.order_in_module = position
    return modules, lessons


# ── Lesson content ────────────────────────────────────────────


def normalize_contents(value: Any) -> list[ContentBlock]:
    """Content blocks in order; blocks with no text are dropped."""
    if isinstance(value, dict) and isinstance(value.get("content"), str) and not _items(
        value, "contents", "blocks", "sections"
    ):
        raw_blocks: list = [value]
    else:
        raw_blocks = _items(value, "contents", "blocks", "sections", "content")

    blocks: list[ContentBlock] = []
    for raw in raw_blocks:
        if isinstance(raw, str):
            content, title, block_type = raw.strip(), "", "rich_text"
        elif isinstance(raw, dict):
            content = _first_text(raw, "content", "text", "body")
            title = _first_text(raw, "title", "heading")
            block_type = _first_text(raw, "type", default="rich_text")
        else:
            continue
        if not content:
            continue
        order = len(blocks) + 1
        blocks.append(
            ContentBlock(
                title=title or f"Section {order}",
                type=block_type,
                content=content,
                order=order,
            )
        )
    return blocks


# ── Quiz ──────────────────────────────────────────────────────


def normalize_quiz(value: Any, lesson_title: str = "") -> Quiz:
    """A quiz whose questions all have text; a missing list becomes ``[]``."""
    data = value if isinstance(value, dict) else {}
    raw_questions = _items(value, "questions")

    questions: list[QuizQuestion] = []
    for raw in raw_questions:
        if not isinstance(raw, dict):
            continue
        question = _first_text(raw, "question", "text", "prompt")
        if not question:
            continue
        options = _strings(raw.get("options") or raw.get("choices"))
        answer = raw.get("correctAnswer", raw.get("correct_answer", raw.get("answer")))
        if isinstance(answer, int) and not isinstance(answer, bool) and 0 <= answer < len(options):
            correct = options[answer]
        else:
            correct = _text(answer)
        questions.append(
            QuizQuestion(
                id=_text(raw.get("id"), default=f"q{len(questions) + 1}"),
                question=question,
                type=_text(raw.get("type"), default="multiple_choice"),
                options=options,
                correct_answer=correct,
                explanation=_text(raw.get("explanation")),
            )
        )

    default_title = f"Quiz: {lesson_title}" if lesson_title else "Quiz"
    return Quiz(
        title=_text(data.get("title"), default=default_title),
        questions=questions,
        passing_score=min(100, _int(data.get("passingScore", data.get("passing_score")), 70)),
        attempts=_int(data.get("attempts"), 3),
    )


# ── Flashcards ────────────────────────────────────────────────


def normalize_flashcards(value: Any) -> list[Flashcard]:
    cards: list[Flashcard] = []
    for raw in _items(value, "flashcards", "cards"):
        if not isinstance(raw, dict):
            continue
        front = _first_text(raw, "front", "term", "question")
        back = _first_text(raw, "back", "definition", "answer")
        if not front or not back:
            continue
        cards.append(
            Flashcard(
                front=front,
                back=back,
                difficulty=_choice(raw.get("difficulty"), _DIFFICULTIES, "medium"),
                hint=_text(raw.get("hint")) or None,
            )
        )
    return cards


# ── Key points ────────────────────────────────────────────────


def normalize_keypoints(value: Any) -> list[KeyPoint]:
    points: list[KeyPoint] = []
    for raw in _items(value, "keyPoints", "key_points", "points"):
        if isinstance(raw, str):
            if raw.strip():
                points.append(KeyPoint(point=raw.strip()))
            continue
        if not isinstance(raw, dict):
            continue
        point = _first_text(raw, "point", "title", "concept")
        if not point:
            continue
        examples = raw.get("examples")
        if isinstance(examples, list):
            examples_text = "; ".join(_strings(examples)) or None
        else:
            examples_text = _text(examples) or None
        points.append(
            KeyPoint(
                point=point,
                explanation=_text(raw.get("explanation")),
                importance=_choice(raw.get("importance"), _IMPORTANCE, "medium"),
                examples=examples_text,
            )
        )
    return points


# ── Mind map ──────────────────────────────────────────────────


def normalize_mindmap(value: Any, lesson_title: str = "") -> MindMap:
    """Accepts ``{title, data: {nodes}}``, ``{title, nodes}`` or a bare node list."""
    data = value if isinstance(value, dict) else {}
    raw_nodes = _items(data.get("data"), "nodes") or _items(value, "nodes")

    nodes: list[MindMapNode] = []
    seen: set[str] = set()
    for raw in raw_nodes:
        if not isinstance(raw, dict):
            continue
        label = _first_text(raw, "label", "title", "text")
        if not label:
            continue
        node_id = _text(raw.get("id"), default=str(len(nodes) + 1))
        if node_id in seen:
            continue
        seen.add(node_id)
        nodes.append(MindMapNode(id=node_id, label=label, children=_strings(raw.get("children"))))

    # Drop dangling child references.
    for node in nodes:
        node.children = [child for child in node.children if child in seen and child != node.id]

    default_title = f"Mind Map: {lesson_title}" if lesson_title else "Mind Map"
    return MindMap(title=_text(data.get("title"), default=default_title), nodes=nodes)
