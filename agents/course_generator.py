"""Course Generation Orchestrator — curriculum, lessons, finalize, complete.

Drives one generation run end to end:

1. ``curriculum`` (10% → 20%): one queued request, extracted and normalized
   into a :class:`CurriculumPlan`.  Failure here is fatal for the run.
2. ``lesson(i)`` (20% → 80%), strictly in curriculum order:
   content blocks first, then each enabled feature (quiz, flashcards, key
   points, mind map) as its own queued request grounded on those blocks.
   Any failure retries the *whole* lesson with exponential backoff, emitting
   a ``retry`` event per re-attempt.  The assembled lesson is persisted with
   its own linear-backoff retry loop before the next lesson starts.
3. ``finalize`` (90%) and ``complete`` (100%) with the assembled course.

Any unrecoverable failure emits an ``error`` event and re-raises.  Lessons
persisted before the failure stay persisted.

A cancellation event, when set, stops the run before the next lesson starts;
the in-flight lesson always finishes and is persisted first.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Protocol

from config.prompts.course_generation import (
    build_curriculum_prompt,
    build_flashcard_prompt,
    build_keypoints_prompt,
    build_lesson_content_prompt,
    build_mindmap_prompt,
    build_quiz_prompt,
)
from errors.exceptions import (
    CurriculumError,
    ExtractionError,
    GenerationCancelled,
    LessonGenerationError,
    PersistenceError,
    QueueClosedError,
)
from models.course import (
    ContentType,
    Course,
    CurriculumPlan,
    CurriculumSpec,
    LessonArtifact,
    LessonOutline,
)
from models.progress import ProgressEvent, ProgressStep
from services.generation_queue import GenerationQueue
from services.json_extractor import extract
from services.lesson_store import LessonStore
from services.normalizers import (
    normalize_contents,
    normalize_curriculum,
    normalize_flashcards,
    normalize_keypoints,
    normalize_mindmap,
    normalize_quiz,
)

logger = logging.getLogger(__name__)

LESSONS_TABLE = "lessons"

MAX_LESSON_RETRIES = 5
LESSON_RETRY_BASE_DELAY = 2.0  # seconds, doubles each attempt
MAX_DB_RETRIES = 5
DB_RETRY_BASE_DELAY = 1.0  # seconds, grows linearly

PROGRESS_CURRICULUM_START = 10.0
PROGRESS_CURRICULUM_DONE = 20.0
PROGRESS_LESSONS_SPAN = 60.0
PROGRESS_FINALIZE = 90.0
PROGRESS_COMPLETE = 100.0

ProgressSink = Callable[[ProgressEvent], Any]


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


class CourseGenerationOrchestrator:
    """Runs generation through a shared :class:`GenerationQueue`."""

    def __init__(
        self,
        queue: GenerationQueue,
        store: LessonStore,
        max_lesson_retries: int = MAX_LESSON_RETRIES,
        lesson_retry_base_delay: float = LESSON_RETRY_BASE_DELAY,
        max_db_retries: int = MAX_DB_RETRIES,
        db_retry_base_delay: float = DB_RETRY_BASE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._queue = queue
        self._store = store
        self._max_lesson_retries = max(1, max_lesson_retries)
        self._lesson_retry_base_delay = lesson_retry_base_delay
        self._max_db_retries = max(1, max_db_retries)
        self._db_retry_base_delay = db_retry_base_delay
        self._sleep = sleep

    async def generate_course(
        self,
        spec: CurriculumSpec,
        on_progress: ProgressSink | None = None,
        cancel_event: CancelToken | None = None,
        run_id: str | None = None,
    ) -> Course:
        """Generate, persist and return a complete course.

        Raises:
            CurriculumError: the curriculum response was unusable.
            LessonGenerationError: a lesson failed after every retry.
            PersistenceError: a lesson could not be saved.
            GenerationCancelled: *cancel_event* was set between lessons.
            AllProvidersExhausted: the curriculum request failed everywhere.
        """
        run_id = run_id or uuid.uuid4().hex[:12]
        progress = 0.0
        persisted: list[LessonArtifact] = []

        def emit(step: ProgressStep, message: str, value: float, **extra: Any) -> None:
            nonlocal progress
            progress = value
            self._emit(on_progress, ProgressEvent(step=step, message=message, progress=value, **extra))

        logger.info("Course generation %s started: %s", run_id, spec.display_title)
        try:
            emit(ProgressStep.CURRICULUM, "Generating course curriculum...", PROGRESS_CURRICULUM_START)
            curriculum = await self._generate_curriculum(spec)
            total = len(curriculum.lessons)
            emit(
                ProgressStep.CURRICULUM,
                f"Curriculum ready: {total} lessons in {len(curriculum.modules)} modules",
                PROGRESS_CURRICULUM_DONE,
                total_lessons=total,
                data=curriculum,
            )

            for index, outline in enumerate(curriculum.lessons):
                if cancel_event is not None and cancel_event.is_set():
                    raise GenerationCancelled(len(persisted))

                lesson_progress = _lesson_progress(index, total)
                emit(
                    ProgressStep.LESSON,
                    f"Generating lesson {index + 1}/{total}: {outline.title}",
                    lesson_progress,
                    current_lesson=index + 1,
                    total_lessons=total,
                )

                def on_retry(attempt: int, exc: Exception, _i: int = index) -> None:
                    emit(
                        ProgressStep.RETRY,
                        f"Retrying lesson {_i + 1}/{total} (attempt {attempt}/"
                        f"{self._max_lesson_retries}): {exc}",
                        lesson_progress,
                        current_lesson=_i + 1,
                        total_lessons=total,
                        attempt=attempt,
                        max_attempts=self._max_lesson_retries,
                        error=str(exc),
                    )

                artifact = await self._generate_lesson_with_retry(
                    index, outline, spec, curriculum, on_retry
                )
                saved = await self._persist_lesson(artifact, f"{run_id}:{outline.order}")
                persisted.append(saved)
                emit(
                    ProgressStep.LESSON,
                    f"Lesson {index + 1}/{total} complete: {outline.title}",
                    _lesson_progress(index + 1, total),
                    current_lesson=index + 1,
                    total_lessons=total,
                    lesson=saved,
                )

            emit(ProgressStep.FINALIZE, "Finalizing course...", PROGRESS_FINALIZE)
            course = Course(
                **curriculum.model_dump(exclude={"lessons"}),
                lessons=persisted,
                is_complete=True,
            )
            emit(ProgressStep.COMPLETE, "Course generation complete!", PROGRESS_COMPLETE, course=course)
            logger.info(
                "Course generation %s complete: %d lessons persisted", run_id, len(persisted)
            )
            return course

        except GenerationCancelled as exc:
            logger.info("Course generation %s cancelled: %s", run_id, exc)
            emit(
                ProgressStep.CANCELLED,
                f"Generation cancelled after {exc.persisted_lessons} lessons",
                progress,
            )
            raise
        except Exception as exc:
            logger.exception("Course generation %s failed", run_id)
            emit(ProgressStep.ERROR, f"Course generation failed: {exc}", progress, error=str(exc))
            raise

    # -- stages --------------------------------------------------------------

    async def _generate_curriculum(self, spec: CurriculumSpec) -> CurriculumPlan:
        raw = await self._queue.submit(build_curriculum_prompt(spec), ContentType.CURRICULUM.value)
        try:
            value = extract(raw)
        except ExtractionError as exc:
            raise CurriculumError(f"Curriculum response is not JSON: {exc}") from exc
        curriculum = normalize_curriculum(value, spec)
        if not curriculum.lessons:
            raise CurriculumError("Curriculum response contained no lessons")
        return curriculum

    async def _generate_lesson_with_retry(
        self,
        index: int,
        outline: LessonOutline,
        spec: CurriculumSpec,
        curriculum: CurriculumPlan,
        on_retry: Callable[[int, Exception], None],
    ) -> LessonArtifact:
        last_error: Exception | None = None
        for attempt in range(1, self._max_lesson_retries + 1):
            if attempt > 1:
                on_retry(attempt, last_error)  # type: ignore[arg-type]
            try:
                artifact = await self._generate_lesson(outline, spec, curriculum)
            except (asyncio.CancelledError, QueueClosedError):
                raise
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Lesson %d '%s' failed [attempt %d/%d]: %s",
                    index + 1, outline.title, attempt, self._max_lesson_retries, exc,
                )
                if attempt < self._max_lesson_retries:
                    await self._sleep(self._lesson_retry_base_delay * (2 ** (attempt - 1)))
                continue
            artifact.generation_attempts = attempt
            return artifact

        raise LessonGenerationError(
            index + 1, outline.title, self._max_lesson_retries, last_error
        ) from last_error

    async def _generate_lesson(
        self,
        outline: LessonOutline,
        spec: CurriculumSpec,
        curriculum: CurriculumPlan,
    ) -> LessonArtifact:
        raw = await self._queue.submit(
            build_lesson_content_prompt(outline, spec, curriculum),
            ContentType.LESSON_CONTENT.value,
        )
        # Main content is mandatory: extraction errors trigger a lesson retry.
        contents = normalize_contents(extract(raw))
        if not contents:
            raise ExtractionError(raw, "Lesson content contained no usable blocks")

        artifact = LessonArtifact.from_outline(outline, course_title=curriculum.title)
        artifact.contents = contents

        if spec.include_quiz:
            value = await self._optional(build_quiz_prompt(outline, spec, contents), ContentType.QUIZ)
            artifact.quiz = normalize_quiz(value, outline.title)
        if spec.include_flashcards:
            value = await self._optional(
                build_flashcard_prompt(outline, spec, contents), ContentType.FLASHCARD
            )
            artifact.flashcards = normalize_flashcards(value)
        if spec.include_keypoints:
            value = await self._optional(
                build_keypoints_prompt(outline, spec, contents), ContentType.KEYPOINTS
            )
            artifact.key_points = normalize_keypoints(value)
        if spec.include_mindmap:
            value = await self._optional(
                build_mindmap_prompt(outline, spec, contents), ContentType.MINDMAP
            )
            artifact.mind_map = normalize_mindmap(value, outline.title)
        return artifact

    async def _optional(self, prompt: str, content_type: ContentType) -> Any:
        """Extracted value for an optional feature; ``None`` when it is not JSON."""
        raw = await self._queue.submit(prompt, content_type.value)
        try:
            return extract(raw)
        except ExtractionError as exc:
            logger.warning("Using default %s: %s", content_type.value, exc)
            return None

    async def _persist_lesson(self, artifact: LessonArtifact, idempotency_key: str) -> LessonArtifact:
        record = artifact.to_record()
        record["isAiGenerated"] = True
        last_error: Exception | None = None
        for attempt in range(1, self._max_db_retries + 1):
            try:
                saved = await self._store.insert(LESSONS_TABLE, record, idempotency_key=idempotency_key)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Saving lesson '%s' failed [attempt %d/%d]: %s",
                    artifact.title, attempt, self._max_db_retries, exc,
                )
                if attempt < self._max_db_retries:
                    await self._sleep(self._db_retry_base_delay * attempt)
                continue
            return artifact.model_copy(update={"id": saved.get("id"), "is_ai_generated": True})

        raise PersistenceError(LESSONS_TABLE, self._max_db_retries, last_error) from last_error

    # -- progress ------------------------------------------------------------

    @staticmethod
    def _emit(sink: ProgressSink | None, event: ProgressEvent) -> None:
        if sink is None:
            return
        try:
            sink(event)
        except Exception:
            logger.exception("Progress sink raised on %s event", event.step.value)


def _lesson_progress(index: int, total: int) -> float:
    if total <= 0:
        return PROGRESS_CURRICULUM_DONE
    return PROGRESS_CURRICULUM_DONE + (index / total) * PROGRESS_LESSONS_SPAN
