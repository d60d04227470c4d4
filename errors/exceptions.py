"""Domain-specific exceptions for the course generation engine.

These exceptions let each layer decide where a failure is recovered:

- the Executor recovers ``BackendError`` / ``CredentialExhaustionError`` by
  moving to the next backend or the next retry pass;
- the Orchestrator recovers ``ExtractionError`` for optional artifacts with
  safe defaults and retries the whole lesson on ``AllProvidersExhausted``;
- the API layer turns whatever is left into an ``error`` progress event.
"""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for every failure raised by the generation engine."""


class ConfigurationError(GenerationError):
    """The engine cannot run with the current settings (no backends, empty key pool)."""


class CredentialExhaustionError(GenerationError):
    """No credential can serve a request right now.

    Carries the estimated wait so the Queue can sleep instead of failing.
    """

    def __init__(self, backend: str, wait_ms: int = 0) -> None:
        self.backend = backend
        self.wait_ms = wait_ms
        super().__init__(
            f"Backend '{backend}' has no available credential (retry in ~{wait_ms}ms)"
        )


class BackendError(GenerationError):
    """A single backend call failed (HTTP error, transport error, empty body)."""

    def __init__(
        self,
        backend: str,
        message: str,
        status_code: int | None = None,
        rate_limited: bool = False,
    ) -> None:
        self.backend = backend
        self.status_code = status_code
        self.rate_limited = rate_limited
        status = f" {status_code}" if status_code is not None else ""
        super().__init__(f"Backend '{backend}'{status}: {message}")


class AllProvidersExhausted(GenerationError):
    """Every configured backend failed on every retry pass."""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"All providers failed after {attempts} attempts{detail}")


class ExtractionError(GenerationError):
    """All JSON repair strategies failed.

    ``raw_text`` keeps the untouched model output for diagnostics.
    """

    def __init__(self, raw_text: str, message: str = "Could not extract JSON from model output") -> None:
        self.raw_text = raw_text
        preview = raw_text[:120].replace("\n", " ")
        super().__init__(f"{message} (got {len(raw_text)} chars: {preview!r})")


class CurriculumError(GenerationError):
    """The curriculum step produced nothing usable; fatal for the run."""


class LessonGenerationError(GenerationError):
    """A lesson could not be generated after all lesson-level retries."""

    def __init__(
        self,
        lesson_index: int,
        lesson_title: str,
        attempts: int,
        cause: Exception | None = None,
    ) -> None:
        self.lesson_index = lesson_index
        self.lesson_title = lesson_title
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Lesson {lesson_index} ('{lesson_title}') failed after {attempts} attempts: {cause}"
        )


class PersistenceError(GenerationError):
    """A generated lesson could not be saved after all persistence retries."""

    def __init__(self, table: str, attempts: int, cause: Exception | None = None) -> None:
        self.table = table
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Insert into '{table}' failed after {attempts} attempts: {cause}")


class GenerationCancelled(GenerationError):
    """The caller signalled cancellation; no new lessons were scheduled."""

    def __init__(self, persisted_lessons: int) -> None:
        self.persisted_lessons = persisted_lessons
        super().__init__(f"Generation cancelled after {persisted_lessons} persisted lessons")


class QueueClosedError(GenerationError):
    """The generation queue shut down before the task could run."""
