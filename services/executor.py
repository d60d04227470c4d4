"""Provider Request Executor — ordered backend fallback with retry passes.

``execute`` makes up to ``max_retries`` passes over the configured backends
in order and returns the first non-empty reply.  Within a pass, a failing
backend hands over to the next one immediately; exponential backoff
(``base_delay * 2 ** (attempt - 1)``) is applied only between passes.

The guideline preamble for the content type is always prepended to the
system instruction.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from config.prompts.course_generation import build_system_instruction
from config.prompts.guidelines import DEFAULT_GUIDELINES_PROMPT
from errors.exceptions import (
    AllProvidersExhausted,
    BackendError,
    ConfigurationError,
    CredentialExhaustionError,
)
from services.backends import GenerationBackend
from services.guidelines import GuidelineService

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds, doubles each pass


class ProviderRequestExecutor:
    """Run one prompt against the backend list until something answers."""

    def __init__(
        self,
        backends: Sequence[GenerationBackend],
        guidelines: GuidelineService | None = None,
        max_retries: int = MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not backends:
            raise ConfigurationError("No generation backends configured")
        self._backends = list(backends)
        self._guidelines = guidelines
        self._max_retries = max(1, max_retries)
        self._base_delay = base_delay
        self._sleep = sleep

    @property
    def backend_names(self) -> list[str]:
        return [b.name for b in self._backends]

    async def execute(self, prompt: str, content_type: str) -> str:
        """Return the first non-empty response text.

        Raises:
            AllProvidersExhausted: every backend failed on every pass;
                ``last_error`` holds the last failure observed.
        """
        system_instruction = await self._system_instruction(content_type)
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            for backend in self._backends:
                try:
                    response = await backend.generate(system_instruction, prompt)
                except CredentialExhaustionError as exc:
                    logger.info(
                        "Skipping %s for %s (no credential, ~%dms) [attempt %d/%d]",
                        backend.name, content_type, exc.wait_ms, attempt, self._max_retries,
                    )
                    last_error = exc
                    continue
                except BackendError as exc:
                    logger.warning(
                        "%s failed for %s: %s [attempt %d/%d]",
                        backend.name, content_type, exc, attempt, self._max_retries,
                    )
                    last_error = exc
                    continue

                if response.text.strip():
                    if attempt > 1 or backend is not self._backends[0]:
                        logger.info(
                            "%s answered %s on attempt %d", backend.name, content_type, attempt
                        )
                    return response.text
                last_error = BackendError(backend.name, "empty response")

            if attempt < self._max_retries:
                delay = self._base_delay * (2 ** (attempt - 1))
                logger.warning(
                    "All backends failed for %s, retry %d/%d in %.1fs",
                    content_type, attempt, self._max_retries, delay,
                )
                await self._sleep(delay)

        logger.error(
            "All providers exhausted for %s after %d attempts: %s",
            content_type, self._max_retries, last_error,
        )
        raise AllProvidersExhausted(self._max_retries, last_error)

    async def _system_instruction(self, content_type: str) -> str:
        preamble = DEFAULT_GUIDELINES_PROMPT
        if self._guidelines is not None:
            try:
                preamble = await self._guidelines.build_guidelines_prompt(content_type)
            except Exception:
                logger.exception("Guideline provider failed, using default guidelines")
        return f"{preamble}\n{build_system_instruction(content_type)}"
