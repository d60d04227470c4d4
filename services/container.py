"""Process-wide service container — owns every long-lived engine object.

Built once from :class:`Settings` and started / closed by the FastAPI
lifespan.  Tests build their own containers (or the individual services)
instead of touching the module-level instance.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from agents.course_generator import CourseGenerationOrchestrator
from config.llm_config import LLMConfig
from config.settings import Settings, get_settings
from errors.exceptions import ConfigurationError
from services.backends import GenerateContentBackend, GenerationBackend, StreamingChatBackend
from services.chat_assistant import ChatAssistant
from services.executor import ProviderRequestExecutor
from services.generation_queue import GenerationQueue
from services.guidelines import GuidelineService
from services.key_rotation import KeyRotationManager
from services.lesson_store import InMemoryLessonStore, LessonStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------
_container: ServiceContainer | None = None


class ServiceContainer:
    """Wires key rotation, backends, executor, queue, store and assistants."""

    def __init__(
        self,
        settings: Settings,
        store: LessonStore | None = None,
        backends: list[GenerationBackend] | None = None,
        rotation: KeyRotationManager | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.settings = settings
        self.store = store or InMemoryLessonStore()
        self.rotation = rotation or KeyRotationManager(
            settings.gemini_api_keys,
            rate_limit=settings.key_rate_limit,
            window_seconds=settings.key_window_seconds,
            block_seconds=settings.key_block_seconds,
        )
        self.backends = backends if backends is not None else build_backends(settings, self.rotation)
        self.guidelines = GuidelineService(self.store, cache_seconds=settings.guidelines_cache_seconds)

        sleep_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.executor = ProviderRequestExecutor(
            self.backends,
            self.guidelines,
            max_retries=settings.provider_max_retries,
            base_delay=settings.provider_retry_base_delay,
            **sleep_kwargs,
        )
        self.queue = GenerationQueue(
            self.executor,
            self.rotation,
            min_interval=settings.queue_min_interval,
            interval_overrides={"chat": settings.chat_queue_min_interval},
            max_wait=settings.queue_max_wait,
            **sleep_kwargs,
        )
        self.chat_assistant = ChatAssistant(self.queue, self.store)
        self._sleep_kwargs = sleep_kwargs
        self._started = False

    def orchestrator(self) -> CourseGenerationOrchestrator:
        """A fresh orchestrator bound to the shared queue and store."""
        return CourseGenerationOrchestrator(
            self.queue,
            self.store,
            max_lesson_retries=self.settings.max_lesson_retries,
            lesson_retry_base_delay=self.settings.lesson_retry_base_delay,
            max_db_retries=self.settings.max_db_retries,
            db_retry_base_delay=self.settings.db_retry_base_delay,
            **self._sleep_kwargs,
        )

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if self._started:
            return
        for backend in self.backends:
            await backend.start()
        try:
            await self.guidelines.seed_defaults()
        except Exception:
            logger.warning("Seeding default guidelines failed", exc_info=True)
        self._started = True
        logger.info(
            "Service container started — backends=%s, api_keys=%d",
            [b.name for b in self.backends], self.rotation.size,
        )

    async def close(self) -> None:
        await self.queue.close()
        for backend in self.backends:
            await backend.close()
        self._started = False
        logger.info("Service container closed")


def build_backends(settings: Settings, rotation: KeyRotationManager) -> list[GenerationBackend]:
    """Instantiate backends in ``settings.backend_order``.

    Raises:
        ConfigurationError: the single-shot backend has no API keys, or no
            backend is left to serve requests.
    """
    llm = settings.get_default_llm_config()
    backends: list[GenerationBackend] = []
    for name in settings.backend_order:
        if name == "chat":
            if not settings.chat_api_token:
                logger.warning("chat backend skipped: CHAT_API_TOKEN is not set")
                continue
            backends.append(
                StreamingChatBackend(
                    api_base=settings.chat_api_base,
                    api_token=settings.chat_api_token,
                    llm_config=llm.merge(LLMConfig(model=settings.chat_model)),
                    timeout=settings.request_timeout,
                )
            )
        elif name == "gemini":
            if rotation.size == 0:
                raise ConfigurationError(
                    "gemini backend is configured but GEMINI_API_KEYS is empty"
                )
            backends.append(
                GenerateContentBackend(
                    api_base=settings.gemini_api_base,
                    rotation=rotation,
                    llm_config=llm.merge(LLMConfig(model=settings.gemini_model)),
                    timeout=settings.request_timeout,
                    quota_block_seconds=settings.key_quota_block_seconds,
                )
            )
    if not backends:
        raise ConfigurationError(
            f"No usable generation backend in BACKEND_ORDER={settings.backend_order}"
        )
    return backends


def init_container(settings: Settings | None = None) -> ServiceContainer:
    """Create (or replace) the process-wide container."""
    global _container
    _container = ServiceContainer(settings or get_settings())
    return _container


def get_container() -> ServiceContainer:
    """FastAPI dependency / accessor for the process-wide container."""
    if _container is None:
        raise RuntimeError("Service container not initialized — call init_container() first")
    return _container


def reset_container() -> None:
    global _container
    _container = None
