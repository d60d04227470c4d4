"""Generation Request Queue — the global admission-control point for provider calls.

Every caller (course generation runs, the chat assistant) submits prompts
here.  A single worker task drains the queue in FIFO order and runs one
executor call at a time.  Before each task after the first it waits:

- while the key pool has no free credential, it sleeps the estimated wait
  (capped at ``max_wait`` per sleep) and re-checks;
- otherwise it sleeps whatever is left of the task's minimum interval since
  the previous call (``min_interval``, or a per-content-type override such
  as 5.5s for ``chat``).

Every submitted task is settled with the executor's result or error.
Closing the queue rejects pending tasks with :class:`QueueClosedError`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping

from errors.exceptions import QueueClosedError
from services.executor import ProviderRequestExecutor
from services.key_rotation import KeyRotationManager

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL = 2.0
CHAT_MIN_INTERVAL = 5.5
MAX_CREDENTIAL_WAIT = 30.0


@dataclass
class _Task:
    prompt: str
    content_type: str
    future: asyncio.Future = field(repr=False)


class GenerationQueue:
    """FIFO queue drained by one cooperative worker."""

    def __init__(
        self,
        executor: ProviderRequestExecutor,
        rotation: KeyRotationManager | None = None,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        interval_overrides: Mapping[str, float] | None = None,
        max_wait: float = MAX_CREDENTIAL_WAIT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._executor = executor
        self._rotation = rotation
        self._min_interval = min_interval
        self._overrides = (
            dict(interval_overrides)
            if interval_overrides is not None
            else {"chat": CHAT_MIN_INTERVAL}
        )
        self._max_wait = max_wait
        self._sleep = sleep
        self._clock = clock

        self._queue: asyncio.Queue[_Task] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._current: _Task | None = None
        self._last_started_at: float | None = None
        self._closed = False
        self.completed = 0

    @property
    def pending(self) -> int:
        """Tasks waiting or running."""
        return self._queue.qsize() + (1 if self._current is not None else 0)

    @property
    def closed(self) -> bool:
        return self._closed

    async def submit(self, prompt: str, content_type: str) -> str:
        """Enqueue one request and wait for its response text.

        Raises whatever the executor raised for this task, or
        :class:`QueueClosedError` if the queue shut down first.
        """
        if self._closed:
            raise QueueClosedError("Generation queue is closed")
        loop = asyncio.get_running_loop()
        task = _Task(prompt=prompt, content_type=content_type, future=loop.create_future())
        self._queue.put_nowait(task)
        self._ensure_worker()
        logger.debug("Queued %s task (pending=%d)", content_type, self.pending)
        return await task.future

    async def close(self) -> None:
        """Stop the worker and reject every unfinished task."""
        if self._closed:
            return
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        rejected = 0
        if self._current is not None:
            self._reject(self._current)
            self._current = None
            rejected += 1
        while not self._queue.empty():
            self._reject(self._queue.get_nowait())
            rejected += 1
        logger.info("Generation queue closed (%d pending tasks rejected)", rejected)

    # -- worker --------------------------------------------------------------

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._run(), name="generation-queue-worker"
            )

    async def _run(self) -> None:
        while True:
            task = await self._queue.get()
            if task.future.done():
                # Submitter went away (cancelled) before its turn.
                logger.info("Dropping cancelled %s task", task.content_type)
                continue

            self._current = task
            if self._last_started_at is not None:
                await self._wait_turn(task.content_type)
                if task.future.done():
                    logger.info("Dropping %s task cancelled while waiting its turn", task.content_type)
                    self._current = None
                    continue
            self._last_started_at = self._clock()

            try:
                result = await self._executor.execute(task.prompt, task.content_type)
            except asyncio.CancelledError:
                self._reject(task)
                raise
            except Exception as exc:
                if not task.future.done():
                    task.future.set_exception(exc)
            else:
                if not task.future.done():
                    task.future.set_result(result)
            finally:
                if self._current is task:
                    self._current = None
                self.completed += 1

    async def _wait_turn(self, content_type: str) -> None:
        if await self._wait_for_credentials():
            return
        interval = self._overrides.get(content_type, self._min_interval)
        elapsed = self._clock() - (self._last_started_at or 0.0)
        remaining = interval - elapsed
        if remaining > 0:
            await self._sleep(remaining)

    async def _wait_for_credentials(self) -> bool:
        """Sleep until a credential frees up; True if any wait happened."""
        if self._rotation is None or self._rotation.size == 0:
            return False
        waited = False
        while not self._rotation.has_available():
            wait_ms = self._rotation.estimated_wait_ms()
            if wait_ms <= 0:
                break
            delay = min(wait_ms / 1000, self._max_wait)
            logger.info("No API key available, queue waiting %.1fs", delay)
            await self._sleep(delay)
            waited = True
        return waited

    @staticmethod
    def _reject(task: _Task) -> None:
        if not task.future.done():
            task.future.set_exception(QueueClosedError("Generation queue closed before task ran"))
