"""Course generation API — runs the orchestrator and streams its progress.

``POST /api/courses/generate`` accepts a :class:`CurriculumSpec` and returns
an SSE stream with one ``data:`` line per :class:`ProgressEvent`, ending
with ``data: [DONE]``.  A client disconnect sets the run's cancellation
event: the in-flight lesson finishes and is persisted, no new lesson starts.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from starlette.responses import StreamingResponse

from errors.exceptions import GenerationCancelled
from models.course import CurriculumSpec
from models.progress import ProgressEvent, ProgressStep
from services.container import ServiceContainer, get_container
from services.datastream import SSE_HEADERS, ProgressStreamEncoder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["courses"])

_SSE_HEARTBEAT_INTERVAL = 15  # seconds
_POLL_INTERVAL = 1.0  # seconds between disconnect checks while idle


@router.post("/courses/generate")
async def generate_course(
    spec: CurriculumSpec,
    request: Request,
    container: ServiceContainer = Depends(get_container),
):
    """Generate a full course, streaming progress as server-sent events."""
    return StreamingResponse(
        _progress_stream(spec, request, container),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


async def _progress_stream(
    spec: CurriculumSpec,
    request: Request,
    container: ServiceContainer,
) -> AsyncGenerator[str, None]:
    enc = ProgressStreamEncoder()
    events: asyncio.Queue[ProgressEvent] = asyncio.Queue()
    cancel = asyncio.Event()
    orchestrator = container.orchestrator()

    run = asyncio.create_task(
        orchestrator.generate_course(spec, on_progress=events.put_nowait, cancel_event=cancel)
    )
    run.add_done_callback(_log_run_outcome)

    last_heartbeat = time.monotonic()
    terminal_sent = False
    try:
        while True:
            if run.done() and events.empty():
                break
            try:
                event = await asyncio.wait_for(events.get(), timeout=_POLL_INTERVAL)
            except asyncio.TimeoutError:
                if not cancel.is_set() and await request.is_disconnected():
                    logger.info("Client disconnected, cancelling course generation")
                    cancel.set()
                now = time.monotonic()
                if now - last_heartbeat > _SSE_HEARTBEAT_INTERVAL:
                    yield ": heartbeat\n\n"
                    last_heartbeat = now
                continue

            if event.step in (ProgressStep.COMPLETE, ProgressStep.ERROR, ProgressStep.CANCELLED):
                terminal_sent = True
            yield enc.event(event)
            last_heartbeat = time.monotonic()

        if not terminal_sent and not run.cancelled() and run.exception() is not None:
            yield enc.error(f"Course generation failed: {run.exception()}")
        yield enc.done()
    finally:
        if not run.done():
            # Stream closed early: let the in-flight lesson finish, then stop.
            cancel.set()


def _log_run_outcome(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.info("Course generation task cancelled")
        return
    exc = task.exception()
    if isinstance(exc, GenerationCancelled):
        logger.info("Course generation stopped: %s", exc)
    elif exc is not None:
        logger.warning("Course generation ended with error: %s", exc)
