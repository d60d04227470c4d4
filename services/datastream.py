"""Progress stream encoder — course generation events as server-sent events.

Each method returns one ready-to-yield SSE string: ``"data: {json}\\n\\n"``.
Every stream ends with ``data: [DONE]\\n\\n``.

Event payloads are the camelCase :class:`ProgressEvent` dump::

    data: {"step": "lesson", "message": "...", "progress": 35.0, "currentLesson": 2, ...}
"""

from __future__ import annotations

import json
from typing import Any

from models.progress import ProgressEvent, ProgressStep

DONE = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ProgressStreamEncoder:
    """Encode orchestrator progress events into SSE lines."""

    @staticmethod
    def _sse(payload: dict[str, Any]) -> str:
        return f"data: {json.dumps(payload, ensure_ascii=False, default=str)}\n\n"

    def event(self, event: ProgressEvent) -> str:
        return self._sse(event.to_payload())

    def error(self, text: str, progress: float = 0.0) -> str:
        """Error event for failures that happen outside the orchestrator."""
        return self._sse(
            {
                "step": ProgressStep.ERROR.value,
                "message": text,
                "progress": progress,
                "error": text,
            }
        )

    def done(self) -> str:
        return DONE
