"""Test doubles and canned model replies shared across the suite."""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from typing import Any


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep double: records each delay and moves the fake clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.calls: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds)
        await asyncio.sleep(0)


class ScriptedExecutor:
    """Stands in for ProviderRequestExecutor.

    ``responses[content_type]`` is a list of replies consumed in order (the
    last one repeats); an Exception instance in the list is raised instead.
    A callable receives the prompt and returns the reply.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[tuple[str, str]] = []
        self._served: dict[str, int] = defaultdict(int)

    @property
    def backend_names(self) -> list[str]:
        return ["scripted"]

    async def execute(self, prompt: str, content_type: str) -> str:
        self.calls.append((content_type, prompt))
        script = self.responses.get(content_type)
        if script is None:
            raise AssertionError(f"No scripted response for {content_type}")
        if callable(script):
            reply = script(prompt)
        elif isinstance(script, list):
            index = min(self._served[content_type], len(script) - 1)
            reply = script[index]
        else:
            reply = script
        self._served[content_type] += 1
        await asyncio.sleep(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def content_types(self) -> list[str]:
        return [content_type for content_type, _ in self.calls]


def curriculum_json(titles: list[str], title: str = "Algebra Basics") -> str:
    return json.dumps(
        {
            "title": title,
            "description": "An introduction",
            "objectives": ["Solve equations"],
            "lessons": [
                {"title": t, "description": f"About {t}", "objectives": [f"Learn {t}"], "order": i + 1}
                for i, t in enumerate(titles)
            ],
        }
    )


def contents_json(title: str = "Lesson") -> str:
    return json.dumps(
        [
            {"title": "Introduction", "type": "rich_text", "content": f"# {title}\n\nWelcome.", "order": 1},
            {"title": "Summary", "type": "rich_text", "content": "## Summary\n\nDone.", "order": 2},
        ]
    )


QUIZ_JSON = json.dumps(
    {
        "title": "Quiz",
        "questions": [
            {
                "id": "q1",
                "question": "What is x if x + 1 = 2?",
                "type": "multiple_choice",
                "options": ["0", "1", "2", "3"],
                "correctAnswer": "1",
                "explanation": "Subtract one.",
            }
        ],
        "passingScore": 70,
        "attempts": 3,
    }
)


def lesson_title_from(prompt: str) -> str:
    """Pull the quoted lesson title out of a lesson content prompt."""
    return prompt.split('"')[1]


