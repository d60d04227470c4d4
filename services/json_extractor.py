"""Resilient JSON extraction from raw model output.

Models wrap JSON in markdown fences, add prose around it, and (most often)
stop at a token limit in the middle of a structure.  ``extract`` runs an
ordered list of strategies and stops at the first one that parses:

1. candidate = contents of the fenced code block wrapping the JSON (closing
   fence optional), else the whole text.  Fences that open after the first
   ``{`` / ``[`` belong to a string value and are left alone;
2. direct ``json.loads`` of the whole text, then of the candidate (then of
   the slice starting at the first ``{`` / ``[`` when prose precedes it);
3. structural repair, re-parsing after each step:
   a. strip trailing commas before ``}`` / ``]``;
   b. close a dangling string and the open brackets/braces (innermost first);
   c. cut back to the previous element boundary and close again;
4. when the text is a provider envelope
   (``candidates[0].content.parts[0].text``), re-run on the inner text;
5. raise :class:`ExtractionError` with the raw text.

Valid JSON is always returned as parsed, envelope-shaped or not.  Only an
envelope that needed repair is unwrapped.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator

from errors.exceptions import ExtractionError

logger = logging.getLogger(__name__)

_FENCE = "```"
_OPEN_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?([\s\S]*)$")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_ENVELOPE_TEXT_RE = re.compile(r'"text"\s*:\s*"((?:[^"\\]|\\.)*)("?)', re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}
MAX_CUT_BACKS = 200
MAX_ENVELOPE_DEPTH = 2


def extract(raw_text: str) -> Any:
    """Return the best-effort parsed JSON value of *raw_text*.

    Raises:
        ExtractionError: every strategy failed.
    """
    return _extract(raw_text, depth=0)


def strip_code_fences(text: str) -> str:
    """Strategy 1: the fenced block's contents if present, else *text*."""
    fenced = _fence_candidates(text)
    return fenced[0] if fenced else text.strip()


def repair_candidates(text: str) -> Iterator[str]:
    """Strategy 3: successively more aggressive repairs of *text*.

    Yields each repaired string once; the caller re-parses after each.
    """
    seen: set[str] = set()

    def _fresh(candidate: str) -> bool:
        if candidate in seen:
            return False
        seen.add(candidate)
        return True

    no_commas = strip_trailing_commas(text)
    if no_commas != text and _fresh(no_commas):
        yield no_commas

    closed = close_structures(text)
    if _fresh(closed):
        yield closed

    for boundary in _element_boundaries(text)[:MAX_CUT_BACKS]:
        candidate = close_structures(text[:boundary])
        if candidate and _fresh(candidate):
            yield candidate


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def close_structures(text: str) -> str:
    """Close a dangling string and every unbalanced ``{`` / ``[`` in *text*."""
    stack, in_string, escaped = _scan(text)
    repaired = text
    if in_string:
        if escaped:
            repaired = repaired[:-1]
        repaired += '"'
    repaired = repaired.rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1].rstrip()
    if repaired.endswith(":"):
        repaired += " null"
    repaired += "".join(_CLOSERS[opener] for opener in reversed(stack))
    return strip_trailing_commas(repaired)


# ── internals ──────────────────────────────────────────────────


def _extract(raw_text: str, depth: int) -> Any:
    if not raw_text or not raw_text.strip():
        raise ExtractionError(raw_text or "", "Model returned an empty response")

    stripped = raw_text.strip()
    fenced = _fence_candidates(raw_text)
    candidate = fenced[0] if fenced else stripped

    seen: set[str] = set()
    for source in [stripped, *fenced]:
        for text in _direct_candidates(source):
            if text in seen:
                continue
            seen.add(text)
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                continue

    start = _json_start(candidate)
    body = candidate[start:] if start is not None else candidate
    for step, repaired in enumerate(repair_candidates(body), start=1):
        try:
            value = json.loads(repaired)
        except json.JSONDecodeError:
            continue
        logger.info(
            "Repaired truncated/malformed JSON (strategy step %d, %d → %d chars)",
            step, len(body), len(repaired),
        )
        return _unwrap_envelope(value, raw_text, depth)

    inner = _envelope_text_from_raw(candidate)
    if inner is not None and depth < MAX_ENVELOPE_DEPTH:
        logger.info("Extracting from nested provider envelope text")
        return _extract(inner, depth + 1)

    raise ExtractionError(raw_text)


def _fence_candidates(text: str) -> list[str]:
    """Bodies of the fence wrapping the JSON: up to the last closing fence, then the first."""
    opening = _OPEN_FENCE_RE.search(text)
    if opening is None:
        return []
    start = _json_start(text)
    if start is not None and start < opening.start():
        return []

    body = opening.group(1)
    last = body.rfind(_FENCE)
    if last == -1 or _scan(body[:last])[1]:
        # No closing fence outside a string: the model was cut off inside it.
        return [body.strip()]

    candidates = [body[:last].strip()]
    first = body.find(_FENCE)
    if first != last:
        candidates.append(body[:first].strip())
    return candidates


def _direct_candidates(candidate: str) -> Iterator[str]:
    yield candidate
    start = _json_start(candidate)
    if start:
        yield candidate[start:]
        end = max(candidate.rfind("}"), candidate.rfind("]"))
        if end > start:
            yield candidate[start:end + 1]


def _json_start(text: str) -> int | None:
    positions = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    return min(positions) if positions else None


def _scan(text: str) -> tuple[list[str], bool, bool]:
    """Walk *text* once; return (open bracket stack, inside string?, pending escape?)."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]":
            if stack and _CLOSERS[stack[-1]] == ch:
                stack.pop()
    return stack, in_string, escaped


def _element_boundaries(text: str) -> list[int]:
    """Cut points outside strings, last first: before each ``,`` and after each opener."""
    cuts: list[int] = []
    in_string = False
    escaped = False
    for index, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == ",":
            cuts.append(index)
        elif ch in _CLOSERS:
            cuts.append(index + 1)
    cuts.reverse()
    return cuts


def _unwrap_envelope(value: Any, raw_text: str, depth: int) -> Any:
    inner = _envelope_text(value)
    if inner is None or depth >= MAX_ENVELOPE_DEPTH:
        return value
    logger.info("Unwrapping provider envelope")
    try:
        return _extract(inner, depth + 1)
    except ExtractionError as exc:
        raise ExtractionError(raw_text, "Provider envelope text is not JSON") from exc


def _envelope_text(value: Any) -> str | None:
    """``value["candidates"][0]["content"]["parts"][0]["text"]`` or ``None``."""
    if not isinstance(value, dict):
        return None
    try:
        text = value["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def _envelope_text_from_raw(candidate: str) -> str | None:
    """Pull the inner ``text`` string out of an envelope that does not parse."""
    if '"candidates"' not in candidate:
        return None
    match = _ENVELOPE_TEXT_RE.search(candidate)
    if match is None:
        return None
    body = match.group(1)
    if body.endswith("\\") and not body.endswith("\\\\"):
        body = body[:-1]
    try:
        return json.loads(f'"{body}"')
    except json.JSONDecodeError:
        return None
