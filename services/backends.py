"""Provider backends — one class per wire shape.

- ``StreamingChatBackend``: OpenAI-style ``/chat/completions`` with
  ``stream: true``; SSE chunks carry ``choices[].delta.content`` and the
  stream ends with ``data: [DONE]``.
- ``GenerateContentBackend``: single-shot ``models/{model}:generateContent``;
  the reply is a ``candidates[0].content.parts[].text`` envelope.  Requests
  are authenticated with keys from a :class:`KeyRotationManager`.

Both return a :class:`BackendResponse`.  A truncated reply (``length`` /
``MAX_TOKENS``, or a stream that never sent ``[DONE]``) is still returned:
the JSON extractor repairs it downstream.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from config.llm_config import LLMConfig
from errors.exceptions import BackendError, CredentialExhaustionError
from models.credentials import mask_secret
from services.key_rotation import KeyRotationManager

logger = logging.getLogger(__name__)

DEFAULT_QUOTA_BLOCK_SECONDS = 300.0


@dataclass
class BackendResponse:
    text: str
    backend: str
    finish_reason: str | None = None
    truncated: bool = False


class GenerationBackend(ABC):
    """One configured external generation endpoint."""

    name: str = "backend"

    def __init__(
        self,
        *,
        api_base: str,
        llm_config: LLMConfig,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_base = api_base.rstrip("/")
        self._llm = llm_config
        self._timeout = timeout
        self._http = client
        self._owns_client = client is None

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
            self._owns_client = True
            logger.info("%s backend started — api_base=%s", self.name, self._api_base)

    async def close(self) -> None:
        if self._http is not None and self._owns_client:
            await self._http.aclose()
            logger.info("%s backend closed", self.name)
        if self._owns_client:
            self._http = None

    def _ensure_started(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError(f"{self.name} backend not started — call start() first")
        return self._http

    # -- public API ----------------------------------------------------------

    @abstractmethod
    async def generate(self, system_instruction: str, prompt: str) -> BackendResponse:
        """Run one request.

        Raises:
            BackendError: HTTP error status, transport failure or empty output.
            CredentialExhaustionError: no credential can serve the request now.
        """


class StreamingChatBackend(GenerationBackend):
    """Chat-completion endpoint consumed as a server-sent-event stream."""

    name = "chat"

    def __init__(
        self,
        *,
        api_base: str,
        api_token: str,
        llm_config: LLMConfig,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_base=api_base, llm_config=llm_config, timeout=timeout, client=client)
        self._api_token = api_token

    async def generate(self, system_instruction: str, prompt: str) -> BackendResponse:
        client = self._ensure_started()
        url = f"{self._api_base}/chat/completions"
        body = {
            "model": self._llm.model,
            "messages": [
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": prompt},
            ],
            "stream": True,
            **self._llm.to_chat_kwargs(),
        }
        headers = {"Authorization": f"Bearer {self._api_token}"}

        parts: list[str] = []
        finish_reason: str | None = None
        done = False
        t0 = time.monotonic()
        try:
            async with client.stream("POST", url, json=body, headers=headers) as response:
                if response.status_code >= 400:
                    detail = (await response.aread()).decode(errors="replace")[:300]
                    raise BackendError(
                        self.name,
                        detail or f"HTTP {response.status_code}",
                        status_code=response.status_code,
                        rate_limited=response.status_code == 429,
                    )
                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        done = True
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed SSE chunk: %.80s", data)
                        continue
                    if isinstance(chunk.get("error"), dict):
                        raise BackendError(
                            self.name, str(chunk["error"].get("message", chunk["error"]))
                        )
                    for choice in chunk.get("choices") or []:
                        delta = choice.get("delta") or {}
                        content = delta.get("content")
                        if content:
                            parts.append(content)
                        if choice.get("finish_reason"):
                            finish_reason = choice["finish_reason"]
        except httpx.TransportError as exc:
            raise BackendError(self.name, f"network error: {exc}") from exc

        text = "".join(parts)
        elapsed_ms = (time.monotonic() - t0) * 1000
        logger.info(
            "POST %s → stream %d chars, finish=%s (%.0fms)",
            url, len(text), finish_reason, elapsed_ms,
        )
        if not text.strip():
            raise BackendError(self.name, "empty response")

        truncated = finish_reason == "length" or not done
        if truncated:
            logger.warning(
                "%s response truncated (finish=%s, done=%s), relying on JSON repair",
                self.name, finish_reason, done,
            )
        return BackendResponse(
            text=text, backend=self.name, finish_reason=finish_reason, truncated=truncated
        )


class GenerateContentBackend(GenerationBackend):
    """Single-shot ``generateContent`` endpoint with rotating API keys."""

    name = "gemini"

    def __init__(
        self,
        *,
        api_base: str,
        rotation: KeyRotationManager,
        llm_config: LLMConfig,
        timeout: float = 120.0,
        quota_block_seconds: float = DEFAULT_QUOTA_BLOCK_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_base=api_base, llm_config=llm_config, timeout=timeout, client=client)
        self.rotation = rotation
        self._quota_block_seconds = quota_block_seconds

    async def generate(self, system_instruction: str, prompt: str) -> BackendResponse:
        key = self.rotation.select_credential()
        if key is None:
            raise CredentialExhaustionError(self.name, self.rotation.estimated_wait_ms())

        client = self._ensure_started()
        url = f"{self._api_base}/models/{self._llm.model}:generateContent"
        body = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self._llm.to_generation_config(),
        }

        t0 = time.monotonic()
        try:
            response = await client.post(url, json=body, headers={"x-goog-api-key": key})
        except httpx.TransportError as exc:
            raise BackendError(self.name, f"network error: {exc}") from exc

        elapsed_ms = (time.monotonic() - t0) * 1000
        logger.info(
            "POST %s [key %s] → %d (%.0fms)",
            url, mask_secret(key), response.status_code, elapsed_ms,
        )

        if response.status_code == 429 or (
            response.status_code >= 400 and "RESOURCE_EXHAUSTED" in response.text
        ):
            self.rotation.mark_failed(key, self._quota_block_seconds)
            raise BackendError(
                self.name,
                "quota exhausted",
                status_code=response.status_code,
                rate_limited=True,
            )
        if response.status_code >= 400:
            raise BackendError(
                self.name,
                response.text[:300] or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        self.rotation.record_use(key)

        try:
            payload = response.json()
        except ValueError:
            # Not an envelope: hand the raw body to the extractor.
            logger.warning("%s returned a non-JSON body (%d chars)", self.name, len(response.text))
            if not response.text.strip():
                raise BackendError(self.name, "empty response")
            return BackendResponse(text=response.text, backend=self.name, truncated=True)

        text, finish_reason = _read_envelope(payload)
        if not text.strip():
            raise BackendError(self.name, f"empty response (finish={finish_reason})")

        truncated = finish_reason == "MAX_TOKENS"
        if truncated:
            logger.warning("%s hit MAX_TOKENS, relying on JSON repair", self.name)
        return BackendResponse(
            text=text, backend=self.name, finish_reason=finish_reason, truncated=truncated
        )


def _read_envelope(payload: object) -> tuple[str, str | None]:
    """``(text, finishReason)`` from a ``generateContent`` reply."""
    if not isinstance(payload, dict):
        return "", None
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return "", None
    candidate = candidates[0]
    content = candidate.get("content")
    parts = content.get("parts") or [] if isinstance(content, dict) else []
    text = "".join(
        part.get("text", "") for part in parts if isinstance(part, dict)
    )
    return text, candidate.get("finishReason")
