"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from config.llm_config import LLMConfig

KNOWN_BACKENDS = ("chat", "gemini")


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False
    log_level: str = "INFO"

    # ── Streaming chat-completion backend ────────────────────
    chat_api_base: str = "https://llm.chutes.ai/v1"
    chat_api_token: str = ""
    chat_model: str = "deepseek-ai/DeepSeek-V3-0324"

    # ── Single-shot generateContent backend (rotating keys) ──
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_api_keys: Annotated[list[str], NoDecode] = []
    gemini_model: str = "gemini-2.0-flash"

    # Backends are tried in this order on every retry pass
    backend_order: Annotated[list[str], NoDecode] = ["chat", "gemini"]

    # ── LLM Generation Defaults ──────────────────────────────
    max_tokens: int = 4000
    temperature: float | None = 0.7
    top_p: float | None = 0.95
    top_k: int | None = 40
    request_timeout: float = 120.0  # seconds, per backend call

    # ── Key rotation ─────────────────────────────────────────
    key_rate_limit: int = 11  # requests per window per key
    key_window_seconds: float = 60.0
    key_block_seconds: float = 60.0
    key_quota_block_seconds: float = 300.0  # explicit quota / 429 responses

    # ── Provider executor ────────────────────────────────────
    provider_max_retries: int = 3
    provider_retry_base_delay: float = 1.0

    # ── Generation queue ─────────────────────────────────────
    queue_min_interval: float = 2.0
    chat_queue_min_interval: float = 5.5  # ~11 requests/minute published limit
    queue_max_wait: float = 30.0

    # ── Orchestrator ─────────────────────────────────────────
    max_lesson_retries: int = 5
    lesson_retry_base_delay: float = 2.0
    max_db_retries: int = 5
    db_retry_base_delay: float = 1.0

    # ── Guidelines ───────────────────────────────────────────
    guidelines_cache_seconds: float = 300.0

    @field_validator("gemini_api_keys", "backend_order", mode="before")
    @classmethod
    def _split_csv(cls, value):
        """Accept ``"a,b"`` as well as ``'["a", "b"]'`` from the environment."""
        if isinstance(value, str):
            raw = value.strip()
            if raw.startswith("["):
                return [str(v).strip() for v in json.loads(raw) if str(v).strip()]
            return [part.strip() for part in raw.split(",") if part.strip()]
        return value

    @field_validator("backend_order")
    @classmethod
    def _known_backends(cls, value: list[str]) -> list[str]:
        normalized = [name.lower() for name in value]
        unknown = [name for name in normalized if name not in KNOWN_BACKENDS]
        if unknown:
            raise ValueError(
                f"Unknown backend(s) {unknown}; expected any of {list(KNOWN_BACKENDS)}"
            )
        return normalized

    # ── Helpers ───────────────────────────────────────────────

    def get_default_llm_config(self) -> LLMConfig:
        """Build an :class:`LLMConfig` from global .env defaults."""
        return LLMConfig(
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
        )


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
