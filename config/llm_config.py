"""Reusable LLM generation parameters.

LLMConfig is a standalone Pydantic model that can be:
- embedded in Settings as the global default,
- declared per-backend for provider-specific tuning,
- passed per-call for one-off overrides.

Priority chain (low → high):
    .env global defaults  →  backend-level LLMConfig  →  per-call overrides

Both backend shapes read the same fields but spell them differently, so the
model renders itself for each wire format.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """LLM generation parameters shared by every backend.

    All fields are optional.  ``None`` means "use the provider's default".
    """

    model: str | None = Field(default=None, description="Provider model identifier")
    max_tokens: int | None = Field(default=None, gt=0, description="Max tokens to generate")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    top_k: int | None = Field(
        default=None, ge=0, description="Gemini supported; ignored by chat-completion APIs"
    )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def merge(self, overrides: LLMConfig) -> LLMConfig:
        """Return a new LLMConfig: *self* as base, *overrides* wins on non-None fields."""
        base = self.model_dump(exclude_none=True)
        over = overrides.model_dump(exclude_none=True)
        base.update(over)
        return LLMConfig(**base)

    def to_chat_kwargs(self) -> dict:
        """Render as chat-completion body fields (``max_tokens``, ``temperature``, ``top_p``)."""
        kw: dict = {}
        for field in ("max_tokens", "temperature", "top_p"):
            val = getattr(self, field)
            if val is not None:
                kw[field] = val
        return kw

    def to_generation_config(self) -> dict:
        """Render as a ``generationConfig`` block for the single-shot endpoint."""
        mapping = {
            "temperature": "temperature",
            "top_k": "topK",
            "top_p": "topP",
            "max_tokens": "maxOutputTokens",
        }
        cfg: dict = {}
        for field, wire_name in mapping.items():
            val = getattr(self, field)
            if val is not None:
                cfg[wire_name] = val
        return cfg
