"""Tests for config.llm_config and config.settings — LLMConfig rendering and env parsing."""

import pytest

from config.llm_config import LLMConfig
from config.settings import Settings


# ── Construction & defaults ───────────────────────────────────


def test_default_all_none():
    cfg = LLMConfig()
    assert cfg.model is None
    assert cfg.temperature is None
    assert cfg.top_p is None
    assert cfg.top_k is None


def test_validation_temperature_range():
    with pytest.raises(ValueError):
        LLMConfig(temperature=3.0)  # max 2.0


def test_validation_top_p_range():
    with pytest.raises(ValueError):
        LLMConfig(top_p=-0.1)


def test_validation_max_tokens_positive():
    with pytest.raises(ValueError):
        LLMConfig(max_tokens=0)


# ── merge ─────────────────────────────────────────────────────


def test_merge_override_non_none():
    base = LLMConfig(model="gemini-2.0-flash", temperature=0.7, max_tokens=4096)
    merged = base.merge(LLMConfig(temperature=0.2))

    assert merged.model == "gemini-2.0-flash"   # kept from base
    assert merged.temperature == 0.2            # overridden
    assert merged.max_tokens == 4096            # kept from base
    assert merged.top_p is None                 # neither set


def test_merge_does_not_mutate():
    base = LLMConfig(temperature=0.7)
    override = LLMConfig(temperature=0.2)
    merged = base.merge(override)

    assert base.temperature == 0.7
    assert override.temperature == 0.2
    assert merged.temperature == 0.2


def test_merge_empty_override():
    base = LLMConfig(model="a", temperature=0.5)
    merged = base.merge(LLMConfig())

    assert merged.model == "a"
    assert merged.temperature == 0.5


# ── Wire rendering ────────────────────────────────────────────


def test_chat_kwargs_skip_model_and_top_k():
    cfg = LLMConfig(model="m", max_tokens=2048, temperature=0.3, top_p=0.9, top_k=40)
    assert cfg.to_chat_kwargs() == {"max_tokens": 2048, "temperature": 0.3, "top_p": 0.9}


def test_chat_kwargs_exclude_none():
    assert LLMConfig(temperature=0.5).to_chat_kwargs() == {"temperature": 0.5}
    assert LLMConfig().to_chat_kwargs() == {}


def test_generation_config_uses_wire_names():
    cfg = LLMConfig(max_tokens=1024, temperature=0.2, top_p=0.8, top_k=40)
    assert cfg.to_generation_config() == {
        "temperature": 0.2,
        "topK": 40,
        "topP": 0.8,
        "maxOutputTokens": 1024,
    }


def test_generation_config_empty():
    assert LLMConfig().to_generation_config() == {}


# ── Settings integration ──────────────────────────────────────


def test_settings_default_llm_config():
    s = Settings(_env_file=None, max_tokens=2048, temperature=0.6, top_p=0.9, top_k=None)
    cfg = s.get_default_llm_config()

    assert isinstance(cfg, LLMConfig)
    assert cfg.model is None  # chosen per backend
    assert cfg.max_tokens == 2048
    assert cfg.temperature == 0.6
    assert cfg.top_k is None


def test_settings_defaults():
    s = Settings(_env_file=None)
    assert s.backend_order == ["chat", "gemini"]
    assert s.key_rate_limit == 11
    assert s.key_quota_block_seconds == 300.0
    assert s.chat_queue_min_interval == 5.5
    assert s.provider_max_retries == 3
    assert s.max_lesson_retries == 5


def test_key_pool_from_comma_separated_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEYS", " key-one , key-two,,")
    assert Settings(_env_file=None).gemini_api_keys == ["key-one", "key-two"]


def test_key_pool_from_json_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEYS", '["key-one", "key-two"]')
    assert Settings(_env_file=None).gemini_api_keys == ["key-one", "key-two"]


def test_backend_order_normalized():
    s = Settings(_env_file=None, backend_order="Gemini, CHAT")
    assert s.backend_order == ["gemini", "chat"]


def test_unknown_backend_rejected():
    with pytest.raises(ValueError, match="Unknown backend"):
        Settings(_env_file=None, backend_order=["chat", "claude"])
