"""Tests for settings loading."""

import json

import pytest

from fitplan.core.config import DEFAULT_PROVIDERS, load_settings, parse_providers


def test_defaults_from_empty_environment() -> None:
    settings = load_settings({})

    assert settings.providers == DEFAULT_PROVIDERS
    assert [p.label for p in settings.providers] == [
        "Groq Llama 3.3 70B", "Gemini 2.5 Flash", "Gemini Pro", "HuggingFace Llama 3.3", "Replicate Llama 3 70B",
    ]
    assert settings.credentials == {}
    assert settings.provider_timeout == 60
    assert settings.backoff_seconds == 1.0
    assert settings.retrieval_limit == 3
    assert settings.retrieval_max_chars == 3500
    assert settings.supabase_url is None


def test_environment_values() -> None:
    settings = load_settings({
        "SUPABASE_URL": "https://db.example.co",
        "SUPABASE_SERVICE_KEY": "service",
        "GROQ_API_KEY": "groq",
        "GEMINI_API_KEY": "",
        "UNRELATED_API_KEY": "ignored",
        "FITPLAN_PROVIDER_TIMEOUT": "15",
        "FITPLAN_BACKOFF_SECONDS": "0.5",
        "FITPLAN_BACKOFF_FACTOR": "2",
        "FITPLAN_RETRIEVAL_LIMIT": "5",
        "LOG_LEVEL": "DEBUG",
    })

    assert settings.credentials == {"GROQ_API_KEY": "groq"}
    assert settings.credential("GEMINI_API_KEY") is None
    assert settings.provider_timeout == 15
    assert settings.backoff_factor == 2
    assert settings.retrieval_limit == 5
    assert settings.supabase_key == "service"
    assert settings.log_level == "DEBUG"


def test_provider_override() -> None:
    raw = json.dumps([
        {"backend": "google_predict", "model": "text-bison-001", "label": "Google PaLM", "credential_key": "GOOGLE_API_KEY"},
    ])
    settings = load_settings({"FITPLAN_PROVIDERS": raw, "GOOGLE_API_KEY": "g"})

    assert [p.backend for p in settings.providers] == ["google_predict"]
    assert settings.credential("GOOGLE_API_KEY") == "g"


@pytest.mark.parametrize("raw", ["not json", "[]", '{"backend": "groq"}', '[{"backend": "groq"}]'])
def test_invalid_provider_override(raw: str) -> None:
    with pytest.raises(ValueError, match="FITPLAN_PROVIDERS"):
        parse_providers(raw)
