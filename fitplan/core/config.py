import os
import json
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fitplan.models.schemas import ProviderDescriptor

# Order defines fallback precedence: cheapest viable provider first.
DEFAULT_PROVIDERS = (
    ProviderDescriptor(backend="groq", model="llama-3.3-70b-versatile", label="Groq Llama 3.3 70B", credential_key="GROQ_API_KEY"),
    ProviderDescriptor(backend="gemini", model="gemini-2.5-flash", label="Gemini 2.5 Flash", credential_key="GEMINI_API_KEY"),
    ProviderDescriptor(backend="gemini", model="gemini-pro", label="Gemini Pro", credential_key="GEMINI_API_KEY"),
    ProviderDescriptor(backend="huggingface", model="meta-llama/Llama-3.3-70B-Instruct", label="HuggingFace Llama 3.3", credential_key="HUGGINGFACE_API_KEY"),
    ProviderDescriptor(backend="replicate", model="meta/meta-llama-3-70b-instruct", label="Replicate Llama 3 70B", credential_key="REPLICATE_API_KEY"),
)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    providers: tuple[ProviderDescriptor, ...] = DEFAULT_PROVIDERS
    credentials: dict[str, str] = Field(default_factory=dict)

    provider_timeout: float = 60.0  # seconds, per provider call
    backoff_seconds: float = 1.0
    backoff_factor: float = 1.0
    temperature: float = 0.7
    max_tokens: int = 4000
    replicate_poll_interval: float = 1.0
    replicate_max_polls: int = 60

    retrieval_limit: int = 3
    retrieval_max_chars: int = 3500
    retrieval_timeout: float = 10.0

    log_level: str = "INFO"

    def credential(self, key: str) -> Optional[str]:
        return self.credentials.get(key) or None


def parse_providers(raw: Optional[str]) -> tuple[ProviderDescriptor, ...]:
    """Parse the FITPLAN_PROVIDERS override (a JSON list of descriptor objects)."""
    if not raw:
        return DEFAULT_PROVIDERS
    try:
        entries = json.loads(raw)
        if not isinstance(entries, list) or not entries:
            raise ValueError("FITPLAN_PROVIDERS must be a non-empty JSON list")
        return tuple(ProviderDescriptor.model_validate(entry) for entry in entries)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(f"Invalid FITPLAN_PROVIDERS: {e}") from e


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment (.env is loaded when no mapping is given)."""
    if env is None:
        load_dotenv()
        env = os.environ

    providers = parse_providers(env.get("FITPLAN_PROVIDERS"))
    credential_keys = {p.credential_key for p in providers}

    return Settings(
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_key=env.get("SUPABASE_SERVICE_KEY") or None,
        providers=providers,
        credentials={key: env[key] for key in credential_keys if env.get(key)},
        provider_timeout=float(env.get("FITPLAN_PROVIDER_TIMEOUT", 60)),
        backoff_seconds=float(env.get("FITPLAN_BACKOFF_SECONDS", 1.0)),
        backoff_factor=float(env.get("FITPLAN_BACKOFF_FACTOR", 1.0)),
        retrieval_limit=int(env.get("FITPLAN_RETRIEVAL_LIMIT", 3)),
        retrieval_max_chars=int(env.get("FITPLAN_RETRIEVAL_MAX_CHARS", 3500)),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
