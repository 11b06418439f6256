from fitplan.adapters.base import ProviderAdapter
from fitplan.adapters.gemini import GeminiAdapter
from fitplan.adapters.google_predict import GooglePredictAdapter
from fitplan.adapters.groq import GroqAdapter
from fitplan.adapters.huggingface import HuggingFaceAdapter
from fitplan.adapters.replicate import ReplicateAdapter
from fitplan.core.config import Settings
from fitplan.models.schemas import ProviderDescriptor

# Backend identifier -> adapter class, used to dispatch each configured provider.
AVAILABLE_ADAPTERS = {
    adapter.backend: adapter
    for adapter in (GroqAdapter, GeminiAdapter, HuggingFaceAdapter, GooglePredictAdapter, ReplicateAdapter)
}


def build_adapter(descriptor: ProviderDescriptor, settings: Settings, **kwargs) -> ProviderAdapter:
    adapter_cls = AVAILABLE_ADAPTERS.get(descriptor.backend)
    if not adapter_cls:
        raise ValueError(f"Provider backend '{descriptor.backend}' is not registered in AVAILABLE_ADAPTERS.")
    return adapter_cls.from_settings(settings.credential(descriptor.credential_key), settings, **kwargs)
