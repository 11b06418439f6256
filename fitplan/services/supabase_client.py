from typing import Any, Optional

from supabase import Client, ClientOptions, create_client

from fitplan.core.config import Settings, get_settings
from fitplan.core.errors import RetrievalUnavailable

SIMILAR_PLANS_RPC = "get_similar_plans"


def get_supabase(settings: Settings) -> Optional[Client]:
    """Service-role client, or None when Supabase is not configured (e.g. local dev without DB)."""
    if not settings.supabase_url or not settings.supabase_key:
        return None
    return create_client(
        settings.supabase_url,
        settings.supabase_key,
        options=ClientOptions(
            postgrest_client_timeout=settings.retrieval_timeout,
            auto_refresh_token=False,
            persist_session=False,
        ),
    )


class SupabaseExampleStore:
    """Rated plans saved by the web layer, queried through the get_similar_plans RPC."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Client] = None):
        self.settings = settings or get_settings()
        self._client = client

    def fetch_similar(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        client = self._client or get_supabase(self.settings)
        if client is None:
            raise RetrievalUnavailable("Supabase URL and Key are not configured")
        self._client = client

        response = client.rpc(SIMILAR_PLANS_RPC, params).execute()
        data = response.data
        if data is None:
            return []
        if not isinstance(data, list):
            raise RetrievalUnavailable(f"{SIMILAR_PLANS_RPC} returned {type(data).__name__}, expected a list")
        return data
