"""Tests for the Supabase-backed example store."""

from types import SimpleNamespace

import pytest

from fitplan.core.config import Settings
from fitplan.core.errors import RetrievalUnavailable
from fitplan.services.supabase_client import SIMILAR_PLANS_RPC, SupabaseExampleStore, get_supabase


class _FakeSupabase:
    def __init__(self, data):
        self.data = data
        self.calls = []

    def rpc(self, name, params):
        self.calls.append((name, params))
        return SimpleNamespace(execute=lambda: SimpleNamespace(data=self.data))


def test_not_configured() -> None:
    settings = Settings()
    assert get_supabase(settings) is None
    with pytest.raises(RetrievalUnavailable):
        SupabaseExampleStore(settings).fetch_similar({"p_limit": 3})


def test_fetch_similar_calls_rpc() -> None:
    fake = _FakeSupabase([{"rating": 5}])
    store = SupabaseExampleStore(Settings(), client=fake)

    assert store.fetch_similar({"p_goal": "Weight Loss", "p_limit": 3}) == [{"rating": 5}]
    assert fake.calls == [(SIMILAR_PLANS_RPC, {"p_goal": "Weight Loss", "p_limit": 3})]


def test_null_data_is_empty() -> None:
    assert SupabaseExampleStore(Settings(), client=_FakeSupabase(None)).fetch_similar({}) == []


def test_unexpected_shape() -> None:
    with pytest.raises(RetrievalUnavailable):
        SupabaseExampleStore(Settings(), client=_FakeSupabase({"rows": []})).fetch_similar({})
