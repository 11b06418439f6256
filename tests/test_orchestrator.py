"""Tests for the sequential provider fallback."""

import threading

import pytest

from conftest import StubAdapter, make_descriptor

from fitplan.core.errors import (
    AllProvidersExhausted,
    CredentialMissing,
    GenerationCancelled,
    NoJsonFound,
    SchemaViolation,
    TransportError,
)
from fitplan.services.orchestrator import AttemptStatus, ProviderFallbackOrchestrator

A, B, C, D = (make_descriptor(label) for label in ("Alpha", "Bravo", "Charlie", "Delta"))


def _orchestrator(settings, adapters, sleeps, **kwargs):
    return ProviderFallbackOrchestrator(
        settings,
        adapter_factory=lambda descriptor: adapters[descriptor.label],
        sleep=sleeps.append,
        **kwargs,
    )


def test_first_valid_result_wins(make_settings, recorded_sleeps, valid_plan_text) -> None:
    adapters = {"Alpha": StubAdapter(valid_plan_text), "Bravo": StubAdapter(valid_plan_text)}
    outcome = _orchestrator(make_settings(A, B), adapters, recorded_sleeps).generate("prompt")

    assert outcome.provider == A
    assert adapters["Bravo"].calls == []
    assert adapters["Alpha"].calls == [("prompt", "alpha-model")]
    assert [a.status for a in outcome.attempts] == [AttemptStatus.SUCCESS, AttemptStatus.PENDING]
    assert outcome.calls_made == 1
    assert recorded_sleeps == []


def test_malformed_then_valid(make_settings, recorded_sleeps, valid_plan_text) -> None:
    """A content failure falls through to the next provider exactly like a transport failure."""
    adapters = {"Alpha": StubAdapter("Sorry, I can only answer in prose."), "Bravo": StubAdapter(valid_plan_text)}
    outcome = _orchestrator(make_settings(A, B), adapters, recorded_sleeps).generate("prompt")

    assert outcome.provider == B
    assert len(outcome.attempts) == 2
    first, second = outcome.attempts
    assert first.status is AttemptStatus.PARSE_ERROR
    assert isinstance(first.error, NoJsonFound)
    assert first.raw_text == "Sorry, I can only answer in prose."
    assert first.failed
    assert second.status is AttemptStatus.SUCCESS
    assert outcome.plan.workout[0].day == "Day 1"
    assert recorded_sleeps == [1.0]


def test_invalid_structure_is_a_validation_error(make_settings, recorded_sleeps, valid_plan_text) -> None:
    adapters = {"Alpha": StubAdapter('{"workout": [], "diet": {"meals": {}}}'), "Bravo": StubAdapter(valid_plan_text)}
    outcome = _orchestrator(make_settings(A, B), adapters, recorded_sleeps).generate("prompt")

    assert outcome.attempts[0].status is AttemptStatus.VALIDATION_ERROR
    assert isinstance(outcome.attempts[0].error, SchemaViolation)
    assert outcome.attempts[0].to_log()["status"] == "validation_error"


def test_all_credentials_missing(make_settings, recorded_sleeps) -> None:
    adapters = {"Alpha": StubAdapter("unused"), "Bravo": StubAdapter("unused")}
    orchestrator = _orchestrator(make_settings(A, B, credentials={}), adapters, recorded_sleeps)

    with pytest.raises(AllProvidersExhausted) as exc:
        orchestrator.generate("prompt")

    assert adapters["Alpha"].calls == [] and adapters["Bravo"].calls == []
    assert [a.status for a in exc.value.attempts] == [AttemptStatus.SKIPPED, AttemptStatus.SKIPPED]
    assert isinstance(exc.value.last_error, CredentialMissing)
    assert recorded_sleeps == []


def test_skips_are_free(make_settings, recorded_sleeps, valid_plan_text) -> None:
    settings = make_settings(A, B, credentials={"BRAVO_KEY": "k"})
    adapters = {"Alpha": StubAdapter("unused"), "Bravo": StubAdapter(valid_plan_text)}

    outcome = _orchestrator(settings, adapters, recorded_sleeps).generate("prompt")

    assert outcome.provider == B
    assert outcome.calls_made == 1
    assert recorded_sleeps == []


def test_owed_backoff_is_paid_before_the_next_real_call(make_settings, recorded_sleeps, valid_plan_text) -> None:
    settings = make_settings(A, B, C, credentials={"ALPHA_KEY": "k", "CHARLIE_KEY": "k"})
    adapters = {
        "Alpha": StubAdapter(TransportError("HTTP 503", "Alpha", status_code=503)),
        "Bravo": StubAdapter("unused"),
        "Charlie": StubAdapter(valid_plan_text),
    }

    outcome = _orchestrator(settings, adapters, recorded_sleeps).generate("prompt")

    assert [a.status for a in outcome.attempts] == [AttemptStatus.PROVIDER_ERROR, AttemptStatus.SKIPPED, AttemptStatus.SUCCESS]
    assert recorded_sleeps == [1.0]


def test_no_backoff_after_the_last_provider(make_settings, recorded_sleeps) -> None:
    adapters = {
        "Alpha": StubAdapter(TransportError("timed out", "Alpha")),
        "Bravo": StubAdapter("not json"),
    }

    with pytest.raises(AllProvidersExhausted) as exc:
        _orchestrator(make_settings(A, B), adapters, recorded_sleeps).generate("prompt")

    assert recorded_sleeps == [1.0]
    assert isinstance(exc.value.last_error, NoJsonFound)
    assert "All AI providers failed" in str(exc.value)


def test_exponential_backoff(make_settings, recorded_sleeps, valid_plan_text) -> None:
    settings = make_settings(A, B, C, D, backoff_seconds=0.5, backoff_factor=2.0)
    adapters = {
        "Alpha": StubAdapter(RuntimeError("boom")),
        "Bravo": StubAdapter(RuntimeError("boom")),
        "Charlie": StubAdapter(RuntimeError("boom")),
        "Delta": StubAdapter(valid_plan_text),
    }

    outcome = _orchestrator(settings, adapters, recorded_sleeps).generate("prompt")

    assert outcome.provider == D
    assert outcome.calls_made == 4
    assert recorded_sleeps == [0.5, 1.0, 2.0]


def test_adapter_credential_error_counts_as_skip(make_settings, recorded_sleeps, valid_plan_text) -> None:
    adapters = {"Alpha": StubAdapter(CredentialMissing("API key not found", "Alpha")), "Bravo": StubAdapter(valid_plan_text)}
    outcome = _orchestrator(make_settings(A, B), adapters, recorded_sleeps).generate("prompt")

    assert outcome.attempts[0].status is AttemptStatus.SKIPPED
    assert outcome.calls_made == 1
    assert recorded_sleeps == []


def test_explicit_provider_list_overrides_settings(make_settings, recorded_sleeps, valid_plan_text) -> None:
    settings = make_settings(A, B)
    adapters = {"Alpha": StubAdapter("unused"), "Bravo": StubAdapter(valid_plan_text)}

    outcome = _orchestrator(settings, adapters, recorded_sleeps).generate("prompt", providers=[B])

    assert outcome.provider == B
    assert len(outcome.attempts) == 1


def test_cancelled_before_start(make_settings, recorded_sleeps, valid_plan_text) -> None:
    event = threading.Event()
    event.set()
    adapters = {"Alpha": StubAdapter(valid_plan_text)}

    with pytest.raises(GenerationCancelled):
        _orchestrator(make_settings(A), adapters, recorded_sleeps, cancel_event=event).generate("prompt")
    assert adapters["Alpha"].calls == []


def test_result_of_in_flight_call_is_discarded_on_cancel(make_settings, recorded_sleeps, valid_plan_text) -> None:
    event = threading.Event()
    adapters = {"Alpha": StubAdapter(valid_plan_text, on_call=event.set)}

    with pytest.raises(GenerationCancelled):
        _orchestrator(make_settings(A), adapters, recorded_sleeps, cancel_event=event).generate("prompt")
    assert len(adapters["Alpha"].calls) == 1


def test_cancel_interrupts_backoff(make_settings, recorded_sleeps, valid_plan_text) -> None:
    event = threading.Event()
    settings = make_settings(A, B, backoff_seconds=30)
    adapters = {
        "Alpha": StubAdapter(RuntimeError("boom")),
        "Bravo": StubAdapter(valid_plan_text),
    }
    # Cancel from another thread while the orchestrator waits out the backoff.
    timer = threading.Timer(0.05, event.set)
    timer.start()
    try:
        with pytest.raises(GenerationCancelled):
            _orchestrator(settings, adapters, recorded_sleeps, cancel_event=event).generate("prompt")
    finally:
        timer.cancel()

    assert adapters["Bravo"].calls == []
    assert recorded_sleeps == []
