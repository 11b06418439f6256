import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from loguru import logger

from fitplan.adapters.base import ProviderAdapter
from fitplan.adapters.registry import build_adapter
from fitplan.core.config import Settings
from fitplan.core.errors import (
    AllProvidersExhausted,
    CredentialMissing,
    GenerationCancelled,
    NoJsonFound,
    SchemaViolation,
)
from fitplan.models.schemas import PlanResult, ProviderDescriptor
from fitplan.services.response_parser import parse as parse_plan


class AttemptStatus(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    CALLING = "calling"
    SUCCESS = "success"
    PROVIDER_ERROR = "provider_error"
    PARSE_ERROR = "parse_error"
    VALIDATION_ERROR = "validation_error"


FAILED_STATUSES = (AttemptStatus.PROVIDER_ERROR, AttemptStatus.PARSE_ERROR, AttemptStatus.VALIDATION_ERROR)


@dataclass
class GenerationAttempt:
    descriptor: ProviderDescriptor
    status: AttemptStatus = AttemptStatus.PENDING
    raw_text: Optional[str] = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0  # seconds spent in the provider call

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES

    def to_log(self) -> dict:
        return {
            "provider": self.descriptor.label,
            "status": self.status.value,
            "error": str(self.error) if self.error else None,
            "elapsed": round(self.elapsed, 3),
        }


@dataclass
class GenerationOutcome:
    plan: PlanResult
    provider: ProviderDescriptor
    attempts: list[GenerationAttempt] = field(default_factory=list)

    @property
    def calls_made(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.status not in (AttemptStatus.PENDING, AttemptStatus.SKIPPED))


class ProviderFallbackOrchestrator:
    """
    Tries each configured provider in order until one returns a valid plan.

    A provider whose credential is missing is skipped without delay. After a
    failed call a backoff is owed and paid just before the next real call,
    so nothing is slept after the last provider. Unparseable or invalid
    output counts as a failure exactly like a transport error.

    If a `cancel_event` is given it is checked before each call and while
    backing off. A call already in flight runs to its own timeout; its
    result is then discarded and GenerationCancelled is raised.
    """

    def __init__(
        self,
        settings: Settings,
        adapter_factory: Optional[Callable[[ProviderDescriptor], ProviderAdapter]] = None,
        parse: Callable[[str], PlanResult] = parse_plan,
        cancel_event: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.adapter_factory = adapter_factory or (lambda descriptor: build_adapter(descriptor, settings))
        self.parse = parse
        self.cancel_event = cancel_event
        self._sleep = sleep

    def _check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise GenerationCancelled("Plan generation was cancelled")

    def _backoff(self, failures: int):
        delay = self.settings.backoff_seconds * (self.settings.backoff_factor ** (failures - 1))
        if delay <= 0:
            return
        logger.debug(f"Backing off {delay:.2f}s before the next provider")
        if self.cancel_event is not None:
            if self.cancel_event.wait(delay):
                raise GenerationCancelled("Plan generation was cancelled")
        else:
            self._sleep(delay)

    def _run_attempt(self, attempt: GenerationAttempt, prompt: str) -> Optional[PlanResult]:
        descriptor = attempt.descriptor
        attempt.status = AttemptStatus.CALLING
        started = time.monotonic()
        try:
            adapter = self.adapter_factory(descriptor)
            attempt.raw_text = adapter.call(prompt, descriptor.model)
        except CredentialMissing as e:
            # Raised before any request goes out, so this is a skip rather than a call.
            attempt.status = AttemptStatus.SKIPPED
            attempt.error = e
            return None
        except GenerationCancelled:
            raise
        except Exception as e:
            attempt.status = AttemptStatus.PROVIDER_ERROR
            attempt.error = e
            return None
        finally:
            attempt.elapsed = time.monotonic() - started

        self._check_cancelled()

        try:
            plan = self.parse(attempt.raw_text)
        except NoJsonFound as e:
            attempt.status = AttemptStatus.PARSE_ERROR
            attempt.error = e
            return None
        except SchemaViolation as e:
            attempt.status = AttemptStatus.VALIDATION_ERROR
            attempt.error = e
            return None

        attempt.status = AttemptStatus.SUCCESS
        return plan

    def generate(self, prompt: str, providers: Optional[Sequence[ProviderDescriptor]] = None) -> GenerationOutcome:
        providers = tuple(providers) if providers is not None else self.settings.providers
        attempts = [GenerationAttempt(descriptor) for descriptor in providers]
        failures = 0
        last_error: Optional[BaseException] = None
        last_skip: Optional[BaseException] = None

        for attempt in attempts:
            descriptor = attempt.descriptor
            self._check_cancelled()

            if not self.settings.credential(descriptor.credential_key):
                attempt.status = AttemptStatus.SKIPPED
                attempt.error = CredentialMissing("API key not found", provider=descriptor.label)
                last_skip = attempt.error
                logger.info(f"⏭️ Skipping {descriptor.label}: {descriptor.credential_key} not set")
                continue

            if failures:
                self._backoff(failures)
                self._check_cancelled()

            logger.info(f"Trying {descriptor.label} ({descriptor.backend}/{descriptor.model})")
            plan = self._run_attempt(attempt, prompt)

            if attempt.status is AttemptStatus.SKIPPED:
                last_skip = attempt.error
                logger.info(f"⏭️ Skipping {descriptor.label}: {attempt.error}")
                continue

            if plan is not None:
                logger.info(f"✅ Plan generated by {descriptor.label} in {attempt.elapsed:.1f}s")
                return GenerationOutcome(plan=plan, provider=descriptor, attempts=attempts)

            failures += 1
            last_error = attempt.error
            logger.warning(f"⚠️ {descriptor.label} failed ({attempt.status.value}): {attempt.error}")

        error = AllProvidersExhausted(last_error or last_skip, attempts)
        logger.error(f"❌ {error} ({failures} call(s) failed, {len(attempts)} provider(s) configured)")
        raise error
