from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, ClassVar, Iterator, Optional

import httpx

from fitplan.core.config import Settings
from fitplan.core.errors import CredentialMissing, ProviderReportedError, TransportError


class ProviderAdapter(ABC):
    """Translates a generic prompt/model pair into one backend's request and returns raw text.

    Adapters never validate the plan; they only surface text or a typed error.
    """

    backend: ClassVar[str]
    name: ClassVar[str]

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, api_key: Optional[str], settings: Settings, **kwargs) -> "ProviderAdapter":
        return cls(
            api_key,
            timeout=settings.provider_timeout,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            **kwargs,
        )

    def _require_key(self) -> str:
        if not self.api_key:
            raise CredentialMissing("API key not found", provider=self.name)
        return self.api_key

    @abstractmethod
    def call(self, prompt: str, model: str) -> str:
        ...


def error_message(body: Any) -> Optional[str]:
    """Pull a human readable message out of a provider error body."""
    if isinstance(body, dict):
        error = body.get("error", body.get("detail"))
        if isinstance(error, dict):
            return error.get("message") or str(error)
        if error:
            return str(error)
        if body.get("message"):
            return str(body["message"])
    return None


class HttpAdapter(ProviderAdapter):
    """Adapter for providers reached with plain JSON over HTTP."""

    def __init__(self, api_key: Optional[str], timeout: float = 60.0, temperature: float = 0.7,
                 max_tokens: int = 4000, http_client: Optional[httpx.Client] = None):
        super().__init__(api_key, timeout, temperature, max_tokens)
        self._http_client = http_client

    @contextmanager
    def _session(self) -> Iterator[httpx.Client]:
        if self._http_client is not None:
            yield self._http_client
        else:
            with httpx.Client(timeout=self.timeout) as client:
                yield client

    def _request(self, client: httpx.Client, method: str, url: str, **kwargs) -> Any:
        try:
            response = client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"request timed out after {self.timeout:g}s", self.name) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__, self.name) from e

        if response.is_error:
            try:
                message = error_message(response.json())
            except ValueError:
                message = None
            raise TransportError(
                message or response.text[:300] or response.reason_phrase,
                self.name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderReportedError("response body is not JSON", self.name) from e
