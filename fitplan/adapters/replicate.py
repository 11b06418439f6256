import time
from typing import Callable, Optional

import httpx
from loguru import logger

from fitplan.adapters.base import HttpAdapter
from fitplan.core.config import Settings
from fitplan.core.errors import ProviderReportedError, TransportError
from fitplan.core.prompts import system_prompt

TERMINAL_STATUSES = ("succeeded", "failed", "canceled")


class ReplicateAdapter(HttpAdapter):
    """
    Asynchronous prediction jobs.

    The POST creates a prediction; its `urls.get` status URL is polled until
    the job reaches a terminal status, the poll budget runs out, or the whole
    job exceeds the adapter timeout.
    """

    backend = "replicate"
    name = "Replicate"
    base_url = "https://api.replicate.com/v1/models"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        http_client: Optional[httpx.Client] = None,
        poll_interval: float = 1.0,
        max_polls: int = 60,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(api_key, timeout, temperature, max_tokens, http_client)
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, api_key: Optional[str], settings: Settings, **kwargs) -> "ReplicateAdapter":
        kwargs.setdefault("poll_interval", settings.replicate_poll_interval)
        kwargs.setdefault("max_polls", settings.replicate_max_polls)
        return super().from_settings(api_key, settings, **kwargs)

    def call(self, prompt: str, model: str) -> str:
        api_key = self._require_key()
        headers = {"Authorization": f"Bearer {api_key}"}
        deadline = self._clock() + self.timeout

        with self._session() as client:
            job = self._request(
                client,
                "POST",
                f"{self.base_url}/{model}/predictions",
                headers=headers,
                json={
                    "input": {
                        "prompt": prompt,
                        "system_prompt": system_prompt,
                        "max_tokens": self.max_tokens,
                        "temperature": self.temperature,
                    }
                },
            )
            if not isinstance(job, dict):
                raise ProviderReportedError("prediction response is not an object", self.name)

            status_url = (job.get("urls") or {}).get("get")
            polls = 0
            while job.get("status") not in TERMINAL_STATUSES:
                if not status_url:
                    raise ProviderReportedError("prediction has no status URL", self.name)
                if polls >= self.max_polls:
                    raise TransportError(f"prediction still {job.get('status')} after {polls} polls", self.name)
                if self._clock() + self.poll_interval > deadline:
                    raise TransportError(f"prediction not finished within {self.timeout:g}s", self.name)
                self._sleep(self.poll_interval)
                job = self._request(client, "GET", status_url, headers=headers)
                if not isinstance(job, dict):
                    raise ProviderReportedError("prediction response is not an object", self.name)
                polls += 1

        logger.debug(f"Replicate prediction {job.get('id')} finished as {job.get('status')} after {polls} poll(s)")
        if job["status"] != "succeeded":
            raise ProviderReportedError(str(job.get("error") or f"prediction {job['status']}"), self.name)

        output = job.get("output")
        if isinstance(output, list):
            output = "".join(str(chunk) for chunk in output)
        if not isinstance(output, str) or not output.strip():
            raise ProviderReportedError("prediction returned no output", self.name)
        return output
