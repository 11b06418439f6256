import httpx
from google import genai
from google.genai import errors, types

from fitplan.adapters.base import ProviderAdapter
from fitplan.core.errors import ProviderReportedError, TransportError
from fitplan.core.prompts import system_prompt


class GeminiAdapter(ProviderAdapter):
    """Gemini through the google-genai SDK; the plan is the candidate text."""

    backend = "gemini"
    name = "Gemini"

    def call(self, prompt: str, model: str) -> str:
        api_key = self._require_key()
        client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),  # milliseconds
        )

        try:
            response = client.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=self.temperature,
                    max_output_tokens=self.max_tokens,
                ),
            )
        except errors.APIError as e:
            raise TransportError(e.message or str(e), self.name, status_code=e.code) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"request timed out after {self.timeout:g}s", self.name) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__, self.name) from e

        text = response.text
        if not text or not text.strip():
            feedback = getattr(response, "prompt_feedback", None)
            raise ProviderReportedError(f"empty response (prompt feedback: {feedback})", self.name)
        return text
