from fitplan.adapters.base import HttpAdapter, error_message
from fitplan.core.errors import ProviderReportedError
from fitplan.core.prompts import system_prompt


class GroqAdapter(HttpAdapter):
    """OpenAI-style chat completions (messages array, bearer auth)."""

    backend = "groq"
    name = "Groq"
    url = "https://api.groq.com/openai/v1/chat/completions"

    def call(self, prompt: str, model: str) -> str:
        api_key = self._require_key()
        with self._session() as client:
            data = self._request(
                client,
                "POST",
                self.url,
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "model": model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                },
            )

        if isinstance(data, dict) and data.get("error"):
            raise ProviderReportedError(error_message(data) or "unknown error", self.name)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderReportedError("response has no choices[0].message.content", self.name) from e
        if not isinstance(content, str) or not content.strip():
            raise ProviderReportedError("empty completion", self.name)
        return content
