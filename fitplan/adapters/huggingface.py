from fitplan.adapters.base import HttpAdapter, error_message
from fitplan.core.errors import ProviderReportedError


class HuggingFaceAdapter(HttpAdapter):
    """Inference API text generation: `{inputs, parameters}` in, `generated_text` out."""

    backend = "huggingface"
    name = "HuggingFace"
    base_url = "https://api-inference.huggingface.co/models"

    def call(self, prompt: str, model: str) -> str:
        api_key = self._require_key()
        with self._session() as client:
            data = self._request(
                client,
                "POST",
                f"{self.base_url}/{model}",
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "inputs": prompt,
                    "parameters": {
                        "max_new_tokens": self.max_tokens,
                        "temperature": self.temperature,
                        "return_full_text": False,
                    },
                },
            )

        if isinstance(data, dict) and data.get("error"):
            raise ProviderReportedError(error_message(data), self.name)

        # The API answers with a list of generations, older models with a single object.
        generation = data[0] if isinstance(data, list) and data else data
        text = generation.get("generated_text") if isinstance(generation, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise ProviderReportedError("response has no generated_text", self.name)
        return text
