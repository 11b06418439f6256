from fitplan.adapters.base import HttpAdapter, error_message
from fitplan.core.errors import ProviderReportedError


class GooglePredictAdapter(HttpAdapter):
    """Single-prompt `:predict` endpoint: `{instances:[{prompt}], parameters}` with the key as a query parameter."""

    backend = "google_predict"
    name = "Google Predict"
    base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    def call(self, prompt: str, model: str) -> str:
        api_key = self._require_key()
        with self._session() as client:
            data = self._request(
                client,
                "POST",
                f"{self.base_url}/{model}:predict",
                params={"key": api_key},
                json={
                    "instances": [{"prompt": prompt}],
                    "parameters": {
                        "sampleCount": 1,
                        "temperature": self.temperature,
                        "maxOutputTokens": self.max_tokens,
                    },
                },
            )

        if isinstance(data, dict) and data.get("error"):
            raise ProviderReportedError(error_message(data), self.name)

        predictions = data.get("predictions") if isinstance(data, dict) else None
        if not isinstance(predictions, list) or not predictions:
            raise ProviderReportedError("response has no predictions", self.name)

        prediction = predictions[0]
        if isinstance(prediction, dict):
            prediction = prediction.get("content") or prediction.get("text")
        if not isinstance(prediction, str) or not prediction.strip():
            raise ProviderReportedError("prediction has no text content", self.name)
        return prediction
