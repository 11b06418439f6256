from typing import Optional, Sequence


class FitPlanError(Exception):
    """Base class for every error raised by the plan generation pipeline."""


class ProfileInvalid(FitPlanError):
    """The inbound profile is missing age, weight or height, or they are not positive."""


# --- Provider errors: any of these moves the orchestrator to the next provider ---

class ProviderError(FitPlanError):
    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(f"{provider} Error: {message}" if provider else message)


class CredentialMissing(ProviderError):
    """The provider is configured but its secret is not set."""


class TransportError(ProviderError):
    """Network failure, timeout or non-2xx HTTP status."""

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, provider)


class ProviderReportedError(ProviderError):
    """The provider answered successfully but the body carries an error."""


# --- Response content errors ---

class ResponseError(FitPlanError):
    pass


class NoJsonFound(ResponseError):
    pass


class SchemaViolation(ResponseError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid plan structure: {detail}")


class RetrievalUnavailable(FitPlanError):
    """The example store could not be queried. Always recovered as an empty example set."""


class AllProvidersExhausted(FitPlanError):
    """Every configured provider failed or was skipped."""

    def __init__(self, last_error: Optional[BaseException], attempts: Sequence = ()):
        self.last_error = last_error
        self.attempts = list(attempts)
        message = str(last_error) if last_error else "no provider was available"
        super().__init__(f"All AI providers failed: {message}")


class GenerationCancelled(FitPlanError):
    """The caller cancelled the pipeline at a suspension point."""
