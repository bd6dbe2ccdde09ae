"""
Error taxonomy and stage result type for the food analysis pipeline.

Every stage returns a StageResult instead of letting exceptions cross
stage boundaries; the pipeline decides per stage whether a failure is
fatal or degrades the result.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class FoodAnalysisError(Exception):
    """Error during food analysis."""

    error_code = "ANALYSIS_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.error_code
        self.provider = provider
        self.details = details or {}


class ConfigurationError(FoodAnalysisError):
    """A required service credential is missing."""

    error_code = "CONFIGURATION_ERROR"


class ServiceError(FoodAnalysisError):
    """Upstream service returned a non-2xx status or could not be reached."""

    error_code = "SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code=error_code, provider=provider, details=details)
        self.status_code = status_code


class AccessDeniedError(ServiceError):
    """HTTP 403: bad key, API not enabled, or quota exhausted."""

    error_code = "ACCESS_DENIED"

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code=403, provider=provider, details=details)


class NoMatchError(FoodAnalysisError):
    """Nutrition search returned no foods."""

    error_code = "NO_MATCH"


class ImageReadError(FoodAnalysisError):
    """Image handle could not be read as binary content."""

    error_code = "IMAGE_READ_ERROR"


class AnalysisCancelledError(FoodAnalysisError):
    """The caller abandoned the run; remaining stages were skipped."""

    error_code = "CANCELLED"


PROVIDER_LABELS = {
    "google_vision": "Google Cloud Vision",
    "usda": "USDA FoodData Central",
}


def user_message(error: FoodAnalysisError | None) -> str | None:
    """Map a pipeline error to a message suitable for an end user."""
    if error is None:
        return None
    provider = PROVIDER_LABELS.get(error.provider, error.provider)
    if isinstance(error, AccessDeniedError):
        return (
            f"{provider} API access denied (403). "
            "Please check that the API key is valid and the API is enabled for the project."
        )
    if isinstance(error, ConfigurationError):
        return f"{provider} API key is not set. Please configure it in the service environment."
    if isinstance(error, ImageReadError):
        return "The image could not be read. Please take or choose another photo."
    if isinstance(error, NoMatchError):
        return "Nutritional data unavailable."
    return f"Failed to analyze food image. Please try again. Error: {error.message}"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Tagged success/failure value returned by each pipeline stage."""

    value: T | None = None
    error: FoodAnalysisError | None = None

    @classmethod
    def success(cls, value: T) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: FoodAnalysisError) -> "StageResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value
