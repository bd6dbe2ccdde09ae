"""
Google Cloud Vision label extractor.

Sends one images:annotate request with label detection and object
localization, then merges both annotation families into a single list
ranked by confidence.
API Documentation: https://cloud.google.com/vision/docs/reference/rest/v1/images/annotate
"""

import base64
import json
import logging
from typing import Any

import httpx

from meal_lens_api.core.config import Settings
from meal_lens_api.models import AnnotationSource, CandidateAnnotation

from .base import ConfigurationError, FoodAnalysisError, ServiceError, StageResult
from .http import build_http_client, send_with_retry

logger = logging.getLogger(__name__)


def merge_annotations(
    labels: list[CandidateAnnotation],
    objects: list[CandidateAnnotation],
) -> list[CandidateAnnotation]:
    """
    Merge labels and objects into one list sorted by descending confidence.

    sorted() is stable, so equal scores keep the service order with labels
    ahead of objects.
    """
    return sorted([*labels, *objects], key=lambda a: a.confidence, reverse=True)


def parse_annotations(payload: Any) -> list[CandidateAnnotation]:
    """Parse an images:annotate response into ranked candidates."""
    if not isinstance(payload, dict):
        raise ServiceError(
            f"Vision API returned an unexpected body: {type(payload).__name__}",
            provider=VisionLabelExtractor.provider_name,
        )

    responses = payload.get("responses") or []
    if not isinstance(responses, list) or not responses or not isinstance(responses[0], dict):
        raise ServiceError(
            "Vision API returned no responses",
            provider=VisionLabelExtractor.provider_name,
        )

    data = responses[0]
    if "error" in data:
        # Per-image errors come back with HTTP 200
        error = data["error"] if isinstance(data["error"], dict) else {"message": str(data["error"])}
        raise ServiceError(
            f"Vision API error: {error.get('message', 'unknown error')}",
            status_code=error.get("code"),
            provider=VisionLabelExtractor.provider_name,
            details=error,
        )

    labels = [
        CandidateAnnotation(
            text=a["description"],
            confidence=a.get("score", 0.0),
            source=AnnotationSource.LABEL,
        )
        for a in data.get("labelAnnotations") or []
        if isinstance(a, dict) and a.get("description")
    ]
    objects = [
        CandidateAnnotation(
            text=a["name"],
            confidence=a.get("score", 0.0),
            source=AnnotationSource.OBJECT,
        )
        for a in data.get("localizedObjectAnnotations") or []
        if isinstance(a, dict) and a.get("name")
    ]
    return merge_annotations(labels, objects)


class VisionLabelExtractor:
    """
    Label extraction using the Google Cloud Vision API.
    """

    provider_name = "google_vision"

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        retry_wait_seconds: float = 0.5,
    ):
        """
        Initialize the extractor.

        Args:
            settings: Application settings (API key, URL, limits, timeout)
            client: Optional pre-built HTTP client (tests inject a mock transport)
            retry_wait_seconds: Delay before the transient-error retry
        """
        self.settings = settings
        self.retry_wait_seconds = retry_wait_seconds
        self._client = client or build_http_client(settings.request_timeout_seconds)

    def build_request(self, image_data: bytes) -> dict[str, Any]:
        """Build the images:annotate request body."""
        max_results = self.settings.vision_max_results
        return {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_data).decode("ascii")},
                    "features": [
                        {"type": "LABEL_DETECTION", "maxResults": max_results},
                        {"type": "OBJECT_LOCALIZATION", "maxResults": max_results},
                    ],
                }
            ]
        }

    async def extract(self, image_data: bytes) -> list[CandidateAnnotation]:
        """
        Detect labels and objects in an image.

        Args:
            image_data: Raw image bytes

        Returns:
            Candidates sorted by descending confidence

        Raises:
            ConfigurationError: If the API key is missing
            AccessDeniedError: On HTTP 403
            ServiceError: On any other failure
        """
        if not self.settings.is_vision_configured:
            raise ConfigurationError(
                "Google Cloud Vision API key is not set",
                provider=self.provider_name,
            )

        body = self.build_request(image_data)
        logger.info(f"Requesting Vision annotations (image size: {len(image_data)} bytes)")

        response = await send_with_retry(
            lambda: self._client.post(
                self.settings.google_vision_api_url,
                params={"key": self.settings.google_vision_api_key},
                json=body,
            ),
            provider=self.provider_name,
            retries=self.settings.transient_retry_attempts,
            wait_seconds=self.retry_wait_seconds,
        )

        try:
            payload = response.json()
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise ServiceError(
                f"Vision API returned invalid JSON: {e}",
                status_code=response.status_code,
                provider=self.provider_name,
            ) from e

        logger.debug(f"Vision API response: {json.dumps(payload)[:2000]}")

        try:
            annotations = parse_annotations(payload)
        except (TypeError, ValueError) as e:
            raise ServiceError(
                f"Vision API returned malformed annotations: {e}",
                provider=self.provider_name,
            ) from e
        logger.info(f"Vision returned {len(annotations)} candidate annotations")
        return annotations

    async def run(self, image_data: bytes) -> StageResult[list[CandidateAnnotation]]:
        """Stage entry point: extract() wrapped in a StageResult."""
        try:
            return StageResult.success(await self.extract(image_data))
        except FoodAnalysisError as e:
            return StageResult.failure(e)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
