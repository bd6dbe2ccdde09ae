"""
USDA FoodData Central nutrient resolver.

Searches FDC for the chosen food name, takes the top-ranked hit and maps
its nutrient rows onto NutritionalData by keyword.
API Documentation: https://fdc.nal.usda.gov/api-guide.html
"""

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from meal_lens_api.core.config import Settings
from meal_lens_api.models import NutrientRecord, NutritionalData

from .base import (
    ConfigurationError,
    FoodAnalysisError,
    NoMatchError,
    ServiceError,
    StageResult,
)
from .http import build_http_client, send_with_retry

logger = logging.getLogger(__name__)


# Checked in order; the first matching row of the table claims the nutrient.
# e.g. "Fatty acids, total saturated" lands on fat, "Sugars, total" on sugar.
NUTRIENT_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("energy",), "calories"),
    (("protein",), "protein"),
    (("carbohydrate",), "carbs"),
    (("total lipid", "fat"), "fat"),
    (("fiber",), "fiber"),
    (("sugar",), "sugar"),
    (("sodium",), "sodium"),
]


def categorize_nutrient(nutrient_name: str) -> str | None:
    """Return the NutritionalData field a raw nutrient name maps to, if any."""
    lowered = nutrient_name.lower()
    for keywords, field in NUTRIENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return field
    return None


def extract_nutritional_data(record: NutrientRecord) -> NutritionalData:
    """
    Map a record's nutrient rows onto NutritionalData.

    Unmatched rows are ignored. When several rows map to the same field the
    last one wins; values are never summed.
    """
    values: dict[str, float] = {}
    for nutrient in record.nutrients:
        field = categorize_nutrient(nutrient.nutrient_name)
        if field is not None:
            values[field] = nutrient.value
    return NutritionalData(**values)


class UsdaNutrientResolver:
    """
    Nutrition lookup using the USDA FoodData Central search API.
    """

    provider_name = "usda"

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        retry_wait_seconds: float = 0.5,
    ):
        """
        Initialize the resolver.

        Args:
            settings: Application settings (API key, URL, data type, page size)
            client: Optional pre-built HTTP client
            retry_wait_seconds: Delay before the transient-error retry
        """
        self.settings = settings
        self.base_url = settings.usda_api_base_url.rstrip("/")
        self.retry_wait_seconds = retry_wait_seconds
        self._client = client or build_http_client(settings.request_timeout_seconds)

    def build_params(self, query: str) -> dict[str, Any]:
        """Query parameters for foods/search; httpx URL-encodes them."""
        return {
            "query": query,
            "dataType": self.settings.usda_data_type,
            "pageSize": self.settings.usda_page_size,
            "api_key": self.settings.usda_api_key,
        }

    async def search(self, query: str) -> NutrientRecord:
        """
        Search FDC and return the top-ranked food.

        Raises:
            ConfigurationError: If the API key is missing
            AccessDeniedError: On HTTP 403
            ServiceError: On any other HTTP or network failure
            NoMatchError: If the search returns no foods
        """
        if not self.settings.is_usda_configured:
            raise ConfigurationError(
                "USDA API key is not set",
                provider=self.provider_name,
            )

        logger.info(f"Searching USDA for: {query}")

        response = await send_with_retry(
            lambda: self._client.get(f"{self.base_url}/foods/search", params=self.build_params(query)),
            provider=self.provider_name,
            retries=self.settings.transient_retry_attempts,
            wait_seconds=self.retry_wait_seconds,
        )

        try:
            data = response.json()
        except ValueError as e:
            raise ServiceError(
                f"USDA API returned invalid JSON: {e}",
                status_code=response.status_code,
                provider=self.provider_name,
            ) from e

        if not isinstance(data, dict):
            raise ServiceError(
                f"USDA API returned an unexpected body: {type(data).__name__}",
                provider=self.provider_name,
            )

        foods = data.get("foods") or []
        if not isinstance(foods, list):
            raise ServiceError(
                "USDA API returned a malformed foods list",
                provider=self.provider_name,
            )
        logger.debug(f"USDA search results for {query}: {json.dumps(foods)[:2000]}")

        if not foods:
            logger.info(f"No USDA results for: {query}")
            raise NoMatchError(
                f"No matching food found for {query}",
                provider=self.provider_name,
                details={"query": query},
            )

        try:
            record = NutrientRecord.model_validate(foods[0])
        except ValidationError as e:
            raise ServiceError(
                f"USDA API returned a malformed food record: {e}",
                provider=self.provider_name,
            ) from e

        logger.info(f"Selected USDA food {record.fdc_id}: {record.description}")
        return record

    async def resolve(self, query: str) -> NutritionalData:
        """Search FDC for `query` and extract the top hit's nutrition."""
        record = await self.search(query)
        return extract_nutritional_data(record)

    async def run(self, query: str) -> StageResult[NutritionalData]:
        """Stage entry point: resolve() wrapped in a StageResult."""
        try:
            return StageResult.success(await self.resolve(query))
        except FoodAnalysisError as e:
            return StageResult.failure(e)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
