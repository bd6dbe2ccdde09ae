"""Pytest configuration and fixtures."""

import base64
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from meal_lens_api.core.config import Settings
from meal_lens_api.services.food_analysis import (
    FoodAnalysisPipeline,
    UsdaNutrientResolver,
    VisionLabelExtractor,
)

# Sample test image (1x1 red pixel PNG)
TINY_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8DwHwAFBQIAX8jx0gAAAABJRU5ErkJggg=="
)
TINY_PNG_BYTES = base64.b64decode(TINY_PNG_BASE64)

Handler = Callable[[httpx.Request], httpx.Response]


def mock_client(handler: Handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def vision_payload(
    labels: list[tuple[str, float]] | None = None,
    objects: list[tuple[str, float]] | None = None,
) -> dict[str, Any]:
    """Build an images:annotate response body."""
    response: dict[str, Any] = {}
    if labels is not None:
        response["labelAnnotations"] = [
            {"description": text, "score": score} for text, score in labels
        ]
    if objects is not None:
        response["localizedObjectAnnotations"] = [
            {"name": text, "score": score} for text, score in objects
        ]
    return {"responses": [response]}


def usda_payload(*foods: dict[str, Any]) -> dict[str, Any]:
    """Build a foods/search response body."""
    return {"totalHits": len(foods), "foods": list(foods)}


def usda_food(
    fdc_id: int = 1102644,
    description: str = "Apple, raw",
    nutrients: list[tuple[str, float, str]] | None = None,
    category: str | None = "Apples",
) -> dict[str, Any]:
    """Build one FDC search hit."""
    if nutrients is None:
        nutrients = [
            ("Protein", 0.26, "G"),
            ("Total lipid (fat)", 0.17, "G"),
            ("Carbohydrate, by difference", 13.8, "G"),
            ("Energy", 52.0, "KCAL"),
            ("Sugars, total including NLEA", 10.4, "G"),
            ("Fiber, total dietary", 2.4, "G"),
            ("Sodium, Na", 1.0, "MG"),
        ]
    return {
        "fdcId": fdc_id,
        "description": description,
        "foodCategory": category,
        "foodNutrients": [
            {"nutrientName": name, "value": value, "unitName": unit}
            for name, value, unit in nutrients
        ],
    }


@pytest.fixture
def settings() -> Settings:
    """Settings with both API keys configured and no .env lookup."""
    return Settings(
        _env_file=None,
        google_vision_api_key="test-vision-key",
        usda_api_key="test-usda-key",
        persistence_enabled=False,
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    """Settings with no API keys."""
    return Settings(
        _env_file=None,
        google_vision_api_key="",
        usda_api_key="",
        persistence_enabled=False,
    )


@pytest.fixture
def make_pipeline(settings: Settings) -> Callable[..., FoodAnalysisPipeline]:
    """
    Build a pipeline whose Vision and USDA calls are answered by handlers.

    Usage:
        pipeline = make_pipeline(vision_handler, usda_handler)
    """

    def _make(
        vision_handler: Handler,
        usda_handler: Handler,
        config: Settings | None = None,
    ) -> FoodAnalysisPipeline:
        config = config or settings
        return FoodAnalysisPipeline(
            extractor=VisionLabelExtractor(
                config, client=mock_client(vision_handler), retry_wait_seconds=0
            ),
            resolver=UsdaNutrientResolver(
                config, client=mock_client(usda_handler), retry_wait_seconds=0
            ),
        )

    return _make
