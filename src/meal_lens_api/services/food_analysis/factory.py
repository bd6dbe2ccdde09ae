"""
Factory for creating the food analysis pipeline.

Reads configuration from settings once and hands the same Settings object
to both service clients.
"""

import logging
from functools import lru_cache

from meal_lens_api.core.config import Settings, get_settings

from .nutrition import UsdaNutrientResolver
from .pipeline import FoodAnalysisPipeline
from .vision import VisionLabelExtractor

logger = logging.getLogger(__name__)


def build_food_analysis_pipeline(settings: Settings) -> FoodAnalysisPipeline:
    """Build a pipeline wired to the given settings."""
    if not settings.is_vision_configured:
        logger.warning("Google Cloud Vision not configured (missing API key)")
    if not settings.is_usda_configured:
        logger.warning("USDA nutrition lookup not configured (missing API key)")

    return FoodAnalysisPipeline(
        extractor=VisionLabelExtractor(settings),
        resolver=UsdaNutrientResolver(settings),
    )


@lru_cache(maxsize=1)
def get_food_analysis_pipeline() -> FoodAnalysisPipeline:
    """
    Get the configured food analysis pipeline.

    Missing API keys do not prevent construction; each stage fails fast
    with a ConfigurationError when it is called.
    """
    logger.info("Initializing food analysis pipeline")
    return build_food_analysis_pipeline(get_settings())


def clear_pipeline_cache():
    """Clear the cached pipeline instance (useful for testing)."""
    get_food_analysis_pipeline.cache_clear()
