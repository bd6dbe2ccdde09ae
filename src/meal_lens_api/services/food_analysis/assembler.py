"""Combine stage outputs into the final FoodAnalysisResult. No I/O."""

from meal_lens_api.models import (
    UNKNOWN_FOOD,
    CandidateAnnotation,
    Disambiguation,
    FoodAnalysisResult,
    NutritionalData,
)

from .base import StageResult
from .disambiguator import build_description

ANALYSIS_FAILED = "Analysis failed."


def assemble_result(
    annotations: list[CandidateAnnotation],
    disambiguation: Disambiguation,
    nutrition: StageResult[NutritionalData] | None,
) -> FoodAnalysisResult:
    """
    Build the result for a run whose label extraction succeeded.

    `nutrition` is None when no lookup was attempted (nothing detected).
    A failed lookup leaves `is_food_item` untouched and drops the data.
    """
    is_food_item = disambiguation.query_name != UNKNOWN_FOOD
    nutritional_data = nutrition.value if nutrition is not None and nutrition.ok else None

    return FoodAnalysisResult(
        name=disambiguation.display_name,
        description=build_description(annotations),
        nutritional_data=nutritional_data,
        is_food_item=is_food_item,
        match_kind=disambiguation.match_kind,
    )


def failed_result() -> FoodAnalysisResult:
    """Canned result for a run whose label extraction failed."""
    return FoodAnalysisResult(
        name=UNKNOWN_FOOD,
        description=ANALYSIS_FAILED,
        is_food_item=False,
    )
