"""
Food Analysis Service - vision labels plus USDA nutrition for meal photos.

Stages: VisionLabelExtractor -> disambiguate -> UsdaNutrientResolver ->
assemble_result, composed by FoodAnalysisPipeline.
"""

from .assembler import assemble_result, failed_result
from .base import (
    AccessDeniedError,
    AnalysisCancelledError,
    ConfigurationError,
    FoodAnalysisError,
    ImageReadError,
    NoMatchError,
    ServiceError,
    StageResult,
    user_message,
)
from .disambiguator import build_description, disambiguate, is_food_related, is_generic_category
from .factory import (
    build_food_analysis_pipeline,
    clear_pipeline_cache,
    get_food_analysis_pipeline,
)
from .nutrition import UsdaNutrientResolver, extract_nutritional_data
from .pipeline import AnalysisOutcome, FoodAnalysisPipeline
from .vision import VisionLabelExtractor, merge_annotations

__all__ = [
    "AccessDeniedError",
    "AnalysisCancelledError",
    "AnalysisOutcome",
    "ConfigurationError",
    "FoodAnalysisError",
    "FoodAnalysisPipeline",
    "ImageReadError",
    "NoMatchError",
    "ServiceError",
    "StageResult",
    "UsdaNutrientResolver",
    "VisionLabelExtractor",
    "assemble_result",
    "build_description",
    "build_food_analysis_pipeline",
    "clear_pipeline_cache",
    "disambiguate",
    "extract_nutritional_data",
    "failed_result",
    "get_food_analysis_pipeline",
    "is_food_related",
    "is_generic_category",
    "merge_annotations",
    "user_message",
]
