"""Pydantic models."""

from .food_analysis import (
    UNKNOWN_FOOD,
    AnalysisToken,
    AnnotationSource,
    CandidateAnnotation,
    Disambiguation,
    FoodAnalysisResult,
    MatchKind,
    NutrientEntry,
    NutrientRecord,
    NutritionalData,
    StoredMealAnalysis,
)

__all__ = [
    "UNKNOWN_FOOD",
    "AnalysisToken",
    "AnnotationSource",
    "CandidateAnnotation",
    "Disambiguation",
    "FoodAnalysisResult",
    "MatchKind",
    "NutrientEntry",
    "NutrientRecord",
    "NutritionalData",
    "StoredMealAnalysis",
]
