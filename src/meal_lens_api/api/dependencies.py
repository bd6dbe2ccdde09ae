"""FastAPI dependency injection factories."""

from typing import Annotated

from fastapi import Depends

from meal_lens_api.core.config import Settings, get_settings
from meal_lens_api.db.mongo import MongoDB
from meal_lens_api.db.repositories import MealAnalysisRepository
from meal_lens_api.services.food_analysis import (
    FoodAnalysisPipeline,
    get_food_analysis_pipeline,
)

# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_pipeline() -> FoodAnalysisPipeline:
    """Get the shared food analysis pipeline."""
    return get_food_analysis_pipeline()


def get_meal_analysis_repository(
    settings: Settings = Depends(get_settings),
) -> MealAnalysisRepository | None:
    """
    Get the analysis history repository.

    Returns:
        Repository instance, or None when persistence is disabled or
        MongoDB is not connected
    """
    if not settings.persistence_enabled or not MongoDB.is_connected():
        return None
    db = MongoDB.get_database(settings.db_name)
    return MealAnalysisRepository(db[MealAnalysisRepository.collection_name])


PipelineDep = Annotated[FoodAnalysisPipeline, Depends(get_pipeline)]
MealAnalysisRepoDep = Annotated[
    MealAnalysisRepository | None, Depends(get_meal_analysis_repository)
]
