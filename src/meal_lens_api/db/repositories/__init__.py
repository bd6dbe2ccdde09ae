"""Repositories for MongoDB collections."""

from .base import BaseRepository
from .meal_analyses import MealAnalysisRepository

__all__ = ["BaseRepository", "MealAnalysisRepository"]
