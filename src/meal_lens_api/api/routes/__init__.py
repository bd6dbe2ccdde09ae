"""API routes."""

from . import food_analysis

__all__ = ["food_analysis"]
