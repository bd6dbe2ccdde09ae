"""Meal Lens API - food photo recognition and nutrition lookup."""

__version__ = "1.0.0"
