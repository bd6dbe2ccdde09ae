"""
Food disambiguation over ranked vision candidates.

Picks the name that is both shown to the user and used as the nutrition
search query. A concrete food ("granny smith apple") is preferred over a
category ("fruit") because the USDA keyword search does better with
specific terms; when nothing looks like food the top candidate is used
rather than failing.
"""

import logging

from meal_lens_api.models import (
    UNKNOWN_FOOD,
    CandidateAnnotation,
    Disambiguation,
    MatchKind,
)

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No detailed description available."

FOOD_KEYWORDS = (
    "food",
    "dish",
    "meal",
    "fruit",
    "vegetable",
    "meat",
    "bread",
    "pizza",
    "burger",
    "apple",
    "orange",
    "banana",
    "salad",
    "soup",
    "cake",
    "pie",
    "drink",
    "beverage",
)

GENERIC_CATEGORIES = frozenset(
    {
        "food",
        "dish",
        "meal",
        "fruit",
        "vegetable",
        "meat",
        "bread",
        "drink",
        "beverage",
        "produce",
        "plant",
        "cuisine",
    }
)


def is_food_related(text: str) -> bool:
    """True if text contains any food keyword (case-insensitive substring)."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in FOOD_KEYWORDS)


def is_generic_category(text: str) -> bool:
    """True if text is exactly a generic category (case-insensitive)."""
    return text.lower() in GENERIC_CATEGORIES


def _chosen(annotation: CandidateAnnotation, kind: MatchKind) -> Disambiguation:
    return Disambiguation(
        display_name=annotation.text,
        query_name=annotation.text,
        match_kind=kind,
        matched_annotation=annotation,
    )


def disambiguate(annotations: list[CandidateAnnotation]) -> Disambiguation:
    """
    Choose display and query names from score-sorted candidates.

    Priority:
        1. first food-related, non-generic candidate (specific)
        2. first food-related candidate (generic)
        3. highest-scoring candidate of any kind (fallback)
        4. "Unknown Food" when there are no candidates
    """
    specific = next(
        (a for a in annotations if is_food_related(a.text) and not is_generic_category(a.text)),
        None,
    )
    if specific is not None:
        logger.info(f"Selected specific food name: {specific.text}")
        return _chosen(specific, MatchKind.SPECIFIC)

    generic = next((a for a in annotations if is_food_related(a.text)), None)
    if generic is not None:
        logger.info(f"No specific food name found, using generic food name: {generic.text}")
        return _chosen(generic, MatchKind.GENERIC)

    if annotations:
        top = annotations[0]
        logger.info(f"No food-related name found, using top annotation: {top.text}")
        return _chosen(top, MatchKind.FALLBACK)

    logger.info(f"No annotations detected, using '{UNKNOWN_FOOD}'")
    return Disambiguation()


def build_description(annotations: list[CandidateAnnotation]) -> str:
    """Audit trail: every candidate with its score (as a percentage) and source."""
    if not annotations:
        return NO_DESCRIPTION
    return ", ".join(
        f"{a.text} ({a.confidence * 100:.2f}%) [{a.source.value}]" for a in annotations
    )
