"""Unit tests for food disambiguation and the description audit trail."""

import pytest

from meal_lens_api.models import (
    UNKNOWN_FOOD,
    AnnotationSource,
    CandidateAnnotation,
    MatchKind,
)
from meal_lens_api.services.food_analysis import (
    build_description,
    disambiguate,
    is_food_related,
    is_generic_category,
)


def label(text: str, score: float) -> CandidateAnnotation:
    return CandidateAnnotation(text=text, confidence=score, source=AnnotationSource.LABEL)


def obj(text: str, score: float) -> CandidateAnnotation:
    return CandidateAnnotation(text=text, confidence=score, source=AnnotationSource.OBJECT)


class TestClassifiers:
    """Tests for is_food_related / is_generic_category."""

    @pytest.mark.parametrize(
        "text",
        ["Food", "Granny Smith APPLE", "pepperoni pizza", "Fast food", "Orange juice"],
    )
    def test_food_related_is_case_insensitive_substring(self, text):
        assert is_food_related(text) is True

    @pytest.mark.parametrize("text", ["Table", "Tableware", "Person", ""])
    def test_non_food_text(self, text):
        assert is_food_related(text) is False

    def test_generic_category_requires_exact_match(self):
        assert is_generic_category("Fruit") is True
        assert is_generic_category("CUISINE") is True
        assert is_generic_category("Fruit salad") is False
        assert is_generic_category("Natural foods") is False

    def test_generic_only_terms_need_not_be_food_keywords(self):
        # "produce" is generic but not in the food keyword set
        assert is_generic_category("Produce") is True
        assert is_food_related("Produce") is False


class TestDisambiguate:
    """Tests for the name selection priority."""

    def test_specific_match_beats_higher_scored_generic(self):
        candidates = [label("fruit", 0.95), label("granny smith apple", 0.9)]

        choice = disambiguate(candidates)

        assert choice.display_name == "granny smith apple"
        assert choice.query_name == "granny smith apple"
        assert choice.match_kind == MatchKind.SPECIFIC
        assert choice.is_food_match is True

    def test_generic_match_when_no_specific_alternative(self):
        choice = disambiguate([label("fruit", 0.95)])

        assert choice.display_name == "fruit"
        assert choice.query_name == "fruit"
        assert choice.match_kind == MatchKind.GENERIC

    def test_first_generic_in_score_order_wins(self):
        choice = disambiguate([label("Produce", 0.97), label("Food", 0.96), label("Fruit", 0.9)])

        # "Produce" is generic but not food-related, so "Food" is the first food match
        assert choice.display_name == "Food"
        assert choice.match_kind == MatchKind.GENERIC

    def test_best_effort_fallback_to_top_candidate(self):
        choice = disambiguate([obj("table", 0.99), label("Wood", 0.8)])

        assert choice.display_name == "table"
        assert choice.query_name == "table"
        assert choice.match_kind == MatchKind.FALLBACK
        assert choice.is_food_match is False

    def test_empty_list_is_unknown_food(self):
        choice = disambiguate([])

        assert choice.display_name == UNKNOWN_FOOD
        assert choice.query_name == UNKNOWN_FOOD
        assert choice.match_kind == MatchKind.NONE
        assert choice.matched_annotation is None

    def test_specific_object_can_win_over_labels(self):
        candidates = [label("Tableware", 0.98), label("Dish", 0.96), obj("Banana", 0.9)]

        choice = disambiguate(candidates)

        assert choice.display_name == "Banana"
        assert choice.matched_annotation.source == AnnotationSource.OBJECT


class TestBuildDescription:
    """Tests for the description audit trail."""

    def test_lists_every_candidate_with_percentage_and_source(self):
        candidates = [label("Apple", 0.97654), obj("Fruit", 0.5)]

        assert build_description(candidates) == "Apple (97.65%) [label], Fruit (50.00%) [object]"

    def test_empty_list(self):
        assert build_description([]) == "No detailed description available."
