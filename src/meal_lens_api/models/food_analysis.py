"""Models for the food analysis pipeline.

Covers every value that flows between the pipeline stages: candidate
annotations from the vision service, raw USDA nutrient records, the
normalized nutrition block, and the final analysis result.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

UNKNOWN_FOOD = "Unknown Food"


# =============================================================================
# Label Extraction
# =============================================================================


class AnnotationSource(str, Enum):
    """Which annotation family a candidate came from."""

    LABEL = "label"
    OBJECT = "object"


class CandidateAnnotation(BaseModel):
    """One detected label or localized object."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Raw label text from the vision service")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score 0-1")
    source: AnnotationSource = Field(..., description="label or object")


class MatchKind(str, Enum):
    """How the display/query name was chosen."""

    SPECIFIC = "specific"  # Food-related and not a generic category
    GENERIC = "generic"  # Food-related, but a generic category like "fruit"
    FALLBACK = "fallback"  # Highest-scoring candidate, not food-related
    NONE = "none"  # No candidates at all


class Disambiguation(BaseModel):
    """Outcome of choosing a food name from the candidate list."""

    model_config = ConfigDict(frozen=True)

    display_name: str = UNKNOWN_FOOD
    query_name: str = UNKNOWN_FOOD
    match_kind: MatchKind = MatchKind.NONE
    matched_annotation: CandidateAnnotation | None = None

    @property
    def is_food_match(self) -> bool:
        """Whether the chosen name passed the food-keyword filter."""
        return self.match_kind in (MatchKind.SPECIFIC, MatchKind.GENERIC)


# =============================================================================
# Nutrient Resolution
# =============================================================================


class NutrientEntry(BaseModel):
    """A single (name, value, unit) nutrient row as returned by USDA."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    nutrient_name: str
    value: float = Field(0.0, ge=0)
    unit_name: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _missing_value_is_zero(cls, v):
        return 0.0 if v is None else v


class NutrientRecord(BaseModel):
    """Raw USDA search hit: one food with its ordered nutrient rows."""

    model_config = ConfigDict(populate_by_name=True)

    fdc_id: int = Field(..., alias="fdcId")
    description: str = ""
    food_category: str | None = Field(None, alias="foodCategory")
    nutrients: list[NutrientEntry] = Field(default_factory=list, alias="foodNutrients")

    @field_validator("food_category", mode="before")
    @classmethod
    def _category_as_text(cls, v):
        # Some USDA data types return the category as an object
        if isinstance(v, dict):
            return v.get("description")
        return v


class NutritionalData(BaseModel):
    """Normalized nutrition values, as reported by the source (usually per 100g)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    calories: float = Field(0.0, ge=0, description="Energy in kcal")
    protein: float = Field(0.0, ge=0, description="Protein in grams")
    carbs: float = Field(0.0, ge=0, description="Carbohydrates in grams")
    fat: float = Field(0.0, ge=0, description="Total fat in grams")
    fiber: float | None = Field(None, ge=0, description="Dietary fiber in grams")
    sugar: float | None = Field(None, ge=0, description="Total sugars in grams")
    sodium: float | None = Field(None, ge=0, description="Sodium in mg")


# =============================================================================
# Pipeline Output
# =============================================================================


class FoodAnalysisResult(BaseModel):
    """The pipeline's sole output for one image."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str = Field(UNKNOWN_FOOD, description="Display label")
    description: str = Field(..., description="All candidates with scores, for auditing")
    nutritional_data: NutritionalData | None = Field(
        None, description="Nutrition for the chosen food, if lookup succeeded"
    )
    is_food_item: bool = Field(False, description="Whether a food name was chosen")
    match_kind: MatchKind = Field(MatchKind.NONE, description="How the name was chosen")


@dataclass
class AnalysisToken:
    """
    Per-invocation identity for one analysis run.

    Callers keep the token and cancel it when they abandon the run; the
    pipeline checks it between stages and the caller compares ids to discard
    results that belong to an older run.
    """

    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def is_stale(self) -> bool:
        return self.cancelled


# =============================================================================
# Stored History
# =============================================================================


class StoredMealAnalysis(BaseModel):
    """A saved analysis as read back from the `meal_analyses` collection."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None
    analysis_id: str
    owner_id: str
    result: FoodAnalysisResult
    created_at: datetime
