"""
Food analysis pipeline: image -> labels -> food name -> nutrition -> result.

Stages run strictly in sequence. Each stage hands back a StageResult and
the pipeline applies the fallback policy:

- image read / label extraction failure: canned "Analysis failed." result
- nutrient lookup failure: result without nutritional data

A run is a pure function of its input image; no state is shared between
runs, so concurrent analyses need no locking.
"""

import logging
from dataclasses import dataclass

from meal_lens_api.models import (
    UNKNOWN_FOOD,
    AnalysisToken,
    CandidateAnnotation,
    Disambiguation,
    FoodAnalysisResult,
    NutritionalData,
)

from .assembler import assemble_result, failed_result
from .base import (
    AnalysisCancelledError,
    FoodAnalysisError,
    ImageReadError,
    StageResult,
)
from .disambiguator import disambiguate
from .images import ImageHandle, read_image_bytes
from .nutrition import UsdaNutrientResolver
from .vision import VisionLabelExtractor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    """A result plus the per-stage failure causes behind it."""

    result: FoodAnalysisResult
    token: AnalysisToken
    annotations: list[CandidateAnnotation]
    disambiguation: Disambiguation | None = None
    error: FoodAnalysisError | None = None  # Fatal: extraction failed
    nutrition_error: FoodAnalysisError | None = None  # Swallowed: lookup failed

    @property
    def failed(self) -> bool:
        return self.error is not None


def _check_stale(token: AnalysisToken, stage: str) -> None:
    if token.is_stale:
        logger.info(f"Analysis {token.id} abandoned before {stage}")
        raise AnalysisCancelledError(
            f"Analysis {token.id} was cancelled before {stage}",
            provider="pipeline",
            details={"analysis_id": token.id, "stage": stage},
        )


class FoodAnalysisPipeline:
    """
    Runs the extractor and resolver for one image at a time.
    """

    def __init__(
        self,
        extractor: VisionLabelExtractor,
        resolver: UsdaNutrientResolver,
    ):
        self.extractor = extractor
        self.resolver = resolver

    async def _read_image(self, image: ImageHandle) -> StageResult[bytes]:
        try:
            return StageResult.success(await read_image_bytes(image))
        except ImageReadError as e:
            return StageResult.failure(e)

    async def analyze_detailed(
        self,
        image: ImageHandle,
        *,
        token: AnalysisToken | None = None,
    ) -> AnalysisOutcome:
        """
        Analyze an image and report why any stage failed.

        Args:
            image: Image handle (bytes, data URI, file URI or path)
            token: Per-run identity; cancel it to stop before the next stage

        Returns:
            AnalysisOutcome. Never raises for service failures.

        Raises:
            AnalysisCancelledError: If the token was cancelled mid-run
        """
        token = token or AnalysisToken()
        logger.info(f"Starting food analysis {token.id}")

        image_stage = await self._read_image(image)
        if not image_stage.ok:
            return self._failed(token, image_stage.error)

        _check_stale(token, "label extraction")
        labels_stage = await self.extractor.run(image_stage.value)
        if not labels_stage.ok:
            return self._failed(token, labels_stage.error)

        annotations = labels_stage.value
        choice = disambiguate(annotations)

        nutrition_stage: StageResult[NutritionalData] | None = None
        if choice.query_name != UNKNOWN_FOOD:
            _check_stale(token, "nutrient lookup")
            nutrition_stage = await self.resolver.run(choice.query_name)
            if not nutrition_stage.ok:
                logger.warning(
                    f"Nutritional data unavailable for '{choice.query_name}': "
                    f"{nutrition_stage.error.message}"
                )

        _check_stale(token, "result assembly")
        result = assemble_result(annotations, choice, nutrition_stage)
        logger.info(
            f"Analysis {token.id} complete: name='{result.name}', "
            f"is_food_item={result.is_food_item}, "
            f"has_nutrition={result.nutritional_data is not None}"
        )

        return AnalysisOutcome(
            result=result,
            token=token,
            annotations=annotations,
            disambiguation=choice,
            nutrition_error=None if nutrition_stage is None else nutrition_stage.error,
        )

    async def analyze(
        self,
        image: ImageHandle,
        *,
        token: AnalysisToken | None = None,
    ) -> FoodAnalysisResult:
        """Analyze an image and return only the result."""
        outcome = await self.analyze_detailed(image, token=token)
        return outcome.result

    async def lookup_nutrition(self, query: str) -> NutritionalData:
        """
        Resolve nutrition for a user-supplied food name.

        Unlike analyze(), errors propagate to the caller.
        """
        return await self.resolver.resolve(query)

    def _failed(self, token: AnalysisToken, error: FoodAnalysisError) -> AnalysisOutcome:
        logger.error(f"Food analysis {token.id} failed [{error.error_code}]: {error.message}")
        return AnalysisOutcome(
            result=failed_result(),
            token=token,
            annotations=[],
            error=error,
        )

    async def close(self) -> None:
        """Close both HTTP clients."""
        await self.extractor.close()
        await self.resolver.close()
