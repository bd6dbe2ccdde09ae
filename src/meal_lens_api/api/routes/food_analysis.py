"""Food Analysis API routes.

Endpoints for analyzing meal photos, looking up nutrition for a corrected
food name, and reading back saved analyses.
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from meal_lens_api.api.dependencies import MealAnalysisRepoDep, PipelineDep, SettingsDep
from meal_lens_api.core.exceptions import ServiceUnavailableError
from meal_lens_api.models import (
    AnalysisToken,
    FoodAnalysisResult,
    NutritionalData,
    StoredMealAnalysis,
)
from meal_lens_api.services.food_analysis import (
    AccessDeniedError,
    AnalysisCancelledError,
    FoodAnalysisError,
    NoMatchError,
    user_message,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# How often the disconnect watcher polls the client connection
DISCONNECT_POLL_SECONDS = 0.5


# =============================================================================
# Response Models
# =============================================================================


class FoodAnalysisResponse(BaseModel):
    """Response from the analyze endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    analysis_id: str = Field(..., description="Identity of this analysis run")
    result: FoodAnalysisResult = Field(..., description="Analysis result")
    saved_id: str | None = Field(None, description="Stored document ID, if saved")
    error_code: str | None = Field(None, description="Why the analysis failed, if it did")
    message: str | None = Field(None, description="User-facing failure message")
    nutrition_message: str | None = Field(
        None, description="Shown when the food was found but nutrition was not"
    )


class NutritionLookupResponse(BaseModel):
    """Response from the nutrition lookup endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str = Field(..., description="Original search query")
    nutritional_data: NutritionalData = Field(..., description="Nutrition for the top match")


class AnalysisHistoryResponse(BaseModel):
    """Saved analyses for one owner."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    owner_id: str
    analyses: list[StoredMealAnalysis] = Field(default_factory=list)
    total_results: int


class FoodAnalysisErrorBody(BaseModel):
    """Error response for food analysis endpoints."""

    error: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Error code")


# =============================================================================
# Helpers
# =============================================================================


def _error_detail(error: FoodAnalysisError) -> dict:
    return FoodAnalysisErrorBody(
        error=user_message(error) or error.message,
        error_code=error.error_code,
    ).model_dump()


async def _cancel_on_disconnect(request: Request, token: AnalysisToken) -> None:
    """Mark the run stale if the client goes away mid-analysis."""
    while not token.is_stale:
        if await request.is_disconnected():
            logger.info(f"Client disconnected, cancelling analysis {token.id}")
            token.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/analyze",
    response_model=FoodAnalysisResponse,
    responses={
        200: {"description": "Analysis result (possibly the canned failure result)"},
        400: {"model": FoodAnalysisErrorBody, "description": "Invalid upload"},
        413: {"model": FoodAnalysisErrorBody, "description": "Image too large"},
        422: {"description": "Validation error"},
    },
    summary="Identify the food in a photo and look up its nutrition",
    description="""
Upload a meal photo. The image is labelled by Google Cloud Vision, the most
specific food label is chosen, and its nutrition is looked up in USDA
FoodData Central.

A failed analysis still returns 200 with the result
`{name: "Unknown Food", description: "Analysis failed.", isFoodItem: false}`
plus `errorCode` and a user-facing `message`. A missing nutrition match only
leaves `nutritionalData` empty.
""",
)
async def analyze_food(
    request: Request,
    pipeline: PipelineDep,
    repository: MealAnalysisRepoDep,
    settings: SettingsDep,
    image: Annotated[UploadFile, File(description="Meal photo (JPEG or PNG)")],
    owner_id: Annotated[str | None, Form(description="Owner of the saved analysis")] = None,
    save: Annotated[bool, Form(description="Store the result in the owner's history")] = False,
):
    """Analyze a meal photo."""
    if image.content_type and not image.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=FoodAnalysisErrorBody(
                error=f"Unsupported content type: {image.content_type}",
                error_code="INVALID_IMAGE",
            ).model_dump(),
        )

    if save and not owner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=FoodAnalysisErrorBody(
                error="owner_id is required to save an analysis",
                error_code="OWNER_REQUIRED",
            ).model_dump(),
        )

    content = await image.read()
    if len(content) > settings.max_image_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=FoodAnalysisErrorBody(
                error=f"Image exceeds maximum size of {settings.max_image_bytes // (1024 * 1024)} MB",
                error_code="IMAGE_TOO_LARGE",
            ).model_dump(),
        )

    logger.info(f"Food analysis request: {image.filename} ({len(content)} bytes)")

    token = AnalysisToken()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, token))
    try:
        outcome = await pipeline.analyze_detailed(content, token=token)
    except AnalysisCancelledError as e:
        logger.info(f"Discarding stale analysis {token.id}: {e.message}")
        return JSONResponse(
            status_code=499,
            content=FoodAnalysisErrorBody(error=e.message, error_code=e.error_code).model_dump(),
        )
    finally:
        watcher.cancel()

    saved_id = None
    if save and not outcome.failed:
        if repository is None:
            logger.warning("Persistence unavailable, analysis not saved")
        else:
            saved_id = await repository.save_analysis(owner_id, outcome.result, token.id)
            logger.info(f"Saved analysis {token.id} for owner {owner_id}: {saved_id}")

    nutrition_message = None
    if outcome.result.is_food_item and outcome.result.nutritional_data is None:
        nutrition_message = "Nutritional data unavailable."

    return FoodAnalysisResponse(
        analysis_id=token.id,
        result=outcome.result,
        saved_id=saved_id,
        error_code=outcome.error.error_code if outcome.error else None,
        message=user_message(outcome.error),
        nutrition_message=nutrition_message,
    )


@router.get(
    "/nutrition",
    response_model=NutritionLookupResponse,
    responses={
        200: {"description": "Nutrition for the top USDA match"},
        403: {"model": FoodAnalysisErrorBody, "description": "USDA access denied"},
        404: {"model": FoodAnalysisErrorBody, "description": "No matching food"},
        503: {"model": FoodAnalysisErrorBody, "description": "USDA service unavailable"},
    },
    summary="Look up nutrition for a food name",
    description="Lets users correct the identified food and fetch nutrition for it.",
)
async def lookup_nutrition(
    pipeline: PipelineDep,
    q: Annotated[
        str,
        Query(min_length=2, max_length=200, description="Food name to search for"),
    ],
):
    """Look up nutrition for a user-supplied food name."""
    logger.info(f"Nutrition lookup request: q='{q}'")

    try:
        nutritional_data = await pipeline.lookup_nutrition(q)
    except NoMatchError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_error_detail(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=_error_detail(e))
    except FoodAnalysisError as e:
        logger.error(f"USDA lookup error: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=_error_detail(e)
        )

    return NutritionLookupResponse(query=q, nutritional_data=nutritional_data)


@router.get(
    "/history",
    response_model=AnalysisHistoryResponse,
    summary="List saved analyses for an owner",
)
async def list_history(
    repository: MealAnalysisRepoDep,
    owner_id: Annotated[str, Query(min_length=1, description="Owner identifier")],
    limit: Annotated[int, Query(ge=1, le=200, description="Maximum results")] = 50,
):
    """List an owner's saved analyses, newest first."""
    if repository is None:
        raise ServiceUnavailableError("Analysis history is not available")

    analyses = await repository.list_by_owner(owner_id, limit=limit)
    return AnalysisHistoryResponse(
        owner_id=owner_id,
        analyses=analyses,
        total_results=len(analyses),
    )


@router.get(
    "/history/{analysis_id}",
    response_model=StoredMealAnalysis,
    responses={
        404: {"model": FoodAnalysisErrorBody, "description": "No saved analysis with this id"},
        503: {"description": "History storage unavailable"},
    },
    summary="Get one saved analysis by its analysis id",
)
async def get_saved_analysis(
    repository: MealAnalysisRepoDep,
    analysis_id: str,
):
    """Fetch a saved analysis by the analysisId returned from /analyze."""
    if repository is None:
        raise ServiceUnavailableError("Analysis history is not available")

    stored = await repository.find_by_analysis_id(analysis_id)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=FoodAnalysisErrorBody(
                error=f"No saved analysis with id {analysis_id}",
                error_code="NOT_FOUND",
            ).model_dump(),
        )
    return stored
