"""Repository for the meal_analyses collection (saved analysis history)."""

from datetime import UTC, datetime

from motor.motor_asyncio import AsyncIOMotorCollection

from meal_lens_api.models import FoodAnalysisResult, StoredMealAnalysis

from .base import BaseRepository


class MealAnalysisRepository(BaseRepository[StoredMealAnalysis]):
    """
    Stores analysis results per owner for later retrieval.

    The pipeline never writes here; the API layer saves a result only when
    the caller asks for it.
    """

    model_class = StoredMealAnalysis
    collection_name = "meal_analyses"

    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    async def save_analysis(
        self,
        owner_id: str,
        result: FoodAnalysisResult,
        analysis_id: str,
    ) -> str:
        """
        Persist one analysis result.

        Args:
            owner_id: Owner (user) identifier
            result: Result to store
            analysis_id: Pipeline run identity

        Returns:
            Inserted document ID
        """
        document = {
            "analysis_id": analysis_id,
            "owner_id": owner_id,
            "result": result.model_dump(mode="json", by_alias=True),
            "created_at": datetime.now(UTC),
        }
        return await self.insert_one(document)

    async def list_by_owner(self, owner_id: str, limit: int = 50) -> list[StoredMealAnalysis]:
        """Saved analyses for an owner, newest first."""
        return await self.find_many(
            filter={"owner_id": owner_id},
            sort=[("created_at", -1)],
            limit=limit,
        )

    async def find_by_analysis_id(self, analysis_id: str) -> StoredMealAnalysis | None:
        """Find a saved analysis by its pipeline run id."""
        return await self.find_one({"analysis_id": analysis_id})
