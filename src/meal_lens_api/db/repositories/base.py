"""Base repository class with common database operations."""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Base repository providing common read/insert operations.

    Subclasses set `model_class` to enable document-to-model conversion.
    """

    model_class: type[T] | None = None

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    def _to_model(self, doc: dict[str, Any]) -> T | dict[str, Any]:
        """Convert MongoDB document to Pydantic model if model_class is set."""
        if self.model_class is not None:
            if "_id" in doc:
                doc["id"] = str(doc.pop("_id"))
            return self.model_class.model_validate(doc)
        return doc

    async def find_many(
        self,
        filter: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int = 100,
        skip: int = 0,
    ) -> list[T | dict[str, Any]]:
        """
        Find multiple documents matching filter.

        Args:
            filter: MongoDB query filter
            sort: List of (field, direction) tuples
            limit: Maximum documents to return
            skip: Number of documents to skip
        """
        cursor = self.collection.find(filter or {})

        if sort:
            cursor = cursor.sort(sort)

        cursor = cursor.skip(skip).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [self._to_model(doc) for doc in docs if doc is not None]

    async def find_one(self, filter: dict[str, Any]) -> T | dict[str, Any] | None:
        """Find single document matching filter."""
        doc = await self.collection.find_one(filter)
        return self._to_model(doc) if doc else None

    async def insert_one(self, document: dict[str, Any]) -> str:
        """
        Insert a single document.

        Returns:
            Inserted document ID as string
        """
        if "created_at" not in document:
            document["created_at"] = datetime.now(UTC)

        result = await self.collection.insert_one(document)
        return str(result.inserted_id)
