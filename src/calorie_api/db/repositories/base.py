"""Base repository class with common database operations."""

from typing import Any, Generic, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


def parse_object_id(id: str) -> ObjectId | None:
    """Parse a string id, returning None for malformed ids."""
    try:
        return ObjectId(id)
    except (InvalidId, TypeError):
        return None


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations.

    Subclasses set the `model_class` attribute to enable automatic
    document-to-model conversion.
    """

    model_class: type[T] | None = None

    def __init__(self, collection: AsyncIOMotorCollection):
        """
        Initialize repository with a MongoDB collection.

        Args:
            collection: Motor collection instance
        """
        self.collection = collection

    def _to_model(self, doc: dict[str, Any] | None) -> T | None:
        """Convert MongoDB document to the Pydantic model."""
        if doc is None:
            return None
        # Convert ObjectId to string for id field
        if "_id" in doc:
            doc["id"] = str(doc.pop("_id"))
        return self.model_class.model_validate(doc)

    def _to_models(self, docs: list[dict[str, Any]]) -> list[T]:
        """Convert list of MongoDB documents to models."""
        return [self._to_model(doc) for doc in docs if doc is not None]

    async def find_by_id(self, id: str) -> T | None:
        """
        Find document by ID.

        Args:
            id: Document ObjectId as string

        Returns:
            Document as model, or None if not found or the id is malformed
        """
        object_id = parse_object_id(id)
        if object_id is None:
            return None
        doc = await self.collection.find_one({"_id": object_id})
        return self._to_model(doc)

    async def find_many(
        self,
        filter: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[T]:
        """
        Find documents matching filter.

        Args:
            filter: MongoDB query filter
            sort: List of (field, direction) tuples
            limit: Maximum documents to return (all when None)

        Returns:
            List of documents as models
        """
        cursor = self.collection.find(filter or {})

        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)

        docs = await cursor.to_list(length=limit)
        return self._to_models(docs)

    async def find_one(self, filter: dict[str, Any]) -> T | None:
        """
        Find single document matching filter.

        Args:
            filter: MongoDB query filter

        Returns:
            Document as model, or None if not found
        """
        doc = await self.collection.find_one(filter)
        return self._to_model(doc)

    async def insert_one(self, document: dict[str, Any]) -> str:
        """
        Insert a single document.

        Args:
            document: Document to insert

        Returns:
            Inserted document ID as string
        """
        result = await self.collection.insert_one(document)
        return str(result.inserted_id)

    async def delete_one(self, id: str) -> bool:
        """
        Delete a single document by ID.

        Returns:
            True if document was deleted
        """
        object_id = parse_object_id(id)
        if object_id is None:
            return False
        result = await self.collection.delete_one({"_id": object_id})
        return result.deleted_count > 0

    async def delete_many(self, filter: dict[str, Any]) -> int:
        """
        Delete every document matching filter.

        Returns:
            Number of documents deleted
        """
        result = await self.collection.delete_many(filter)
        return result.deleted_count
