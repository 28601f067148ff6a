"""Contact CRUD operations."""

from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from techassist.models import (
    CONTACTS_COLLECTION,
    ContactStatus,
    parse_object_id,
    utc_now,
    with_timestamps,
)

Document = Dict[str, Any]


class ContactCRUD:
    """CRUD operations for contacts."""

    def _collection(self, db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
        return db[CONTACTS_COLLECTION]

    async def create(self, db: AsyncIOMotorDatabase, data: Dict[str, Any]) -> Document:
        """Store a new contact in pending status."""
        document = with_timestamps({**data, "status": ContactStatus.PENDING.value})
        result = await self._collection(db).insert_one(document)
        document["_id"] = result.inserted_id
        return document

    async def get_by_id(self, db: AsyncIOMotorDatabase, contact_id: str) -> Optional[Document]:
        """Get contact by ID. Raises ValueError for malformed ids."""
        oid = parse_object_id(contact_id)
        return await self._collection(db).find_one({"_id": oid})

    async def list_paginated(
        self,
        db: AsyncIOMotorDatabase,
        page: int = 1,
        page_size: int = 20,
        status: Optional[ContactStatus] = None,
    ) -> Tuple[List[Document], int]:
        """List contacts newest first, with pagination and optional status filter."""
        query: Dict[str, Any] = {}
        if status:
            query["status"] = status.value

        collection = self._collection(db)
        total = await collection.count_documents(query)

        offset = (page - 1) * page_size
        cursor = (
            collection.find(query)
            .sort("created_at", DESCENDING)
            .skip(offset)
            .limit(page_size)
        )
        items = await cursor.to_list(length=page_size)
        return items, total

    async def update_status(
        self, db: AsyncIOMotorDatabase, contact_id: str, status: ContactStatus
    ) -> Optional[Document]:
        """Update contact status. Returns the updated document, or None if missing."""
        oid = parse_object_id(contact_id)
        return await self._collection(db).find_one_and_update(
            {"_id": oid},
            {"$set": {"status": status.value, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete(self, db: AsyncIOMotorDatabase, contact_id: str) -> bool:
        """Delete a contact. Returns False if it did not exist."""
        oid = parse_object_id(contact_id)
        result = await self._collection(db).delete_one({"_id": oid})
        return result.deleted_count > 0


contact_crud = ContactCRUD()
