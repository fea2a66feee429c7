from typing import Optional, Protocol

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

SUPPLIERS = "suppliers"
CUSTOMERS = "customers"
USERS = "users"


class CounterpartyLookup(Protocol):
    async def get_name_by_id(self, counterparty_id: str) -> Optional[str]:
        ...


class CounterpartyRepository:
    """Name lookups against a party collection (suppliers, customers or users)."""

    def __init__(self, db: AsyncIOMotorDatabase, collection: str):
        self.db = db
        self.collection = db[collection]

    async def get_name_by_id(self, counterparty_id: str) -> Optional[str]:
        """Return the party's display name, or None if it does not exist."""
        if not counterparty_id or not ObjectId.is_valid(counterparty_id):
            return None
        doc = await self.collection.find_one(
            {"_id": ObjectId(counterparty_id), "is_deleted": {"$ne": True}},
            {"name": 1}
        )
        if doc:
            return doc.get("name")
        return None
