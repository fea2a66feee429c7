import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from backoffice.core.config import settings

logger = logging.getLogger(__name__)

PAYABLES = "payables"
RECEIVABLES = "receivables"
CACHE_ENTRIES = "cache_entries"


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    for name in (PAYABLES, RECEIVABLES):
        collection = db[name]
        await collection.create_index("sequence_number", unique=True, sparse=True)
        await collection.create_index("counterparty_id")
        await collection.create_index("status")
        await collection.create_index("due_date")
        await collection.create_index("source_document_id")
        await collection.create_index([
            ("due_date", ASCENDING),
            ("status", ASCENDING),
            ("active", ASCENDING)
        ])
        await collection.create_index([("settlement_date", DESCENDING)])

    await db[PAYABLES].create_index("category")
    await db[RECEIVABLES].create_index("salesperson_id")

    # Expired cache entries are reaped by the server
    await db[CACHE_ENTRIES].create_index("expires_at", expireAfterSeconds=0)

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
