"""MongoDB database connection using Motor (async driver)."""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from standup.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure the indexes exist."""
        self.client = AsyncIOMotorClient(settings.mongodb_url)
        self.db = self.client[settings.mongodb_db_name]
        await ensure_indexes(self.db)
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        if self.db is None:
            raise RuntimeError("Database not connected")
        return self.db[name]


async def ensure_indexes(db) -> None:
    """
    Create the indexes the lifecycle invariants rely on.

    - one plan per (user_id, plan_date)
    - one materialized goal per reschedule record (sparse: ordinary goals
      carry no reschedule_id)
    """
    await db["daily_plans"].create_index(
        [("user_id", ASCENDING), ("plan_date", ASCENDING)],
        unique=True,
        name="uniq_user_plan_date",
    )
    await db["goals"].create_index(
        [("plan_id", ASCENDING), ("sort_order", ASCENDING)],
        name="plan_sort_order",
    )
    await db["goals"].create_index(
        "reschedule_id",
        unique=True,
        sparse=True,
        name="uniq_reschedule_id",
    )
    await db["goal_reschedules"].create_index(
        [("user_id", ASCENDING), ("to_date", ASCENDING), ("materialized", ASCENDING)],
        name="pending_by_target_date",
    )
    await db["goal_reschedules"].create_index(
        [("from_goal_id", ASCENDING), ("materialized", ASCENDING)],
        name="pending_by_goal",
    )
    await db["goal_notes"].create_index("goal_id", name="notes_by_goal")


# Global database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    if database.db is None:
        raise RuntimeError("Database not connected")
    return database.db
