"""Drop all planning data for a specific user."""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

# Collections keyed by user_id
USER_COLLECTIONS = ["daily_plans", "goals", "goal_reschedules", "goal_notes"]


async def drop_user_data(mongodb_url: str, user_id: str, db_name: str = "standup"):
    """Delete all documents for a user, including the profile and its points."""
    client = AsyncIOMotorClient(mongodb_url)
    db = client[db_name]

    for collection_name in USER_COLLECTIONS:
        result = await db[collection_name].delete_many({"user_id": user_id})
        print(f"Deleted {result.deleted_count} documents from {collection_name}")

    # Profiles are keyed by the user id itself
    result = await db["profiles"].delete_one({"_id": user_id})
    print(f"Deleted {result.deleted_count} documents from profiles")

    client.close()
    print("Done!")


if __name__ == "__main__":
    if len(sys.argv) not in (3, 4):
        print("Usage: python drop_user_data.py <mongodb_url> <user_id> [db_name]")
        sys.exit(1)

    asyncio.run(drop_user_data(*sys.argv[1:]))
