# assistant_bff/db.py
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection

from assistant_bff.config import get_settings

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None

USERS_COLLECTION = "users"
THREADS_COLLECTION = "chat_threads"


def get_client() -> AsyncIOMotorClient:
    """
    Returns a singleton AsyncIOMotorClient. Creates it if not already created.
    """
    global _client
    if _client is None:
        mongo_uri = get_settings().mongo_uri
        if not mongo_uri:
            raise RuntimeError("MONGO_URI not set in environment")
        _client = AsyncIOMotorClient(mongo_uri)
    return _client


def get_database() -> AsyncIOMotorDatabase:
    """
    Returns the configured database object.
    """
    global _db
    if _db is None:
        db_name = get_settings().mongo_db_name
        if not db_name:
            raise RuntimeError("MONGO_DB_NAME not set in environment")
        _db = get_client()[db_name]
    return _db


def get_collection(name: str) -> AsyncIOMotorCollection:
    """
    Convenience to get a collection from the configured DB.
    Usage: threads = get_collection('chat_threads'); await threads.find_one({...})
    """
    return get_database()[name]


def close_client() -> None:
    """
    Close the motor client - call this on application shutdown.
    """
    global _client, _db
    if _client is not None:
        _client.close()
        _client = None
        _db = None


async def create_indexes() -> None:
    users = get_collection(USERS_COLLECTION)
    await users.create_index("email", unique=True)

    threads = get_collection(THREADS_COLLECTION)
    await threads.create_index("external_thread_id", unique=True)
    await threads.create_index("owner_id")
    await threads.create_index([("owner_id", 1), ("updated_at", -1)])
