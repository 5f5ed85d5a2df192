import logging
from typing import List, Optional
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from assistant_bff.config import _now_utc
from assistant_bff.db import THREADS_COLLECTION, get_collection
from assistant_bff.errors import StoreError
from assistant_bff.models.threads import ConversationThread, ConversationThreadCreate

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100


class ThreadStoreService:
    """Accessor for the chat_threads collection; lookups are owner-scoped unless noted."""

    def __init__(self, collection: Optional[AsyncIOMotorCollection] = None) -> None:
        self.collection = collection if collection is not None else get_collection(THREADS_COLLECTION)

    async def create_thread(
        self, owner_id: str, owner_display_name: str, external_thread_id: str
    ) -> ConversationThread:
        data = ConversationThreadCreate(
            owner_id=owner_id,
            owner_display_name=owner_display_name,
            external_thread_id=external_thread_id,
        )
        now = _now_utc()
        payload = data.model_dump()
        payload["_id"] = str(uuid4())
        payload["created_at"] = now
        payload["updated_at"] = now

        try:
            await self.collection.insert_one(payload)
        except DuplicateKeyError as exc:
            logger.error("Thread %s is already registered", external_thread_id)
            raise StoreError(
                "External thread id already registered",
                details={"external_thread_id": external_thread_id},
            ) from exc
        except PyMongoError as exc:
            logger.exception("Failed to persist thread %s for owner %s", external_thread_id, owner_id)
            raise StoreError(
                "Failed to save thread",
                details={"external_thread_id": external_thread_id, "owner_id": owner_id},
            ) from exc

        return ConversationThread(**payload)

    async def find_thread_by_external_id(
        self, external_thread_id: str, owner_id: str
    ) -> Optional[ConversationThread]:
        """
        Look up a thread by its runtime id, scoped to the owner.
        A thread owned by someone else is reported exactly like a missing one.
        """
        if not external_thread_id or not owner_id:
            return None
        try:
            doc = await self.collection.find_one(
                {"external_thread_id": external_thread_id, "owner_id": owner_id}
            )
        except PyMongoError as exc:
            logger.exception("Failed to look up thread %s", external_thread_id)
            raise StoreError(details={"external_thread_id": external_thread_id}) from exc
        return ConversationThread(**doc) if doc else None

    async def get_thread_by_external_id(self, external_thread_id: str) -> Optional[ConversationThread]:
        """Unscoped lookup for administrative access."""
        if not external_thread_id:
            return None
        try:
            doc = await self.collection.find_one({"external_thread_id": external_thread_id})
        except PyMongoError as exc:
            logger.exception("Failed to look up thread %s", external_thread_id)
            raise StoreError(details={"external_thread_id": external_thread_id}) from exc
        return ConversationThread(**doc) if doc else None

    async def list_threads_for_owner(self, owner_id: str, limit: int = 20) -> List[ConversationThread]:
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        try:
            cursor = self.collection.find({"owner_id": owner_id}).sort("updated_at", -1).limit(limit)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as exc:
            logger.exception("Failed to list threads for owner %s", owner_id)
            raise StoreError(details={"owner_id": owner_id}) from exc
        return [ConversationThread(**doc) for doc in docs]

    async def touch_thread(self, external_thread_id: str) -> None:
        """Best effort; failures are logged and never raised."""
        try:
            await self.collection.update_one(
                {"external_thread_id": external_thread_id},
                {"$set": {"updated_at": _now_utc()}},
            )
        except Exception:
            logger.warning("Failed to update last activity of thread %s", external_thread_id, exc_info=True)

    async def delete_thread(self, thread_id: str) -> None:
        # Local bookkeeping only; the runtime thread is left untouched.
        try:
            await self.collection.delete_one({"_id": thread_id})
        except PyMongoError as exc:
            logger.exception("Failed to delete thread %s", thread_id)
            raise StoreError("Failed to delete conversation", details={"thread_id": thread_id}) from exc
