"""Shared fixtures: in-memory stand-ins for MongoDB and the Assistants API."""

import os
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from openai import OpenAIError
from pymongo.errors import DuplicateKeyError, PyMongoError

os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("OPENAI_ASSISTANT_ID", "asst_test")


# =============================================================================
# MongoDB
# =============================================================================


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._docs = sorted(self._docs, key=lambda d: d[key], reverse=direction < 0)
        return self

    def limit(self, n: int) -> "FakeCursor":
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return list(self._docs if length is None else self._docs[:length])


class FakeCollection:
    """Just enough of AsyncIOMotorCollection for the thread store."""

    def __init__(self, unique_fields=("external_thread_id",)) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.unique_fields = unique_fields
        self.fail_with: Optional[Exception] = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
        return all(doc.get(k) == v for k, v in query.items())

    async def insert_one(self, doc: Dict[str, Any]):
        self._check()
        for field in self.unique_fields:
            if any(d.get(field) == doc.get(field) for d in self.docs.values()):
                raise DuplicateKeyError(f"duplicate {field}")
        self.docs[doc["_id"]] = dict(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query: Dict[str, Any]):
        self._check()
        for doc in self.docs.values():
            if self._matches(doc, query):
                return dict(doc)
        return None

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        self._check()
        return FakeCursor([dict(d) for d in self.docs.values() if self._matches(d, query)])

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]):
        self._check()
        for doc in self.docs.values():
            if self._matches(doc, query):
                doc.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: Dict[str, Any]):
        self._check()
        for key, doc in list(self.docs.items()):
            if self._matches(doc, query):
                del self.docs[key]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


@pytest.fixture
def threads_collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def broken_collection() -> FakeCollection:
    collection = FakeCollection()
    collection.fail_with = PyMongoError("connection refused")
    return collection


# =============================================================================
# Assistants API
# =============================================================================


def text_message(text: str, role: str = "assistant", msg_id: str = "msg_1") -> Dict[str, Any]:
    return {
        "id": msg_id,
        "role": role,
        "content": [{"type": "text", "text": {"value": text, "annotations": []}}],
    }


class _Namespace:
    def __init__(self, **methods) -> None:
        for name, method in methods.items():
            setattr(self, name, method)


class FakeAssistantsClient:
    """
    Shaped like AsyncOpenAI's ``beta`` namespace.

    ``run_statuses`` is consumed one entry per runs.list call; the last entry
    repeats once the script is exhausted.
    """

    def __init__(
        self,
        thread_ids: Optional[List[str]] = None,
        run_statuses: Optional[List[str]] = None,
        last_error: Optional[Dict[str, Any]] = None,
        messages: Optional[List[Dict[str, Any]]] = None,
        assistant_error: bool = False,
    ) -> None:
        self.thread_ids = list(thread_ids or ["th_1"])
        self.run_statuses = list(run_statuses or ["completed"])
        self.last_error = last_error
        self.messages = messages if messages is not None else [text_message("hello!")]
        self.assistant_error = assistant_error
        self.fail_on: set = set()
        self.calls: List[tuple] = []
        self._run_count = 0

        self.beta = _Namespace(
            threads=_Namespace(
                create=self._create_thread,
                messages=_Namespace(create=self._create_message, list=self._list_messages),
                runs=_Namespace(create=self._create_run, list=self._list_runs),
            ),
            assistants=_Namespace(retrieve=self._retrieve_assistant),
        )

    def _maybe_fail(self, name: str) -> None:
        self.calls.append((name,))
        if name in self.fail_on:
            raise OpenAIError(f"{name} failed")

    async def _create_thread(self):
        self._maybe_fail("threads.create")
        return {"id": self.thread_ids.pop(0), "object": "thread"}

    async def _create_message(self, thread_id, role, content):
        self._maybe_fail("messages.create")
        return {"id": "msg_user", "thread_id": thread_id, "role": role, "content": [
            {"type": "text", "text": {"value": content, "annotations": []}}
        ]}

    async def _list_messages(self, thread_id, order="desc"):
        self._maybe_fail("messages.list")
        return SimpleNamespace(data=list(self.messages))

    async def _create_run(self, thread_id, assistant_id):
        self._maybe_fail("runs.create")
        self._run_count += 1
        return {"id": f"run_{self._run_count}", "thread_id": thread_id,
                "assistant_id": assistant_id, "status": "queued"}

    async def _list_runs(self, thread_id, limit=20, order="desc"):
        self._maybe_fail("runs.list")
        status = self.run_statuses.pop(0) if len(self.run_statuses) > 1 else self.run_statuses[0]
        run = {"id": f"run_{self._run_count}", "thread_id": thread_id, "status": status}
        if status in ("failed", "cancelled", "expired") and self.last_error:
            run["last_error"] = self.last_error
        older = {"id": "run_old", "thread_id": thread_id, "status": "completed"}
        return SimpleNamespace(data=[run, older])

    async def _retrieve_assistant(self, assistant_id):
        self._maybe_fail("assistants.retrieve")
        if self.assistant_error:
            raise OpenAIError("No assistant found")
        return {"id": assistant_id, "name": "Helper", "model": "gpt-4o",
                "tools": [{"type": "file_search"}]}


@pytest.fixture
def fake_openai() -> FakeAssistantsClient:
    return FakeAssistantsClient()
