# assistant_bff/services/assistant_service.py
"""
Assistant Service
Thin wrapper around the OpenAI Assistants threads/runs API.

Every call wraps SDK failures in AIServiceError with the identifiers involved
attached for diagnostics. Responses are converted into the local models in
assistant_bff.models.assistant so callers never touch SDK types.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from assistant_bff.errors import AIServiceError, RunNotFoundError
from assistant_bff.models.assistant import AssistantInfo, Message, Run

logger = logging.getLogger(__name__)

# Size of the recent-runs window searched by get_run_status.
RUN_LOOKUP_WINDOW = 10


def _as_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return dict(vars(obj))


class AssistantService:
    def __init__(self, client: Optional[AsyncOpenAI] = None, api_key: Optional[str] = None) -> None:
        if client is None:
            if not api_key:
                raise ValueError("OPENAI_API_KEY not found")
            client = AsyncOpenAI(api_key=api_key)
        self.client = client

    async def create_thread(self) -> str:
        try:
            thread = await self.client.beta.threads.create()
        except OpenAIError as exc:
            logger.exception("Failed to create assistant thread")
            raise AIServiceError("Failed to create assistant thread") from exc

        thread_id = _as_dict(thread).get("id")
        if not thread_id:
            raise AIServiceError("Assistant runtime returned a thread without id")
        return thread_id

    async def append_message(self, external_thread_id: str, content: str, role: str = "user") -> Message:
        details = {"thread_id": external_thread_id}
        if not external_thread_id or not content:
            raise AIServiceError("Thread id and content are required", details=details)

        try:
            message = await self.client.beta.threads.messages.create(
                external_thread_id,
                role=role,
                content=content,
            )
        except OpenAIError as exc:
            logger.exception("Failed to add message to thread %s", external_thread_id)
            raise AIServiceError("Failed to add message to thread", details=details) from exc
        return Message.model_validate(_as_dict(message))

    async def start_run(self, external_thread_id: str, assistant_id: str) -> Run:
        details = {"thread_id": external_thread_id, "assistant_id": assistant_id}
        if not external_thread_id or not assistant_id:
            raise AIServiceError("Thread id and assistant id are required", details=details)

        try:
            run = await self.client.beta.threads.runs.create(external_thread_id, assistant_id=assistant_id)
        except OpenAIError as exc:
            logger.exception("Failed to start run on thread %s with assistant %s", external_thread_id, assistant_id)
            raise AIServiceError("Failed to connect to the assistant", details=details) from exc
        return Run.model_validate(_as_dict(run))

    async def get_run_status(self, external_thread_id: str, run_id: str) -> Run:
        """
        Fetch a run by scanning the most recent runs of the thread.

        Retrieval by id (runs.retrieve) has proven unreliable against this
        runtime, so the run is located in the newest RUN_LOOKUP_WINDOW runs
        instead. A run older than that window is reported as not found.
        """
        details = {"thread_id": external_thread_id, "run_id": run_id}
        if not external_thread_id or not run_id:
            raise AIServiceError("Thread id and run id are required", details=details)

        logger.debug("Looking up run %s on thread %s", run_id, external_thread_id)
        try:
            page = await self.client.beta.threads.runs.list(
                external_thread_id,
                limit=RUN_LOOKUP_WINDOW,
                order="desc",
            )
        except OpenAIError as exc:
            logger.exception("Failed to fetch run status (thread=%s, run=%s)", external_thread_id, run_id)
            raise AIServiceError("Failed to fetch run status", details=details) from exc

        for item in page.data:
            data = _as_dict(item)
            if data.get("id") == run_id:
                run = Run.model_validate(data)
                logger.debug("Run %s status: %s", run_id, run.status)
                return run

        raise RunNotFoundError(
            f"Run {run_id} not found on thread {external_thread_id}",
            details=details,
        )

    async def list_messages(self, external_thread_id: str) -> List[Message]:
        """Messages of the thread, newest first."""
        details = {"thread_id": external_thread_id}
        if not external_thread_id:
            raise AIServiceError("Thread id is required", details=details)

        try:
            page = await self.client.beta.threads.messages.list(external_thread_id, order="desc")
        except OpenAIError as exc:
            logger.exception("Failed to list messages of thread %s", external_thread_id)
            raise AIServiceError("Failed to list thread messages", details=details) from exc

        messages = [Message.model_validate(_as_dict(item)) for item in page.data]
        logger.info("%s messages found on thread %s", len(messages), external_thread_id)
        return messages

    async def get_assistant_metadata(self, assistant_id: str) -> AssistantInfo:
        details = {"assistant_id": assistant_id}
        if not assistant_id:
            raise AIServiceError("Assistant id is required", details=details)

        try:
            assistant = await self.client.beta.assistants.retrieve(assistant_id)
        except OpenAIError as exc:
            logger.exception("Failed to retrieve assistant %s", assistant_id)
            raise AIServiceError("Failed to retrieve assistant", details=details) from exc

        info = AssistantInfo.model_validate(_as_dict(assistant))
        logger.info(
            "Assistant details: id=%s name=%s model=%s tools=%s",
            info.id,
            info.name,
            info.model,
            [tool.get("type") for tool in info.tools],
        )
        return info
