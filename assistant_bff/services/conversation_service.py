# assistant_bff/services/conversation_service.py
"""
Conversation Service
Coordinates a message exchange between a user and the configured assistant:
thread resolution, message append, run execution and reply extraction.
"""
import logging
from typing import List, Optional, Tuple

from assistant_bff.errors import (
    AIServiceError,
    AssistantUnavailableError,
    ThreadNotFoundError,
    ValidationError,
)
from assistant_bff.models.assistant import Message
from assistant_bff.models.threads import ConversationResult, ConversationThread
from assistant_bff.services.assistant_service import AssistantService
from assistant_bff.services.response_extractor import extract_response_text
from assistant_bff.services.run_poller import DEFAULT_INTERVAL_SECONDS, DEFAULT_MAX_ATTEMPTS, RunPoller
from assistant_bff.services.thread_store_service import ThreadStoreService

logger = logging.getLogger(__name__)


class ConversationService:
    """
    Orchestrates the conversation workflow on top of the thread store and the
    assistant runtime.

    The steps are not transactional. If persisting a new thread fails, the
    runtime thread created just before is left orphaned; a failure after the
    message was appended leaves it on the runtime thread without a reply.
    """

    def __init__(
        self,
        store: ThreadStoreService,
        assistant: AssistantService,
        assistant_id: Optional[str],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        poll_interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.store = store
        self.assistant = assistant
        self.assistant_id = assistant_id
        self.max_attempts = max_attempts
        self.poll_interval_seconds = poll_interval_seconds

    def _new_poller(self) -> RunPoller:
        return RunPoller(self.assistant, interval_seconds=self.poll_interval_seconds)

    async def _resolve_thread(self, external_thread_id: str, owner_id: str) -> ConversationThread:
        thread = await self.store.find_thread_by_external_id(external_thread_id, owner_id)
        if thread is None:
            raise ThreadNotFoundError(details={"thread_id": external_thread_id, "owner_id": owner_id})
        return thread

    async def start_conversation(self, owner_id: str, owner_display_name: str) -> ConversationThread:
        """Create a runtime thread and register it for the owner."""
        external_thread_id = await self.assistant.create_thread()
        thread = await self.store.create_thread(owner_id, owner_display_name, external_thread_id)
        logger.info(
            "New thread created - client: %s (%s), thread: %s",
            owner_display_name,
            owner_id,
            external_thread_id,
        )
        return thread

    async def converse(
        self,
        owner_id: str,
        owner_display_name: str,
        existing_external_thread_id: Optional[str],
        message_text: Optional[str],
    ) -> ConversationResult:
        if not message_text or not message_text.strip():
            raise ValidationError()

        # Step 1: resolve or create the thread
        if existing_external_thread_id:
            await self._resolve_thread(existing_external_thread_id, owner_id)
            external_thread_id = existing_external_thread_id
            logger.info(
                "Existing thread - client: %s (%s), thread: %s",
                owner_display_name,
                owner_id,
                external_thread_id,
            )
        else:
            thread = await self.start_conversation(owner_id, owner_display_name)
            external_thread_id = thread.external_thread_id

        # Step 2: append the user's message
        await self.assistant.append_message(external_thread_id, message_text, "user")

        # Step 3: make sure the assistant is reachable before starting a run
        if not self.assistant_id:
            raise AssistantUnavailableError("Assistant id is not configured")
        try:
            await self.assistant.get_assistant_metadata(self.assistant_id)
        except AIServiceError as exc:
            raise AssistantUnavailableError(
                str(exc), details={"assistant_id": self.assistant_id}
            ) from exc

        # Step 4: run the assistant and wait for it
        run = await self.assistant.start_run(external_thread_id, self.assistant_id)
        logger.info("Run %s started on thread %s", run.id, external_thread_id)
        await self._new_poller().wait_for_completion(external_thread_id, run.id, self.max_attempts)

        # Step 5: extract the reply
        messages = await self.assistant.list_messages(external_thread_id)
        response_text = extract_response_text(messages)

        # Step 6: last activity, best effort
        await self.store.touch_thread(external_thread_id)

        logger.info("Assistant replied on thread %s", external_thread_id)
        return ConversationResult(
            thread_id=external_thread_id,
            client_name=owner_display_name,
            response_text=response_text,
        )

    async def list_conversations(self, owner_id: str, limit: int = 20) -> List[ConversationThread]:
        return await self.store.list_threads_for_owner(owner_id, limit)

    async def get_thread_messages(
        self, owner_id: str, external_thread_id: str
    ) -> Tuple[ConversationThread, List[Message]]:
        thread = await self._resolve_thread(external_thread_id, owner_id)
        messages = await self.assistant.list_messages(external_thread_id)
        return thread, messages

    async def delete_conversation(self, owner_id: str, external_thread_id: str) -> ConversationThread:
        """Remove the local record only; the runtime thread is kept."""
        thread = await self._resolve_thread(external_thread_id, owner_id)
        await self.store.delete_thread(thread.id)
        logger.info("Thread %s removed for owner %s", external_thread_id, owner_id)
        return thread

    # -------------------------------------------------------------------------
    # Administrative access (any owner)
    # -------------------------------------------------------------------------

    async def get_thread_for_admin(self, external_thread_id: str) -> ConversationThread:
        thread = await self.store.get_thread_by_external_id(external_thread_id)
        if thread is None:
            raise ThreadNotFoundError("Thread not found", details={"thread_id": external_thread_id})
        return thread

    async def get_thread_messages_for_admin(
        self, external_thread_id: str
    ) -> Tuple[ConversationThread, List[Message]]:
        thread = await self.get_thread_for_admin(external_thread_id)
        messages = await self.assistant.list_messages(external_thread_id)
        return thread, messages
