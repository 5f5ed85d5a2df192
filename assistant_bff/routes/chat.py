# assistant_bff/routes/chat.py
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from assistant_bff.config import get_settings
from assistant_bff.errors import AppError
from assistant_bff.models.threads import ConversationRequest
from assistant_bff.models.users import CurrentUser
from assistant_bff.routes.auth.auth import require_user
from assistant_bff.services.assistant_service import AssistantService
from assistant_bff.services.conversation_service import ConversationService
from assistant_bff.services.thread_store_service import ThreadStoreService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@lru_cache
def get_assistant_service() -> AssistantService:
    # one AsyncOpenAI client (and its connection pool) per process
    return AssistantService(api_key=get_settings().openai_api_key)


def get_conversation_service() -> ConversationService:
    settings = get_settings()
    return ConversationService(
        store=ThreadStoreService(),
        assistant=get_assistant_service(),
        assistant_id=settings.openai_assistant_id,
        max_attempts=settings.run_poll_max_attempts,
        poll_interval_seconds=settings.run_poll_interval_seconds,
    )


def _error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.public_message},
    )


def _internal_error() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Failed to process the request."},
    )


@router.post("/conversation")
async def conversation(
    request: ConversationRequest,
    current_user: CurrentUser = Depends(require_user),
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Send a message to the assistant and wait for its reply.
    Without threadId a new conversation thread is created.
    """
    try:
        result = await service.converse(
            owner_id=current_user.id,
            owner_display_name=current_user.display_name,
            existing_external_thread_id=request.thread_id,
            message_text=request.message,
        )
    except AppError as exc:
        logger.error("Conversation failed for user %s: %s %s", current_user.id, exc.message, exc.details)
        return _error_response(exc)
    except Exception:
        logger.exception("Conversation failed for user %s", current_user.id)
        return _internal_error()

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "data": result.to_public()},
    )


@router.post("/start")
async def start_conversation(
    current_user: CurrentUser = Depends(require_user),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        thread = await service.start_conversation(current_user.id, current_user.display_name)
    except AppError as exc:
        logger.error("Failed to start conversation for user %s: %s", current_user.id, exc.message)
        return _error_response(exc)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "message": "Conversation started successfully",
            "data": {"thread": thread.to_public()},
        },
    )


@router.get("/threads")
async def list_threads(
    limit: int = Query(20),
    current_user: CurrentUser = Depends(require_user),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        threads = await service.list_conversations(current_user.id, limit)
    except AppError as exc:
        logger.error("Failed to list threads for user %s: %s", current_user.id, exc.message)
        return _error_response(exc)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "data": {"threads": [t.to_public() for t in threads]}},
    )


@router.get("/threads/{thread_id}/messages")
async def get_thread_messages(
    thread_id: str,
    current_user: CurrentUser = Depends(require_user),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        thread, messages = await service.get_thread_messages(current_user.id, thread_id)
    except AppError as exc:
        logger.error("Failed to fetch messages of thread %s: %s", thread_id, exc.message)
        return _error_response(exc)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "data": {
                "messages": jsonable_encoder([m.model_dump() for m in messages]),
                "threadId": thread.external_thread_id,
                "clientFullname": thread.owner_display_name,
            },
        },
    )


@router.delete("/threads/{thread_id}")
async def delete_thread(
    thread_id: str,
    current_user: CurrentUser = Depends(require_user),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        thread = await service.delete_conversation(current_user.id, thread_id)
    except AppError as exc:
        logger.error("Failed to delete thread %s: %s", thread_id, exc.message)
        return _error_response(exc)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "message": f"Conversation of {thread.owner_display_name} removed successfully",
        },
    )
