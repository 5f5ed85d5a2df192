# assistant_bff/routes/admin.py
import logging

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from assistant_bff.config import _now_utc
from assistant_bff.db import USERS_COLLECTION, get_collection
from assistant_bff.errors import AppError, ThreadNotFoundError
from assistant_bff.models.users import CurrentUser, UserStatusUpdate
from assistant_bff.routes.auth.auth import _user_info, require_admin
from assistant_bff.routes.chat import _error_response, get_conversation_service
from assistant_bff.services.conversation_service import ConversationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


def _thread_not_found() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "error": "Thread not found"},
    )


@router.get("/threads/{thread_id}")
async def get_thread_detail(
    thread_id: str,
    current_user: CurrentUser = Depends(require_admin),
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Thread record plus its owner's profile, for any owner.
    """
    try:
        thread = await service.get_thread_for_admin(thread_id)
        owner_doc = await get_collection(USERS_COLLECTION).find_one({"_id": thread.owner_id})
    except ThreadNotFoundError:
        return _thread_not_found()
    except AppError as exc:
        logger.error("Admin %s failed to load thread %s: %s", current_user.id, thread_id, exc.message)
        return _error_response(exc)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "data": {
                "thread": thread.to_public(),
                "owner": _user_info(owner_doc) if owner_doc else None,
            },
        },
    )


@router.get("/conversations/{thread_id}/messages")
async def get_conversation_messages(
    thread_id: str,
    current_user: CurrentUser = Depends(require_admin),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        thread, messages = await service.get_thread_messages_for_admin(thread_id)
    except ThreadNotFoundError:
        return _thread_not_found()
    except AppError as exc:
        logger.error("Admin %s failed to fetch messages of thread %s: %s", current_user.id, thread_id, exc.message)
        return _error_response(exc)

    info = thread.to_public()
    info.pop("updatedAt", None)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "data": {
                "threadInfo": info,
                "messages": jsonable_encoder([m.model_dump() for m in messages]),
            },
        },
    )


@router.patch("/users/{user_id}/status")
async def update_user_status(
    user_id: str,
    request: UserStatusUpdate,
    current_user: CurrentUser = Depends(require_admin),
):
    try:
        users = get_collection(USERS_COLLECTION)
        result = await users.update_one(
            {"_id": user_id},
            {"$set": {"active": request.active, "updated_at": _now_utc()}},
        )
        if result.matched_count == 0:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"success": False, "error": "User not found"},
            )
        user_doc = await users.find_one({"_id": user_id})
    except Exception:
        logger.exception("Admin %s failed to update status of user %s", current_user.id, user_id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to update user status"},
        )

    logger.info("User %s %s by admin %s", user_id, "activated" if request.active else "deactivated", current_user.id)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "message": f"User {'activated' if request.active else 'deactivated'} successfully",
            "data": {"user": _user_info(user_doc)},
        },
    )
