"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and a public message that is
safe to return to the caller. Internal detail goes into ``details`` and the
logs, never into the response body.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.public_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Message is required"


class ThreadNotFoundError(AppError):
    """Raised for missing threads and for threads owned by someone else alike."""

    status_code = status.HTTP_404_NOT_FOUND
    public_message = "Thread not found or does not belong to the user"


class StoreError(AppError):
    public_message = "Failed to access the thread store"


class AIServiceError(AppError):
    public_message = "Failed to communicate with the assistant service"


class RunNotFoundError(AIServiceError):
    public_message = "Run not found on thread"


class AssistantUnavailableError(AppError):
    public_message = "Assistant is not available. Check the assistant id."


class RunFailedError(AppError):
    public_message = "The assistant failed to process the message"

    def __init__(
        self,
        run_status: str,
        last_error: Optional[Dict[str, Any]] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.run_status = run_status
        self.last_error = last_error
        reason = f"Run failed with status: {run_status}"
        if last_error and last_error.get("message"):
            reason = f"{reason} - {last_error['message']}"
        super().__init__(reason, details=details)


class RunTimeoutError(AppError):
    public_message = "Timeout: the assistant took too long to respond"


class NoAssistantResponseError(AppError):
    public_message = "No assistant response found"
