from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConversationThread(BaseModel):
    id: str = Field(alias="_id")
    owner_id: str
    owner_display_name: str
    external_thread_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "clientId": self.owner_id,
            "clientFullname": self.owner_display_name,
            "threadId": self.external_thread_id,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class ConversationThreadCreate(BaseModel):
    owner_id: str
    owner_display_name: str
    external_thread_id: str = Field(min_length=1)


class ConversationRequest(BaseModel):
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ConversationResult(BaseModel):
    thread_id: str
    client_name: str
    response_text: str

    def to_public(self) -> Dict[str, Any]:
        return {
            "threadId": self.thread_id,
            "clientName": self.client_name,
            "role": "assistant",
            "message": self.response_text,
        }
