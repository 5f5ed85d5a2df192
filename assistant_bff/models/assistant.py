from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Run statuses as reported by the Assistants runtime. Anything outside these
# two sets is treated as still pending.
RUN_SUCCESS_STATUSES = frozenset({"completed"})
RUN_FAILURE_STATUSES = frozenset({"failed", "cancelled", "expired"})


class RunLastError(BaseModel):
    code: Optional[str] = None
    message: Optional[str] = None


class Run(BaseModel):
    id: str
    thread_id: Optional[str] = None
    assistant_id: Optional[str] = None
    status: str
    last_error: Optional[RunLastError] = None

    @property
    def succeeded(self) -> bool:
        return self.status in RUN_SUCCESS_STATUSES

    @property
    def failed(self) -> bool:
        return self.status in RUN_FAILURE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.succeeded or self.failed


class TextValue(BaseModel):
    value: str = ""
    annotations: List[Any] = Field(default_factory=list)


class TextContentBlock(BaseModel):
    type: Literal["text"]
    text: TextValue


class OtherContentBlock(BaseModel):
    """Any non-text block (image_file, image_url, refusal...). Kept opaque."""

    type: str

    model_config = ConfigDict(extra="allow")


ContentBlock = Annotated[
    Union[TextContentBlock, OtherContentBlock],
    Field(union_mode="left_to_right"),
]


class Message(BaseModel):
    id: Optional[str] = None
    thread_id: Optional[str] = None
    role: Literal["user", "assistant"]
    content: List[ContentBlock] = Field(default_factory=list)
    created_at: Optional[int] = None


class AssistantInfo(BaseModel):
    id: str
    name: Optional[str] = None
    model: Optional[str] = None
    tools: List[Dict[str, Any]] = Field(default_factory=list)
