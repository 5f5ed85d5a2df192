from typing import Sequence

from assistant_bff.errors import NoAssistantResponseError
from assistant_bff.models.assistant import Message, TextContentBlock

FALLBACK_RESPONSE_TEXT = "Unable to process the message."


def extract_response_text(messages: Sequence[Message]) -> str:
    """
    Text of the newest assistant message.

    ``messages`` must be ordered newest first. Without any assistant message
    NoAssistantResponseError is raised; an assistant message without a text
    block yields FALLBACK_RESPONSE_TEXT.
    """
    assistant_messages = [msg for msg in messages if msg.role == "assistant"]
    if not assistant_messages:
        raise NoAssistantResponseError()

    latest = assistant_messages[0]
    for block in latest.content:
        if isinstance(block, TextContentBlock):
            return block.text.value or FALLBACK_RESPONSE_TEXT
    return FALLBACK_RESPONSE_TEXT
