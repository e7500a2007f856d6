"""
Transcript models — messages, content blocks and attachments.
"""

from __future__ import annotations

import base64
import mimetypes
import re
import time
import uuid
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$")


def now_ms() -> int:
    return int(time.time() * 1000)


class ContentBlock(BaseModel):
    """One block of message content: text, image, tool_call or tool_result.

    Block types the gateway adds later are kept as-is.
    """

    type: str = ""
    text: Optional[str] = None
    source: Optional[dict[str, Any]] = None
    id: Optional[str] = None
    name: Optional[str] = None
    args: Optional[Any] = None
    tool_call_id: Optional[str] = Field(default=None, alias="toolCallId")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Message(BaseModel):
    role: str  # "user" | "assistant" | "tool" | "system"
    content: list[ContentBlock] = Field(default_factory=list)
    timestamp: Optional[int] = None
    id: Optional[str] = None
    tool_call_id: Optional[str] = Field(default=None, alias="toolCallId")
    deleted: Optional[bool] = None  # server-side deletion tombstone

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("content", mode="before")
    @classmethod
    def _normalize_content(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [{"type": "text", "text": value}]
        if isinstance(value, list):
            return [{"type": "text", "text": item} if isinstance(item, str) else item for item in value]
        return value

    @classmethod
    def from_text(cls, role: str, text: str, timestamp: Optional[int] = None) -> "Message":
        return cls(role=role, content=[ContentBlock(type="text", text=text)], timestamp=timestamp or now_ms())

    @classmethod
    def tombstone(cls, message_id: str) -> "Message":
        """Deletion marker broadcast by the gateway as ``{id, deleted: true}``."""
        return cls(role="", id=message_id, deleted=True)

    @property
    def is_tombstone(self) -> bool:
        return bool(self.deleted) and self.id is not None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def extract_text(message: Any) -> Optional[str]:
    """Text of a message payload: a string, a Message, or a raw dict.

    Text blocks are joined with newlines. Returns None when the payload
    carries no text at all.
    """
    if message is None:
        return None
    if isinstance(message, str):
        return message
    if isinstance(message, Message):
        content: Any = [block.model_dump() for block in message.content]
    elif isinstance(message, dict):
        content = message.get("content")
        if content is None and isinstance(message.get("text"), str):
            return message["text"]
    else:
        return None

    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return None
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str):
            parts.append(block["text"])
    if not parts:
        return None
    return "\n".join(parts)


class Attachment(BaseModel):
    """A user-composed attachment, held client-side as a data URL."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    data_url: str
    mime_type: str

    @classmethod
    def from_path(cls, path: str | Path) -> "Attachment":
        file_path = Path(path)
        mime_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        encoded = base64.b64encode(file_path.read_bytes()).decode("ascii")
        return cls(data_url=f"data:{mime_type};base64,{encoded}", mime_type=mime_type)

    def to_wire(self) -> Optional[dict[str, str]]:
        """Wire shape for ``chat.send``; None if the data URL is malformed."""
        match = DATA_URL_RE.match(self.data_url)
        if not match:
            return None
        return {"type": "image", "mimeType": match.group(1), "content": match.group(2)}

    def to_content_block(self) -> ContentBlock:
        return ContentBlock(
            type="image",
            source={"type": "base64", "media_type": self.mime_type, "data": self.data_url},
        )
