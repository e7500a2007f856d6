"""
Gateway frame construction and parsing.

Requests go out as ``req`` frames and are answered by ``res`` frames with
the same id; server pushes arrive as ``event`` frames.
"""

import uuid
from typing import Any, Literal, Optional

from pydantic import BaseModel, ValidationError

from claw_chat.models.events import FrameType


class ErrorShape(BaseModel):
    code: str = "unknown"
    message: str = ""
    details: Optional[Any] = None


class RequestFrame(BaseModel):
    type: Literal["req"] = "req"
    id: str
    method: str
    params: Optional[dict[str, Any]] = None


class ResponseFrame(BaseModel):
    type: Literal["res"]
    id: str
    ok: bool
    payload: Optional[Any] = None
    error: Optional[ErrorShape] = None


class EventFrame(BaseModel):
    type: Literal["event"]
    event: str
    payload: Optional[Any] = None
    seq: Optional[int] = None


def build_request(method: str, params: Optional[dict[str, Any]] = None, request_id: Optional[str] = None) -> dict[str, Any]:
    """Build a ``req`` frame as a dict ready for emit."""
    frame = RequestFrame(id=request_id or str(uuid.uuid4()), method=method, params=params)
    return frame.model_dump(exclude_none=True)


def parse_response(raw: Any) -> Optional[ResponseFrame]:
    """Parse a ``res`` frame. Returns None if invalid."""
    if not isinstance(raw, dict) or raw.get("type") != FrameType.RESPONSE:
        return None
    try:
        return ResponseFrame.model_validate(raw)
    except ValidationError:
        return None


def parse_event(raw: Any) -> Optional[EventFrame]:
    """Parse an ``event`` frame. Returns None if invalid."""
    if not isinstance(raw, dict) or raw.get("type") != FrameType.EVENT:
        return None
    try:
        return EventFrame.model_validate(raw)
    except ValidationError:
        return None
