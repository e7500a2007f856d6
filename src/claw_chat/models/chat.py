"""
Chat protocol payloads — streaming events, history and recommendations.
"""

import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from claw_chat.models.message import Message

logger = logging.getLogger(__name__)


class _ChatEventBase(BaseModel):
    run_id: Optional[str] = Field(default=None, alias="runId")
    session_key: str = Field(alias="sessionKey")
    seq: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)


class DeltaEvent(_ChatEventBase):
    """Partial output of an in-progress run. ``message`` carries the text so far."""
    state: Literal["delta"]
    message: Optional[Any] = None


class FinalEvent(_ChatEventBase):
    state: Literal["final"]
    message: Optional[Message] = None

    @field_validator("message", mode="wrap")
    @classmethod
    def _drop_malformed(cls, value: Any, handler: Any) -> Optional[Message]:
        try:
            return handler(value)
        except ValidationError:
            # Deletion tombstones carry only an id.
            if isinstance(value, dict) and value.get("deleted") and value.get("id"):
                return Message.tombstone(str(value["id"]))
            return None


class AbortedEvent(_ChatEventBase):
    state: Literal["aborted"]
    message: Optional[Any] = None


class ErrorEvent(_ChatEventBase):
    state: Literal["error"]
    error_message: Optional[str] = Field(default=None, alias="errorMessage")


ChatEventPayload = Annotated[
    Union[DeltaEvent, FinalEvent, AbortedEvent, ErrorEvent],
    Field(discriminator="state"),
]

_chat_event_adapter = TypeAdapter(ChatEventPayload)


def parse_chat_event(raw: Any) -> Optional[ChatEventPayload]:
    """Validate an inbound ``chat`` event payload. Returns None if absent or invalid."""
    if raw is None:
        return None
    if isinstance(raw, BaseModel):
        return raw  # type: ignore[return-value]
    try:
        return _chat_event_adapter.validate_python(raw)
    except ValidationError:
        return None


class HistoryResult(BaseModel):
    """``chat.history`` response."""
    session_key: Optional[str] = Field(default=None, alias="sessionKey")
    messages: list[Message] = Field(default_factory=list)
    thinking_level: Optional[str] = Field(default=None, alias="thinkingLevel")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("messages", mode="before")
    @classmethod
    def _coerce_messages(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        messages: list[Message] = []
        for index, item in enumerate(value):
            try:
                messages.append(Message.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping malformed history entry %d: %s", index, e)
        return messages


class TaskRecommendation(BaseModel):
    id: str
    label: str
    prompt: str
    category: str = "followup"  # followup | action | clarify | explore | command
    priority: int = 0
    icon: Optional[str] = None
    confidence: Optional[float] = None


class RecommendationsResult(BaseModel):
    session_key: Optional[str] = Field(default=None, alias="sessionKey")
    recommendations: list[TaskRecommendation] = Field(default_factory=list)
    generated_at: Optional[int] = Field(default=None, alias="generatedAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("recommendations", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []
