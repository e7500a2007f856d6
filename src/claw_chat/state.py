"""
Session-scoped transcript store.

One ``ChatState`` holds everything the engine knows about the active
session. It is plain data: the run initiator, the event correlator and
the history reconciler mutate it, and it is owned by a single
``ChatController``.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, Field

from claw_chat.models.chat import TaskRecommendation
from claw_chat.models.message import Attachment, Message, now_ms


class Draft(BaseModel):
    """A composed message waiting in the send queue."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)


class ChatState(BaseModel):
    session_key: str
    messages: list[Message] = Field(default_factory=list)
    thinking_level: Optional[str] = None

    # Active run, owned by this client. Foreign runs never land here.
    run_id: Optional[str] = None
    # "" means a run started but no tokens have arrived yet.
    stream: Optional[str] = None
    stream_started_at: Optional[int] = None

    loading: bool = False
    sending: bool = False
    last_error: Optional[str] = None

    draft: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
    queue: list[Draft] = Field(default_factory=list)
    recommendations: list[TaskRecommendation] = Field(default_factory=list)

    @property
    def busy(self) -> bool:
        return self.sending or self.run_id is not None

    def reset(self, session_key: str) -> None:
        """Point the state at another session, dropping everything session-bound."""
        self.session_key = session_key
        self.messages = []
        self.thinking_level = None
        self.clear_run()
        self.loading = False
        self.sending = False
        self.last_error = None
        self.queue = []
        self.recommendations = []

    def start_run(self, run_id: str, started_at: Optional[int] = None) -> None:
        self.run_id = run_id
        self.stream = ""
        self.stream_started_at = started_at if started_at is not None else now_ms()

    def clear_run(self) -> None:
        self.run_id = None
        self.stream = None
        self.stream_started_at = None

    def append(self, message: Message) -> None:
        self.messages = [*self.messages, message]

    def index_of(self, message_id: str) -> Optional[int]:
        for i, message in enumerate(self.messages):
            if message.id == message_id:
                return i
        return None

    def remove_message(self, message_id: str) -> bool:
        kept = [m for m in self.messages if m.id != message_id]
        removed = len(kept) != len(self.messages)
        if removed:
            self.messages = kept
        return removed

    def truncate_from(self, message_id: str) -> int:
        """Drop a message and everything after it. Returns the number removed."""
        index = self.index_of(message_id)
        if index is None:
            return 0
        removed = len(self.messages) - index
        self.messages = self.messages[:index]
        return removed

    def truncate_after(self, message_id: str) -> int:
        """Drop everything after a message, keeping the message itself."""
        index = self.index_of(message_id)
        if index is None:
            return 0
        removed = len(self.messages) - index - 1
        self.messages = self.messages[: index + 1]
        return removed
