"""
ClawChat / AsyncClawChat — gateway chat clients.
"""

import asyncio
from typing import Any, Optional

from claw_chat.config import ClawChatConfig, load_config
from claw_chat.controller import ChatController
from claw_chat.errors import ConnectionError
from claw_chat.models.message import Attachment, Message
from claw_chat.state import ChatState
from claw_chat.transport.socketio import GatewaySocket

DEFAULT_RUN_TIMEOUT_S = 300.0


class AsyncClawChat:
    """Async gateway chat client (primary)."""

    def __init__(
        self,
        config: Optional[ClawChatConfig] = None,
        transports: Optional[list[str]] = None,
        **overrides: Any,
    ):
        base = config or ClawChatConfig()
        self.config = base.model_copy(update=overrides) if overrides else base
        self._transports = transports
        self._socket: Optional[GatewaySocket] = None
        self._chat: Optional[ChatController] = None

    @classmethod
    def from_config(cls, **overrides: Any) -> "AsyncClawChat":
        """Build a client from ~/.claw-chat/config.json and CLAW_CHAT_* variables."""
        return cls(load_config(), **overrides)

    @property
    def connected(self) -> bool:
        return self._socket is not None and self._socket.connected

    @property
    def chat(self) -> ChatController:
        self._ensure_connected()
        return self._chat  # type: ignore[return-value]

    @property
    def state(self) -> ChatState:
        return self.chat.state

    async def connect(self, load_history: bool = True) -> None:
        self._socket = GatewaySocket(
            base_url=self.config.gateway_url,
            token=self.config.token,
            transports=self._transports,
            ready_timeout=self.config.ready_timeout,
            request_timeout=self.config.request_timeout,
        )
        await self._socket.connect()
        self._chat = ChatController.from_config(self._socket, self.config)
        self._chat.start()
        if load_history:
            await self._chat.load_history()

    async def disconnect(self) -> None:
        if self._chat:
            await self._chat.close()
            self._chat = None
        if self._socket:
            await self._socket.disconnect()
            self._socket = None

    async def __aenter__(self) -> "AsyncClawChat":
        await self.connect()
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.disconnect()

    async def switch_session(self, session_key: str) -> None:
        await self.chat.switch_session(session_key)

    async def load_history(self) -> list[Message]:
        await self.chat.load_history()
        return self.state.messages

    async def send(self, message: str, attachments: Optional[list[Attachment]] = None) -> Optional[str]:
        """Start a run. Returns the run id, or None if nothing was sent."""
        return await self.chat.send(message, attachments)

    async def submit(self, message: Optional[str] = None, attachments: Optional[list[Attachment]] = None) -> Optional[str]:
        """Send, or queue behind the active run."""
        return await self.chat.submit(message, attachments)

    async def send_and_wait(
        self,
        message: str,
        attachments: Optional[list[Attachment]] = None,
        timeout: float = DEFAULT_RUN_TIMEOUT_S,
    ) -> Optional[Message]:
        """Send a message, wait for its run to end, return the last assistant message."""
        run_id = await self.send(message, attachments)
        if run_id is None:
            return None
        if not await self.chat.wait_idle(timeout):
            return None
        for msg in reversed(self.state.messages):
            if msg.role == "assistant":
                return msg
        return None

    async def abort(self) -> bool:
        return await self.chat.abort()

    async def rerun_from_message(self, message_id: str) -> Optional[str]:
        return await self.chat.rerun_from_message(message_id)

    async def edit_message(self, message_id: str, content: str, rerun: bool = False) -> Optional[str]:
        return await self.chat.edit_message(message_id, content, rerun=rerun)

    async def delete_message(self, message_id: str) -> bool:
        return await self.chat.delete_message(message_id)

    async def delete_from_message(self, message_id: str) -> bool:
        return await self.chat.delete_from_message(message_id)

    def _ensure_connected(self) -> None:
        if not self._chat or not self._socket or not self._socket.connected:
            raise ConnectionError("Not connected. Call connect() first.")


class ClawChat:
    """Sync wrapper around AsyncClawChat. Runs the event loop internally.

    Streaming events are only processed while one of its calls is running.
    """

    def __init__(self, **kwargs: Any):
        self._async = AsyncClawChat(**kwargs)
        self._loop = asyncio.new_event_loop()

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    @property
    def connected(self) -> bool:
        return self._async.connected

    @property
    def state(self) -> ChatState:
        return self._async.state

    def connect(self, **kwargs: Any) -> None:
        self._run(self._async.connect(**kwargs))

    def disconnect(self) -> None:
        self._run(self._async.disconnect())

    def load_history(self) -> list[Message]:
        return self._run(self._async.load_history())

    def switch_session(self, session_key: str) -> None:
        self._run(self._async.switch_session(session_key))

    def send_and_wait(self, message: str, **kwargs: Any) -> Optional[Message]:
        return self._run(self._async.send_and_wait(message, **kwargs))

    def abort(self) -> bool:
        return self._run(self._async.abort())

    def rerun_from_message(self, message_id: str) -> Optional[str]:
        return self._run(self._async.rerun_from_message(message_id))

    def edit_message(self, message_id: str, content: str, rerun: bool = False) -> Optional[str]:
        return self._run(self._async.edit_message(message_id, content, rerun=rerun))

    def delete_message(self, message_id: str) -> bool:
        return self._run(self._async.delete_message(message_id))

    def delete_from_message(self, message_id: str) -> bool:
        return self._run(self._async.delete_from_message(message_id))
