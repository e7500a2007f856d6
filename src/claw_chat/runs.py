"""
Run initiator — send, re-run, edit, delete and abort.

Every operation resolves to a sentinel value (run id, bool or EditResult) and records
failures in ``state.last_error``; nothing raises past the call. After each
await the captured session key is re-checked and the result is dropped
if the user has moved to another session.
"""

import logging
import uuid
from typing import Any, NamedTuple, Optional

from claw_chat.models.events import GatewayMethod
from claw_chat.models.message import Attachment, ContentBlock, Message, now_ms
from claw_chat.state import ChatState
from claw_chat.transport.base import Transport

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    return str(uuid.uuid4())


class EditResult(NamedTuple):
    ok: bool
    run_id: Optional[str] = None


class RunInitiator:
    def __init__(self, transport: Transport):
        self._transport = transport

    @property
    def connected(self) -> bool:
        return self._transport.connected

    async def send(
        self,
        state: ChatState,
        message: str,
        attachments: Optional[list[Attachment]] = None,
    ) -> Optional[str]:
        """Send a user message and start a run. Returns the run id, or None."""
        if not self.connected:
            return None
        text = message.strip()
        attachments = attachments or []
        if not text and not attachments:
            return None

        session_key = state.session_key
        now = now_ms()
        content: list[ContentBlock] = []
        if text:
            content.append(ContentBlock(type="text", text=text))
        content.extend(att.to_content_block() for att in attachments)
        state.append(Message(role="user", content=content, timestamp=now))

        run_id = new_run_id()
        state.sending = True
        state.last_error = None
        state.start_run(run_id, now)

        params: dict[str, Any] = {
            "sessionKey": session_key,
            "message": text,
            "deliver": False,
            "idempotencyKey": run_id,
        }
        wire = [w for w in (att.to_wire() for att in attachments) if w is not None]
        if wire:
            params["attachments"] = wire

        try:
            await self._transport.request(GatewayMethod.CHAT_SEND, params)
            return run_id
        except Exception as e:
            error = str(e)
            logger.debug("chat.send failed for run %s: %s", run_id, error)
            if state.session_key != session_key:
                return None
            if state.run_id == run_id:
                state.clear_run()
            state.last_error = error
            # Keep the user's message visible and explain the failure inline.
            state.append(Message.from_text("assistant", f"Error: {error}"))
            return None
        finally:
            self._release(state, session_key, run_id)

    async def rerun_from_message(self, state: ChatState, message_id: str) -> Optional[str]:
        """Regenerate the reply to an existing user message."""
        if not self.connected:
            return None
        session_key = state.session_key
        run_id = new_run_id()
        state.start_run(run_id)
        state.sending = True
        state.last_error = None
        # The gateway drops everything after the target before re-running it.
        before = state.messages
        state.truncate_after(message_id)
        truncated = state.messages

        try:
            await self._transport.request(GatewayMethod.CHAT_RERUN, {
                "sessionKey": session_key,
                "messageId": message_id,
                "idempotencyKey": run_id,
            })
            return run_id
        except Exception as e:
            self._fail_run(state, session_key, run_id, e, before, truncated)
            return None
        finally:
            self._release(state, session_key, run_id)

    async def edit_message(
        self,
        state: ChatState,
        message_id: str,
        content: str,
        rerun: bool = False,
    ) -> EditResult:
        """Edit a user message; with ``rerun`` also regenerate from it.

        ``ok`` reports whether the gateway accepted the edit.
        """
        if not self.connected:
            return EditResult(False)
        session_key = state.session_key
        run_id = new_run_id() if rerun else None
        before = state.messages
        if run_id:
            state.start_run(run_id)
            state.sending = True
            state.truncate_after(message_id)
        truncated = state.messages
        state.last_error = None

        params: dict[str, Any] = {
            "sessionKey": session_key,
            "messageId": message_id,
            "content": content,
            "rerun": rerun,
        }
        if run_id:
            params["idempotencyKey"] = run_id

        try:
            await self._transport.request(GatewayMethod.CHAT_EDIT, params)
            return EditResult(True, run_id)
        except Exception as e:
            self._fail_run(state, session_key, run_id, e, before, truncated)
            return EditResult(False)
        finally:
            if run_id:
                self._release(state, session_key, run_id)

    async def delete_message(self, state: ChatState, message_id: str) -> bool:
        if not self.connected:
            return False
        session_key = state.session_key
        try:
            await self._transport.request(GatewayMethod.CHAT_DELETE, {
                "sessionKey": session_key,
                "messageId": message_id,
            })
        except Exception as e:
            if state.session_key == session_key:
                state.last_error = str(e)
            return False
        if state.session_key == session_key:
            state.remove_message(message_id)
        return True

    async def delete_from_message(self, state: ChatState, message_id: str) -> bool:
        """Delete a message and everything after it."""
        if not self.connected:
            return False
        session_key = state.session_key
        try:
            await self._transport.request(GatewayMethod.CHAT_DELETE_FROM, {
                "sessionKey": session_key,
                "messageId": message_id,
            })
        except Exception as e:
            if state.session_key == session_key:
                state.last_error = str(e)
            return False
        if state.session_key == session_key:
            state.truncate_from(message_id)
        return True

    async def abort(self, state: ChatState) -> bool:
        """Ask the gateway to cancel the active run.

        Local run state is left alone; it is cleared when the ``aborted``
        event comes back through the correlator.
        """
        if not self.connected:
            return False
        session_key = state.session_key
        run_id = state.run_id
        params: dict[str, Any] = {"sessionKey": session_key}
        if run_id:
            params["runId"] = run_id
        try:
            await self._transport.request(GatewayMethod.CHAT_ABORT, params)
            return True
        except Exception as e:
            if state.session_key == session_key:
                state.last_error = str(e)
            return False

    @staticmethod
    def _fail_run(
        state: ChatState,
        session_key: str,
        run_id: Optional[str],
        error: Exception,
        before: list[Message],
        truncated: list[Message],
    ) -> None:
        if state.session_key != session_key:
            return
        if run_id and state.run_id == run_id:
            state.clear_run()
        # Undo the optimistic truncation unless the transcript changed meanwhile.
        if state.messages is truncated and truncated is not before:
            state.messages = before
        state.last_error = str(error)

    @staticmethod
    def _release(state: ChatState, session_key: str, run_id: str) -> None:
        # A newer run owns the sending flag once it has claimed the slot.
        if state.session_key == session_key and state.run_id in (None, run_id):
            state.sending = False
