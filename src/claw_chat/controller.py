"""
Chat controller — single owner of one ``ChatState``.

Inbound ``chat`` events are queued by the transport handler and drained in
arrival order by one pump task that feeds ``handle_chat_event``. The
controller turns each correlation into its follow-up work: history
reload on ``final``, recommendations refresh, and sending the next
queued draft once the local run is over.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

from claw_chat.config import ClawChatConfig
from claw_chat.correlator import Correlation, handle_chat_event
from claw_chat.history import HistoryReconciler
from claw_chat.models.events import TERMINAL_RUN_STATES, GatewayEvent, RunState
from claw_chat.models.message import Attachment
from claw_chat.runs import RunInitiator
from claw_chat.state import ChatState, Draft
from claw_chat.transport.base import Transport

logger = logging.getLogger(__name__)


class ChatController:
    def __init__(
        self,
        transport: Transport,
        session_key: str = "main",
        *,
        history_limit: int = 200,
        history_max_retries: int = 3,
        history_retry_delay: float = 0.15,
        recommendations_limit: int = 5,
    ):
        self.transport = transport
        self.state = ChatState(session_key=session_key)
        self.runs = RunInitiator(transport)
        self.history = HistoryReconciler(
            transport,
            limit=history_limit,
            max_retries=history_max_retries,
            retry_delay=history_retry_delay,
            recommendations_limit=recommendations_limit,
            schedule=self._spawn,
        )
        self._tasks: set[asyncio.Task[Any]] = set()
        self._events: asyncio.Queue[Any] = asyncio.Queue()
        self._pump: Optional[asyncio.Task[None]] = None
        self._remove_handler: Optional[Callable[[], None]] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._draining = False
        self._closed = False

    @classmethod
    def from_config(cls, transport: Transport, config: ClawChatConfig, session_key: Optional[str] = None) -> "ChatController":
        return cls(
            transport,
            session_key or config.session_key,
            history_limit=config.history_limit,
            history_max_retries=config.history_max_retries,
            history_retry_delay=config.history_retry_delay,
            recommendations_limit=config.recommendations_limit,
        )

    @property
    def connected(self) -> bool:
        return self.transport.connected

    # -- event channel -------------------------------------------------

    def start(self) -> None:
        """Subscribe to transport events and start draining them."""
        if self._pump is not None:
            return
        self._remove_handler = self.transport.add_event_handler(self._on_transport_event)
        self._pump = asyncio.ensure_future(self._pump_events())

    async def close(self) -> None:
        self._closed = True
        if self._remove_handler:
            self._remove_handler()
            self._remove_handler = None
        pending = list(self._tasks)
        if self._pump is not None:
            pending.append(self._pump)
            self._pump = None
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _on_transport_event(self, event: str, payload: Any) -> None:
        if event != GatewayEvent.CHAT:
            return
        self._events.put_nowait(payload)

    async def _pump_events(self) -> None:
        while True:
            payload = await self._events.get()
            self.handle_event(payload)

    def handle_event(self, payload: Any) -> Optional[Correlation]:
        """Apply one chat event and schedule its follow-up work."""
        result = handle_chat_event(self.state, payload)
        if result is None:
            return None
        if result.state == RunState.FINAL:
            self._spawn(self.history.load(self.state))
            if not result.foreign:
                self._spawn(self.history.fetch_recommendations(self.state))
        if not result.foreign and result.state in TERMINAL_RUN_STATES:
            self._flush_queue()
        self._sync_idle()
        return result

    # -- runs ----------------------------------------------------------

    async def submit(self, text: Optional[str] = None, attachments: Optional[list[Attachment]] = None) -> Optional[str]:
        """Send now, or queue the message while a run is in progress.

        Without arguments the composer draft and pending attachments are
        consumed. Returns the run id when a send went out.
        """
        if text is None:
            text, attachments = self.state.draft, list(self.state.attachments)
            self.state.draft = ""
            self.state.attachments = []
        attachments = attachments or []
        if not text.strip() and not attachments:
            return None
        if self.state.busy:
            self.state.queue = [*self.state.queue, Draft(text=text, attachments=attachments)]
            return None
        return await self.send(text, attachments)

    def remove_queued(self, draft_id: str) -> bool:
        kept = [d for d in self.state.queue if d.id != draft_id]
        removed = len(kept) != len(self.state.queue)
        self.state.queue = kept
        return removed

    async def send(self, message: str, attachments: Optional[list[Attachment]] = None) -> Optional[str]:
        run_id = await self.runs.send(self.state, message, attachments)
        self._after_run_call()
        return run_id

    async def rerun_from_message(self, message_id: str) -> Optional[str]:
        run_id = await self.runs.rerun_from_message(self.state, message_id)
        self._after_run_call()
        return run_id

    async def edit_message(self, message_id: str, content: str, rerun: bool = False) -> Optional[str]:
        session_key = self.state.session_key
        result = await self.runs.edit_message(self.state, message_id, content, rerun=rerun)
        if result.ok and not rerun and self.state.session_key == session_key:
            # The edited text comes back through the authoritative transcript.
            await self.history.load(self.state)
        self._after_run_call()
        return result.run_id

    async def delete_message(self, message_id: str) -> bool:
        return await self.runs.delete_message(self.state, message_id)

    async def delete_from_message(self, message_id: str) -> bool:
        return await self.runs.delete_from_message(self.state, message_id)

    async def abort(self) -> bool:
        return await self.runs.abort(self.state)

    async def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait until no local run is active. Returns False on timeout."""
        self._sync_idle()
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # -- history / sessions -------------------------------------------

    async def load_history(self) -> None:
        await self.history.load(self.state)

    async def fetch_recommendations(self) -> None:
        await self.history.fetch_recommendations(self.state)

    def select_session(self, session_key: str) -> None:
        """Make another session active. In-flight work for the old one is dropped on resume."""
        if session_key == self.state.session_key:
            return
        self.state.reset(session_key)
        self._sync_idle()

    async def switch_session(self, session_key: str) -> None:
        self.select_session(session_key)
        await self.load_history()

    # -- internals -----------------------------------------------------

    def _after_run_call(self) -> None:
        self._flush_queue()
        self._sync_idle()

    def _flush_queue(self) -> None:
        if self._closed or self._draining or self.state.busy or not self.state.queue:
            return
        draft, *rest = self.state.queue
        self.state.queue = rest
        self._draining = True
        logger.debug("Sending queued draft %s", draft.id)
        self._spawn(self._send_queued(draft))

    async def _send_queued(self, draft: Draft) -> Optional[str]:
        try:
            return await self.runs.send(self.state, draft.text, draft.attachments)
        finally:
            self._draining = False
            self._after_run_call()

    def _sync_idle(self) -> None:
        if self.state.busy:
            self._idle.clear()
        else:
            self._idle.set()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
