"""
Streaming event correlator.

``handle_chat_event`` is the transition function of the per-session
stream: Idle (``stream is None``) -> Streaming -> Idle. It performs no
I/O; the controller turns the returned ``Correlation`` into follow-up
work (history reload, recommendations refresh, queue flush).
"""

import logging
from typing import Any, NamedTuple, Optional

from claw_chat.models.chat import AbortedEvent, DeltaEvent, ErrorEvent, FinalEvent, parse_chat_event
from claw_chat.models.events import RunState
from claw_chat.models.message import extract_text, now_ms
from claw_chat.state import ChatState

logger = logging.getLogger(__name__)

DEFAULT_RUN_ERROR = "chat error"


class Correlation(NamedTuple):
    state: str
    foreign: bool = False


def handle_chat_event(state: ChatState, payload: Any) -> Optional[Correlation]:
    """Apply one inbound chat event to ``state``.

    Returns None when the event was dropped (missing, malformed, another
    session, or a non-final event of a foreign run).
    """
    event = parse_chat_event(payload)
    if event is None:
        return None
    if event.session_key != state.session_key:
        logger.debug("Dropping chat event for session %s (active: %s)", event.session_key, state.session_key)
        return None

    # Another run in this session, e.g. a sub-agent announcing its result.
    if event.run_id and state.run_id and event.run_id != state.run_id:
        if isinstance(event, FinalEvent):
            state.loading = True
            return Correlation(RunState.FINAL, foreign=True)
        return None

    if isinstance(event, DeltaEvent):
        text = extract_text(event.message)
        if text is not None:
            current = state.stream or ""
            # Late or duplicated deltas must not shrink the buffer.
            if not current or len(text) >= len(current):
                state.stream = text
                if state.stream_started_at is None:
                    state.stream_started_at = now_ms()
        return Correlation(RunState.DELTA)

    if isinstance(event, FinalEvent):
        message = event.message
        if message is not None:
            if message.is_tombstone:
                state.remove_message(message.id)  # type: ignore[arg-type]
            else:
                state.append(message)
        # loading goes up before the stream is cleared so the transcript never flashes empty.
        state.loading = True
        state.clear_run()
        return Correlation(RunState.FINAL)

    if isinstance(event, AbortedEvent):
        state.clear_run()
        return Correlation(RunState.ABORTED)

    if isinstance(event, ErrorEvent):
        state.clear_run()
        state.last_error = event.error_message or DEFAULT_RUN_ERROR
        return Correlation(RunState.ERROR)

    return None
