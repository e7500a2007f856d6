"""
History reconciler — merges the authoritative transcript into local state.

The server persists asynchronously, so a fetch issued right after an
optimistic append can come back short. ``HistoryReconciler.load`` retries
a bounded number of times while the server is behind, then keeps the
local transcript rather than truncating it.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

from claw_chat.models.chat import HistoryResult, RecommendationsResult
from claw_chat.models.events import GatewayMethod
from claw_chat.state import ChatState
from claw_chat.transport.base import Transport

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 200
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_S = 0.15
DEFAULT_RECOMMENDATIONS_LIMIT = 5


class HistoryReconciler:
    def __init__(
        self,
        transport: Transport,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_S,
        recommendations_limit: int = DEFAULT_RECOMMENDATIONS_LIMIT,
        schedule: Optional[Callable[..., object]] = None,
    ):
        self._transport = transport
        self.limit = limit
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.recommendations_limit = recommendations_limit
        # Runs fire-and-forget coroutines; the controller passes its task tracker.
        self._schedule = schedule
        self._generation = 0

    @property
    def connected(self) -> bool:
        return self._transport.connected

    async def load(self, state: ChatState) -> None:
        """Fetch ``chat.history`` and reconcile it into ``state``.

        Results are dropped when the session changed while the fetch was in
        flight, or when a newer ``load`` has been issued since.
        """
        if not self.connected:
            return
        self._generation += 1
        generation = self._generation
        session_key = state.session_key

        def current() -> bool:
            return state.session_key == session_key and self._generation == generation

        state.loading = True
        state.last_error = None
        try:
            attempt = 0
            while True:
                local_count = len(state.messages)
                raw = await self._transport.request(GatewayMethod.CHAT_HISTORY, {
                    "sessionKey": session_key,
                    "limit": self.limit,
                })
                if not current():
                    logger.debug("Discarding history for %s: superseded", session_key)
                    return
                result = HistoryResult.model_validate(raw or {})
                received = len(result.messages)

                if received < local_count and local_count > 0:
                    if attempt < self.max_retries:
                        attempt += 1
                        logger.debug(
                            "History for %s behind local state (%d < %d), retry %d/%d",
                            session_key, received, local_count, attempt, self.max_retries,
                        )
                        # loading stays set so the transcript does not appear to empty and refill.
                        await asyncio.sleep(self.retry_delay)
                        if not current():
                            return
                        continue
                    logger.warning(
                        "Server returned fewer messages after retries, keeping local messages "
                        "(session=%s current=%d received=%d)",
                        session_key, local_count, received,
                    )
                    return

                state.messages = result.messages
                state.thinking_level = result.thinking_level
                self._fire(self.fetch_recommendations(state))
                return
        except Exception as e:
            if current():
                state.last_error = str(e)
        finally:
            if current():
                state.loading = False

    async def fetch_recommendations(self, state: ChatState) -> None:
        if not self.connected:
            return
        session_key = state.session_key
        try:
            raw = await self._transport.request(GatewayMethod.CHAT_RECOMMENDATIONS, {
                "sessionKey": session_key,
                "limit": self.recommendations_limit,
            })
            result = RecommendationsResult.model_validate(raw or {})
        except Exception as e:
            logger.error("Failed to fetch recommendations for %s: %s", session_key, e)
            if state.session_key == session_key:
                state.recommendations = []
            return
        if state.session_key == session_key:
            state.recommendations = result.recommendations

    def _fire(self, coro: Coroutine[Any, Any, None]) -> None:
        if self._schedule is not None:
            self._schedule(coro)
        else:
            asyncio.ensure_future(coro)
