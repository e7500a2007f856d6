"""
Transport interface consumed by the chat engine.
"""

from typing import Any, Callable, Optional, Protocol

EventHandler = Callable[[str, Any], None]


class Transport(Protocol):
    """Named remote calls plus an inbound event channel.

    ``request`` raises ``RequestError``, ``RequestTimeoutError`` or
    ``ConnectionError``; ``add_event_handler`` returns a function that
    removes the handler again.
    """

    @property
    def connected(self) -> bool: ...

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> Any: ...

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]: ...
