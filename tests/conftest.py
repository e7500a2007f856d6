"""Shared fixtures: an in-memory transport with scripted responses."""

import asyncio
from collections import defaultdict
from typing import Any, Callable, Optional

import pytest

from claw_chat.models.message import Message


class FakeTransport:
    """Records requests and answers them from per-method scripts.

    A scripted value may be a plain result, an exception to raise, or an
    ``asyncio.Future`` the test resolves later.
    """

    def __init__(self, connected: bool = True):
        self.connected = connected
        self.calls: list[tuple[str, Optional[dict[str, Any]]]] = []
        self.handlers: list[Callable[[str, Any], None]] = []
        self._scripts: dict[str, list[Any]] = defaultdict(list)
        self._defaults: dict[str, Any] = {}

    def respond(self, method: str, *results: Any) -> None:
        self._scripts[method].extend(results)

    def default(self, method: str, result: Any) -> None:
        self._defaults[method] = result

    def calls_for(self, method: str) -> list[Optional[dict[str, Any]]]:
        return [params for name, params in self.calls if name == method]

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        self.calls.append((method, params))
        script = self._scripts.get(method)
        result = script.pop(0) if script else self._defaults.get(method, {})
        if isinstance(result, asyncio.Future):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    def add_event_handler(self, handler: Callable[[str, Any], None]) -> Callable[[], None]:
        self.handlers.append(handler)
        return lambda: self.handlers.remove(handler)

    def push(self, event: str, payload: Any) -> None:
        for handler in list(self.handlers):
            handler(event, payload)


def msg(role: str, text: str, id: Optional[str] = None) -> Message:
    return Message(role=role, content=[{"type": "text", "text": text}], timestamp=1, id=id)


def wire(role: str, text: str, id: Optional[str] = None) -> dict[str, Any]:
    data: dict[str, Any] = {"role": role, "content": [{"type": "text", "text": text}], "timestamp": 1}
    if id:
        data["id"] = id
    return data


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
