"""
Socket.IO gateway connection.

Connection: {base_url}{socketio_path} with auth={token}.
Waits for the ``ready`` event before resolving connect(). Requests are
``req`` frames answered by ``res`` frames matched on id; ``event`` frames
fan out to every registered handler.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import socketio
from socketio.exceptions import SocketIOError

from claw_chat.errors import ConnectionError, RequestError, RequestTimeoutError
from claw_chat.models.events import FrameType
from claw_chat.transport.base import EventHandler
from claw_chat.transport.frames import build_request, parse_event, parse_response

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/socket.io/"


class GatewaySocket:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
        request_timeout: float = 30.0,
        socketio_path: str = SOCKETIO_PATH,
    ):
        self._base_url = base_url
        self._token = token
        self._transports = transports or ["websocket"]
        self._ready_timeout = ready_timeout
        self._request_timeout = request_timeout
        self._socketio_path = socketio_path
        self._sio: Optional[socketio.AsyncClient] = None
        self._connected = False
        self._event_handlers: list[EventHandler] = []
        self._pending: dict[str, asyncio.Future[Any]] = {}

    @property
    def connected(self) -> bool:
        return self._connected and self._sio is not None and self._sio.connected

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)
        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def connect(self) -> None:
        """Connect to the gateway and wait for ``ready``."""
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient()
        ready_event = asyncio.Event()

        @self._sio.on("ready")
        async def on_ready(*_args: Any) -> None:
            self._connected = True
            ready_event.set()

        @self._sio.on(FrameType.RESPONSE)
        async def on_response(data: Any) -> None:
            self._resolve(data)

        @self._sio.on(FrameType.EVENT)
        async def on_event(data: Any) -> None:
            frame = parse_event(data)
            if frame is None:
                logger.debug("Ignoring malformed event frame: %r", data)
                return
            for handler in list(self._event_handlers):
                handler(frame.event, frame.payload)

        @self._sio.event
        async def disconnect(_reason: str = "") -> None:
            self._connected = False
            self._fail_pending(ConnectionError("Gateway connection closed"))

        auth = {"token": self._token} if self._token else None
        await self._sio.connect(
            self._base_url,
            auth=auth,
            transports=self._transports,
            socketio_path=self._socketio_path,
        )

        try:
            await asyncio.wait_for(ready_event.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self._sio.disconnect()
            raise ConnectionError(f"Timed out waiting for 'ready' event after {self._ready_timeout}s")

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Send a ``req`` frame and wait for its ``res`` frame."""
        if not self._sio or not self.connected:
            raise ConnectionError("Gateway not connected")
        frame = build_request(method, params)
        request_id = frame["id"]
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            try:
                await self._sio.emit(FrameType.REQUEST, frame)
            except SocketIOError as e:
                logger.error("Emit failed for %s: %s", method, e)
                raise ConnectionError(f"Emit failed for {method}: {e}")
            response = await asyncio.wait_for(future, timeout=self._request_timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(method, self._request_timeout)
        finally:
            self._pending.pop(request_id, None)

        if not response.ok:
            error = response.error
            raise RequestError(
                error.message if error else f"{method} failed",
                code=error.code if error else "request_error",
                details={"method": method, "details": error.details} if error else {"method": method},
            )
        return response.payload

    def _resolve(self, data: Any) -> None:
        response = parse_response(data)
        if response is None:
            logger.debug("Ignoring malformed response frame: %r", data)
            return
        future = self._pending.get(response.id)
        if future is not None and not future.done():
            future.set_result(response)

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()

    async def disconnect(self) -> None:
        self._connected = False
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
