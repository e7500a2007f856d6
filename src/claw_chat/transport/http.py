"""
Request-only HTTP client for the gateway RPC endpoint.

No event channel: suitable for one-shot calls (history, delete, abort)
where nothing streams back.
"""

from typing import Any, Callable, Optional

import httpx

from claw_chat.errors import ConnectionError, RequestError, RequestTimeoutError
from claw_chat.transport.base import EventHandler

DEFAULT_BASE_URL = "http://127.0.0.1:18789"
RPC_PATH = "/rpc"


class HttpTransport:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": "claw-chat/0.1.0", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def connected(self) -> bool:
        return self._client is not None and not self._client.is_closed

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """HTTP carries no server pushes; the handler is never called."""
        return lambda: None

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _unwrap(method: str, json_data: Any) -> Any:
        """Unwrap ``{"ok": true, "payload": ...}`` or ``{"status": "success", "data": ...}``."""
        if isinstance(json_data, dict):
            if "ok" in json_data:
                if not json_data["ok"]:
                    error = json_data.get("error") or {}
                    raise RequestError(
                        error.get("message") or f"{method} failed",
                        code=error.get("code") or "request_error",
                        details={"method": method},
                    )
                return json_data.get("payload")
            if "status" in json_data and "data" in json_data:
                return json_data["data"]
        return json_data

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        if self._client is None or self._client.is_closed:
            raise ConnectionError("HTTP transport closed")
        try:
            resp = await self._client.post(
                RPC_PATH, json={"method": method, "params": params or {}}, headers=self._auth_headers(),
            )
        except httpx.TimeoutException:
            raise RequestTimeoutError(method, self._timeout)
        except httpx.TransportError as e:
            raise ConnectionError(f"{method}: {e}")
        if resp.status_code >= 400:
            raise RequestError(f"HTTP {resp.status_code}: {resp.text[:200]}", code="http_error",
                               details={"method": method, "status": resp.status_code})
        try:
            json_data = resp.json()
        except ValueError:
            raise RequestError(f"{method}: response is not JSON", code="invalid_response",
                               details={"method": method, "status": resp.status_code})
        return self._unwrap(method, json_data)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
