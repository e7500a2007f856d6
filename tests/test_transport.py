"""HTTP transport and gateway frame handling."""

import asyncio
import json

import httpx
import pytest

from claw_chat.controller import ChatController
from claw_chat.errors import ConnectionError, RequestError, RequestTimeoutError
from claw_chat.transport.frames import build_request, parse_event, parse_response
from claw_chat.transport.http import HttpTransport
from claw_chat.transport.socketio import GatewaySocket


def mock_transport(handler) -> HttpTransport:
    return HttpTransport(base_url="http://gateway.test", token="secret", transport=httpx.MockTransport(handler))


class TestHttpTransport:
    @pytest.mark.asyncio
    async def test_posts_rpc_and_unwraps_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True, "payload": {"messages": []}})

        http = mock_transport(handler)
        result = await http.request("chat.history", {"sessionKey": "main", "limit": 10})
        await http.close()

        assert result == {"messages": []}
        assert seen == {
            "path": "/rpc",
            "auth": "Bearer secret",
            "body": {"method": "chat.history", "params": {"sessionKey": "main", "limit": 10}},
        }

    @pytest.mark.asyncio
    async def test_status_data_envelope(self):
        http = mock_transport(lambda r: httpx.Response(200, json={"status": "success", "data": {"ok": 1}}))
        assert await http.request("chat.abort", {"sessionKey": "main"}) == {"ok": 1}
        await http.close()

    @pytest.mark.asyncio
    async def test_ok_false_raises_request_error(self):
        body = {"ok": False, "error": {"code": "INVALID_REQUEST", "message": "session not found"}}
        http = mock_transport(lambda r: httpx.Response(200, json=body))
        with pytest.raises(RequestError) as exc:
            await http.request("chat.delete", {"sessionKey": "main", "messageId": "m1"})
        assert exc.value.code == "INVALID_REQUEST"
        assert str(exc.value) == "session not found"
        await http.close()

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        http = mock_transport(lambda r: httpx.Response(503, text="unavailable"))
        with pytest.raises(RequestError) as exc:
            await http.request("chat.send", {})
        assert exc.value.code == "http_error"
        assert exc.value.details["status"] == 503
        await http.close()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        http = mock_transport(lambda r: httpx.Response(200, text="<html>proxy login</html>"))
        with pytest.raises(RequestError) as exc:
            await http.request("chat.history", {})
        assert exc.value.code == "invalid_response"
        await http.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        http = mock_transport(handler)
        with pytest.raises(RequestTimeoutError):
            await http.request("chat.history", {})
        await http.close()

    @pytest.mark.asyncio
    async def test_closed(self):
        http = mock_transport(lambda r: httpx.Response(200, json={}))
        await http.close()
        assert http.connected is False
        with pytest.raises(ConnectionError):
            await http.request("chat.history", {})

    @pytest.mark.asyncio
    async def test_controller_over_http(self):
        def handler(request):
            body = json.loads(request.content)
            if body["method"] == "chat.history":
                return httpx.Response(200, json={"ok": True, "payload": {
                    "sessionKey": "main",
                    "messages": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
                    "thinkingLevel": "medium",
                }})
            return httpx.Response(200, json={"ok": True, "payload": {"recommendations": []}})

        http = mock_transport(handler)
        chat = ChatController(http, "main")
        await chat.load_history()
        await chat.close()
        await http.close()
        assert [m.role for m in chat.state.messages] == ["user", "assistant"]
        assert chat.state.thinking_level == "medium"
        assert chat.state.loading is False


class TestFrames:
    def test_build_request(self):
        frame = build_request("chat.send", {"sessionKey": "main"}, request_id="abc")
        assert frame == {"type": "req", "id": "abc", "method": "chat.send", "params": {"sessionKey": "main"}}

    def test_build_request_generates_id(self):
        assert build_request("chat.abort")["id"]

    def test_parse_response(self):
        ok = parse_response({"type": "res", "id": "abc", "ok": True, "payload": {"x": 1}})
        assert ok.ok and ok.payload == {"x": 1}
        failed = parse_response({"type": "res", "id": "abc", "ok": False, "error": {"code": "UNAVAILABLE", "message": "down"}})
        assert failed.error.code == "UNAVAILABLE"
        assert parse_response({"type": "event", "event": "chat"}) is None
        assert parse_response({"type": "res", "ok": True}) is None

    def test_parse_event(self):
        frame = parse_event({"type": "event", "event": "chat", "payload": {"state": "delta"}, "seq": 4})
        assert frame.event == "chat"
        assert frame.seq == 4
        assert parse_event("chat") is None


class TestGatewaySocket:
    @pytest.mark.asyncio
    async def test_request_requires_connection(self):
        sock = GatewaySocket("http://gateway.test")
        assert sock.connected is False
        with pytest.raises(ConnectionError):
            await sock.request("chat.history", {})

    @pytest.mark.asyncio
    async def test_response_resolves_pending_request(self):
        sock = GatewaySocket("http://gateway.test")
        future = asyncio.get_running_loop().create_future()
        sock._pending["abc"] = future
        sock._resolve({"type": "res", "id": "abc", "ok": True, "payload": {"runId": "r1"}})
        assert future.result().payload == {"runId": "r1"}

    @pytest.mark.asyncio
    async def test_disconnect_fails_pending(self):
        sock = GatewaySocket("http://gateway.test")
        future = asyncio.get_running_loop().create_future()
        sock._pending["abc"] = future
        sock._fail_pending(ConnectionError("Gateway connection closed"))
        with pytest.raises(ConnectionError):
            future.result()
        assert sock._pending == {}

    def test_event_handlers(self):
        sock = GatewaySocket("http://gateway.test")
        remove = sock.add_event_handler(lambda event, payload: None)
        assert len(sock._event_handlers) == 1
        remove()
        remove()
        assert sock._event_handlers == []

    @pytest.mark.asyncio
    async def test_request_round_trip(self):
        sock = GatewaySocket("http://gateway.test")
        sock._sio = FakeSio(lambda frame: sock._resolve(
            {"type": "res", "id": frame["id"], "ok": True, "payload": {"messages": []}}
        ))
        sock._connected = True
        assert await sock.request("chat.history", {"sessionKey": "main"}) == {"messages": []}
        assert sock._sio.sent[0][1]["method"] == "chat.history"
        assert sock._pending == {}

    @pytest.mark.asyncio
    async def test_rejected_request_raises_server_code(self):
        sock = GatewaySocket("http://gateway.test")
        sock._sio = FakeSio(lambda frame: sock._resolve({
            "type": "res", "id": frame["id"], "ok": False,
            "error": {"code": "not_found", "message": "no such message"},
        }))
        sock._connected = True
        with pytest.raises(RequestError) as exc:
            await sock.request("chat.rerun", {"messageId": "m9"})
        assert exc.value.code == "not_found"
        assert str(exc.value) == "no such message"

    @pytest.mark.asyncio
    async def test_request_timeout(self):
        sock = GatewaySocket("http://gateway.test", request_timeout=0.01)
        sock._sio = FakeSio(lambda frame: None)
        sock._connected = True
        with pytest.raises(RequestTimeoutError):
            await sock.request("chat.send", {})
        assert sock._pending == {}

    @pytest.mark.asyncio
    async def test_emit_failure_becomes_connection_error(self):
        from socketio.exceptions import BadNamespaceError

        def fail(frame):
            raise BadNamespaceError("/ is not a connected namespace.")

        sock = GatewaySocket("http://gateway.test")
        sock._sio = FakeSio(fail)
        sock._connected = True
        with pytest.raises(ConnectionError):
            await sock.request("chat.abort", {})


class FakeSio:
    connected = True

    def __init__(self, on_emit):
        self._on_emit = on_emit
        self.sent = []

    async def emit(self, event, data):
        self.sent.append((event, data))
        self._on_emit(data)
