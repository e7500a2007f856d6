"""
Integration tests against a running gateway.

Requires environment variables:
  CLAW_CHAT_GATEWAY_URL  — gateway base URL
  CLAW_CHAT_TOKEN        — (optional) gateway token
  CLAW_CHAT_SESSION      — (optional) session key, defaults to a throwaway key

Run: CLAW_CHAT_INTEGRATION=1 pytest tests/integration/ -v
"""

import os
import uuid

import pytest

from claw_chat import AsyncClawChat, ClawChatConfig

SKIP = not os.environ.get("CLAW_CHAT_INTEGRATION")
GATEWAY_URL = os.environ.get("CLAW_CHAT_GATEWAY_URL", "http://127.0.0.1:18789")
TOKEN = os.environ.get("CLAW_CHAT_TOKEN")

pytestmark = pytest.mark.skipif(SKIP, reason="CLAW_CHAT_INTEGRATION not set")


def make_client(session_key: str = "") -> AsyncClawChat:
    key = session_key or os.environ.get("CLAW_CHAT_SESSION") or f"it-{uuid.uuid4().hex[:8]}"
    return AsyncClawChat(ClawChatConfig(gateway_url=GATEWAY_URL, token=TOKEN, session_key=key))


class TestConnection:
    @pytest.mark.asyncio
    async def test_connects_and_loads_history(self):
        client = make_client()
        await client.connect()
        assert client.connected
        assert client.state.loading is False
        assert client.state.last_error is None
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self):
        client = AsyncClawChat(ClawChatConfig(gateway_url=GATEWAY_URL, token="invalid"))
        with pytest.raises(Exception):
            await client.connect()


class TestRunLifecycle:
    @pytest.mark.asyncio
    async def test_send_reply_and_reconcile(self):
        async with make_client() as client:
            before = len(client.state.messages)
            reply = await client.send_and_wait("Reply with the single word: pong", timeout=120)
            assert reply is not None
            assert client.state.run_id is None
            assert client.state.stream is None

            await client.load_history()
            assert len(client.state.messages) >= before + 2

    @pytest.mark.asyncio
    async def test_abort_running_generation(self):
        async with make_client() as client:
            run_id = await client.send("Count slowly from 1 to 500, one number per line.")
            assert run_id is not None
            assert await client.abort() is True
            assert await client.chat.wait_idle(timeout=60)
            assert client.state.run_id is None
