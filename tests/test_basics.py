"""Basic unit tests for the claw-chat package."""

from claw_chat import (
    AsyncClawChat,
    ClawChat,
    ClawChatError,
    RequestError,
    RequestTimeoutError,
    ConnectionError,
    ConfigError,
    GatewayMethod,
    GatewayEvent,
    RunState,
    __version__,
)
from claw_chat.models.events import TERMINAL_RUN_STATES


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert ClawChat is not None
    assert AsyncClawChat is not None


def test_error_hierarchy():
    assert issubclass(RequestError, ClawChatError)
    assert issubclass(RequestTimeoutError, ClawChatError)
    assert issubclass(ConnectionError, ClawChatError)
    assert issubclass(ConfigError, ClawChatError)


def test_error_attributes():
    err = ClawChatError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    err_with_details = RequestError("bad session", code="INVALID_REQUEST", details={"method": "chat.send"})
    assert err_with_details.code == "INVALID_REQUEST"
    assert err_with_details.details == {"method": "chat.send"}

    timeout = RequestTimeoutError("chat.history", 2.0)
    assert timeout.code == "timeout"
    assert timeout.method == "chat.history"


def test_protocol_constants():
    assert GatewayMethod.CHAT_SEND == "chat.send"
    assert GatewayMethod.CHAT_DELETE_FROM == "chat.deleteFrom"
    assert GatewayEvent.CHAT == "chat"
    assert TERMINAL_RUN_STATES == {RunState.FINAL, RunState.ABORTED, RunState.ERROR}
