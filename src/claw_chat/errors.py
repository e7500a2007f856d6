"""
claw-chat error types.
"""

from typing import Any, Optional


class ClawChatError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class RequestError(ClawChatError):
    """The gateway rejected a request (``ok: false`` or an HTTP error status)."""

    def __init__(self, message: str, code: str = "request_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class RequestTimeoutError(ClawChatError):
    def __init__(self, method: str, timeout: float):
        super().__init__("timeout", f"Timeout waiting for {method} response after {timeout}s")
        self.method = method


class ConnectionError(ClawChatError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)


class ConfigError(ClawChatError):
    def __init__(self, message: str):
        super().__init__("config_error", message)
