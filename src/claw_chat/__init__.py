"""
claw-chat — chat client for an agent gateway.

Keeps an optimistic local transcript consistent with the gateway's
lagging history while correlating streamed run events.
"""

from claw_chat.client import ClawChat, AsyncClawChat
from claw_chat.config import ClawChatConfig, load_config
from claw_chat.controller import ChatController
from claw_chat.correlator import Correlation, handle_chat_event
from claw_chat.errors import ClawChatError, RequestError, RequestTimeoutError, ConnectionError, ConfigError
from claw_chat.history import HistoryReconciler
from claw_chat.models.chat import parse_chat_event
from claw_chat.models.events import GatewayMethod, GatewayEvent, RunState
from claw_chat.models.message import Attachment, ContentBlock, Message
from claw_chat.runs import RunInitiator
from claw_chat.state import ChatState, Draft

__version__ = "0.1.0"
__all__ = [
    "ClawChat",
    "AsyncClawChat",
    "ClawChatConfig",
    "load_config",
    "ChatController",
    "ChatState",
    "Draft",
    "Correlation",
    "handle_chat_event",
    "HistoryReconciler",
    "RunInitiator",
    "Message",
    "ContentBlock",
    "Attachment",
    "parse_chat_event",
    "GatewayMethod",
    "GatewayEvent",
    "RunState",
    "ClawChatError",
    "RequestError",
    "RequestTimeoutError",
    "ConnectionError",
    "ConfigError",
]
