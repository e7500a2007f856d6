"""
Gateway protocol names — remote methods, inbound events and run states.
"""


class GatewayMethod:
    """Remote methods called through ``Transport.request``."""

    CHAT_HISTORY = "chat.history"
    CHAT_SEND = "chat.send"
    CHAT_ABORT = "chat.abort"
    CHAT_RERUN = "chat.rerun"
    CHAT_EDIT = "chat.edit"
    CHAT_DELETE = "chat.delete"
    CHAT_DELETE_FROM = "chat.deleteFrom"
    CHAT_RECOMMENDATIONS = "chat.recommendations"


class GatewayEvent:
    """Server-pushed event names."""

    CHAT = "chat"


class FrameType:
    REQUEST = "req"
    RESPONSE = "res"
    EVENT = "event"


class RunState:
    DELTA = "delta"
    FINAL = "final"
    ABORTED = "aborted"
    ERROR = "error"


TERMINAL_RUN_STATES = {RunState.FINAL, RunState.ABORTED, RunState.ERROR}
