"""View bridge - message boundary between the graph store and a view."""

from mindgraph.bridge.channel import METHODS, ViewChannel
from mindgraph.bridge.messages import (
    ChannelError,
    ErrorMessage,
    InvokeMessage,
    ResponseMessage,
    SignalMessage,
    encode_message,
    parse_message,
    signal_from_event,
)
from mindgraph.bridge.transport import QueueTransport, StreamTransport, Transport

__all__ = [
    "METHODS",
    "ChannelError",
    "ErrorMessage",
    "InvokeMessage",
    "QueueTransport",
    "ResponseMessage",
    "SignalMessage",
    "StreamTransport",
    "Transport",
    "ViewChannel",
    "encode_message",
    "parse_message",
    "signal_from_event",
]
