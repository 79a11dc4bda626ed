"""Outbound transports for view channel messages.

A transport only has to deliver messages reliably and in order; the channel
makes no other assumption about where the view lives.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

from mindgraph.bridge.messages import encode_message

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pydantic import BaseModel


@runtime_checkable
class Transport(Protocol):
    """Ordered, reliable delivery of messages to a view."""

    def send(self, message: BaseModel) -> None:
        """Deliver one message."""
        ...


class QueueTransport:
    """In-process transport that buffers messages in arrival order.

    Useful when the view runs in the same process (or a test stands in for
    it) and pulls messages at its own pace.
    """

    def __init__(self) -> None:
        self._queue: deque[BaseModel] = deque()

    def send(self, message: BaseModel) -> None:
        self._queue.append(message)

    def drain(self) -> list[BaseModel]:
        """Return and remove every buffered message, oldest first."""
        messages = list(self._queue)
        self._queue.clear()
        return messages

    def __iter__(self) -> Iterator[BaseModel]:
        return iter(self._queue)

    def __len__(self) -> int:
        return len(self._queue)


class StreamTransport:
    """Writes each message as one JSON line to a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def send(self, message: BaseModel) -> None:
        self._stream.write(encode_message(message) + "\n")
        self._stream.flush()
