"""Wire messages exchanged with a view.

Three message shapes travel over a view channel:

- ``signal``: store → view, one per change event
  (``{"type": "signal", "signal": "nodeAdded", "args": [node]}``)
- ``invoke``: view → store, a call to one of the store's operations
  (``{"type": "invoke", "method": "addNode", "args": ["7", "Idea", "1"], "id": 3}``)
- ``response`` / ``error``: store → view, the answer to an invoke that
  carried an ``id``

Method and signal names use the camelCase spelling the web frontend uses.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from mindgraph.graph.events import GraphEvent  # noqa: TC001 - runtime signature use


class ChannelError(Exception):
    """Raised for malformed or unsupported inbound messages."""

    def __init__(self, reason: str, message_id: int | str | None = None) -> None:
        self.reason = reason
        self.message_id = message_id
        super().__init__(reason)


class SignalMessage(BaseModel):
    type: Literal["signal"] = "signal"
    signal: str
    args: list[Any] = Field(default_factory=list)


class InvokeMessage(BaseModel):
    type: Literal["invoke"] = "invoke"
    method: str = Field(min_length=1)
    args: list[Any] = Field(default_factory=list)
    id: int | str | None = None


class ResponseMessage(BaseModel):
    type: Literal["response"] = "response"
    id: int | str
    result: Any = None


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    id: int | str | None = None
    message: str


Message = Annotated[
    SignalMessage | InvokeMessage | ResponseMessage | ErrorMessage,
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def signal_from_event(event: GraphEvent) -> SignalMessage:
    """Render a change event as the signal a view subscribes to."""
    return SignalMessage(signal=event.signal, args=event.args())


def parse_message(raw: str | bytes | dict[str, Any]) -> Message:
    """Parse a message from a JSON string or an already-decoded dict.

    Raises:
        ChannelError: If the input is not JSON or not a known message shape.
    """
    if isinstance(raw, str | bytes):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ChannelError(f"Invalid JSON: {e}") from e

    try:
        return _message_adapter.validate_python(raw)
    except ValidationError as e:
        message_id = _reply_id(raw.get("id")) if isinstance(raw, dict) else None
        raise ChannelError(f"Malformed message: {e.errors()[0]['msg']}", message_id) from e


def _reply_id(value: Any) -> int | str | None:
    # ErrorMessage.id only takes int or str; other ids get no reply
    if isinstance(value, bool) or not isinstance(value, int | str):
        return None
    return value


def encode_message(message: BaseModel) -> str:
    """Serialize a message as one compact JSON line (no trailing newline)."""
    return message.model_dump_json()
