"""View channel: the message boundary between GraphStore and a view.

The channel subscribes to the store and forwards every change event to the
transport as a ``signal`` message. In the other direction it accepts
``invoke`` messages naming a store operation and dispatches them, so a view
can drive the store without holding a reference to it. Whether the view
runs in-process, in another thread, or behind a socket only affects the
transport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mindgraph.bridge.messages import (
    ChannelError,
    ErrorMessage,
    InvokeMessage,
    ResponseMessage,
    parse_message,
    signal_from_event,
)
from mindgraph.graph.errors import MutationResult
from mindgraph.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mindgraph.bridge.transport import Transport
    from mindgraph.graph.events import GraphEvent
    from mindgraph.graph.graph import GraphStore

log = get_logger(__name__)


@dataclass(frozen=True)
class _MethodSpec:
    attr: str
    min_args: int
    max_args: int


# Invokable methods, keyed by the name the view uses.
METHODS: dict[str, _MethodSpec] = {
    "addNode": _MethodSpec("add_node", 2, 3),
    "removeNode": _MethodSpec("remove_node", 1, 1),
    "updateNodeText": _MethodSpec("update_node_text", 2, 2),
    "updateNode": _MethodSpec("update_node_text", 2, 2),
    "addConnection": _MethodSpec("add_connection", 2, 2),
    "removeConnection": _MethodSpec("remove_connection", 2, 2),
    "getFullGraph": _MethodSpec("get_full_graph", 0, 0),
    "appReady": _MethodSpec("on_view_ready", 0, 0),
}


class ViewChannel:
    """Bridges one GraphStore to one view over a Transport."""

    def __init__(self, store: GraphStore, transport: Transport) -> None:
        self._store = store
        self._transport = transport
        self._attached = False
        self.attach()

    def attach(self) -> None:
        """Start forwarding store events. Called by the constructor."""
        if not self._attached:
            self._store.subscribe(self._forward)
            self._attached = True

    def close(self) -> None:
        """Stop forwarding store events."""
        if self._attached:
            self._store.unsubscribe(self._forward)
            self._attached = False

    def _forward(self, event: GraphEvent) -> None:
        self._transport.send(signal_from_event(event))

    def handle(self, raw: str | bytes | dict[str, Any] | InvokeMessage) -> Any:
        """Dispatch one inbound invocation.

        Signals caused by the call are sent before the response, so the view
        sees the change before it sees the call complete.

        Returns:
            The JSON-ready result that was (or would have been) sent back.

        Raises:
            ChannelError: If the message is malformed, not an invocation,
                names an unknown method, or has the wrong arguments.
        """
        message = raw if isinstance(raw, InvokeMessage) else parse_message(raw)
        if not isinstance(message, InvokeMessage):
            raise ChannelError(f"Unsupported inbound message type: {message.type}")

        spec = METHODS.get(message.method)
        if spec is None:
            raise ChannelError(f"Unknown method: {message.method}", message.id)

        args = message.args
        if not spec.min_args <= len(args) <= spec.max_args:
            expected = (
                str(spec.min_args)
                if spec.min_args == spec.max_args
                else f"{spec.min_args}-{spec.max_args}"
            )
            raise ChannelError(
                f"{message.method} takes {expected} argument(s), got {len(args)}", message.id
            )
        if not all(isinstance(arg, str) for arg in args):
            raise ChannelError(f"{message.method} arguments must be strings", message.id)

        log.debug("invoke", method=message.method, args=args)
        outcome = getattr(self._store, spec.attr)(*args)
        result = _to_result(outcome)

        if message.id is not None:
            self._transport.send(ResponseMessage(id=message.id, result=result))
        return result

    def serve(self, lines: Iterable[str | bytes]) -> int:
        """Handle JSON-lines input until exhausted.

        Malformed lines are logged and skipped; if they carried an ``id`` the
        view gets an ``error`` message back.

        Returns:
            Number of invocations handled successfully.
        """
        handled = 0
        for line in lines:
            if not line.strip():
                continue
            try:
                self.handle(line)
            except ChannelError as e:
                log.warning("invoke_rejected", reason=e.reason)
                if e.message_id is not None:
                    self._transport.send(ErrorMessage(id=e.message_id, message=e.reason))
                continue
            handled += 1
        return handled


def _to_result(outcome: Any) -> Any:
    if isinstance(outcome, MutationResult):
        return {
            "accepted": outcome.accepted,
            "rejection": outcome.rejection.value if outcome.rejection else None,
        }
    # Snapshots from getFullGraph / appReady
    return outcome.to_dict()
