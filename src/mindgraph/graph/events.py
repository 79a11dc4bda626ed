"""Change events emitted by the GraphStore.

Every mutation is described by exactly one of a fixed set of event types.
Events carry immutable payloads and know how to render themselves as view
channel signals (``signal`` name plus positional ``args``), which is the
form a rendering frontend subscribes to.

The EventBus is the explicit subscription list that delivers events.
Delivery is synchronous and follows registration order.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from mindgraph.graph.models import Connection, GraphSnapshot, Node  # noqa: TC001 - dataclass fields


@dataclass(frozen=True)
class NodeAdded:
    """A node became live."""

    signal: ClassVar[str] = "nodeAdded"

    node: Node

    def args(self) -> list[Any]:
        return [self.node.to_dict()]


@dataclass(frozen=True)
class NodeRemoved:
    """A node was removed. Its incident connections are already gone."""

    signal: ClassVar[str] = "nodeRemoved"

    node_id: str

    def args(self) -> list[Any]:
        return [self.node_id]


@dataclass(frozen=True)
class NodeUpdated:
    """A node's text changed. Carries the full post-update node."""

    signal: ClassVar[str] = "nodeUpdated"

    node: Node

    def args(self) -> list[Any]:
        return [self.node.to_dict()]


@dataclass(frozen=True)
class ConnectionAdded:
    signal: ClassVar[str] = "connectionAdded"

    link: Connection

    def args(self) -> list[Any]:
        return [self.link.to_dict()]


@dataclass(frozen=True)
class ConnectionRemoved:
    signal: ClassVar[str] = "connectionRemoved"

    source: str
    target: str

    def args(self) -> list[Any]:
        return [self.source, self.target]


@dataclass(frozen=True)
class GraphUpdated:
    """Full snapshot, sent in answer to the view's readiness handshake."""

    signal: ClassVar[str] = "graphUpdated"

    graph: GraphSnapshot

    def args(self) -> list[Any]:
        return [self.graph.to_dict()]


GraphEvent = (
    NodeAdded | NodeRemoved | NodeUpdated | ConnectionAdded | ConnectionRemoved | GraphUpdated
)

EventListener = Callable[[GraphEvent], None]

EVENT_TYPES: tuple[type, ...] = (
    NodeAdded,
    NodeRemoved,
    NodeUpdated,
    ConnectionAdded,
    ConnectionRemoved,
    GraphUpdated,
)

SIGNAL_NAMES: tuple[str, ...] = tuple(
    cls.signal for cls in EVENT_TYPES  # type: ignore[attr-defined]
)


class EventBus:
    """Ordered subscription list for graph events.

    Listeners are called synchronously in the order they subscribed.
    Exceptions raised by a listener propagate to whoever triggered the
    emission; later listeners do not see that event.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> EventListener:
        """Register *listener*. Returns it, so this works as a decorator.

        Subscribing the same listener twice has no effect.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: EventListener) -> None:
        """Remove *listener*. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: GraphEvent) -> None:
        # Copy so a listener may unsubscribe itself during delivery.
        for listener in list(self._listeners):
            listener(event)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
