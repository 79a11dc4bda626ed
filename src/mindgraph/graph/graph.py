"""Authoritative mind map graph state.

GraphStore is the single writer of node and connection state. Every
mutation is validated, applied, and then announced as one or more change
events, so a view can stay in sync from small deltas instead of full-state
pushes. The one place a full snapshot is sent is the readiness handshake
(``on_view_ready``), used for the initial paint and after a view reload.

Referential integrity is kept the way a database keeps foreign keys:
- Node creation is explicit and refuses an id that is already live
- Connections require both endpoints to be live
- Removing a node removes its connections first (cascade)

Invalid input is an expected condition. Operations never raise for it;
they return a MutationResult that says what happened.

Storage is delegated to a GraphBackend (DictGraphBackend by default).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar, cast

from mindgraph.graph.errors import (
    ConnectionEndpointError,
    ConnectionExistsError,
    ConnectionNotFoundError,
    MutationResult,
    NodeExistsError,
    NodeNotFoundError,
    Rejection,
    ReentrantMutationError,
)
from mindgraph.graph.events import (
    ConnectionAdded,
    ConnectionRemoved,
    EventBus,
    EventListener,
    GraphEvent,
    GraphUpdated,
    NodeAdded,
    NodeRemoved,
    NodeUpdated,
)
from mindgraph.graph.models import Connection, GraphSnapshot, Node
from mindgraph.graph.store import DictGraphBackend, GraphBackend
from mindgraph.observability.logging import get_logger

if TYPE_CHECKING:
    from mindgraph.graph.errors import GraphIntegrityError

log = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Rejections that point at a caller bug are worth a warning; the rest are
# routine no-ops.
_WARN_REJECTIONS = frozenset({Rejection.DUPLICATE_ID, Rejection.UNKNOWN_NODE})


def _mutation(func: F) -> F:
    """Guard a store operation against re-entry from an event listener."""

    @wraps(func)
    def wrapper(self: GraphStore, *args: Any, **kwargs: Any) -> Any:
        with self._mutating(func.__name__):
            return func(self, *args, **kwargs)

    return cast("F", wrapper)


class GraphStore:
    """Owner of all node and connection state.

    Attributes:
        _backend: The underlying storage backend.
        _bus: Subscription list receiving change events.
    """

    def __init__(self, *, backend: GraphBackend | None = None) -> None:
        """Initialize an empty store.

        Args:
            backend: Pre-built storage backend. Defaults to DictGraphBackend.
        """
        self._backend: GraphBackend = backend if backend is not None else DictGraphBackend()
        self._bus = EventBus()
        self._in_flight: str | None = None
        self._emitted: list[GraphEvent] = []

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, listener: EventListener) -> EventListener:
        """Register a listener for change events. Usable as a decorator."""
        return self._bus.subscribe(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self._bus.unsubscribe(listener)

    # -------------------------------------------------------------------------
    # Node operations
    # -------------------------------------------------------------------------

    @_mutation
    def add_node(self, node_id: str, text: str, parent_id: str = "") -> MutationResult:
        """Create a node and emit NodeAdded.

        Args:
            node_id: Stable external id; must not name a live node.
            text: Node label.
            parent_id: Advisory parent id. Not validated.

        Returns:
            Accepted result, or a DUPLICATE_ID rejection if the id is live.
        """
        if self._backend.has_node(node_id):
            return self._reject("add_node", NodeExistsError(node_id))

        node = Node(id=node_id, text=text, parent_id=parent_id)
        self._backend.put_node(node)
        log.debug("node_added", node_id=node_id, parent_id=parent_id or None)
        self._emit(NodeAdded(node))
        return self._accept("add_node")

    @_mutation
    def remove_node(self, node_id: str) -> MutationResult:
        """Remove a node and every connection that references it.

        Emits ConnectionRemoved for each incident connection (in insertion
        order), then NodeRemoved. The cascade is finished before NodeRemoved
        is delivered, so its listeners never see dangling connections.

        Returns:
            Accepted result, or a NOT_FOUND rejection if the id is not live.
        """
        if not self._backend.has_node(node_id):
            return self._reject(
                "remove_node", NodeNotFoundError(node_id, self._node_ids(), "remove_node")
            )

        for link in self._backend.connections_referencing(node_id):
            self._backend.remove_connection(link.source, link.target)
            self._emit(ConnectionRemoved(link.source, link.target))

        self._backend.delete_node(node_id)
        self._emit(NodeRemoved(node_id))
        log.debug("node_removed", node_id=node_id, cascaded=len(self._emitted) - 1)
        return self._accept("remove_node")

    @_mutation
    def update_node_text(self, node_id: str, new_text: str) -> MutationResult:
        """Replace a node's text and emit NodeUpdated with the full node.

        The id and parent are left unchanged.
        """
        node = self._backend.get_node(node_id)
        if node is None:
            return self._reject(
                "update_node_text",
                NodeNotFoundError(node_id, self._node_ids(), "update_node_text"),
            )

        updated = node.model_copy(update={"text": new_text})
        self._backend.put_node(updated)
        log.debug("node_updated", node_id=node_id)
        self._emit(NodeUpdated(updated))
        return self._accept("update_node_text")

    # -------------------------------------------------------------------------
    # Connection operations
    # -------------------------------------------------------------------------

    @_mutation
    def add_connection(self, source_id: str, target_id: str) -> MutationResult:
        """Connect two live nodes and emit ConnectionAdded.

        Returns:
            Accepted result; UNKNOWN_NODE if either endpoint is not live;
            DUPLICATE_CONNECTION if the ordered pair already exists.
        """
        has_source = self._backend.has_node(source_id)
        has_target = self._backend.has_node(target_id)
        if not (has_source and has_target):
            if not has_source and not has_target:
                missing = "both"
            elif not has_source:
                missing = "source"
            else:
                missing = "target"
            return self._reject(
                "add_connection", ConnectionEndpointError(source_id, target_id, missing)
            )

        if self._backend.has_connection(source_id, target_id):
            return self._reject("add_connection", ConnectionExistsError(source_id, target_id))

        link = Connection(source=source_id, target=target_id)
        self._backend.add_connection(link)
        log.debug("connection_added", source=source_id, target=target_id)
        self._emit(ConnectionAdded(link))
        return self._accept("add_connection")

    @_mutation
    def remove_connection(self, source_id: str, target_id: str) -> MutationResult:
        """Remove the connection for the ordered pair and emit ConnectionRemoved."""
        if not self._backend.remove_connection(source_id, target_id):
            return self._reject(
                "remove_connection", ConnectionNotFoundError(source_id, target_id)
            )

        log.debug("connection_removed", source=source_id, target=target_id)
        self._emit(ConnectionRemoved(source_id, target_id))
        return self._accept("remove_connection")

    def clear(self) -> list[MutationResult]:
        """Remove every node (and so every connection) through remove_node.

        Views receive the usual cascade and removal events.

        Returns:
            One result per removed node.
        """
        results = [self.remove_node(node_id) for node_id in self._node_ids()]
        log.debug("graph_cleared", nodes_removed=len(results))
        return results

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_full_graph(self) -> GraphSnapshot:
        """Return an immutable snapshot of every live node and connection."""
        return GraphSnapshot(
            nodes=tuple(self._backend.nodes()),
            links=tuple(self._backend.connections()),
        )

    def get_node(self, node_id: str) -> Node | None:
        return self._backend.get_node(node_id)

    def has_node(self, node_id: str) -> bool:
        return self._backend.has_node(node_id)

    def has_connection(self, source_id: str, target_id: str) -> bool:
        return self._backend.has_connection(source_id, target_id)

    def node_count(self) -> int:
        return self._backend.node_count()

    def connection_count(self) -> int:
        return self._backend.connection_count()

    # -------------------------------------------------------------------------
    # View handshake
    # -------------------------------------------------------------------------

    @_mutation
    def on_view_ready(self) -> GraphSnapshot:
        """Send the current full graph to listeners as one GraphUpdated event.

        Called by the view once it has attached its listeners. Each call
        re-sends the snapshot, which covers view reloads and reconnects.

        Returns:
            The snapshot that was sent.
        """
        snapshot = self.get_full_graph()
        log.info(
            "view_ready",
            nodes=len(snapshot.nodes),
            links=len(snapshot.links),
        )
        self._emit(GraphUpdated(snapshot))
        return snapshot

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @contextmanager
    def _mutating(self, operation: str) -> Iterator[None]:
        if self._in_flight is not None:
            raise ReentrantMutationError(operation, self._in_flight)
        self._in_flight = operation
        self._emitted = []
        try:
            yield
        finally:
            self._in_flight = None
            self._emitted = []

    def _emit(self, event: GraphEvent) -> None:
        self._emitted.append(event)
        self._bus.emit(event)

    def _accept(self, operation: str) -> MutationResult:
        return MutationResult.accept(operation, *self._emitted)

    def _reject(self, operation: str, error: GraphIntegrityError) -> MutationResult:
        if error.rejection in _WARN_REJECTIONS:
            log.warning("mutation_rejected", operation=operation, reason=str(error))
        else:
            log.debug("mutation_rejected", operation=operation, reason=str(error))
        return MutationResult.reject(operation, error)

    def _node_ids(self) -> list[str]:
        return [node.id for node in self._backend.nodes()]

    def __repr__(self) -> str:
        return (
            f"GraphStore(nodes={self._backend.node_count()}, "
            f"connections={self._backend.connection_count()}, "
            f"listeners={self._bus.listener_count})"
        )
