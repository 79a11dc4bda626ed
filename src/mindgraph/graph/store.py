"""Graph storage backend protocol and dict-based implementation.

The GraphBackend protocol defines the low-level storage operations that
GraphStore delegates to. Implementations handle raw CRUD; GraphStore
provides the public API with validation, logging, and change events.

DictGraphBackend is the default backend. It keeps nodes and connections in
insertion-ordered dicts so snapshots come out in a deterministic order.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from mindgraph.graph.models import Connection, Node


@runtime_checkable
class GraphBackend(Protocol):
    """Storage backend protocol for GraphStore.

    Methods raise no domain-specific errors and perform no validation.
    GraphStore is responsible for checking preconditions first.
    """

    # -- Nodes -----------------------------------------------------------------

    def get_node(self, node_id: str) -> Node | None:
        """Get a node by ID, or None if not found."""
        ...

    def has_node(self, node_id: str) -> bool:
        """Check whether a node exists."""
        ...

    def put_node(self, node: Node) -> None:
        """Insert or replace a node, keeping its original position if present."""
        ...

    def delete_node(self, node_id: str) -> None:
        """Delete a node by ID. No cascade: caller removes connections first."""
        ...

    def nodes(self) -> list[Node]:
        """Return all nodes in insertion order."""
        ...

    def node_count(self) -> int:
        ...

    # -- Connections -----------------------------------------------------------

    def has_connection(self, source: str, target: str) -> bool:
        ...

    def add_connection(self, link: Connection) -> None:
        """Append a connection (no validation)."""
        ...

    def remove_connection(self, source: str, target: str) -> bool:
        """Remove a connection. Return True if removed, False if absent."""
        ...

    def connections(self) -> list[Connection]:
        """Return all connections in insertion order."""
        ...

    def connections_referencing(self, node_id: str) -> list[Connection]:
        """Return connections where *node_id* is source or target, in insertion order."""
        ...

    def connection_count(self) -> int:
        ...


class DictGraphBackend:
    """In-memory backend on top of insertion-ordered dicts.

    Nodes are keyed by id and connections by their ordered endpoint pair,
    so every lookup is a dict hit. Stored values are immutable models, so
    handing them out does not expose writable state.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self._links: dict[tuple[str, str], Connection] = {}

    # -- Nodes -----------------------------------------------------------------

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def put_node(self, node: Node) -> None:
        self._nodes[node.id] = node

    def delete_node(self, node_id: str) -> None:
        del self._nodes[node_id]

    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def node_count(self) -> int:
        return len(self._nodes)

    # -- Connections -----------------------------------------------------------

    def has_connection(self, source: str, target: str) -> bool:
        return (source, target) in self._links

    def add_connection(self, link: Connection) -> None:
        self._links[link.key] = link

    def remove_connection(self, source: str, target: str) -> bool:
        return self._links.pop((source, target), None) is not None

    def connections(self) -> list[Connection]:
        return list(self._links.values())

    def connections_referencing(self, node_id: str) -> list[Connection]:
        return [link for link in self._links.values() if link.touches(node_id)]

    def connection_count(self) -> int:
        return len(self._links)
