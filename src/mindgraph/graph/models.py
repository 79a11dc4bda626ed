"""Value types for the mind map graph.

Nodes, connections and snapshots are immutable pydantic models. The
GraphStore hands these out instead of references to its own storage, so a
view or command source can keep them around without being able to change
graph state.

Serialized field names follow the document and view channel format:
``{"id", "text", "parent"}`` for nodes and ``{"source", "target"}`` for
connections.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Node(BaseModel):
    """A labeled vertex.

    ``parent_id`` is advisory metadata carried for the view (the mind map
    uses it to pick a branch colour and initial position). It is not
    validated and may name a node that does not exist.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    text: str = ""
    parent_id: str = Field(default="", alias="parent")

    @field_validator("text", "parent_id", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_dict(self) -> dict[str, Any]:
        """Serialize in document/wire form (``parent`` key)."""
        return self.model_dump(by_alias=True)


class Connection(BaseModel):
    """A directed link, identified by its ordered ``(source, target)`` pair."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)

    def touches(self, node_id: str) -> bool:
        """Return True if *node_id* is either endpoint."""
        return node_id in (self.source, self.target)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class GraphSnapshot(BaseModel):
    """Full graph state at one point in time.

    Nodes and links keep the store's insertion order so repeated snapshots
    of the same graph serialize identically.
    """

    model_config = ConfigDict(frozen=True)

    nodes: tuple[Node, ...] = ()
    links: tuple[Connection, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{"nodes": [...], "links": [...]}``."""
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def same_graph(self, other: GraphSnapshot) -> bool:
        """Compare as sets of nodes and connections, ignoring order."""
        return set(self.nodes) == set(other.nodes) and set(self.links) == set(other.links)
