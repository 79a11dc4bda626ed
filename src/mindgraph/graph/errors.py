"""Rejection taxonomy and integrity error types for the mind map graph.

GraphStore never raises for invalid input. Each mutation returns a
MutationResult, which tells an accepted change apart from one of the
expected rejections (duplicate id, unknown endpoint, duplicate connection,
missing entity). Callers that prefer exceptions use
``MutationResult.raise_for_rejection()``, which maps the rejection to a
GraphIntegrityError subclass with a readable message.

Programming errors (re-entering the store from a listener) are raised
directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mindgraph.graph.events import GraphEvent


class Rejection(str, Enum):
    """Why a mutation was not applied."""

    DUPLICATE_ID = "duplicate_id"
    UNKNOWN_NODE = "unknown_node"
    DUPLICATE_CONNECTION = "duplicate_connection"
    NOT_FOUND = "not_found"


class GraphIntegrityError(Exception):
    """Base class for rejected graph mutations, when raised on request."""

    rejection: Rejection


@dataclass
class NodeExistsError(GraphIntegrityError):
    """A node with this id is already live.

    Attributes:
        node_id: The id that already exists.
    """

    node_id: str
    rejection: Rejection = field(default=Rejection.DUPLICATE_ID, init=False)

    def __post_init__(self) -> None:
        super().__init__(f"Node '{self.node_id}' already exists")


@dataclass
class NodeNotFoundError(GraphIntegrityError):
    """Referenced a node that is not live.

    Attributes:
        node_id: The id that was referenced but doesn't exist.
        available: Live ids, used to suggest likely typos.
        context: Description of where the reference occurred.
    """

    node_id: str
    available: list[str] = field(default_factory=list)
    context: str = ""
    rejection: Rejection = field(default=Rejection.NOT_FOUND, init=False)

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def suggestions(self) -> list[str]:
        """Find similar ids that might be typos."""
        return get_close_matches(self.node_id, self.available, n=3, cutoff=0.6)

    def _format_message(self) -> str:
        msg = f"Node '{self.node_id}' not found"
        if self.context:
            msg += f" ({self.context})"
        suggestions = self.suggestions()
        if suggestions:
            msg += "; did you mean " + ", ".join(f"'{s}'" for s in suggestions) + "?"
        return msg


@dataclass
class ConnectionEndpointError(GraphIntegrityError):
    """A connection references endpoints that are not live.

    Attributes:
        source: Source node id.
        target: Target node id.
        missing: Which endpoint is missing ("source", "target", or "both").
    """

    source: str
    target: str
    missing: str
    rejection: Rejection = field(default=Rejection.UNKNOWN_NODE, init=False)

    def __post_init__(self) -> None:
        if self.missing == "both":
            msg = f"Connection endpoints not found: '{self.source}' and '{self.target}'"
        elif self.missing == "source":
            msg = f"Connection source not found: '{self.source}'"
        else:
            msg = f"Connection target not found: '{self.target}'"
        super().__init__(msg)


@dataclass
class ConnectionExistsError(GraphIntegrityError):
    """The ordered pair is already connected."""

    source: str
    target: str
    rejection: Rejection = field(default=Rejection.DUPLICATE_CONNECTION, init=False)

    def __post_init__(self) -> None:
        super().__init__(f"Connection '{self.source}' -> '{self.target}' already exists")


@dataclass
class ConnectionNotFoundError(GraphIntegrityError):
    source: str
    target: str
    rejection: Rejection = field(default=Rejection.NOT_FOUND, init=False)

    def __post_init__(self) -> None:
        super().__init__(f"Connection '{self.source}' -> '{self.target}' not found")


class ReentrantMutationError(RuntimeError):
    """A listener tried to mutate the graph while an event was being delivered."""

    def __init__(self, operation: str, in_flight: str) -> None:
        self.operation = operation
        self.in_flight = in_flight
        super().__init__(
            f"Cannot call {operation}() from an event listener while {in_flight}() is in progress"
        )


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a GraphStore mutation.

    Truthy when the mutation was applied. ``events`` lists what was emitted,
    in emission order (empty on rejection).

    Attributes:
        operation: Name of the store operation.
        rejection: Why the mutation was refused, or None if accepted.
        events: Events emitted by the operation.
        error: Integrity error describing the rejection, raised on request.
    """

    operation: str
    rejection: Rejection | None = None
    events: tuple[GraphEvent, ...] = ()
    error: GraphIntegrityError | None = field(default=None, compare=False, repr=False)

    @classmethod
    def accept(cls, operation: str, *events: GraphEvent) -> MutationResult:
        return cls(operation=operation, events=events)

    @classmethod
    def reject(cls, operation: str, error: GraphIntegrityError) -> MutationResult:
        return cls(operation=operation, rejection=error.rejection, error=error)

    @property
    def accepted(self) -> bool:
        return self.rejection is None

    def __bool__(self) -> bool:
        return self.accepted

    def raise_for_rejection(self) -> MutationResult:
        """Raise the matching GraphIntegrityError if rejected; else return self."""
        if self.error is not None:
            raise self.error
        return self
