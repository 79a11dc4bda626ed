"""Graph package - the mind map's authoritative graph model.

GraphStore owns every node and connection, validates each mutation, and
announces what changed through typed events. Views stay in sync from those
events plus one full snapshot sent when they signal readiness.
"""

from mindgraph.graph.document import (
    DEFAULT_SUFFIX,
    DocumentError,
    GraphDocument,
    LoadReport,
    dump_document,
    load_document,
    parse_document,
    read_document,
    write_document,
)
from mindgraph.graph.errors import (
    ConnectionEndpointError,
    ConnectionExistsError,
    ConnectionNotFoundError,
    GraphIntegrityError,
    MutationResult,
    NodeExistsError,
    NodeNotFoundError,
    ReentrantMutationError,
    Rejection,
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
from mindgraph.graph.graph import GraphStore
from mindgraph.graph.models import Connection, GraphSnapshot, Node
from mindgraph.graph.store import DictGraphBackend, GraphBackend

__all__ = [
    "DEFAULT_SUFFIX",
    "Connection",
    "ConnectionAdded",
    "ConnectionEndpointError",
    "ConnectionExistsError",
    "ConnectionNotFoundError",
    "ConnectionRemoved",
    "DictGraphBackend",
    "DocumentError",
    "EventBus",
    "EventListener",
    "GraphBackend",
    "GraphDocument",
    "GraphEvent",
    "GraphIntegrityError",
    "GraphSnapshot",
    "GraphStore",
    "GraphUpdated",
    "LoadReport",
    "MutationResult",
    "Node",
    "NodeAdded",
    "NodeExistsError",
    "NodeNotFoundError",
    "NodeRemoved",
    "NodeUpdated",
    "ReentrantMutationError",
    "Rejection",
    "dump_document",
    "load_document",
    "parse_document",
    "read_document",
    "write_document",
]
