"""Mind map document format: save and load.

A document is the JSON form of a full graph snapshot::

    {"nodes": [{"id": ..., "text": ..., "parent": ...}, ...],
     "links": [{"source": ..., "target": ...}, ...]}

Loading goes through GraphStore's public operations only: clear the store,
add every node in array order, then add every link in array order. Links
naming a node that is not in the document are rejected like any other
``add_connection`` call, and reported in the LoadReport.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mindgraph.graph.models import Connection, Node
from mindgraph.observability.logging import get_logger

if TYPE_CHECKING:
    from mindgraph.graph.errors import MutationResult
    from mindgraph.graph.graph import GraphStore

log = get_logger(__name__)

DEFAULT_SUFFIX = ".mmap"


class DocumentError(Exception):
    """Raised when a document cannot be read or does not match the format."""

    def __init__(self, source: Path | str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load document {source}: {reason}")


class GraphDocument(BaseModel):
    """Schema of a saved mind map. ``parent`` may be omitted on nodes."""

    model_config = ConfigDict(extra="ignore")

    nodes: list[Node] = Field(default_factory=list)
    links: list[Connection] = Field(default_factory=list)


@dataclass
class LoadReport:
    """What happened while replaying a document into a store.

    Attributes:
        nodes_added: Nodes accepted by the store.
        links_added: Links accepted by the store.
        rejected: (entry, result) for every node or link the store refused.
    """

    nodes_added: int = 0
    links_added: int = 0
    rejected: list[tuple[Node | Connection, MutationResult]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected


def dump_document(store: GraphStore) -> dict[str, Any]:
    """Return the document form of the store's current graph."""
    return store.get_full_graph().to_dict()


def parse_document(data: Any, source: Path | str = "<data>") -> GraphDocument:
    """Validate raw document data.

    Raises:
        DocumentError: If *data* does not match the document schema.
    """
    try:
        return GraphDocument.model_validate(data)
    except ValidationError as e:
        raise DocumentError(source, f"{e.error_count()} schema error(s): {e}") from e


def load_document(
    store: GraphStore,
    data: dict[str, Any] | GraphDocument,
    *,
    strict: bool = False,
) -> LoadReport:
    """Replace the store's graph with the document's contents.

    Args:
        store: Target store. It is cleared first.
        data: Raw document dict or a parsed GraphDocument.
        strict: Raise on the first rejected entry instead of reporting it.

    Returns:
        Counts of accepted entries and the list of rejections.

    Raises:
        DocumentError: If *data* does not match the document schema.
        GraphIntegrityError: In strict mode, for the first rejected entry.
    """
    document = data if isinstance(data, GraphDocument) else parse_document(data)

    store.clear()
    report = LoadReport()

    for node in document.nodes:
        result = store.add_node(node.id, node.text, node.parent_id)
        if result:
            report.nodes_added += 1
        else:
            if strict:
                result.raise_for_rejection()
            report.rejected.append((node, result))

    for link in document.links:
        result = store.add_connection(link.source, link.target)
        if result:
            report.links_added += 1
        else:
            if strict:
                result.raise_for_rejection()
            report.rejected.append((link, result))

    log.info(
        "document_loaded",
        nodes=report.nodes_added,
        links=report.links_added,
        rejected=len(report.rejected),
    )
    return report


def read_document(path: Path) -> GraphDocument:
    """Read and validate a document file.

    Raises:
        DocumentError: If the file is missing, not JSON, or off-schema.
    """
    if not path.exists():
        raise DocumentError(path, "File not found")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentError(path, str(e)) from e
    except json.JSONDecodeError as e:
        raise DocumentError(path, f"Invalid JSON: {e}") from e

    return parse_document(data, source=path)


def write_document(store: GraphStore, path: Path) -> Path:
    """Write the store's graph to *path* (atomic write).

    Returns:
        The written path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        tmp_path.write_text(
            json.dumps(dump_document(store), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise

    log.debug("document_saved", path=str(path), nodes=store.node_count())
    return path
