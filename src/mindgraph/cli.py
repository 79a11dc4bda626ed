"""mindgraph CLI - typer application entry point.

The CLI is a command source for the graph store: it loads a document,
applies one mutation, prints the change events the store emitted, and
saves the result. ``bridge`` exposes the store to a view over stdio.
"""

from __future__ import annotations

import atexit
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mindgraph.bridge import StreamTransport, ViewChannel, signal_from_event
from mindgraph.config import (
    CONFIG_FILENAME,
    ProjectConfigError,
    create_default_config,
    load_project_config_or_default,
    write_project_config,
)
from mindgraph.graph import (
    DocumentError,
    GraphStore,
    load_document,
    read_document,
    write_document,
)
from mindgraph.observability import close_file_logging, configure_logging, get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from mindgraph.graph import GraphEvent, MutationResult

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="mindgraph",
    help="mindgraph: incremental graph model for node-link diagram editors.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

log = get_logger(__name__)

# Seed graph the editor opens with
DEMO_NODES: list[tuple[str, str, str]] = [
    ("1", "Root Node", ""),
    ("2", "Child 1", "1"),
    ("3", "Child 2", "1"),
]
DEMO_LINKS: list[tuple[str, str]] = [("1", "2"), ("1", "3")]

# Ids handed out by the "add node" action start here
NEW_NODE_ID_BASE = 100

FileArg = Annotated[Path, typer.Argument(help="Mind map document (.mmap JSON).")]


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log",
            help="Also write debug logs as JSONL into this directory.",
            envvar="MINDGRAPH_LOG_DIR",
        ),
    ] = None,
) -> None:
    """mindgraph: incremental graph model for node-link diagram editors."""
    configure_logging(verbosity=verbose, log_to_file=log_dir is not None, logs_dir=log_dir)
    if log_dir is not None:
        atexit.register(close_file_logging)


# =============================================================================
# Helpers
# =============================================================================


def seed_demo_graph(store: GraphStore) -> None:
    """Populate *store* with the editor's initial root-and-children graph."""
    for node_id, text, parent_id in DEMO_NODES:
        store.add_node(node_id, text, parent_id)
    for source, target in DEMO_LINKS:
        store.add_connection(source, target)


def add_child_node(store: GraphStore, parent_id: str = "1") -> str:
    """Add a fresh child under *parent_id* and connect it, like the toolbar action.

    Returns:
        The id of the new node.
    """
    counter = 0
    while store.has_node(str(NEW_NODE_ID_BASE + counter)):
        counter += 1
    node_id = str(NEW_NODE_ID_BASE + counter)
    store.add_node(node_id, f"New Node {counter + 1}", parent_id)
    store.add_connection(parent_id, node_id)
    return node_id


def _print_event(event: GraphEvent) -> None:
    args = ", ".join(json.dumps(arg, ensure_ascii=False) for arg in event.args())
    console.print(f"[cyan]{event.signal}[/cyan]({escape(args)})", highlight=False, soft_wrap=True)


def _open_store(path: Path, *, must_exist: bool = True) -> GraphStore:
    """Load *path* into a new store, exiting with code 1 on document errors."""
    store = GraphStore()
    if not path.exists() and not must_exist:
        return store
    try:
        report = load_document(store, read_document(path))
    except DocumentError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    for _entry, result in report.rejected:
        err_console.print(f"[yellow]Warning:[/yellow] skipped: {result.error}", highlight=False)
    return store


def _edit(path: Path, mutate: Callable[[GraphStore], MutationResult]) -> None:
    """Load, apply one mutation, print its events, and save if accepted."""
    store = _open_store(path)
    store.subscribe(_print_event)

    result = mutate(store)
    if not result:
        message = str(result.error) if result.error else str(result.rejection)
        err_console.print(f"[red]Rejected:[/red] {message}")
        raise typer.Exit(1)

    write_document(store, path)
    log.info("document_updated", path=str(path), operation=result.operation)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from mindgraph import __version__

    console.print(f"mindgraph v{__version__}")


@app.command()
def init(
    path: Annotated[Path, typer.Argument(help="Project directory to create.")],
    demo: Annotated[
        bool, typer.Option("--demo", help="Start from the demo graph instead of an empty one.")
    ] = False,
) -> None:
    """Initialize a project with mindgraph.yaml and a document."""
    if (path / CONFIG_FILENAME).exists():
        err_console.print(f"[red]Error:[/red] '{path / CONFIG_FILENAME}' already exists")
        raise typer.Exit(1)

    path.mkdir(parents=True, exist_ok=True)
    config = create_default_config(path.absolute().name)
    write_project_config(config, path)

    store = GraphStore()
    if demo:
        seed_demo_graph(store)
    document = write_document(store, config.document_path(path))

    console.print(f"[green]✓[/green] Created project: [bold]{config.name}[/bold]")
    console.print(f"  Config:   {path / CONFIG_FILENAME}")
    console.print(f"  Document: {document}")


@app.command()
def show(file: FileArg) -> None:
    """Print a document's nodes and links."""
    store = _open_store(file)
    snapshot = store.get_full_graph()

    nodes = Table(title=f"Nodes ({len(snapshot.nodes)})")
    nodes.add_column("ID", style="cyan")
    nodes.add_column("Text")
    nodes.add_column("Parent", style="dim")
    for node in snapshot.nodes:
        nodes.add_row(node.id, node.text, node.parent_id)
    console.print(nodes)

    links = Table(title=f"Links ({len(snapshot.links)})")
    links.add_column("Source", style="cyan")
    links.add_column("Target", style="cyan")
    for link in snapshot.links:
        links.add_row(link.source, link.target)
    console.print(links)


@app.command("add-node")
def add_node(
    file: FileArg,
    node_id: Annotated[str, typer.Argument(help="New node id.")],
    text: Annotated[str, typer.Argument(help="Node text.")],
    parent: Annotated[str, typer.Option("--parent", "-p", help="Advisory parent id.")] = "",
) -> None:
    """Add a node."""
    _edit(file, lambda store: store.add_node(node_id, text, parent))


@app.command("remove-node")
def remove_node(
    file: FileArg,
    node_id: Annotated[str, typer.Argument(help="Node id.")],
) -> None:
    """Remove a node and its connections."""
    _edit(file, lambda store: store.remove_node(node_id))


@app.command()
def edit(
    file: FileArg,
    node_id: Annotated[str, typer.Argument(help="Node id.")],
    text: Annotated[str, typer.Argument(help="New text.")],
) -> None:
    """Change a node's text."""
    _edit(file, lambda store: store.update_node_text(node_id, text))


@app.command()
def connect(
    file: FileArg,
    source: Annotated[str, typer.Argument(help="Source node id.")],
    target: Annotated[str, typer.Argument(help="Target node id.")],
) -> None:
    """Add a directed connection."""
    _edit(file, lambda store: store.add_connection(source, target))


@app.command()
def disconnect(
    file: FileArg,
    source: Annotated[str, typer.Argument(help="Source node id.")],
    target: Annotated[str, typer.Argument(help="Target node id.")],
) -> None:
    """Remove a directed connection."""
    _edit(file, lambda store: store.remove_connection(source, target))


@app.command()
def demo() -> None:
    """Print the signals a view receives while the demo graph is built."""
    store = GraphStore()
    store.subscribe(lambda event: console.print_json(signal_from_event(event).model_dump_json()))

    seed_demo_graph(store)
    add_child_node(store)
    store.update_node_text("1", "Edited Root")
    store.on_view_ready()


@app.command()
def bridge(
    file: Annotated[
        Path | None,
        typer.Argument(help="Document to load before serving (created on --save if missing)."),
    ] = None,
    save: Annotated[
        bool, typer.Option("--save", help="Write the graph back to FILE when input ends.")
    ] = False,
) -> None:
    """Serve the graph to a view over stdio.

    Reads invoke messages as JSON lines from stdin and writes signal and
    response messages as JSON lines to stdout. Lines are decoded one at a
    time, so an undecodable line is skipped like any other bad message.
    """
    store = _open_store(file, must_exist=not save) if file is not None else GraphStore()
    channel = ViewChannel(store, StreamTransport(sys.stdout))
    try:
        handled = channel.serve(sys.stdin.buffer)
    finally:
        channel.close()

    log.info("bridge_closed", handled=handled)
    if save and file is not None:
        write_document(store, file)


@app.command("view-url")
def view_url(
    path: Annotated[Path, typer.Argument(help="Project directory.")] = Path(),
) -> None:
    """Print the URL the view is loaded from."""
    try:
        config = load_project_config_or_default(path)
    except ProjectConfigError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    mode = "development" if config.view.effective_dev_mode() else "production"
    console.print(config.view.frontend_url(path), highlight=False, soft_wrap=True)
    log.info("view_url", mode=mode)
