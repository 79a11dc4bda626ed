"""Tests for GraphStore: mutations, rejections, cascade, and the view handshake."""

from __future__ import annotations

import random

import pytest

from mindgraph.graph import (
    Connection,
    ConnectionAdded,
    ConnectionRemoved,
    GraphEvent,
    GraphStore,
    GraphUpdated,
    Node,
    NodeAdded,
    NodeRemoved,
    NodeUpdated,
    ReentrantMutationError,
    Rejection,
)


@pytest.fixture
def events() -> list[GraphEvent]:
    return []


@pytest.fixture
def store(events: list[GraphEvent]) -> GraphStore:
    """Empty store recording every emitted event."""
    s = GraphStore()
    s.subscribe(events.append)
    return s


@pytest.fixture
def root_child(store: GraphStore, events: list[GraphEvent]) -> GraphStore:
    """Store holding Root -> Child, with the event log reset."""
    store.add_node("1", "Root")
    store.add_node("2", "Child", "1")
    store.add_connection("1", "2")
    events.clear()
    return store


class TestGraphStoreBasics:
    """Test the empty store and read helpers."""

    def test_empty_snapshot(self) -> None:
        """New store has no nodes and no links."""
        snapshot = GraphStore().get_full_graph()
        assert snapshot.nodes == ()
        assert snapshot.links == ()
        assert snapshot.to_dict() == {"nodes": [], "links": []}

    def test_repr(self, root_child: GraphStore) -> None:
        """repr shows counts."""
        assert "nodes=2" in repr(root_child)
        assert "connections=1" in repr(root_child)

    def test_read_helpers(self, root_child: GraphStore) -> None:
        assert root_child.has_node("1")
        assert not root_child.has_node("9")
        assert root_child.has_connection("1", "2")
        assert not root_child.has_connection("2", "1")
        assert root_child.node_count() == 2
        assert root_child.connection_count() == 1
        assert root_child.get_node("2") == Node(id="2", text="Child", parent_id="1")
        assert root_child.get_node("9") is None


class TestAddNode:
    """Test add_node."""

    def test_add_node_emits_node_added(self, store: GraphStore, events: list[GraphEvent]) -> None:

        """Adding a node emits exactly one NodeAdded with the full node."""
        result = store.add_node("1", "Root")

        assert result.accepted
        assert result
        assert events == [NodeAdded(Node(id="1", text="Root", parent_id=""))]
        assert result.events == tuple(events)

    def test_parent_may_reference_missing_node(self, store: GraphStore) -> None:
        """parent_id is advisory and not validated."""
        assert store.add_node("1", "Orphan", "does-not-exist")
        node = store.get_node("1")
        assert node is not None
        assert node.parent_id == "does-not-exist"

    def test_duplicate_id_is_rejected(self, store: GraphStore, events: list[GraphEvent]) -> None:

        """Second add with the same id is a no-op with no event."""
        store.add_node("1", "Root")
        events.clear()

        result = store.add_node("1", "Other")

        assert not result
        assert result.rejection is Rejection.DUPLICATE_ID
        assert result.events == ()
        assert events == []
        assert store.node_count() == 1
        node = store.get_node("1")
        assert node is not None
        assert node.text == "Root"


class TestRemoveNode:
    """Test remove_node and its cascade."""

    def test_cascade_events_precede_node_removed(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        """Removing the root emits ConnectionRemoved then NodeRemoved."""
        result = root_child.remove_node("1")

        assert result
        assert events == [ConnectionRemoved("1", "2"), NodeRemoved("1")]
        assert root_child.get_full_graph().to_dict() == {
            "nodes": [{"id": "2", "text": "Child", "parent": "1"}],
            "links": [],
        }

    def test_k_incident_connections(self, store: GraphStore, events: list[GraphEvent]) -> None:

        """A node with k incident links emits k ConnectionRemoved, then one NodeRemoved."""
        for node_id in "abcde":
            store.add_node(node_id, node_id.upper())
        store.add_connection("a", "b")
        store.add_connection("c", "a")
        store.add_connection("a", "d")
        store.add_connection("b", "c")
        store.add_connection("a", "a")
        events.clear()

        store.remove_node("a")

        removed = [e for e in events if isinstance(e, ConnectionRemoved)]
        assert [(e.source, e.target) for e in removed] == [
            ("a", "b"),
            ("c", "a"),
            ("a", "d"),
            ("a", "a"),
        ]
        assert events[-1] == NodeRemoved("a")
        assert len(events) == 5
        snapshot = store.get_full_graph()
        assert "a" not in snapshot.node_ids()
        assert snapshot.links == (Connection(source="b", target="c"),)

    def test_listener_sees_no_dangling_links_on_node_removed(self, root_child: GraphStore) -> None:
        """At NodeRemoved time the store already has no link touching the node."""
        seen: list[int] = []

        def check(event: GraphEvent) -> None:
            if isinstance(event, NodeRemoved):
                links = root_child.get_full_graph().links
                seen.append(sum(1 for link in links if link.touches(event.node_id)))

        root_child.subscribe(check)
        root_child.remove_node("2")

        assert seen == [0]

    def test_remove_missing_node_is_noop(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        result = root_child.remove_node("9")

        assert result.rejection is Rejection.NOT_FOUND
        assert events == []
        assert root_child.node_count() == 2


class TestUpdateNodeText:
    """Test update_node_text."""

    def test_update_replaces_text_only(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        """Text changes; id and parent are kept; NodeUpdated carries the full node."""
        result = root_child.update_node_text("2", "Renamed")

        assert result
        updated = Node(id="2", text="Renamed", parent_id="1")
        assert events == [NodeUpdated(updated)]
        assert root_child.get_node("2") == updated

    def test_update_keeps_node_position(self, root_child: GraphStore) -> None:
        """Updating does not reorder the snapshot."""
        root_child.update_node_text("1", "New Root")
        assert root_child.get_full_graph().node_ids() == ["1", "2"]

    def test_update_missing_node_is_noop(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        before = root_child.get_full_graph()

        result = root_child.update_node_text("9", "X")

        assert result.rejection is Rejection.NOT_FOUND
        assert events == []
        assert root_child.get_full_graph() == before


class TestConnections:
    """Test add_connection and remove_connection."""

    def test_add_connection_twice_emits_once(
        self, store: GraphStore, events: list[GraphEvent]
    ) -> None:
        store.add_node("a", "A")
        store.add_node("b", "B")
        events.clear()

        first = store.add_connection("a", "b")
        second = store.add_connection("a", "b")

        assert first
        assert second.rejection is Rejection.DUPLICATE_CONNECTION
        assert events == [ConnectionAdded(Connection(source="a", target="b"))]
        links = store.get_full_graph().links
        assert links.count(Connection(source="a", target="b")) == 1

    def test_connections_are_directed(self, store: GraphStore) -> None:
        """(a, b) and (b, a) are distinct connections."""
        store.add_node("a", "A")
        store.add_node("b", "B")

        assert store.add_connection("a", "b")
        assert store.add_connection("b", "a")
        assert store.connection_count() == 2

    @pytest.mark.parametrize(
        ("source", "target", "missing"),
        [("x", "a", "source"), ("a", "x", "target"), ("x", "y", "both")],
    )
    def test_unknown_endpoint_is_rejected(
        self,
        store: GraphStore,
        events: list[GraphEvent],
        source: str,
        target: str,
        missing: str,
    ) -> None:
        store.add_node("a", "A")
        events.clear()

        result = store.add_connection(source, target)

        assert result.rejection is Rejection.UNKNOWN_NODE
        assert getattr(result.error, "missing", None) == missing
        assert events == []
        assert store.connection_count() == 0

    def test_remove_connection(self, root_child: GraphStore, events: list[GraphEvent]) -> None:

        result = root_child.remove_connection("1", "2")

        assert result
        assert events == [ConnectionRemoved("1", "2")]
        assert root_child.connection_count() == 0
        assert root_child.node_count() == 2

    def test_remove_missing_connection_is_noop(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        """Only the exact ordered pair is removed."""
        result = root_child.remove_connection("2", "1")

        assert result.rejection is Rejection.NOT_FOUND
        assert events == []
        assert root_child.connection_count() == 1


class TestSnapshot:
    """Test get_full_graph."""

    def test_scenario_snapshot(self, store: GraphStore) -> None:
        store.add_node("1", "Root")
        store.add_node("2", "Child", "1")
        store.add_connection("1", "2")

        assert store.get_full_graph().to_dict() == {
            "nodes": [
                {"id": "1", "text": "Root", "parent": ""},
                {"id": "2", "text": "Child", "parent": "1"},
            ],
            "links": [{"source": "1", "target": "2"}],
        }

    def test_snapshot_is_detached_from_store(self, root_child: GraphStore) -> None:
        """Later mutations do not show up in an earlier snapshot."""
        snapshot = root_child.get_full_graph()
        root_child.remove_node("1")

        assert snapshot.node_ids() == ["1", "2"]
        assert len(snapshot.links) == 1

    def test_snapshot_emits_nothing(self, root_child: GraphStore, events: list[GraphEvent]) -> None:

        root_child.get_full_graph()
        assert events == []

    def test_insertion_order_preserved(self, store: GraphStore) -> None:
        for node_id in ["b", "c", "a"]:
            store.add_node(node_id, node_id)
        assert store.get_full_graph().node_ids() == ["b", "c", "a"]


class TestViewReady:
    """Test the readiness handshake."""

    def test_on_view_ready_sends_one_snapshot(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        snapshot = root_child.on_view_ready()

        assert events == [GraphUpdated(snapshot)]
        assert snapshot == root_child.get_full_graph()

    def test_repeated_ready_resends_current_state(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        """A reloaded view gets the graph as it is now."""
        root_child.on_view_ready()
        root_child.add_node("3", "Later", "1")
        root_child.on_view_ready()

        updates = [e for e in events if isinstance(e, GraphUpdated)]
        assert len(updates) == 2
        assert updates[0].graph.node_ids() == ["1", "2"]
        assert updates[1].graph.node_ids() == ["1", "2", "3"]


class TestClear:
    """Test clear()."""

    def test_clear_removes_everything_with_events(
        self, root_child: GraphStore, events: list[GraphEvent]
    ) -> None:
        results = root_child.clear()

        assert len(results) == 2
        assert all(results)
        assert events == [ConnectionRemoved("1", "2"), NodeRemoved("1"), NodeRemoved("2")]
        assert root_child.get_full_graph().to_dict() == {"nodes": [], "links": []}


class TestListeners:
    """Test subscription behavior and re-entry protection."""

    def test_listeners_called_in_registration_order(self, store: GraphStore) -> None:
        calls: list[str] = []
        store.subscribe(lambda _e: calls.append("first"))
        store.subscribe(lambda _e: calls.append("second"))

        store.add_node("1", "Root")

        assert calls == ["first", "second"]

    def test_unsubscribe_stops_delivery(self, store: GraphStore, events: list[GraphEvent]) -> None:

        store.unsubscribe(events.append)
        store.add_node("1", "Root")
        assert events == []

    def test_reentrant_mutation_raises(self, store: GraphStore) -> None:
        """A listener that mutates the store gets ReentrantMutationError."""

        def mutate(event: GraphEvent) -> None:
            if isinstance(event, NodeAdded):
                store.add_node(event.node.id + "-copy", "copy")

        store.subscribe(mutate)

        with pytest.raises(ReentrantMutationError, match="add_node"):
            store.add_node("1", "Root")

        # The outer mutation was applied; the store is usable afterwards.
        store.unsubscribe(mutate)
        assert store.has_node("1")
        assert not store.has_node("1-copy")
        assert store.add_node("2", "Next")

    def test_listener_may_read_during_delivery(self, root_child: GraphStore) -> None:
        counts: list[int] = []
        root_child.subscribe(lambda _e: counts.append(root_child.node_count()))

        root_child.add_node("3", "Third")

        assert counts == [3]


class TestInvariants:
    """Property-style checks over random operation sequences."""

    @pytest.mark.parametrize("seed", range(5))
    def test_no_dangling_connections(self, seed: int) -> None:
        """After every operation, every link's endpoints are live nodes."""
        rng = random.Random(seed)
        ids = [str(i) for i in range(6)]
        store = GraphStore()

        for _ in range(200):
            op = rng.choice(["add", "remove", "update", "connect", "disconnect"])
            a, b = rng.choice(ids), rng.choice(ids)
            if op == "add":
                store.add_node(a, f"n{a}", b)
            elif op == "remove":
                store.remove_node(a)
            elif op == "update":
                store.update_node_text(a, "x")
            elif op == "connect":
                store.add_connection(a, b)
            else:
                store.remove_connection(a, b)

            snapshot = store.get_full_graph()
            live = set(snapshot.node_ids())
            assert len(live) == len(snapshot.nodes)
            assert all(link.source in live and link.target in live for link in snapshot.links)
            assert len(set(snapshot.links)) == len(snapshot.links)
