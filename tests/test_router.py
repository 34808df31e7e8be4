"""Tests for visibility resolution and connector routing."""

import math

import pytest

from mindcanvas.actions import AddNode, ToggleNodeExpansion, UpdateNodeConnectionStyle
from mindcanvas.layout import Rect
from mindcanvas.model import ConnectionStyle, MindMapState, Node
from mindcanvas.router import (
    ConnectionRouter, Visibility, visible_node_ids, control_point, dash_pattern,
)


@pytest.fixture
def tree(store):
    """root -> (a -> (a1 -> a1x), b). Returns the ids by name."""
    root = store.state.root_id
    a = store.dispatch(AddNode(root, "a")).root.children_ids[-1]
    b = store.dispatch(AddNode(root, "b")).root.children_ids[-1]
    a1 = store.dispatch(AddNode(a, "a1")).nodes[a].children_ids[-1]
    a1x = store.dispatch(AddNode(a1, "a1x")).nodes[a1].children_ids[-1]
    return {"root": root, "a": a, "b": b, "a1": a1, "a1x": a1x}


def expected_visible(state: MindMapState, node_id: str) -> bool:
    """The ancestor-expansion rule, evaluated directly."""
    node = state.nodes[node_id]
    if node.parent_id is None:
        return True
    parent = state.nodes.get(node.parent_id)
    return parent is not None and expected_visible(state, parent.id) and parent.is_expanded


class TestVisibility:
    """A node is visible iff every ancestor exists and is expanded."""

    def test_all_expanded(self, store, tree):
        visible = Visibility(store.state)
        assert all(visible(node_id) for node_id in tree.values())

    def test_collapse_hides_descendants_only(self, store, tree):
        store.dispatch(ToggleNodeExpansion(tree["a"]))
        visible = Visibility(store.state)
        assert visible(tree["a"])
        assert visible(tree["b"])
        assert not visible(tree["a1"])
        assert not visible(tree["a1x"])

    @pytest.mark.parametrize("collapsed", [["root"], ["a"], ["a1"], ["a", "a1"], ["b"], []])
    def test_matches_rule(self, store, tree, collapsed):
        for name in collapsed:
            store.dispatch(ToggleNodeExpansion(tree[name]))
        state = store.state
        visible = Visibility(state)
        # Ask deepest first so memoized answers get reused on the way up
        for node_id in reversed(list(state.nodes)):
            assert visible(node_id) == expected_visible(state, node_id)

    def test_unknown_node_hidden(self, store):
        assert not Visibility(store.state)("ghost")

    def test_deep_chain(self):
        depth = 5000
        nodes = {"n0": Node(id="n0", children_ids=("n1",))}
        for i in range(1, depth):
            child = (f"n{i + 1}",) if i + 1 < depth else ()
            nodes[f"n{i}"] = Node(id=f"n{i}", parent_id=f"n{i - 1}", children_ids=child)
        state = MindMapState(nodes=nodes, root_id="n0")
        assert Visibility(state)(f"n{depth - 1}")
        assert len(visible_node_ids(state)) == depth

    def test_paint_order(self, store, tree):
        order = visible_node_ids(store.state)
        assert order == [tree["root"], tree["a"], tree["a1"], tree["a1x"], tree["b"]]
        store.dispatch(ToggleNodeExpansion(tree["a"]))
        assert visible_node_ids(store.state) == [tree["root"], tree["a"], tree["b"]]


class TestGeometry:
    """Connector anchors and the bowed control point."""

    def test_horizontal_bow(self):
        cx, cy = control_point((100, 100), (300, 100))
        assert cx == pytest.approx(200)
        assert cy == pytest.approx(200)

    def test_vertical_has_no_bow(self):
        assert control_point((100, 100), (100, 300)) == pytest.approx((100, 200))

    def test_bow_capped(self):
        start, end = (0, 0), (1000, 0)
        cx, cy = control_point(start, end)
        assert cy == pytest.approx(100)

    def test_bow_is_perpendicular(self):
        start, end = (0, 0), (60, 80)
        cx, cy = control_point(start, end)
        mid = (30, 40)
        # Offset vector is orthogonal to start->end
        assert (cx - mid[0]) * 60 + (cy - mid[1]) * 80 == pytest.approx(0, abs=1e-9)
        assert math.hypot(cx - mid[0], cy - mid[1]) == pytest.approx(60)

    def test_edge_anchors(self, store, tracker):
        root = store.state.root_id
        child = store.dispatch(AddNode(root, "c")).root.children_ids[0]
        tracker.report(root, Rect(300, 200, 100, 40))
        tracker.report(child, Rect(500, 200, 120, 40))

        (edge,) = ConnectionRouter(tracker).route(store.state)
        assert edge.parent_id == root
        assert edge.child_id == child
        assert edge.start == (350, 240)
        assert edge.end == (560, 200)
        assert edge.control == pytest.approx(control_point((350, 240), (560, 200)))
        assert edge.path_data.startswith("M 350.0 240.0 Q ")
        assert edge.point_at(0) == edge.start
        assert edge.point_at(1) == pytest.approx(edge.end)


class TestRouting:
    """Edge enumeration over visible, measured nodes."""

    def test_edges_for_measured_tree(self, store, tree, tracker, measure):
        measure()
        edges = ConnectionRouter(tracker).route(store.state)
        assert [(e.parent_id, e.child_id) for e in edges] == [
            (tree["root"], tree["a"]),
            (tree["a"], tree["a1"]),
            (tree["a1"], tree["a1x"]),
            (tree["root"], tree["b"]),
        ]

    def test_unmeasured_endpoint_skipped(self, store, tree, tracker, measure):
        measure()
        tracker.forget(tree["a1"])
        edges = ConnectionRouter(tracker).route(store.state)
        pairs = {(e.parent_id, e.child_id) for e in edges}
        assert (tree["a"], tree["a1"]) not in pairs
        assert (tree["a1"], tree["a1x"]) not in pairs
        assert (tree["root"], tree["b"]) in pairs

    def test_collapsed_subtree_has_no_edges(self, store, tree, tracker, measure):
        measure()
        store.dispatch(ToggleNodeExpansion(tree["a"]))
        edges = ConnectionRouter(tracker).route(store.state)
        children = {e.child_id for e in edges}
        assert children == {tree["a"], tree["b"]}

    def test_nothing_measured(self, store, tree, tracker):
        assert ConnectionRouter(tracker).route(store.state) == []


class TestStroke:
    """Stroke styling comes from the child's connection style."""

    @pytest.fixture
    def edge_for(self, store, tracker, measure):
        def _edge_for(connection_style):
            root = store.state.root_id
            state = store.dispatch(AddNode(root, "c"))
            child = state.root.children_ids[-1]
            if connection_style is not None:
                store.dispatch(UpdateNodeConnectionStyle(child, connection_style))
            measure()
            edges = ConnectionRouter(tracker).route(store.state)
            return next(e for e in edges if e.child_id == child)
        return _edge_for

    def test_dashed(self, edge_for):
        edge = edge_for(ConnectionStyle(line_style="dashed"))
        assert edge.dash == (5, 5)
        assert edge.dash_array == "5,5"

    def test_dotted(self, edge_for):
        edge = edge_for(ConnectionStyle(line_style="dotted"))
        assert edge.dash_array == "2,2"

    def test_solid_default(self, edge_for):
        edge = edge_for(None)
        assert edge.dash is None
        assert edge.dash_array == ""
        assert edge.color == "#CBD5E1"
        assert edge.width == 2

    def test_unknown_style_is_solid(self):
        assert dash_pattern("wavy") is None
        assert dash_pattern(None) is None

    def test_color_and_thickness(self, edge_for):
        edge = edge_for(ConnectionStyle(color="#FF0000", thickness=4))
        assert edge.color == "#FF0000"
        assert edge.width == 4

    def test_child_without_connection_style_uses_defaults(self, tracker):
        root = Node(id="r", children_ids=("c",))
        child = Node(id="c", parent_id="r")
        state = MindMapState(nodes={"r": root, "c": child}, root_id="r")
        tracker.report("r", Rect(0, 0, 10, 10))
        tracker.report("c", Rect(0, 50, 10, 10))
        (edge,) = ConnectionRouter(tracker).route(state)
        assert (edge.color, edge.width, edge.dash) == ("#CBD5E1", 2, None)
