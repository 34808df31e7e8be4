"""Tests for the data model, snapshots and invariant checks."""

import json

import pytest

from mindcanvas.actions import AddNode, UpdateNodeConnectionStyle, UpdateNodeHtmlContent
from mindcanvas.model import (
    MindMapState, Node, NodeStyle, ConnectionStyle, Position,
    InvalidStateError, check_invariants, create_initial_state,
)


class TestStyles:
    """Shallow merge and snapshot keys for style records."""

    def test_merge_keeps_unset_fields(self):
        base = NodeStyle(color="#111", font_size="12px")
        merged = base.merged(NodeStyle(font_size="20px"))
        assert merged == NodeStyle(color="#111", font_size="20px")

    def test_style_snapshot_keys(self):
        style = NodeStyle(background_color="#fff", border_width="2px")
        assert style.to_dict() == {"backgroundColor": "#fff", "borderWidth": "2px"}

    def test_style_from_dict_ignores_unknown(self):
        style = NodeStyle.from_dict({"backgroundColor": "#abc", "textShadow": "x", "color": "#000"})
        assert style == NodeStyle(background_color="#abc", color="#000")

    def test_connection_from_dict(self):
        style = ConnectionStyle.from_dict({"lineStyle": "dotted", "thickness": 3})
        assert style == ConnectionStyle(line_style="dotted", thickness=3)


class TestSnapshot:
    """The {rootId, nodes} document form."""

    def test_document_shape(self, store):
        root_id = store.state.root_id
        state = store.dispatch(AddNode(root_id, "Child"))
        child_id = state.root.children_ids[0]
        state = store.dispatch(UpdateNodeHtmlContent(child_id, "<b>x</b>"))
        state = store.dispatch(UpdateNodeConnectionStyle(child_id, ConnectionStyle(line_style="dashed")))

        doc = json.loads(state.to_json())
        assert doc["rootId"] == root_id
        child = doc["nodes"][child_id]
        assert child["parentId"] == root_id
        assert child["childrenIds"] == []
        assert child["position"] == {"x": 500.0, "y": 200.0}
        assert child["isExpanded"] is True
        assert child["htmlContent"] == "<b>x</b>"
        assert child["connectionStyle"]["lineStyle"] == "dashed"
        assert doc["nodes"][root_id]["parentId"] is None

    def test_reload_equals_original(self, store):
        root_id = store.state.root_id
        store.dispatch(AddNode(root_id, "A"))
        store.dispatch(AddNode(root_id, "B"))
        state = store.state
        assert MindMapState.from_json(state.to_json()) == state

    def test_missing_parent_rejected(self):
        doc = create_initial_state("r").to_dict()
        doc["nodes"]["c"] = {"id": "c", "text": "c", "parentId": "ghost", "childrenIds": []}
        with pytest.raises(InvalidStateError):
            MindMapState.from_dict(doc)

    def test_one_sided_link_rejected(self):
        doc = create_initial_state("r").to_dict()
        doc["nodes"]["c"] = {"id": "c", "text": "c", "parentId": "r", "childrenIds": []}
        with pytest.raises(InvalidStateError, match="missing from its parent"):
            MindMapState.from_dict(doc)

    def test_malformed_document_rejected(self):
        with pytest.raises(InvalidStateError):
            MindMapState.from_dict({"nodes": {}})
        with pytest.raises(InvalidStateError):
            MindMapState.from_json("{not json")


class TestInvariants:
    """check_invariants reports each broken rule."""

    def test_two_roots(self):
        state = create_initial_state("r")
        nodes = dict(state.nodes)
        nodes["r2"] = Node(id="r2", text="second root")
        problems = check_invariants(MindMapState(nodes=nodes, root_id="r"))
        assert any("exactly one root" in p for p in problems)

    def test_key_mismatch(self):
        state = create_initial_state("r")
        nodes = {"wrong": state.root}
        problems = check_invariants(MindMapState(nodes=nodes, root_id="wrong"))
        assert any("holds node" in p for p in problems)

    def test_cycle_detected(self):
        root = Node(id="r", text="root")
        a = Node(id="a", parent_id="b", children_ids=("b",))
        b = Node(id="b", parent_id="a", children_ids=("a",))
        problems = check_invariants(MindMapState(nodes={"r": root, "a": a, "b": b}, root_id="r"))
        assert any("cycle" in p for p in problems)

    def test_child_listed_twice(self):
        root = Node(id="r", children_ids=("c", "c"))
        child = Node(id="c", parent_id="r")
        problems = check_invariants(MindMapState(nodes={"r": root, "c": child}, root_id="r"))
        assert any("more than once" in p for p in problems)

    def test_child_listed_under_two_parents(self):
        root = Node(id="r", children_ids=("a", "b"))
        a = Node(id="a", parent_id="r", children_ids=("c",))
        b = Node(id="b", parent_id="r", children_ids=("c",))
        c = Node(id="c", parent_id="a")
        state = MindMapState(nodes={"r": root, "a": a, "b": b, "c": c}, root_id="r")
        assert any("listed under both" in p for p in check_invariants(state))

    def test_duplicate_child_snapshot_rejected(self):
        doc = create_initial_state("r").to_dict()
        doc["nodes"]["r"]["childrenIds"] = ["c", "c"]
        doc["nodes"]["c"] = {"id": "c", "text": "c", "parentId": "r", "childrenIds": []}
        with pytest.raises(InvalidStateError, match="more than once"):
            MindMapState.from_dict(doc)

    def test_dispatched_maps_stay_valid(self, store):
        root_id = store.state.root_id
        store.dispatch(AddNode(root_id, "A"))
        store.dispatch(AddNode(root_id, "B"))
        assert check_invariants(store.state) == []

    def test_position_offset(self):
        assert Position(1, 2).offset(3, -4) == Position(4, -2)
