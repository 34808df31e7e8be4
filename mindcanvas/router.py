"""Visibility resolution and connector routing."""

import math
import logging
from dataclasses import dataclass
from typing import Optional, List, Dict, Tuple

from mindcanvas.model import (
    MindMapState, Node, ConnectionStyle,
    DEFAULT_CONNECTION_COLOR, DEFAULT_CONNECTION_THICKNESS,
)
from mindcanvas.layout import LayoutTracker, Rect

logger = logging.getLogger(__name__)

MAX_BOW = 100.0

DASH_PATTERNS = {
    "dashed": (5.0, 5.0),
    "dotted": (2.0, 2.0),
}

Point = Tuple[float, float]


class Visibility:
    """Answers "is this node displayable?" for one state, memoized.

    A node is visible when it is the root, or its parent exists, is visible
    and is expanded. The parent chain is walked iteratively and every node
    on the walked chain is memoized, so siblings share the work.
    """

    def __init__(self, state: MindMapState):
        self.state = state
        self._memo: Dict[str, bool] = {}

    def __call__(self, node_id: str) -> bool:
        return self.is_visible(node_id)

    def is_visible(self, node_id: str) -> bool:
        memo = self._memo
        if node_id in memo:
            return memo[node_id]

        nodes = self.state.nodes
        chain: List[str] = []
        current: Optional[str] = node_id
        result = False
        while True:
            if current in memo:
                result = memo[current]
                break
            node = nodes.get(current)
            if node is None:
                result = False
                break
            if node.parent_id is None:
                # The root itself is always visible
                memo[current] = True
                result = True
                break
            chain.append(current)
            if len(chain) > len(nodes):
                # Malformed (cyclic) input; treat the chain as hidden
                result = False
                break
            current = node.parent_id

        # Resolve from the top of the chain back down to node_id
        for chain_id in reversed(chain):
            node = nodes[chain_id]
            parent = nodes.get(node.parent_id)
            result = result and parent is not None and parent.is_expanded
            memo[chain_id] = result
        return memo.get(node_id, result)


def visible_node_ids(state: MindMapState) -> List[str]:
    """Visible nodes in paint order: pre-order from the root, children in order."""
    root = state.nodes.get(state.root_id)
    if root is None:
        return []
    order: List[str] = []
    stack = [root.id]
    seen = set()
    while stack:
        node_id = stack.pop()
        if node_id in seen:
            continue
        seen.add(node_id)
        node = state.nodes.get(node_id)
        if node is None:
            continue
        order.append(node_id)
        if node.is_expanded:
            stack.extend(reversed(node.children_ids))
    return order


def control_point(start: Point, end: Point) -> Point:
    """Quadratic Bezier control point bowing the connector sideways.

    The midpoint of start/end is pushed perpendicular to the start->end
    direction by ``min(|dx|, 100)``.
    """
    mid_x = (start[0] + end[0]) / 2
    mid_y = (start[1] + end[1]) / 2
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    offset = min(abs(dx), MAX_BOW)
    perpendicular = math.atan2(dy, dx) + math.pi / 2
    return (
        mid_x + math.cos(perpendicular) * offset,
        mid_y + math.sin(perpendicular) * offset,
    )


def dash_pattern(line_style: Optional[str]) -> Optional[Tuple[float, ...]]:
    """``dashed`` -> (5, 5), ``dotted`` -> (2, 2), anything else solid (None)."""
    return DASH_PATTERNS.get(line_style) if line_style else None


@dataclass(frozen=True)
class Edge:
    """A routed connector from a parent's bottom edge to a child's top edge."""
    parent_id: str
    child_id: str
    start: Point
    control: Point
    end: Point
    color: str = DEFAULT_CONNECTION_COLOR
    width: float = DEFAULT_CONNECTION_THICKNESS
    dash: Optional[Tuple[float, ...]] = None

    @property
    def path_data(self) -> str:
        """The connector as an SVG path string."""
        return (f"M {self.start[0]} {self.start[1]} "
                f"Q {self.control[0]} {self.control[1]} {self.end[0]} {self.end[1]}")

    @property
    def dash_array(self) -> str:
        """Dash pattern as ``"5,5"``; empty for a solid line."""
        if not self.dash:
            return ""
        return ",".join(f"{v:g}" for v in self.dash)

    def point_at(self, t: float) -> Point:
        """Point on the curve at parameter ``t`` in [0, 1]."""
        u = 1 - t
        return (
            u * u * self.start[0] + 2 * u * t * self.control[0] + t * t * self.end[0],
            u * u * self.start[1] + 2 * u * t * self.control[1] + t * t * self.end[1],
        )


def route_edge(child: Node, parent_box: Rect, child_box: Rect) -> Edge:
    """Geometry and stroke for the connector into ``child``."""
    start = parent_box.bottom_center
    end = child_box.top_center
    style = child.connection_style or ConnectionStyle()
    return Edge(
        parent_id=child.parent_id,
        child_id=child.id,
        start=start,
        control=control_point(start, end),
        end=end,
        color=style.color or DEFAULT_CONNECTION_COLOR,
        width=style.thickness or DEFAULT_CONNECTION_THICKNESS,
        dash=dash_pattern(style.line_style),
    )


class ConnectionRouter:
    """Derives the visible, measurable edges from the tree and the layout cache."""

    def __init__(self, tracker: LayoutTracker):
        self.tracker = tracker

    def route(self, state: MindMapState) -> List[Edge]:
        """Edges for one render pass, in paint order of their children.

        An edge whose parent or child has no measured geometry yet is skipped
        for this pass.
        """
        visible = Visibility(state)
        edges: List[Edge] = []
        skipped = 0
        for node_id in visible_node_ids(state):
            child = state.nodes[node_id]
            if child.parent_id is None:
                continue
            parent = state.nodes.get(child.parent_id)
            if parent is None or not visible(parent.id):
                continue
            parent_box = self.tracker.get(parent.id)
            child_box = self.tracker.get(child.id)
            if parent_box is None or child_box is None:
                skipped += 1
                continue
            edges.append(route_edge(child, parent_box, child_box))

        if skipped:
            logger.debug("Skipped %d edge(s) awaiting geometry", skipped)
        return edges
