"""Data model for MindCanvas maps."""

import json
from dataclasses import dataclass, field, fields, replace, asdict
from typing import Optional, Dict, List, Tuple, Any, Mapping


DEFAULT_BACKGROUND_COLOR = "#FFFFFF"
DEFAULT_CONNECTION_COLOR = "#CBD5E1"
DEFAULT_CONNECTION_THICKNESS = 2.0
ROOT_TEXT = "Root Node"
ROOT_POSITION = (300.0, 200.0)


class InvalidStateError(ValueError):
    """Raised when a snapshot does not describe a valid tree."""


@dataclass(frozen=True)
class Position:
    """A point in canvas-logical coordinates."""
    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)


# Snapshot keys for style fields, matching the document form {rootId, nodes}
_STYLE_KEYS = {
    "color": "color",
    "background_color": "backgroundColor",
    "font_size": "fontSize",
    "font_weight": "fontWeight",
    "border_color": "borderColor",
    "border_width": "borderWidth",
    "border_style": "borderStyle",
    "border_radius": "borderRadius",
    "background_image": "backgroundImage",
}

_CONNECTION_KEYS = {
    "color": "color",
    "thickness": "thickness",
    "line_style": "lineStyle",
}


@dataclass(frozen=True)
class NodeStyle:
    """Visual attributes of a node box.

    Values are passed through as given (CSS-like strings such as ``"14px"``
    or ``"#1E293B"``); nothing here validates them.
    """
    color: Optional[str] = None
    background_color: Optional[str] = None
    font_size: Optional[str] = None
    font_weight: Optional[str] = None
    border_color: Optional[str] = None
    border_width: Optional[str] = None
    border_style: Optional[str] = None
    border_radius: Optional[str] = None
    background_image: Optional[str] = None

    def merged(self, partial: "NodeStyle") -> "NodeStyle":
        """Shallow-merge the fields set on ``partial`` over this style."""
        updates = {k: v for k, v in asdict(partial).items() if v is not None}
        return replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        return {_STYLE_KEYS[k]: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "NodeStyle":
        if not data:
            return cls()
        # Accept both snapshot keys and attribute names, ignore the rest
        known = {f.name for f in fields(cls)}
        reverse = {v: k for k, v in _STYLE_KEYS.items()}
        kwargs = {}
        for key, value in data.items():
            name = reverse.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class ConnectionStyle:
    """Stroke styling for the edge from a node's parent to the node."""
    color: Optional[str] = None
    thickness: Optional[float] = None
    line_style: Optional[str] = None  # solid, dashed, dotted

    def merged(self, partial: "ConnectionStyle") -> "ConnectionStyle":
        """Shallow-merge the fields set on ``partial`` over this style."""
        updates = {k: v for k, v in asdict(partial).items() if v is not None}
        return replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        return {_CONNECTION_KEYS[k]: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ConnectionStyle":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        reverse = {v: k for k, v in _CONNECTION_KEYS.items()}
        kwargs = {}
        for key, value in data.items():
            name = reverse.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)


DEFAULT_ROOT_STYLE = NodeStyle(
    color="#1E293B",
    background_color="#EEF2FF",
    font_size="18px",
    font_weight="bold",
    border_color="#6366F1",
    border_width="2px",
    border_style="solid",
    border_radius="8px",
)

DEFAULT_CONNECTION_STYLE = ConnectionStyle(
    color=DEFAULT_CONNECTION_COLOR,
    thickness=DEFAULT_CONNECTION_THICKNESS,
    line_style="solid",
)


@dataclass(frozen=True)
class Node:
    """One idea in the map."""
    id: str
    text: str = ""
    parent_id: Optional[str] = None
    children_ids: Tuple[str, ...] = ()
    position: Position = field(default_factory=Position)
    is_expanded: bool = True
    html_content: Optional[str] = None
    style: Optional[NodeStyle] = None
    connection_style: Optional[ConnectionStyle] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "parentId": self.parent_id,
            "childrenIds": list(self.children_ids),
            "position": {"x": self.position.x, "y": self.position.y},
            "isExpanded": self.is_expanded,
        }
        if self.html_content is not None:
            data["htmlContent"] = self.html_content
        if self.style is not None:
            data["style"] = self.style.to_dict()
        if self.connection_style is not None:
            data["connectionStyle"] = self.connection_style.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Node":
        pos = data.get("position") or {}
        style = data.get("style")
        connection = data.get("connectionStyle")
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            parent_id=data.get("parentId"),
            children_ids=tuple(data.get("childrenIds") or ()),
            position=Position(float(pos.get("x", 0.0)), float(pos.get("y", 0.0))),
            is_expanded=bool(data.get("isExpanded", True)),
            html_content=data.get("htmlContent"),
            style=NodeStyle.from_dict(style) if style is not None else None,
            connection_style=(
                ConnectionStyle.from_dict(connection) if connection is not None else None
            ),
        )


@dataclass(frozen=True)
class MindMapState:
    """The whole tree: nodes keyed by id plus the root id.

    Treat ``nodes`` as read-only. Every store action builds a new dict.
    """
    nodes: Dict[str, Node]
    root_id: str

    @property
    def root(self) -> Node:
        return self.nodes[self.root_id]

    def get(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rootId": self.root_id,
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MindMapState":
        """Build a state from its snapshot form, checking the tree invariants."""
        try:
            root_id = str(data["rootId"])
            raw_nodes = data["nodes"]
            nodes = {str(key): Node.from_dict(value) for key, value in raw_nodes.items()}
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise InvalidStateError(f"Malformed snapshot: {exc}") from exc

        state = cls(nodes=nodes, root_id=root_id)
        problems = check_invariants(state)
        if problems:
            raise InvalidStateError("; ".join(problems))
        return state

    @classmethod
    def from_json(cls, data: str) -> "MindMapState":
        try:
            decoded = json.loads(data)
        except json.JSONDecodeError as exc:
            raise InvalidStateError(f"Snapshot is not valid JSON: {exc}") from exc
        return cls.from_dict(decoded)


def create_initial_state(root_id: str) -> MindMapState:
    """A map holding only the root node."""
    root = Node(
        id=root_id,
        text=ROOT_TEXT,
        parent_id=None,
        children_ids=(),
        position=Position(*ROOT_POSITION),
        is_expanded=True,
        style=DEFAULT_ROOT_STYLE,
    )
    return MindMapState(nodes={root_id: root}, root_id=root_id)


def check_invariants(state: MindMapState) -> List[str]:
    """Return a description of every tree invariant the state violates."""
    problems: List[str] = []
    nodes = state.nodes

    for key, node in nodes.items():
        if key != node.id:
            problems.append(f"key {key!r} holds node {node.id!r}")

    roots = [n.id for n in nodes.values() if n.parent_id is None]
    if len(roots) != 1:
        problems.append(f"expected exactly one root, found {len(roots)}")
    if state.root_id not in nodes:
        problems.append(f"root id {state.root_id!r} is not a node")
    elif nodes[state.root_id].parent_id is not None:
        problems.append(f"root {state.root_id!r} has a parent")

    listed_under: Dict[str, str] = {}
    for node in nodes.values():
        if node.parent_id is not None and node.parent_id not in nodes:
            problems.append(f"{node.id!r} references missing parent {node.parent_id!r}")
        if len(set(node.children_ids)) != len(node.children_ids):
            problems.append(f"{node.id!r} lists a child more than once")
        for child_id in set(node.children_ids):
            other = listed_under.setdefault(child_id, node.id)
            if other != node.id:
                problems.append(f"{child_id!r} is listed under both {other!r} and {node.id!r}")
        for child_id in node.children_ids:
            child = nodes.get(child_id)
            if child is None:
                problems.append(f"{node.id!r} lists missing child {child_id!r}")
            elif child.parent_id != node.id:
                problems.append(f"{child_id!r} is listed under {node.id!r} but points at {child.parent_id!r}")
        parent = nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is not None and node.id not in parent.children_ids:
            problems.append(f"{node.id!r} is missing from its parent's children")

    # Walk each parent chain; a chain longer than the node count has a cycle
    limit = len(nodes)
    for node in nodes.values():
        steps = 0
        current = node
        while current.parent_id is not None and current.parent_id in nodes:
            current = nodes[current.parent_id]
            steps += 1
            if steps > limit:
                problems.append(f"cycle through {node.id!r}")
                break

    return problems
