"""Tree-state store for MindCanvas.

``reduce`` is a pure function of (state, action) -> state. It never raises
and never mutates its input: actions that name a missing node return the
input state object itself, everything else returns a fresh ``MindMapState``
that shares the untouched ``Node`` objects with its predecessor.

``NodeGraphStore`` owns the current state, allocates node ids and notifies a
listener after each effective change.
"""

import itertools
import logging
import time
from dataclasses import replace
from typing import Optional, Callable, Container

from mindcanvas.model import (
    MindMapState, Node, Position, NodeStyle,
    DEFAULT_BACKGROUND_COLOR, DEFAULT_CONNECTION_STYLE, create_initial_state,
)
from mindcanvas.actions import Action, ActionType, AddNode

logger = logging.getLogger(__name__)

# Default placement of a new child relative to its parent
CHILD_OFFSET_X = 200.0
CHILD_OFFSET_Y = 100.0


class IdAllocator:
    """Hands out node ids that are unique within a session.

    Ids combine a time stamp taken when the allocator is created with a
    monotonic counter. ``next_id`` skips any id already taken.
    """

    def __init__(self, prefix: Optional[str] = None):
        self.prefix = prefix if prefix is not None else format(int(time.time() * 1000), "x")
        self._counter = itertools.count(1)

    def next_id(self, taken: Container[str] = ()) -> str:
        while True:
            candidate = f"{self.prefix}-{next(self._counter)}"
            if candidate not in taken:
                return candidate


def derived_node_id(state: MindMapState, parent: Node) -> str:
    """A child id computed from the state alone, for actions without one.

    Ids take the form ``<parent id>.<n>``, counting from the parent's current
    number of children and skipping ids already in the map.
    """
    n = len(parent.children_ids) + 1
    while f"{parent.id}.{n}" in state.nodes:
        n += 1
    return f"{parent.id}.{n}"


def default_child_position(parent: Node) -> Position:
    """Where a new child goes when no position is given."""
    return Position(
        parent.position.x + CHILD_OFFSET_X,
        parent.position.y + len(parent.children_ids) * CHILD_OFFSET_Y,
    )


def inherited_style(parent: Node) -> NodeStyle:
    """The parent's style with the background reset to the default."""
    base = parent.style or NodeStyle()
    return replace(base, background_color=DEFAULT_BACKGROUND_COLOR)


def _with_node(state: MindMapState, node: Node) -> MindMapState:
    nodes = dict(state.nodes)
    nodes[node.id] = node
    return MindMapState(nodes=nodes, root_id=state.root_id)


def _add_node(state: MindMapState, action: AddNode) -> MindMapState:
    parent = state.nodes.get(action.parent_id)
    if parent is None:
        logger.debug("AddNode ignored: parent %s does not exist", action.parent_id)
        return state

    node_id = action.node_id or derived_node_id(state, parent)
    if node_id in state.nodes:
        logger.debug("AddNode ignored: id %s already in use", node_id)
        return state

    node = Node(
        id=node_id,
        text=action.text,
        parent_id=parent.id,
        children_ids=(),
        position=action.position if action.position is not None else default_child_position(parent),
        is_expanded=True,
        style=action.style if action.style is not None else inherited_style(parent),
        connection_style=DEFAULT_CONNECTION_STYLE,
    )
    updated_parent = replace(parent, children_ids=parent.children_ids + (node_id,))

    nodes = dict(state.nodes)
    nodes[node_id] = node
    nodes[parent.id] = updated_parent
    return MindMapState(nodes=nodes, root_id=state.root_id)


def _updated_node(node: Node, action: Action) -> Node:
    """The node after a single-node update action."""
    action_type = action.action_type

    if action_type == ActionType.UPDATE_NODE_TEXT:
        return replace(node, text=action.new_text)

    elif action_type == ActionType.TOGGLE_NODE_EXPANSION:
        return replace(node, is_expanded=not node.is_expanded)

    elif action_type == ActionType.SET_NODE_POSITION:
        return replace(node, position=action.position)

    elif action_type == ActionType.UPDATE_NODE_STYLE:
        return replace(node, style=(node.style or NodeStyle()).merged(action.style))

    elif action_type == ActionType.UPDATE_NODE_HTML_CONTENT:
        return replace(node, html_content=action.html_content)

    elif action_type == ActionType.UPDATE_NODE_CONNECTION_STYLE:
        current = node.connection_style or DEFAULT_CONNECTION_STYLE
        return replace(node, connection_style=current.merged(action.connection_style))

    return node


def reduce(state: MindMapState, action: Action) -> MindMapState:
    """Apply one action to ``state`` and return the resulting state."""
    action_type = getattr(action, "action_type", None)
    if not isinstance(action_type, ActionType):
        logger.debug("Unknown action %r ignored", action)
        return state

    if action_type == ActionType.ADD_NODE:
        return _add_node(state, action)

    node = state.get(action.node_id)
    if node is None:
        logger.debug("%s ignored: node %s does not exist", action_type.value, action.node_id)
        return state

    return _with_node(state, _updated_node(node, action))


class NodeGraphStore:
    """Owns the current map state and applies actions to it in order."""

    def __init__(self, initial_state: Optional[MindMapState] = None,
                 id_allocator: Optional[IdAllocator] = None):
        self._ids = id_allocator or IdAllocator()
        if initial_state is None:
            initial_state = create_initial_state(self._ids.next_id())
        self._state = initial_state
        self._closed = False

        # Callbacks
        self.on_state_changed: Optional[Callable[[MindMapState], None]] = None

    @property
    def state(self) -> MindMapState:
        """The current snapshot. Never mutated after it is published."""
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def dispatch(self, action: Action) -> MindMapState:
        """Apply ``action`` and return the new current state."""
        if isinstance(action, AddNode) and action.node_id is None:
            action = replace(action, node_id=self._ids.next_id(self._state.nodes))

        new_state = reduce(self._state, action)
        if new_state is self._state:
            return new_state

        self._state = new_state
        self._notify_changed()
        return new_state

    def close(self):
        """Detach listeners; called when the application shuts down."""
        self.on_state_changed = None
        self._closed = True

    def _notify_changed(self):
        """Notify that the state changed."""
        if self.on_state_changed and not self._closed:
            self.on_state_changed(self._state)
