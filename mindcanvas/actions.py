"""Store actions for MindCanvas."""

from typing import Optional, Union
from dataclasses import dataclass
from enum import Enum

from mindcanvas.model import Position, NodeStyle, ConnectionStyle


class ActionType(Enum):
    """Types of store actions."""
    ADD_NODE = "add_node"
    UPDATE_NODE_TEXT = "update_node_text"
    TOGGLE_NODE_EXPANSION = "toggle_node_expansion"
    SET_NODE_POSITION = "set_node_position"
    UPDATE_NODE_STYLE = "update_node_style"
    UPDATE_NODE_HTML_CONTENT = "update_node_html_content"
    UPDATE_NODE_CONNECTION_STYLE = "update_node_connection_style"


@dataclass(frozen=True)
class AddNode:
    """Create a child under ``parent_id``.

    ``node_id`` is normally left empty and filled in by the store when the
    action is dispatched.
    """
    parent_id: str
    text: str
    position: Optional[Position] = None
    style: Optional[NodeStyle] = None
    node_id: Optional[str] = None
    action_type = ActionType.ADD_NODE


@dataclass(frozen=True)
class UpdateNodeText:
    node_id: str
    new_text: str
    action_type = ActionType.UPDATE_NODE_TEXT


@dataclass(frozen=True)
class ToggleNodeExpansion:
    node_id: str
    action_type = ActionType.TOGGLE_NODE_EXPANSION


@dataclass(frozen=True)
class SetNodePosition:
    """Move a node to an absolute canvas position."""
    node_id: str
    position: Position
    action_type = ActionType.SET_NODE_POSITION


@dataclass(frozen=True)
class UpdateNodeStyle:
    """Merge the set fields of ``style`` into the node's style."""
    node_id: str
    style: NodeStyle
    action_type = ActionType.UPDATE_NODE_STYLE


@dataclass(frozen=True)
class UpdateNodeHtmlContent:
    node_id: str
    html_content: str
    action_type = ActionType.UPDATE_NODE_HTML_CONTENT


@dataclass(frozen=True)
class UpdateNodeConnectionStyle:
    """Merge the set fields of ``connection_style`` into the node's edge style."""
    node_id: str
    connection_style: ConnectionStyle
    action_type = ActionType.UPDATE_NODE_CONNECTION_STYLE


Action = Union[
    AddNode,
    UpdateNodeText,
    ToggleNodeExpansion,
    SetNodePosition,
    UpdateNodeStyle,
    UpdateNodeHtmlContent,
    UpdateNodeConnectionStyle,
]
