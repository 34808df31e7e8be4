"""Pointer, wheel and edit handling for the MindCanvas canvas.

The controller is toolkit independent: the canvas widget feeds it screen
coordinates and it answers whether the event was consumed. Pan and node drag
are modelled as one small state machine (``PointerMode``); text editing is an
``EditSession`` that is open or not.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Callable

from mindcanvas.actions import (
    AddNode, ToggleNodeExpansion, SetNodePosition,
    UpdateNodeText, UpdateNodeHtmlContent,
)
from mindcanvas.layout import LayoutTracker, control_rects, ADD_BUTTON, TOGGLE_BUTTON
from mindcanvas.router import visible_node_ids
from mindcanvas.store import NodeGraphStore
from mindcanvas.transform import ViewTransform

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Untitled Node"
NEW_CHILD_TEXT = "New Child"

PRIMARY_BUTTON = 1
MIDDLE_BUTTON = 2


class PointerMode(Enum):
    """What a pointer gesture in progress is doing."""
    IDLE = "idle"
    PANNING = "panning"
    DRAGGING = "dragging"


class TargetKind(Enum):
    CANVAS = "canvas"
    NODE = "node"
    ADD_BUTTON = "add_button"
    TOGGLE_BUTTON = "toggle_button"


@dataclass(frozen=True)
class HitTarget:
    """What lies under a screen point."""
    kind: TargetKind
    node_id: Optional[str] = None


CANVAS_TARGET = HitTarget(TargetKind.CANVAS)


@dataclass
class EditSession:
    """An open inline edit of one node.

    ``html`` and ``text`` start as the node's stored values. Rich nodes are
    edited through ``html``, plain nodes through ``text``; ``buffer`` is
    whichever one the editing surface shows.
    """
    node_id: str
    rich: bool
    text: str
    html: str

    @property
    def buffer(self) -> str:
        return self.html if self.rich else self.text

    @buffer.setter
    def buffer(self, value: str):
        if self.rich:
            self.html = value
        else:
            self.text = value

    def insert(self, chars: str):
        self.buffer = self.buffer + chars

    def backspace(self):
        self.buffer = self.buffer[:-1]


class InteractionController:
    """Turns pointer, wheel and edit events into transform and store updates."""

    def __init__(self, store: NodeGraphStore, transform: ViewTransform,
                 tracker: LayoutTracker):
        self.store = store
        self.transform = transform
        self.tracker = tracker

        # Gesture state
        self.mode = PointerMode.IDLE
        self.drag_node_id: Optional[str] = None
        self._pan_anchor = (0.0, 0.0)
        self._last_pointer = (0.0, 0.0)

        # Edit state
        self.edit: Optional[EditSession] = None

        # Callbacks
        self.on_edit_changed: Optional[Callable[[Optional[EditSession]], None]] = None

    # ==================== Hit testing ====================

    def hit_test(self, sx: float, sy: float) -> HitTarget:
        """Find the node or node button under a screen point."""
        cx, cy = self.transform.to_canvas(sx, sy)
        state = self.store.state
        node_id = self.tracker.node_at(cx, cy, visible_node_ids(state))
        if node_id is None:
            return CANVAS_TARGET

        geometry = self.tracker.get(node_id)
        node = state.nodes[node_id]
        for name, rect in control_rects(geometry, bool(node.children_ids)).items():
            if rect.contains_point(cx, cy):
                if name == ADD_BUTTON:
                    return HitTarget(TargetKind.ADD_BUTTON, node_id)
                if name == TOGGLE_BUTTON:
                    return HitTarget(TargetKind.TOGGLE_BUTTON, node_id)
        return HitTarget(TargetKind.NODE, node_id)

    # ==================== Pointer events ====================

    def pointer_down(self, sx: float, sy: float, button: int = PRIMARY_BUTTON,
                     n_press: int = 1) -> bool:
        """Handle a button press. Returns True when the press was consumed."""
        target = self.hit_test(sx, sy)

        # Pressing anywhere but the node being edited takes focus away from it
        if self.edit and target.node_id != self.edit.node_id:
            self.commit_edit()

        if target.kind == TargetKind.ADD_BUTTON:
            self.add_child(target.node_id)
            return True

        if target.kind == TargetKind.TOGGLE_BUTTON:
            self.toggle_expansion(target.node_id)
            return True

        if target.kind == TargetKind.NODE:
            if n_press >= 2:
                self.begin_edit(target.node_id)
                return True
            if button != PRIMARY_BUTTON or self.edit:
                return False
            self._set_mode(PointerMode.DRAGGING)
            self.drag_node_id = target.node_id
            self._last_pointer = (sx, sy)
            return True

        if button in (PRIMARY_BUTTON, MIDDLE_BUTTON) and n_press == 1:
            self._set_mode(PointerMode.PANNING)
            self._pan_anchor = (sx - self.transform.x, sy - self.transform.y)
            return True

        return False

    def pointer_move(self, sx: float, sy: float) -> bool:
        """Handle pointer motion. Returns True when a gesture used it."""
        if self.mode == PointerMode.PANNING:
            ax, ay = self._pan_anchor
            self.transform.set_translation(sx - ax, sy - ay)
            return True

        if self.mode == PointerMode.DRAGGING:
            lx, ly = self._last_pointer
            dx = sx - lx
            dy = sy - ly
            self._last_pointer = (sx, sy)
            if dx == 0 and dy == 0:
                return True
            node = self.store.state.get(self.drag_node_id)
            if node is None:
                return True
            scale = self.transform.scale
            self.store.dispatch(SetNodePosition(
                node.id, node.position.offset(dx / scale, dy / scale)
            ))
            return True

        return False

    def pointer_up(self, sx: float = 0.0, sy: float = 0.0) -> bool:
        """End any gesture in progress, wherever the pointer is."""
        if self.mode == PointerMode.IDLE:
            return False
        self._set_mode(PointerMode.IDLE)
        self.drag_node_id = None
        return True

    def wheel(self, sx: float, sy: float, delta_y: float) -> bool:
        """Zoom one tick at the cursor. Always consumes the event."""
        self.transform.zoom_at(sx, sy, delta_y)
        return True

    def _set_mode(self, mode: PointerMode):
        if mode != self.mode:
            logger.debug("Pointer mode %s -> %s", self.mode.value, mode.value)
            self.mode = mode

    # ==================== Node buttons ====================

    def add_child(self, node_id: str):
        """Add a "New Child" under ``node_id`` at the default offset."""
        self.store.dispatch(AddNode(parent_id=node_id, text=NEW_CHILD_TEXT))

    def toggle_expansion(self, node_id: str):
        self.store.dispatch(ToggleNodeExpansion(node_id))

    # ==================== Editing ====================

    def begin_edit(self, node_id: str) -> Optional[EditSession]:
        """Open an edit session seeded from the node's stored content."""
        if self.edit and self.edit.node_id == node_id:
            return self.edit
        if self.edit:
            self.commit_edit()

        node = self.store.state.get(node_id)
        if node is None:
            return None

        # A drag started by the first click of a double-click ends here
        self.pointer_up()
        self.edit = EditSession(
            node_id=node_id,
            rich=bool(node.html_content),
            text=node.text,
            html=node.html_content or "",
        )
        self._notify_edit_changed()
        return self.edit

    def commit_edit(self) -> bool:
        """Close the session, dispatching at most one content update.

        Changed rich content wins; otherwise a changed label is stored, with
        an empty label replaced by the placeholder. Returns whether anything
        was dispatched.
        """
        session = self.edit
        if session is None:
            return False
        self.edit = None

        node = self.store.state.get(session.node_id)
        dispatched = False
        if node is not None:
            html = session.html.strip()
            text = session.text.strip() or PLACEHOLDER_TEXT
            if html != (node.html_content or ""):
                self.store.dispatch(UpdateNodeHtmlContent(node.id, html))
                dispatched = True
            elif text != node.text:
                self.store.dispatch(UpdateNodeText(node.id, text))
                dispatched = True

        self._notify_edit_changed()
        return dispatched

    def cancel_edit(self):
        """Close the session without storing anything."""
        if self.edit is None:
            return
        self.edit = None
        self._notify_edit_changed()

    def _notify_edit_changed(self):
        if self.on_edit_changed:
            self.on_edit_changed(self.edit)
