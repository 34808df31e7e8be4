"""Canvas widget for rendering mindmap nodes and connections."""

import logging
from typing import Optional, Callable

import gi

gi.require_version("Gtk", "4.0")
gi.require_version("Gdk", "4.0")
from gi.repository import Gtk, Gdk

from mindcanvas.model import MindMapState
from mindcanvas.layout import LayoutTracker, Rect
from mindcanvas.router import ConnectionRouter, visible_node_ids
from mindcanvas.interaction import InteractionController, EditSession, PointerMode
from mindcanvas.render import NodePainter
from mindcanvas.settings import CanvasSettings
from mindcanvas.store import NodeGraphStore
from mindcanvas.transform import ViewTransform

logger = logging.getLogger(__name__)


class MindMapCanvas(Gtk.DrawingArea):
    """Presentation layer: paints the map and feeds input to the controller.

    Each draw pass measures every visible node at its stored position and
    reports the resulting screen box to the layout tracker, then routes and
    paints connectors from whatever geometry the tracker holds.
    """

    def __init__(self, store: NodeGraphStore, settings: Optional[CanvasSettings] = None):
        super().__init__()

        self.store = store
        self.settings = settings or CanvasSettings()
        self.transform = ViewTransform(
            min_scale=self.settings.min_scale,
            max_scale=self.settings.max_scale,
            zoom_step=self.settings.zoom_step,
        )
        self.tracker = LayoutTracker(self.transform)
        self.router = ConnectionRouter(self.tracker)
        self.controller = InteractionController(store, self.transform, self.tracker)
        self.painter = NodePainter()

        # Pointer position, kept for keyboard zoom and wheel events
        self.last_mouse_x = 0.0
        self.last_mouse_y = 0.0
        self._centered = False

        # Wire notifications
        self.store.on_state_changed = self._on_state_changed
        self.transform.on_changed = self._on_transform_changed
        self.controller.on_edit_changed = self._on_edit_changed

        # Callbacks
        self.on_transform_changed: Optional[Callable[[ViewTransform], None]] = None

        # Setup widget
        self.set_draw_func(self._on_draw)
        self.set_focusable(True)
        self.set_can_focus(True)
        self._setup_event_controllers()
        self.set_hexpand(True)
        self.set_vexpand(True)

    def _setup_event_controllers(self):
        """Setup mouse and keyboard event controllers."""
        # Mouse press/release
        click_ctrl = Gtk.GestureClick()
        click_ctrl.set_button(0)  # All buttons
        click_ctrl.connect("pressed", self._on_pressed)
        click_ctrl.connect("released", self._on_released)
        click_ctrl.connect("unpaired-release", self._on_unpaired_release)
        self.add_controller(click_ctrl)

        # Mouse motion
        motion_ctrl = Gtk.EventControllerMotion()
        motion_ctrl.connect("motion", self._on_motion)
        self.add_controller(motion_ctrl)

        # Scroll (zoom)
        scroll_ctrl = Gtk.EventControllerScroll()
        scroll_ctrl.set_flags(Gtk.EventControllerScrollFlags.VERTICAL)
        scroll_ctrl.connect("scroll", self._on_scroll)
        self.add_controller(scroll_ctrl)

        # Keyboard
        key_ctrl = Gtk.EventControllerKey()
        key_ctrl.connect("key-pressed", self._on_key_pressed)
        self.add_controller(key_ctrl)

        # Focus loss commits an open edit
        focus_ctrl = Gtk.EventControllerFocus()
        focus_ctrl.connect("leave", self._on_focus_leave)
        self.add_controller(focus_ctrl)

    # ==================== Notifications ====================

    def _on_state_changed(self, state: MindMapState):
        self.queue_draw()

    def _on_transform_changed(self, transform: ViewTransform):
        if self.on_transform_changed:
            self.on_transform_changed(transform)
        self.queue_draw()

    def _on_edit_changed(self, session: Optional[EditSession]):
        self.queue_draw()

    # ==================== Drawing ====================

    def _on_draw(self, area, cr, width, height):
        """Main drawing function."""
        state = self.store.state
        if not self._centered and width > 0 and height > 0:
            self._centered = True
            root = state.root
            self.transform.center_on(root.position.x, root.position.y, width, height)

        self.painter.draw_background(
            cr, width, height, self.transform,
            self.settings.show_grid, self.settings.grid_size,
        )

        visible = visible_node_ids(state)
        self._measure_and_report(cr, state, visible)

        cr.save()
        cr.translate(self.transform.x, self.transform.y)
        cr.scale(self.transform.scale, self.transform.scale)

        # Connections first (behind nodes)
        for edge in self.router.route(state):
            self.painter.draw_edge(cr, edge)

        edit = self.controller.edit
        for node_id in visible:
            geometry = self.tracker.get(node_id)
            if geometry is not None:
                self.painter.draw_node(cr, state.nodes[node_id], geometry, edit)

        cr.restore()

        if self.settings.show_instructions:
            self.painter.draw_instructions(cr, width, height)

    def _measure_and_report(self, cr, state: MindMapState, visible):
        """Measure visible nodes and report their screen boxes."""
        edit = self.controller.edit
        for node_id in visible:
            node = state.nodes[node_id]
            text = edit.buffer if edit and edit.node_id == node_id else None
            w, h = self.painter.measure(cr, node, text)
            box = Rect(node.position.x, node.position.y, w, h)
            self.tracker.report(node_id, self.transform.rect_to_screen(box))
        self.tracker.prune(visible)

    # ==================== Pointer ====================

    def _on_pressed(self, gesture, n_press, x, y):
        """Handle mouse press."""
        self.grab_focus()
        self.last_mouse_x, self.last_mouse_y = x, y
        if self.controller.pointer_down(x, y, gesture.get_current_button(), n_press):
            gesture.set_state(Gtk.EventSequenceState.CLAIMED)
        self._update_cursor()

    def _on_released(self, gesture, n_press, x, y):
        """Handle mouse release."""
        self.controller.pointer_up(x, y)
        self._update_cursor()

    def _on_unpaired_release(self, gesture, x, y, button, sequence):
        self.controller.pointer_up(x, y)
        self._update_cursor()

    def _on_motion(self, controller, x, y):
        """Handle mouse motion."""
        self.last_mouse_x = x
        self.last_mouse_y = y
        self.controller.pointer_move(x, y)

    def _on_scroll(self, controller, dx, dy):
        """Handle scroll for zooming."""
        return self.controller.wheel(self.last_mouse_x, self.last_mouse_y, dy)

    def _on_focus_leave(self, controller):
        self.controller.commit_edit()

    def _update_cursor(self):
        mode = self.controller.mode
        if mode == PointerMode.DRAGGING:
            self.set_cursor_from_name("grabbing")
        elif mode == PointerMode.PANNING:
            self.set_cursor_from_name("move")
        else:
            self.set_cursor_from_name("default")

    # ==================== Keyboard ====================

    def _on_key_pressed(self, controller, keyval, keycode, state):
        """Handle keyboard input."""
        ctrl = state & Gdk.ModifierType.CONTROL_MASK

        # Editing mode
        if self.controller.edit:
            return self._handle_edit_key(keyval, ctrl)

        if ctrl and keyval in (Gdk.KEY_plus, Gdk.KEY_equal, Gdk.KEY_KP_Add):
            self.zoom_in()
            return True
        elif ctrl and keyval in (Gdk.KEY_minus, Gdk.KEY_KP_Subtract):
            self.zoom_out()
            return True
        elif ctrl and keyval == Gdk.KEY_0:
            self.zoom_to_100()
            return True
        elif ctrl and keyval == Gdk.KEY_f:
            self.zoom_to_fit()
            return True
        elif keyval == Gdk.KEY_Home:
            self.center_view()
            return True

        return False

    def _handle_edit_key(self, keyval, ctrl) -> bool:
        """Handle keyboard input during editing."""
        session = self.controller.edit

        if keyval in (Gdk.KEY_Return, Gdk.KEY_KP_Enter):
            self.controller.commit_edit()
            return True

        elif keyval == Gdk.KEY_Escape:
            self.controller.cancel_edit()
            return True

        elif keyval == Gdk.KEY_BackSpace:
            session.backspace()
            self.queue_draw()
            return True

        elif not ctrl:
            # Insert printable character (supports Unicode)
            uc = Gdk.keyval_to_unicode(keyval)
            if uc and chr(uc).isprintable():
                session.insert(chr(uc))
                self.queue_draw()
                return True

        return False

    # ==================== View ====================

    def _viewport_center(self):
        return self.get_width() / 2, self.get_height() / 2

    def zoom_in(self):
        """Increase zoom level around the viewport centre."""
        cx, cy = self._viewport_center()
        self.transform.zoom_to(self.transform.scale * self.settings.keyboard_zoom_step, cx, cy)

    def zoom_out(self):
        """Decrease zoom level around the viewport centre."""
        cx, cy = self._viewport_center()
        self.transform.zoom_to(self.transform.scale / self.settings.keyboard_zoom_step, cx, cy)

    def zoom_to_100(self):
        """Reset zoom to 100%."""
        cx, cy = self._viewport_center()
        self.transform.zoom_to(1.0, cx, cy)

    def zoom_to_fit(self):
        """Zoom to fit all visible nodes."""
        bounds = self.tracker.bounds(visible_node_ids(self.store.state))
        if bounds is None:
            return
        self.transform.fit(bounds, self.get_width(), self.get_height())

    def center_view(self):
        """Center the view on the root node."""
        state = self.store.state
        geometry = self.tracker.get(state.root_id)
        if geometry is not None:
            cx, cy = geometry.center
        else:
            cx, cy = state.root.position.x, state.root.position.y
        self.transform.center_on(cx, cy, self.get_width(), self.get_height())

    def detach(self):
        """Stop listening to the store and transform."""
        self.controller.commit_edit()
        if self.store.on_state_changed == self._on_state_changed:
            self.store.on_state_changed = None
        self.transform.on_changed = None
        self.controller.on_edit_changed = None
