"""Main MindCanvas application."""

import os
import sys
import logging
from typing import Optional

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
gi.require_version("Gdk", "4.0")
from gi.repository import Gtk, Gio, Adw

from mindcanvas import __version__, __app_id__
from mindcanvas.canvas import MindMapCanvas
from mindcanvas.settings import CanvasSettings
from mindcanvas.store import NodeGraphStore
from mindcanvas.transform import ViewTransform

logger = logging.getLogger(__name__)


class MindCanvasWindow(Adw.ApplicationWindow):
    """Main application window."""

    def __init__(self, app: Adw.Application, store: NodeGraphStore,
                 settings: CanvasSettings):
        super().__init__(application=app)
        self.store = store
        self.settings = settings

        # Window setup
        self.set_title("MindCanvas")
        self.set_default_size(1280, 800)

        # Build UI
        self._build_ui()

    def _build_ui(self):
        """Build the main UI layout."""
        main_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)
        main_box.append(self._build_header())

        self.canvas = MindMapCanvas(self.store, self.settings)
        self.canvas.on_transform_changed = self._on_transform_changed

        canvas_frame = Gtk.Frame()
        canvas_frame.set_child(self.canvas)
        canvas_frame.set_vexpand(True)
        main_box.append(canvas_frame)

        self.set_content(main_box)

    def _build_header(self) -> Adw.HeaderBar:
        """Header with zoom controls and the current zoom level."""
        header = Adw.HeaderBar()

        zoom_out_btn = Gtk.Button(icon_name="zoom-out-symbolic")
        zoom_out_btn.set_tooltip_text("Zoom out (Ctrl+-)")
        zoom_out_btn.connect("clicked", lambda *_: self.canvas.zoom_out())
        header.pack_start(zoom_out_btn)

        self.zoom_label = Gtk.Label(label="100%")
        self.zoom_label.set_width_chars(5)
        header.pack_start(self.zoom_label)

        zoom_in_btn = Gtk.Button(icon_name="zoom-in-symbolic")
        zoom_in_btn.set_tooltip_text("Zoom in (Ctrl+=)")
        zoom_in_btn.connect("clicked", lambda *_: self.canvas.zoom_in())
        header.pack_start(zoom_in_btn)

        fit_btn = Gtk.Button(icon_name="zoom-fit-best-symbolic")
        fit_btn.set_tooltip_text("Fit map (Ctrl+F)")
        fit_btn.connect("clicked", lambda *_: self.canvas.zoom_to_fit())
        header.pack_end(fit_btn)

        center_btn = Gtk.Button(icon_name="go-home-symbolic")
        center_btn.set_tooltip_text("Center on root (Home)")
        center_btn.connect("clicked", lambda *_: self.canvas.center_view())
        header.pack_end(center_btn)

        return header

    def _on_transform_changed(self, transform: ViewTransform):
        self.zoom_label.set_label(f"{round(transform.scale * 100)}%")


class MindCanvasApp(Adw.Application):
    """Main application class.

    Owns the single store for the process: created in ``do_startup`` and
    closed in ``do_shutdown``.
    """

    def __init__(self):
        super().__init__(
            application_id=__app_id__,
            flags=Gio.ApplicationFlags.DEFAULT_FLAGS
        )
        self.store: Optional[NodeGraphStore] = None
        self.settings: Optional[CanvasSettings] = None
        self.window: Optional[MindCanvasWindow] = None

    def do_startup(self):
        """Initialize application."""
        Adw.Application.do_startup(self)

        self.settings = CanvasSettings.from_env()
        self.store = NodeGraphStore()
        logger.info("MindCanvas %s started with root %s", __version__, self.store.state.root_id)

    def do_activate(self):
        """Activate application."""
        if not self.window:
            self.window = MindCanvasWindow(self, self.store, self.settings)

        self.window.present()

    def do_shutdown(self):
        """Shutdown application."""
        if self.window:
            self.window.canvas.detach()
        if self.store:
            self.store.close()
            logger.info("MindCanvas stopped with %d node(s)", len(self.store.state.nodes))

        Adw.Application.do_shutdown(self)


def configure_logging():
    """Log to stderr at ``MINDCANVAS_LOG_LEVEL`` (default WARNING)."""
    level_name = os.environ.get("MINDCANVAS_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> int:
    """Application entry point."""
    configure_logging()
    app = MindCanvasApp()
    return app.run(sys.argv)


if __name__ == "__main__":
    sys.exit(main())
