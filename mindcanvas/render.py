"""Cairo painting for MindCanvas nodes and connectors."""

import html
import math
import os
import re
import logging
from typing import Optional, Tuple

import cairo

from mindcanvas.model import Node, NodeStyle, DEFAULT_BACKGROUND_COLOR
from mindcanvas.layout import (
    Rect, control_rects, control_strip_width, ADD_BUTTON, TOGGLE_BUTTON,
)
from mindcanvas.router import Edge
from mindcanvas.interaction import EditSession

logger = logging.getLogger(__name__)

RGB = Tuple[float, float, float]

_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")

INSTRUCTIONS = (
    "Double-click a node to edit its text",
    "Click and drag nodes to reposition them",
    "Use mouse wheel to zoom in/out",
    "Click and drag the canvas to pan",
    'Click the "+" button to add a child node',
    "Click the arrow icon to expand/collapse children",
)


def parse_color(value: Optional[str], default: RGB) -> RGB:
    """Parse ``#RGB`` or ``#RRGGBB``; anything else gives ``default``."""
    if not value:
        return default
    color = str(value).strip().lstrip('#')
    try:
        if len(color) == 3:
            return tuple(int(c * 2, 16) / 255 for c in color)
        if len(color) == 6:
            return (int(color[0:2], 16) / 255,
                    int(color[2:4], 16) / 255,
                    int(color[4:6], 16) / 255)
    except ValueError:
        pass
    return default


def parse_length(value, default: float) -> float:
    """Parse ``14``, ``14.5`` or ``"14px"``; anything else gives ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().lower()
    if text.endswith("px"):
        text = text[:-2]
    try:
        return float(text)
    except ValueError:
        return default


def is_bold(weight: Optional[str]) -> bool:
    if not weight:
        return False
    weight = str(weight).strip().lower()
    if weight in ("bold", "bolder"):
        return True
    return weight.isdigit() and int(weight) >= 600


def display_text(node: Node) -> str:
    """What the node box shows: rich content flattened to text, else the label."""
    if node.html_content:
        flat = html.unescape(_TAG_RE.sub(" ", node.html_content))
        return _SPACE_RE.sub(" ", flat).strip()
    return node.text


class NodePainter:
    """Measures and paints nodes, connectors and canvas furniture."""

    COLORS = {
        'canvas': (0.973, 0.980, 0.988),        # #F8FAFC
        'grid_dots': (0.886, 0.910, 0.941),     # #E2E8F0
        'text': (0.118, 0.161, 0.231),          # #1E293B
        'border': (0.796, 0.835, 0.882),        # #CBD5E1
        'accent': (0.388, 0.400, 0.945),        # #6366F1
        'button': (0.945, 0.961, 0.976),        # #F1F5F9
        'button_icon': (0.392, 0.455, 0.545),   # #64748B
        'panel': (1.0, 1.0, 1.0),
    }

    FONT_FACE = "Sans"
    FONT_SIZE = 14.0
    NODE_PADDING_X = 14.0
    NODE_PADDING_Y = 10.0
    NODE_MIN_WIDTH = 120.0
    NODE_MAX_WIDTH = 320.0
    NODE_MIN_HEIGHT = 40.0
    BORDER_DASHES = {
        'dashed': [6.0, 4.0],
        'dotted': [2.0, 2.0],
    }

    def _select_font(self, cr, style: NodeStyle):
        weight = cairo.FONT_WEIGHT_BOLD if is_bold(style.font_weight) else cairo.FONT_WEIGHT_NORMAL
        cr.select_font_face(self.FONT_FACE, cairo.FONT_SLANT_NORMAL, weight)
        cr.set_font_size(parse_length(style.font_size, self.FONT_SIZE))

    def measure(self, cr, node: Node, text: Optional[str] = None) -> Tuple[float, float]:
        """Intrinsic box size for ``node`` in canvas units."""
        style = node.style or NodeStyle()
        cr.save()
        self._select_font(cr, style)
        label = display_text(node) if text is None else text
        extents = cr.text_extents(label or " ")
        font_size = parse_length(style.font_size, self.FONT_SIZE)
        cr.restore()

        strip = control_strip_width(bool(node.children_ids))
        width = extents.x_advance + self.NODE_PADDING_X * 2 + strip
        width = max(self.NODE_MIN_WIDTH, min(self.NODE_MAX_WIDTH, width))
        height = max(self.NODE_MIN_HEIGHT, font_size * 1.4 + self.NODE_PADDING_Y * 2)
        return width, height

    # ==================== Canvas furniture ====================

    def draw_background(self, cr, width: float, height: float, transform,
                        show_grid: bool, grid_size: float):
        """Fill the canvas and draw a dot grid that follows pan/zoom."""
        cr.save()
        cr.set_source_rgb(*self.COLORS['canvas'])
        cr.paint()

        effective_grid = grid_size * transform.scale
        if show_grid and effective_grid >= 4:
            cr.set_source_rgb(*self.COLORS['grid_dots'])
            offset_x = transform.x % effective_grid
            offset_y = transform.y % effective_grid
            x = offset_x
            while x < width:
                y = offset_y
                while y < height:
                    cr.arc(x, y, 1.2, 0, 2 * math.pi)
                    cr.fill()
                    y += effective_grid
                x += effective_grid
        cr.restore()

    def draw_instructions(self, cr, width: float, height: float):
        """Gesture help panel in the bottom-left corner (screen space)."""
        line_height = 16
        panel_w = 300
        panel_h = 28 + line_height * len(INSTRUCTIONS)
        x = 12
        y = height - panel_h - 12

        cr.save()
        self._rounded_rect(cr, x, y, panel_w, panel_h, 6)
        cr.set_source_rgba(*self.COLORS['panel'], 0.9)
        cr.fill_preserve()
        cr.set_source_rgb(*self.COLORS['border'])
        cr.set_line_width(1)
        cr.stroke()

        cr.set_source_rgb(*self.COLORS['text'])
        cr.select_font_face(self.FONT_FACE, cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_BOLD)
        cr.set_font_size(12)
        cr.move_to(x + 10, y + 18)
        cr.show_text("Instructions")

        cr.select_font_face(self.FONT_FACE, cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_NORMAL)
        cr.set_font_size(11)
        for i, line in enumerate(INSTRUCTIONS):
            cr.move_to(x + 10, y + 18 + line_height * (i + 1))
            cr.show_text("• " + line)
        cr.restore()

    # ==================== Connectors ====================

    def draw_edge(self, cr, edge: Edge):
        """Stroke a routed connector.

        Cairo only has cubic curves, so the quadratic control point is
        raised to two cubic ones.
        """
        (sx, sy), (qx, qy), (ex, ey) = edge.start, edge.control, edge.end
        c1x = sx + 2 / 3 * (qx - sx)
        c1y = sy + 2 / 3 * (qy - sy)
        c2x = ex + 2 / 3 * (qx - ex)
        c2y = ey + 2 / 3 * (qy - ey)

        cr.save()
        cr.set_source_rgb(*parse_color(edge.color, self.COLORS['border']))
        cr.set_line_width(max(0.0, float(edge.width)))
        cr.set_line_cap(cairo.LINE_CAP_ROUND)
        cr.set_dash(list(edge.dash) if edge.dash else [])
        cr.move_to(sx, sy)
        cr.curve_to(c1x, c1y, c2x, c2y, ex, ey)
        cr.stroke()
        cr.restore()

    # ==================== Nodes ====================

    def draw_node(self, cr, node: Node, geometry: Rect,
                  edit: Optional[EditSession] = None):
        """Paint one node box, its label and its buttons."""
        style = node.style or NodeStyle()
        x, y, w, h = geometry.x, geometry.y, geometry.width, geometry.height
        radius = min(parse_length(style.border_radius, 6.0), h / 2, w / 2)
        is_editing = edit is not None and edit.node_id == node.id

        cr.save()

        # Background
        self._rounded_rect(cr, x, y, w, h, radius)
        bg = parse_color(style.background_color or DEFAULT_BACKGROUND_COLOR, self.COLORS['panel'])
        cr.set_source_rgb(*bg)
        cr.fill_preserve()
        self._paint_background_image(cr, style.background_image, geometry)

        # Border
        if is_editing:
            cr.set_source_rgb(*self.COLORS['accent'])
            cr.set_line_width(max(2.0, parse_length(style.border_width, 1.0)))
            cr.set_dash([])
        else:
            cr.set_source_rgb(*parse_color(style.border_color, self.COLORS['border']))
            cr.set_line_width(max(0.0, parse_length(style.border_width, 1.0)))
            cr.set_dash(self.BORDER_DASHES.get((style.border_style or "").lower(), []))
        cr.stroke()
        cr.set_dash([])

        # Label
        self._select_font(cr, style)
        cr.set_source_rgb(*parse_color(style.color, self.COLORS['text']))
        label = edit.buffer if is_editing else display_text(node)
        max_width = w - self.NODE_PADDING_X * 2 - control_strip_width(bool(node.children_ids))
        shown = label
        extents = cr.text_extents(shown or " ")
        if not is_editing:
            # Truncate text if too long
            while extents.x_advance > max_width and len(shown) > 3:
                shown = shown[:-4] + "..."
                extents = cr.text_extents(shown)
        font_extents = cr.font_extents()
        baseline = y + h / 2 + (font_extents[0] - font_extents[1]) / 2
        text_x = x + self.NODE_PADDING_X
        cr.move_to(text_x, baseline)
        cr.show_text(shown)

        if is_editing:
            # Cursor after the last character
            cursor_x = text_x + cr.text_extents(shown).x_advance + 1
            cr.set_source_rgb(*self.COLORS['accent'])
            cr.set_line_width(1.5)
            cr.move_to(cursor_x, baseline - font_extents[0])
            cr.line_to(cursor_x, baseline + font_extents[1])
            cr.stroke()

        self._draw_controls(cr, node, geometry)
        cr.restore()

    def _draw_controls(self, cr, node: Node, geometry: Rect):
        rects = control_rects(geometry, bool(node.children_ids))
        for name, rect in rects.items():
            self._rounded_rect(cr, rect.x, rect.y, rect.width, rect.height, 4)
            cr.set_source_rgb(*self.COLORS['button'])
            cr.fill()

            cx, cy = rect.center
            arm = rect.width * 0.25
            cr.set_source_rgb(*self.COLORS['button_icon'])
            cr.set_line_width(1.5)
            if name == ADD_BUTTON:
                cr.move_to(cx - arm, cy)
                cr.line_to(cx + arm, cy)
                cr.move_to(cx, cy - arm)
                cr.line_to(cx, cy + arm)
            elif name == TOGGLE_BUTTON:
                if node.is_expanded:
                    # Chevron down
                    cr.move_to(cx - arm, cy - arm / 2)
                    cr.line_to(cx, cy + arm / 2)
                    cr.line_to(cx + arm, cy - arm / 2)
                else:
                    # Chevron right
                    cr.move_to(cx - arm / 2, cy - arm)
                    cr.line_to(cx + arm / 2, cy)
                    cr.line_to(cx - arm / 2, cy + arm)
            cr.stroke()

    def _paint_background_image(self, cr, path: Optional[str], geometry: Rect):
        """Cover the (already pathed) node box with a local PNG, if there is one.

        Expects the node outline as the current path and leaves it in place.
        Anything that is not a readable PNG file is ignored.
        """
        if not path or not path.lower().endswith(".png") or not os.path.isfile(path):
            return
        try:
            image = cairo.ImageSurface.create_from_png(path)
        except (cairo.Error, OSError) as exc:
            logger.debug("Background image %s not loaded: %s", path, exc)
            return
        iw, ih = image.get_width(), image.get_height()
        if iw == 0 or ih == 0:
            return

        scale = max(geometry.width / iw, geometry.height / ih)
        cr.save()
        cr.clip_preserve()
        cr.translate(geometry.x + (geometry.width - iw * scale) / 2,
                     geometry.y + (geometry.height - ih * scale) / 2)
        cr.scale(scale, scale)
        cr.set_source_surface(image, 0, 0)
        cr.paint()
        cr.restore()

    def _rounded_rect(self, cr, x: float, y: float, w: float, h: float, radius: float):
        """Draw a rounded rectangle path."""
        cr.new_path()
        if radius <= 0:
            cr.rectangle(x, y, w, h)
            return
        cr.arc(x + w - radius, y + radius, radius, -math.pi / 2, 0)
        cr.arc(x + w - radius, y + h - radius, radius, 0, math.pi / 2)
        cr.arc(x + radius, y + h - radius, radius, math.pi / 2, math.pi)
        cr.arc(x + radius, y + radius, radius, math.pi, 3 * math.pi / 2)
        cr.close_path()
