"""Pan/zoom mapping between screen and canvas coordinates."""

import logging
from typing import Optional, Callable, Tuple

from mindcanvas.layout import Rect

logger = logging.getLogger(__name__)

MIN_SCALE = 0.1
MAX_SCALE = 3.0
ZOOM_STEP = 1.1


class ViewTransform:
    """Affine map ``screen = canvas * scale + (x, y)``.

    Only pan and zoom change it. ``on_changed`` fires after every effective
    change so the presentation layer can re-apply the transform.
    """

    def __init__(self, x: float = 0.0, y: float = 0.0, scale: float = 1.0,
                 min_scale: float = MIN_SCALE, max_scale: float = MAX_SCALE,
                 zoom_step: float = ZOOM_STEP):
        self.min_scale = min_scale
        self.max_scale = max_scale
        self.zoom_step = zoom_step
        self.x = x
        self.y = y
        self.scale = self._clamp(scale)

        # Callbacks
        self.on_changed: Optional[Callable[["ViewTransform"], None]] = None

    def __repr__(self) -> str:
        return f"ViewTransform(x={self.x!r}, y={self.y!r}, scale={self.scale!r})"

    def _clamp(self, scale: float) -> float:
        return max(self.min_scale, min(self.max_scale, scale))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.scale)

    # ==================== Conversions ====================

    def to_screen(self, cx: float, cy: float) -> Tuple[float, float]:
        """Canvas point -> screen point."""
        return (cx * self.scale + self.x, cy * self.scale + self.y)

    def to_canvas(self, sx: float, sy: float) -> Tuple[float, float]:
        """Screen point -> canvas point."""
        return ((sx - self.x) / self.scale, (sy - self.y) / self.scale)

    def rect_to_screen(self, rect: Rect) -> Rect:
        x, y = self.to_screen(rect.x, rect.y)
        return Rect(x, y, rect.width * self.scale, rect.height * self.scale)

    def rect_to_canvas(self, rect: Rect) -> Rect:
        x, y = self.to_canvas(rect.x, rect.y)
        return Rect(x, y, rect.width / self.scale, rect.height / self.scale)

    # ==================== Mutations ====================

    def set_translation(self, x: float, y: float):
        """Place the canvas origin at screen point (x, y)."""
        if (x, y) == (self.x, self.y):
            return
        self.x = x
        self.y = y
        self._notify_changed()

    def pan(self, dx: float, dy: float):
        """Translate by a raw screen delta; scale does not apply."""
        self.set_translation(self.x + dx, self.y + dy)

    def zoom_at(self, screen_x: float, screen_y: float, direction: float) -> bool:
        """Zoom one wheel tick keeping the canvas point under the cursor fixed.

        ``direction`` is the sign of the wheel delta: positive scrolls down and
        zooms out, negative zooms in, zero does nothing. Returns whether the
        scale changed.
        """
        if direction == 0:
            return False
        factor = 1 / self.zoom_step if direction > 0 else self.zoom_step
        return self.zoom_to(self.scale * factor, screen_x, screen_y)

    def zoom_to(self, scale: float, screen_x: float, screen_y: float) -> bool:
        """Set the scale (clamped) around a fixed screen anchor."""
        old_scale = self.scale
        new_scale = self._clamp(scale)
        if new_scale == old_scale:
            return False

        scale_delta = new_scale - old_scale
        self.x -= (screen_x - self.x) * (scale_delta / old_scale)
        self.y -= (screen_y - self.y) * (scale_delta / old_scale)
        self.scale = new_scale
        logger.debug("Zoom %.3f -> %.3f at (%.1f, %.1f)", old_scale, new_scale, screen_x, screen_y)
        self._notify_changed()
        return True

    def center_on(self, cx: float, cy: float, viewport_width: float, viewport_height: float):
        """Pan so canvas point (cx, cy) sits in the middle of the viewport."""
        self.set_translation(
            viewport_width / 2 - cx * self.scale,
            viewport_height / 2 - cy * self.scale,
        )

    def fit(self, bounds: Rect, viewport_width: float, viewport_height: float,
            padding: float = 50.0):
        """Zoom and pan so ``bounds`` fills the viewport, never beyond 100%."""
        if viewport_width <= 0 or viewport_height <= 0:
            return
        if bounds.width <= 0 and bounds.height <= 0:
            return
        map_width = bounds.width + padding * 2
        map_height = bounds.height + padding * 2
        ratios = [1.0]
        if map_width > 0:
            ratios.append(viewport_width / map_width)
        if map_height > 0:
            ratios.append(viewport_height / map_height)
        self.scale = self._clamp(min(ratios))
        cx, cy = bounds.center
        self.x = viewport_width / 2 - cx * self.scale
        self.y = viewport_height / 2 - cy * self.scale
        self._notify_changed()

    def reset(self):
        """Back to identity."""
        self.x = 0.0
        self.y = 0.0
        self.scale = self._clamp(1.0)
        self._notify_changed()

    def _notify_changed(self):
        if self.on_changed:
            self.on_changed(self)
