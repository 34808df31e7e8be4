"""Measured node geometry, kept in canvas-logical coordinates."""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Iterable, Callable, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from mindcanvas.transform import ViewTransform

logger = logging.getLogger(__name__)

# Node control buttons (canvas units)
ADD_BUTTON = "add"
TOGGLE_BUTTON = "toggle"
BUTTON_SIZE = 18.0
BUTTON_GAP = 4.0
BUTTON_MARGIN = 6.0


@dataclass(frozen=True)
class Rect:
    """An axis-aligned box."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def top_center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y)

    @property
    def bottom_center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height)

    def contains_point(self, px: float, py: float) -> bool:
        """Check if a point is inside this box."""
        return (self.x <= px <= self.x + self.width and
                self.y <= py <= self.y + self.height)

    def union(self, other: "Rect") -> "Rect":
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Rect(x, y, max(self.right, other.right) - x, max(self.bottom, other.bottom) - y)


def control_strip_width(has_children: bool) -> float:
    """Horizontal room a node reserves for its buttons."""
    count = 2 if has_children else 1
    return BUTTON_MARGIN * 2 + count * BUTTON_SIZE + (count - 1) * BUTTON_GAP


def control_rects(geometry: Rect, has_children: bool) -> Dict[str, Rect]:
    """Button boxes for a node, right-aligned and vertically centred.

    The add button is always present; the expand/collapse toggle only when
    the node has children.
    """
    top = geometry.y + (geometry.height - BUTTON_SIZE) / 2
    left = geometry.right - BUTTON_MARGIN - BUTTON_SIZE
    rects = {ADD_BUTTON: Rect(left, top, BUTTON_SIZE, BUTTON_SIZE)}
    if has_children:
        left -= BUTTON_SIZE + BUTTON_GAP
        rects[TOGGLE_BUTTON] = Rect(left, top, BUTTON_SIZE, BUTTON_SIZE)
    return rects


class LayoutTracker:
    """Cache of each node's rendered box in canvas coordinates.

    The presentation layer calls ``report`` with a screen-space box whenever
    a node is drawn or its box changes. The box is converted with the inverse
    of the transform current at report time, so an entry can lag one frame
    behind a zoom; consumers treat a missing entry as "not yet measured".
    """

    def __init__(self, transform: "ViewTransform"):
        self.transform = transform
        self._geometry: Dict[str, Rect] = {}

        # Callbacks
        self.on_geometry_changed: Optional[Callable[[str, Rect], None]] = None

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._geometry

    def __len__(self) -> int:
        return len(self._geometry)

    def report(self, node_id: str, screen_box: Rect) -> Rect:
        """Store the canvas-space equivalent of ``screen_box``."""
        geometry = self.transform.rect_to_canvas(screen_box)
        previous = self._geometry.get(node_id)
        self._geometry[node_id] = geometry
        if previous != geometry and self.on_geometry_changed:
            self.on_geometry_changed(node_id, geometry)
        return geometry

    def get(self, node_id: str) -> Optional[Rect]:
        return self._geometry.get(node_id)

    def forget(self, node_id: str):
        self._geometry.pop(node_id, None)

    def prune(self, keep: Iterable[str]):
        """Drop entries for every node not in ``keep``."""
        keep = set(keep)
        stale = [node_id for node_id in self._geometry if node_id not in keep]
        for node_id in stale:
            del self._geometry[node_id]
        if stale:
            logger.debug("Pruned geometry for %d hidden node(s)", len(stale))

    def clear(self):
        self._geometry.clear()

    def node_at(self, cx: float, cy: float, candidates: Iterable[str]) -> Optional[str]:
        """Topmost candidate whose box contains the canvas point.

        ``candidates`` is in paint order, so the last hit wins.
        """
        hit = None
        for node_id in candidates:
            geometry = self._geometry.get(node_id)
            if geometry is not None and geometry.contains_point(cx, cy):
                hit = node_id
        return hit

    def bounds(self, node_ids: Optional[Iterable[str]] = None) -> Optional[Rect]:
        """Smallest box around the given (or all) measured nodes."""
        ids = self._geometry.keys() if node_ids is None else node_ids
        result: Optional[Rect] = None
        for node_id in ids:
            geometry = self._geometry.get(node_id)
            if geometry is None:
                continue
            result = geometry if result is None else result.union(geometry)
        return result
