"""Shared fixtures for the MindCanvas test suite."""

import pytest

from mindcanvas.layout import LayoutTracker, Rect
from mindcanvas.store import NodeGraphStore, IdAllocator
from mindcanvas.transform import ViewTransform


NODE_WIDTH = 150.0
NODE_HEIGHT = 40.0


@pytest.fixture
def store():
    """A store holding only the root, with predictable ids (t-1, t-2, ...)."""
    return NodeGraphStore(id_allocator=IdAllocator(prefix="t"))


@pytest.fixture
def transform():
    return ViewTransform()


@pytest.fixture
def tracker(transform):
    return LayoutTracker(transform)


@pytest.fixture
def measure(store, tracker):
    """Report a fixed-size box at every node's stored position, as a draw pass would."""
    def _measure(width=NODE_WIDTH, height=NODE_HEIGHT):
        for node in store.state.nodes.values():
            box = Rect(node.position.x, node.position.y, width, height)
            tracker.report(node.id, tracker.transform.rect_to_screen(box))
    return _measure
