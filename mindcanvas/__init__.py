"""MindCanvas: an interactive mind map on an infinite pan/zoom canvas."""

__version__ = "1.0.0"
__app_id__ = "io.github.mindcanvas"
