"""Qt widgets of the particle viewer."""

from .drawing_canvas import DrawingCanvas, DrawingDialog
from .view_widget import HoloViewWidget

__all__ = ["DrawingCanvas", "DrawingDialog", "HoloViewWidget"]
