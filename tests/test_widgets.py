"""
Tests for the composition canvas widget.

Run with: python -m pytest tests/test_widgets.py -v
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtCore import QEvent, QPointF, Qt
from PyQt6.QtGui import QMouseEvent
from PyQt6.QtWidgets import QApplication

from brandmark.core.pointer import DragState, PointerController
from brandmark.core.state import CompositionState
from brandmark.ui.widgets import CompositionCanvas

# Global QApplication instance
_app = None


def get_app():
    """Get or create QApplication instance."""
    global _app
    if _app is None:
        _app = QApplication.instance() or QApplication(sys.argv)
    return _app


def mouse_event(kind, x, y, button=Qt.MouseButton.LeftButton,
                buttons=Qt.MouseButton.LeftButton) -> QMouseEvent:
    pos = QPointF(x, y)
    return QMouseEvent(kind, pos, pos, button, buttons, Qt.KeyboardModifier.NoModifier)


@pytest.fixture
def letterboxed_canvas():
    """A 1000x1000 widget showing the 1000x650 frame between y=175 and y=825."""
    get_app()
    state = CompositionState()
    pointer = PointerController(state)
    canvas = CompositionCanvas(1000, 650)
    canvas.resize(1000, 1000)
    canvas.set_pointer_controller(pointer)
    return canvas, pointer, state


def test_view_rect_is_letterboxed(letterboxed_canvas):
    canvas, _, _ = letterboxed_canvas
    view = canvas.view_rect()
    assert (view.left, view.top, view.width, view.height) == pytest.approx((0, 175, 1000, 650))


def test_drag_inside_frame_moves_anchor(letterboxed_canvas):
    canvas, pointer, state = letterboxed_canvas

    canvas.mousePressEvent(mouse_event(QEvent.Type.MouseButtonPress, 500, 500))
    canvas.mouseMoveEvent(mouse_event(QEvent.Type.MouseMove, 250, 500,
                                      button=Qt.MouseButton.NoButton))

    assert pointer.drag_state is DragState.DRAGGING
    assert state.transform.anchor == pytest.approx((0.25, 0.5))

    canvas.mouseReleaseEvent(mouse_event(QEvent.Type.MouseButtonRelease, 250, 500,
                                         buttons=Qt.MouseButton.NoButton))
    assert pointer.drag_state is DragState.IDLE


def test_moving_off_the_frame_ends_drag(letterboxed_canvas):
    canvas, pointer, state = letterboxed_canvas

    canvas.mousePressEvent(mouse_event(QEvent.Type.MouseButtonPress, 500, 500))
    # Above the frame but still inside the widget
    canvas.mouseMoveEvent(mouse_event(QEvent.Type.MouseMove, 500, 100,
                                      button=Qt.MouseButton.NoButton))

    assert pointer.drag_state is DragState.IDLE
    assert state.transform.anchor == pytest.approx((0.5, 0.5))

    # Coming back with the button still held does not resume the drag
    canvas.mouseMoveEvent(mouse_event(QEvent.Type.MouseMove, 100, 500,
                                      button=Qt.MouseButton.NoButton))
    assert state.transform.anchor == pytest.approx((0.5, 0.5))


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
