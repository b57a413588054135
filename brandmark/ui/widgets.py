"""
Widgets
=======
Reusable UI components:

- CompositionCanvas: displays the rendered surface and feeds pointer
  events to a PointerController
- NoWheelSlider: slider that ignores stray wheel events
- pil_image_to_qpixmap: PIL -> Qt conversion
"""

from typing import Optional

from PIL import Image
from PyQt6.QtCore import Qt, QRectF
from PyQt6.QtGui import QColor, QImage, QMouseEvent, QPainter, QPen, QPixmap, QWheelEvent
from PyQt6.QtWidgets import QSizePolicy, QSlider, QWidget

from brandmark.core.pointer import DragState, PointerController, ViewRect


def pil_image_to_qpixmap(pil_image: Image.Image) -> QPixmap:
    """
    Convert PIL Image to QPixmap.

    The QImage is copied so it owns its data after the PIL buffer is freed.
    """
    if pil_image.mode != "RGBA":
        pil_image = pil_image.convert("RGBA")

    data = pil_image.tobytes("raw", "RGBA")
    qimage = QImage(
        data,
        pil_image.width,
        pil_image.height,
        pil_image.width * 4,  # bytes per line
        QImage.Format.Format_RGBA8888
    )
    return QPixmap.fromImage(qimage.copy())


class NoWheelSlider(QSlider):
    """Slider that ignores wheel events unless explicitly focused."""

    def __init__(self, orientation=Qt.Orientation.Horizontal, parent=None):
        super().__init__(orientation, parent)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def wheelEvent(self, event: QWheelEvent):
        if self.hasFocus():
            super().wheelEvent(event)
        else:
            event.ignore()


class CompositionCanvas(QWidget):
    """
    Preview of the composition surface.

    The frame is drawn aspect-fit and centered; view_rect() is that
    on-screen rectangle, which is what pointer positions are normalized
    against.
    """

    BACKGROUND = QColor("#1A1B26")
    BORDER = QColor("#3B4261")
    HINT = QColor("#A9B1D6")

    def __init__(self, canvas_width: int, canvas_height: int,
                 parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._canvas_size = (canvas_width, canvas_height)
        self._pixmap: Optional[QPixmap] = None
        self._message: Optional[str] = None
        self._pointer: Optional[PointerController] = None

        self.setObjectName("compositionCanvas")
        self.setMinimumSize(480, 312)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMouseTracking(True)
        self.setCursor(Qt.CursorShape.SizeAllCursor)

    def set_pointer_controller(self, controller: PointerController):
        self._pointer = controller

    def set_frame(self, image: Image.Image):
        self._pixmap = pil_image_to_qpixmap(image)
        self.update()

    def set_message(self, message: Optional[str]):
        """Overlay hint drawn over the frame (None hides it)."""
        self._message = message
        self.update()

    def view_rect(self) -> ViewRect:
        canvas_w, canvas_h = self._canvas_size
        scale = min(self.width() / canvas_w, self.height() / canvas_h)
        w, h = canvas_w * scale, canvas_h * scale
        return ViewRect((self.width() - w) / 2, (self.height() - h) / 2, w, h)

    # ===== Pointer events =====

    def mousePressEvent(self, event: QMouseEvent):
        if self._pointer is not None and event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._pointer.pointer_down(pos.x(), pos.y(), self.view_rect())
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent):
        if self._pointer is not None:
            pos = event.position()
            view = self.view_rect()
            # The frame may be letterboxed; leaving it counts as leaving the canvas
            if (self._pointer.drag_state is DragState.DRAGGING
                    and not view.contains(pos.x(), pos.y())):
                self._pointer.pointer_leave()
            else:
                self._pointer.pointer_move(pos.x(), pos.y(), view)
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent):
        if self._pointer is not None and event.button() == Qt.MouseButton.LeftButton:
            self._pointer.pointer_up()
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event):
        if self._pointer is not None:
            self._pointer.pointer_leave()
        super().leaveEvent(event)

    # ===== Painting =====

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        painter.fillRect(self.rect(), self.BACKGROUND)

        view = self.view_rect()
        target = QRectF(view.left, view.top, view.width, view.height)
        if self._pixmap is not None and not self._pixmap.isNull():
            painter.drawPixmap(target, self._pixmap, QRectF(self._pixmap.rect()))

        pen = QPen(self.BORDER)
        pen.setWidth(1)
        painter.setPen(pen)
        painter.drawRect(target.adjusted(0.5, 0.5, -0.5, -0.5))

        if self._message:
            painter.fillRect(target, QColor(0, 0, 0, 110))
            painter.setPen(self.HINT)
            font = painter.font()
            font.setPointSize(12)
            painter.setFont(font)
            flags = Qt.AlignmentFlag.AlignCenter.value | Qt.TextFlag.TextWordWrap.value
            painter.drawText(target, flags, self._message)

        painter.end()
