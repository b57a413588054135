"""
UI Module - User Interface Components
=====================================
PyQt6 widgets for the watermark preview.

- widgets.py: CompositionCanvas, NoWheelSlider, PIL -> QPixmap
- main_window.py: Main application window
"""

from .main_window import MainWindow
from .widgets import CompositionCanvas, NoWheelSlider, pil_image_to_qpixmap

__all__ = [
    "CompositionCanvas",
    "NoWheelSlider",
    "pil_image_to_qpixmap",
    "MainWindow",
]
