"""
BrandMark Studio Package
========================
Preview a brand watermark on a product mockup, position and scale it,
then download the result or submit it to the scan backend.

Modules:
    - core: Compositing engine (no UI dependencies)
    - workers: QThread workers for image loading and upload
    - ui: PyQt6 user interface components

Usage:
    from brandmark.core import CompositionState, Renderer, Surface
    from brandmark.workers import ImageLoadManager, SubmitWorker
    from brandmark.ui import MainWindow
"""

__version__ = "1.0.0"
__app_name__ = "BrandMark Studio"

from .config import AppConfig, ProductOption
# Core exports
from .core import (
    CompositionState, Transform, Renderer, Surface, PointerController,
    WatermarkIngestor, IngestionPolicy, Exporter, Submitter
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Config
    "AppConfig",
    "ProductOption",

    # Core
    "CompositionState",
    "Transform",
    "Renderer",
    "Surface",
    "PointerController",
    "WatermarkIngestor",
    "IngestionPolicy",
    "Exporter",
    "Submitter",
]
