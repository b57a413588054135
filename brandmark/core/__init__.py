"""
Core Module - Compositing Engine
================================
This module contains no UI dependencies.
State, rendering, pointer handling, ingestion, export and upload live here.
"""

from .exporter import Exporter, ExportPayload, derive_filename
from .ingest import (
    IngestionPolicy, WatermarkIngestor, UploadedFile,
    IngestError, UnsupportedFileError, FileTooLargeError,
    STRICT, PERMISSIVE
)
from .pointer import PointerController, ViewRect, DragState
from .renderer import Renderer, Surface, Placement
from .resources import BlobHandle, ImageResource, ResourceSlot, load_image
from .state import (
    CompositionState, Transform,
    ImageWatermark, TextWatermark, PassthroughWatermark
)
from .submitter import Submitter, ScanResult, UploadError, SubmissionInProgressError

__all__ = [
    # State
    "CompositionState",
    "Transform",
    "ImageWatermark",
    "TextWatermark",
    "PassthroughWatermark",
    # Resources
    "BlobHandle",
    "ImageResource",
    "ResourceSlot",
    "load_image",
    # Rendering
    "Renderer",
    "Surface",
    "Placement",
    # Pointer
    "PointerController",
    "ViewRect",
    "DragState",
    # Ingestion
    "IngestionPolicy",
    "WatermarkIngestor",
    "UploadedFile",
    "IngestError",
    "UnsupportedFileError",
    "FileTooLargeError",
    "STRICT",
    "PERMISSIVE",
    # Export / upload
    "Exporter",
    "ExportPayload",
    "derive_filename",
    "Submitter",
    "ScanResult",
    "UploadError",
    "SubmissionInProgressError",
]
