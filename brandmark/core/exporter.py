"""
Exporter - Canvas To PNG
========================
Reads whatever the Renderer last drew and encodes it as PNG, for saving
to disk or for upload.

Naming:
- Image/Text watermark: <stem of the watermark's filename>.png
  (or the default stem), the extension is always forced to .png
- Passthrough: the original filename and bytes, untouched
"""

import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .renderer import Surface
from .state import CompositionState, PassthroughWatermark, WatermarkDescriptor

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_STEM = "boring-paper-watermarked"
PNG_CONTENT_TYPE = "image/png"


@dataclass(frozen=True)
class ExportPayload:
    filename: str
    data: bytes = field(repr=False)
    content_type: str = PNG_CONTENT_TYPE


def derive_filename(
        descriptor: Optional[WatermarkDescriptor],
        default_stem: str = DEFAULT_EXPORT_STEM
) -> str:
    """Filename an export of this watermark is saved or uploaded under."""
    if isinstance(descriptor, PassthroughWatermark):
        return descriptor.original_filename

    source_name = getattr(descriptor, "source_name", None)
    stem = os.path.splitext(source_name)[0] if source_name else ""
    return f"{stem or default_stem}.png"


class Exporter:
    """
    Serializes the surface.

    Args:
        surface: The canvas the Renderer draws on.
        default_stem: Filename stem used when the watermark has no name.
    """

    def __init__(self, surface: Surface, default_stem: str = DEFAULT_EXPORT_STEM):
        self.surface = surface
        self.default_stem = default_stem

    def rasterize(self) -> bytes:
        """PNG of the current frame; a blank canvas if nothing was rendered."""
        image = self.surface.snapshot()
        buffer = io.BytesIO()
        image.save(buffer, "PNG")
        return buffer.getvalue()

    def to_downloadable_image(self) -> bytes:
        return self.rasterize()

    def to_uploadable_blob(self) -> bytes:
        return self.rasterize()

    def payload(self, state: CompositionState) -> ExportPayload:
        watermark = state.watermark
        if isinstance(watermark, PassthroughWatermark):
            raw = watermark.raw_file
            return ExportPayload(
                filename=watermark.original_filename,
                data=raw.data,
                content_type=raw.content_type or "application/octet-stream",
            )

        return ExportPayload(
            filename=derive_filename(watermark, self.default_stem),
            data=self.to_uploadable_blob(),
        )

    def save_to(self, state: CompositionState, target: Union[str, Path]) -> Path:
        """
        Write the export to disk.

        Args:
            state: Current composition.
            target: A file path, or a directory to save under the
                    derived filename.

        Returns:
            The path written.
        """
        payload = self.payload(state)
        target = Path(target)
        if target.is_dir():
            target = target / payload.filename

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload.data)
        logger.info("Saved %s (%d bytes)", target, len(payload.data))
        return target
