"""
Composition State
=================
The single source of truth for one editing session:

    product    - ImageResource for the mockup (owned by product_slot)
    watermark  - one of ImageWatermark / TextWatermark / PassthroughWatermark
    transform  - opacity, scale and anchor

Every mutation clamps its input and notifies subscribers, which re-render.
No history is kept.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

from .resources import ImageResource, Locator, ResourceSlot

OPACITY_RANGE = (0.0, 1.0)
SCALE_RANGE = (0.1, 0.9)
ANCHOR_RANGE = (0.0, 1.0)

DEFAULT_OPACITY = 0.5
DEFAULT_SCALE = 0.3
DEFAULT_ANCHOR = (0.5, 0.5)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


@dataclass(frozen=True)
class Transform:
    """Overlay transform. Values are clamped by CompositionState setters."""
    opacity: float = DEFAULT_OPACITY
    scale: float = DEFAULT_SCALE
    anchor: Tuple[float, float] = DEFAULT_ANCHOR


@dataclass(frozen=True)
class ImageWatermark:
    resource: ImageResource
    source_name: Optional[str] = None


@dataclass(frozen=True)
class TextWatermark:
    content: str
    source_name: Optional[str] = None


@dataclass(frozen=True)
class PassthroughWatermark:
    """A non-raster file uploaded as-is, bypassing compositing."""
    raw_file: object = field(repr=False)  # ingest.UploadedFile
    original_filename: str = ""


WatermarkDescriptor = Union[ImageWatermark, TextWatermark, PassthroughWatermark]


class CompositionState:
    """
    Mutable composition for a session.

    Subscribers are plain callables invoked after every mutation and
    after a resource load is committed.
    """

    def __init__(self):
        self._listeners: List[Callable[[], None]] = []
        self.product_slot = ResourceSlot("product", on_change=self._notify)
        self.watermark_slot = ResourceSlot("watermark", on_change=self._notify)
        self._watermark: Optional[WatermarkDescriptor] = None
        self._transform = Transform()

    # ===== Subscription =====

    def subscribe(self, callback: Callable[[], None]):
        self._listeners.append(callback)

    def _notify(self):
        for callback in list(self._listeners):
            callback()

    # ===== Product =====

    @property
    def product(self) -> Optional[ImageResource]:
        return self.product_slot.resource

    def set_product(self, locator: Locator) -> ImageResource:
        """Point the product at a new source; loading is started by the caller."""
        resource = self.product_slot.assign(locator)
        self._notify()
        return resource

    # ===== Watermark =====

    @property
    def watermark(self) -> Optional[WatermarkDescriptor]:
        return self._watermark

    @property
    def is_passthrough(self) -> bool:
        return isinstance(self._watermark, PassthroughWatermark)

    def set_watermark(self, descriptor: WatermarkDescriptor):
        """
        Replace the watermark.

        Image variants install their resource in the watermark slot; the
        other variants clear it so no image reference survives a switch.
        """
        if isinstance(descriptor, ImageWatermark):
            self.watermark_slot.install(descriptor.resource)
        else:
            self.watermark_slot.clear()
        self._watermark = descriptor
        self._notify()

    def clear_watermark(self):
        self.watermark_slot.clear()
        self._watermark = None
        self._notify()

    # ===== Transform =====

    @property
    def transform(self) -> Transform:
        return self._transform

    def _replace_transform(self, transform: Transform):
        self._transform = transform
        self._notify()

    def set_opacity(self, opacity: float):
        t = self._transform
        self._replace_transform(Transform(clamp(opacity, *OPACITY_RANGE), t.scale, t.anchor))

    def set_scale(self, scale: float):
        t = self._transform
        self._replace_transform(Transform(t.opacity, clamp(scale, *SCALE_RANGE), t.anchor))

    def set_anchor(self, x: float, y: float):
        t = self._transform
        anchor = (clamp(x, *ANCHOR_RANGE), clamp(y, *ANCHOR_RANGE))
        self._replace_transform(Transform(t.opacity, t.scale, anchor))

    def reset_transform(self):
        """Restore the default transform; the watermark is left untouched."""
        self._replace_transform(Transform())
