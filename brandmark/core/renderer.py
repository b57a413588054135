"""
Watermark Renderer
==================
Turns a CompositionState into pixels on a fixed-size Surface using PIL.

Algorithm (every call recomputes the whole frame):
1. If the product is not ready, do nothing (the previous frame remains).
2. Clear the surface and stretch the product to exactly fill it.
   The product's own aspect ratio is NOT preserved.
3. Draw the watermark on a transparent overlay centered at the anchor:
   - Image: width = max(16, min(W, scale * W)), height keeps the
     watermark's intrinsic aspect ratio
   - Text: font size = max(12, W * scale * 0.05), white fill with a
     black stroke, centered on both axes
   - Passthrough: nothing
4. Scale the overlay's alpha by the opacity and alpha-composite it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .resources import ImageResource
from .state import CompositionState, ImageWatermark, TextWatermark

CANVAS_WIDTH = 1000
CANVAS_HEIGHT = 650

MIN_WATERMARK_WIDTH = 16
MIN_FONT_SIZE = 12
FONT_SCALE_FACTOR = 0.05

TEXT_FILL = (255, 255, 255, 255)
TEXT_STROKE = (0, 0, 0, 255)
TEXT_STROKE_WIDTH = 2

# Tried in order when no font path is configured
FALLBACK_FONTS = (
    "arial.ttf",
    "Arial.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "DejaVuSans.ttf",
)


class Surface:
    """
    The shared canvas: an RGBA image of fixed logical size.

    Only the Renderer writes to it. Readers take a snapshot().
    """

    def __init__(self, width: int = CANVAS_WIDTH, height: int = CANVAS_HEIGHT):
        self.width = width
        self.height = height
        self.image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        self.frame_count = 0

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def has_frame(self) -> bool:
        return self.frame_count > 0

    def clear(self):
        self.image = Image.new("RGBA", self.size, (0, 0, 0, 0))

    def snapshot(self) -> Image.Image:
        return self.image.copy()


@dataclass(frozen=True)
class Placement:
    """Where and how the overlay was drawn in the last frame."""
    kind: str  # "image" or "text"
    left: float
    top: float
    width: float
    height: float
    center: Tuple[float, float]
    opacity: float
    font_size: Optional[float] = None
    text: Optional[str] = None


def compute_image_box(
        scale: float,
        anchor: Tuple[float, float],
        canvas_size: Tuple[int, int],
        natural_size: Tuple[int, int]
) -> Tuple[float, float, float, float]:
    """
    Compute the watermark rectangle for the image variant.

    Returns:
        (left, top, width, height) in canvas pixels.
    """
    canvas_w, canvas_h = canvas_size
    natural_w, natural_h = natural_size

    target_w = max(MIN_WATERMARK_WIDTH, min(canvas_w, canvas_w * scale))
    target_h = target_w * (natural_h / natural_w)

    cx = anchor[0] * canvas_w
    cy = anchor[1] * canvas_h
    return cx - target_w / 2, cy - target_h / 2, target_w, target_h


def compute_font_size(scale: float, canvas_width: int) -> float:
    return max(MIN_FONT_SIZE, canvas_width * scale * FONT_SCALE_FACTOR)


def _apply_opacity(layer: Image.Image, opacity: float) -> Image.Image:
    """Multiply the layer's alpha channel by opacity (0..1)."""
    alpha = layer.getchannel("A").point(lambda a: int(round(a * opacity)))
    layer.putalpha(alpha)
    return layer


class _ResizeCache:
    """
    One resized copy of a resource's image.

    Valid while the same resource still holds the same decoded image and
    the requested size is unchanged.
    """

    def __init__(self):
        self._resource: Optional[ImageResource] = None
        self._source: Optional[Image.Image] = None
        self._size: Optional[Tuple[int, int]] = None
        self.image: Optional[Image.Image] = None

    def get(self, resource: ImageResource, size: Tuple[int, int]) -> Image.Image:
        # identity checks: Image.__eq__ would compare every pixel
        if (self.image is None or self._resource is not resource
                or self._source is not resource.image or self._size != size):
            self.image = resource.image.convert("RGBA").resize(size, Image.Resampling.LANCZOS)
            self._resource = resource
            self._source = resource.image
            self._size = size
        return self.image


class Renderer:
    """
    Renderer bound to one Surface.

    The overlay is recomposed from the state on every call. Only the
    resized product and watermark pixels are cached, so dragging over a
    full-resolution photo does not resample it on every pointer move.

    Args:
        surface: The canvas to draw on.
        font_path: Optional TTF used for text watermarks.
    """

    def __init__(self, surface: Surface, font_path: Optional[str] = None):
        self.surface = surface
        self._font_path = font_path
        self._cached_fonts: dict[int, ImageFont.ImageFont] = {}
        self._base_cache = _ResizeCache()
        self._mark_cache = _ResizeCache()

    @property
    def cached_base(self) -> Optional[Image.Image]:
        """The stretched product from the last render, if any."""
        return self._base_cache.image

    def _get_font(self, size: int):
        if size not in self._cached_fonts:
            candidates = list(FALLBACK_FONTS)
            if self._font_path and Path(self._font_path).exists():
                candidates.insert(0, self._font_path)

            font = None
            for candidate in candidates:
                try:
                    font = ImageFont.truetype(candidate, size)
                    break
                except OSError:
                    continue
            if font is None:
                font = ImageFont.load_default(size)
            self._cached_fonts[size] = font

        return self._cached_fonts[size]

    def render(self, state: CompositionState) -> Optional[Placement]:
        """
        Redraw the surface from the current state.

        Returns:
            The overlay placement, or None if no overlay was drawn.
        """
        product = state.product
        if product is None or not product.ready:
            return None

        surface = self.surface
        surface.clear()
        surface.image.paste(self._base_cache.get(product, surface.size), (0, 0))

        placement = None
        watermark = state.watermark
        if isinstance(watermark, ImageWatermark):
            placement = self._draw_image(watermark.resource, state)
        elif isinstance(watermark, TextWatermark):
            placement = self._draw_text(watermark.content, state)
        # Passthrough: the UI explains there is no preview

        surface.frame_count += 1
        return placement

    def _draw_image(self, resource: ImageResource, state: CompositionState) -> Optional[Placement]:
        if not resource.ready:
            return None

        t = state.transform
        left, top, width, height = compute_image_box(
            t.scale, t.anchor, self.surface.size,
            (resource.natural_width, resource.natural_height)
        )

        mark = self._mark_cache.get(
            resource, (max(1, int(round(width))), max(1, int(round(height))))
        )
        layer = Image.new("RGBA", self.surface.size, (0, 0, 0, 0))
        layer.paste(mark, (int(round(left)), int(round(top))), mark)
        self._composite(layer, t.opacity)

        return Placement(
            kind="image",
            left=left, top=top, width=width, height=height,
            center=(left + width / 2, top + height / 2),
            opacity=t.opacity,
        )

    def _draw_text(self, content: str, state: CompositionState) -> Optional[Placement]:
        if not content:
            return None

        t = state.transform
        font_size = compute_font_size(t.scale, self.surface.width)
        font = self._get_font(int(round(font_size)))

        cx = t.anchor[0] * self.surface.width
        cy = t.anchor[1] * self.surface.height

        layer = Image.new("RGBA", self.surface.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        bbox = draw.textbbox((0, 0), content, font=font, stroke_width=TEXT_STROKE_WIDTH)
        x = cx - (bbox[0] + bbox[2]) / 2
        y = cy - (bbox[1] + bbox[3]) / 2

        # stroke first, fill on top
        draw.text((x, y), content, font=font, fill=TEXT_FILL,
                  stroke_width=TEXT_STROKE_WIDTH, stroke_fill=TEXT_STROKE)
        self._composite(layer, t.opacity)

        width = bbox[2] - bbox[0]
        height = bbox[3] - bbox[1]
        return Placement(
            kind="text",
            left=cx - width / 2, top=cy - height / 2, width=width, height=height,
            center=(cx, cy),
            opacity=t.opacity,
            font_size=font_size,
            text=content,
        )

    def _composite(self, layer: Image.Image, opacity: float):
        _apply_opacity(layer, opacity)
        self.surface.image = Image.alpha_composite(self.surface.image, layer)
