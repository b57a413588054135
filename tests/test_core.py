"""
Tests for the compositing engine: state, resource slots, renderer and
pointer controller.

Run with: python -m pytest tests/test_core.py -v
"""

import sys
import time
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest
from PIL import Image

from brandmark.core.ingest import UploadedFile, WatermarkIngestor
from brandmark.core.pointer import DragState, PointerController, ViewRect, normalize_point
from brandmark.core.renderer import (
    CANVAS_HEIGHT, CANVAS_WIDTH, Renderer, Surface, compute_font_size, compute_image_box
)
from brandmark.core.resources import BlobHandle, ResourceSlot
from brandmark.core.state import (
    CompositionState, PassthroughWatermark, TextWatermark, Transform
)


def create_test_image(width: int = 200, height: int = 120) -> Image.Image:
    """Create a simple test image with gradient."""
    xs = np.linspace(0, 255, width, dtype=np.uint8)
    ys = np.linspace(0, 255, height, dtype=np.uint8)
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[..., 0] = xs[np.newaxis, :]
    arr[..., 1] = ys[:, np.newaxis]
    arr[..., 2] = 128
    return Image.fromarray(arr, mode="RGB")


def solid(color, size=(100, 50)) -> Image.Image:
    return Image.new("RGBA", size, color)


def ready_state(product: Image.Image = None) -> CompositionState:
    """State whose product has finished loading."""
    state = CompositionState()
    state.set_product("product.png")
    if product is None:
        product = create_test_image()
    state.product_slot.complete("product.png", product)
    return state


# ===== Resource slots =====

def test_stale_load_is_discarded():
    slot = ResourceSlot("product")
    first = slot.assign("a.png")
    second = slot.assign("b.png")

    assert not slot.complete("a.png", solid((255, 0, 0, 255)))
    assert not first.ready
    assert not second.ready

    assert slot.complete("b.png", solid((0, 0, 255, 255)))
    assert second.ready
    assert slot.resource is second


def test_completion_notifies_only_when_committed():
    calls = []
    slot = ResourceSlot("watermark", on_change=lambda: calls.append(1))
    slot.assign("a.png")
    slot.assign("b.png")

    slot.complete("a.png", solid((0, 0, 0, 255)))
    assert calls == []

    slot.complete("b.png", solid((0, 0, 0, 255)))
    assert calls == [1]


def test_failed_load_leaves_resource_not_ready():
    slot = ResourceSlot("watermark")
    resource = slot.assign("broken.png")

    assert slot.fail("broken.png", "cannot identify image file")
    assert not resource.ready
    assert resource.error == "cannot identify image file"
    assert not slot.fail("other.png", "stale")


def test_blob_handles_compare_by_key():
    a = BlobHandle(data=b"same", name="logo.png")
    b = BlobHandle(data=b"same", name="logo.png")
    assert a != b
    assert a == a
    assert str(a).startswith("blob:")


def test_cleared_slot_rejects_late_completion():
    slot = ResourceSlot("watermark")
    slot.assign("logo.png")
    slot.clear()
    assert not slot.complete("logo.png", solid((0, 0, 0, 255)))
    assert slot.resource is None


# ===== Composition state =====

def test_transform_is_clamped_on_mutation():
    state = CompositionState()

    state.set_opacity(1.7)
    state.set_scale(0.01)
    state.set_anchor(-3, 42)
    assert state.transform == Transform(opacity=1.0, scale=0.1, anchor=(0.0, 1.0))

    state.set_opacity(-0.2)
    state.set_scale(5)
    assert state.transform.opacity == 0.0
    assert state.transform.scale == 0.9


def test_reset_restores_defaults_and_keeps_watermark():
    state = CompositionState()
    watermark = TextWatermark(content="Sample Co.")
    state.set_watermark(watermark)
    state.set_opacity(0.9)
    state.set_scale(0.8)
    state.set_anchor(0.1, 0.2)

    state.reset_transform()

    assert state.transform == Transform(opacity=0.5, scale=0.3, anchor=(0.5, 0.5))
    assert state.watermark is watermark


def test_every_mutation_notifies():
    state = CompositionState()
    calls = []
    state.subscribe(lambda: calls.append(1))

    state.set_opacity(0.4)
    state.set_scale(0.5)
    state.set_anchor(0.2, 0.2)
    state.reset_transform()
    state.set_watermark(TextWatermark(content="x"))
    state.set_product("p.png")

    assert len(calls) == 6


def test_text_watermark_clears_image_resource():
    state = CompositionState()
    ingestor = WatermarkIngestor()

    image = ingestor.ingest(UploadedFile("logo.png", b"\x89PNG"))
    state.set_watermark(image)
    assert state.watermark_slot.resource is image.resource

    state.set_watermark(ingestor.ingest(UploadedFile("brand.txt", b"Brand")))
    assert state.watermark_slot.resource is None
    # A late decode of the old logo must not resurrect it
    assert not state.watermark_slot.complete(image.resource.locator, solid((0, 0, 0, 255)))


# ===== Renderer =====

@pytest.mark.parametrize("canvas_width", [50, 320, 1000])
@pytest.mark.parametrize("scale", [0.1, 0.25, 0.3, 0.5, 0.75, 0.9])
def test_image_box_width_and_aspect(scale, canvas_width):
    natural = (300, 120)
    left, top, width, height = compute_image_box(scale, (0.5, 0.5), (canvas_width, 650), natural)

    assert width == pytest.approx(min(canvas_width, max(16, scale * canvas_width)))
    assert height / width == pytest.approx(natural[1] / natural[0])
    assert left + width / 2 == pytest.approx(canvas_width / 2)
    assert top + height / 2 == pytest.approx(325)


def test_image_box_minimum_width():
    _, _, width, _ = compute_image_box(0.1, (0.5, 0.5), (100, 100), (10, 10))
    assert width == 16


def test_font_size_has_floor():
    assert compute_font_size(0.3, 1000) == pytest.approx(15.0)
    assert compute_font_size(0.1, 1000) == 12


def test_render_without_product_is_noop():
    surface = Surface()
    renderer = Renderer(surface)
    state = CompositionState()
    state.set_watermark(TextWatermark(content="Sample Co."))

    assert renderer.render(state) is None
    assert not surface.has_frame

    state.set_product("slow.png")  # still loading
    assert renderer.render(state) is None
    assert not surface.has_frame


def test_product_is_stretched_to_canvas():
    surface = Surface()
    state = ready_state(solid((255, 0, 0, 255), size=(30, 90)))

    Renderer(surface).render(state)

    arr = np.asarray(surface.snapshot())
    assert arr.shape == (CANVAS_HEIGHT, CANVAS_WIDTH, 4)
    assert tuple(arr[0, 0]) == (255, 0, 0, 255)
    assert tuple(arr[-1, -1]) == (255, 0, 0, 255)


def test_image_watermark_composited_with_opacity():
    surface = Surface()
    state = ready_state(solid((255, 0, 0, 255)))
    watermark = WatermarkIngestor().ingest(UploadedFile("logo.png", b"unused"))
    state.set_watermark(watermark)
    state.watermark_slot.complete(watermark.resource.locator, solid((0, 0, 255, 255), size=(40, 20)))

    placement = Renderer(surface).render(state)

    assert placement.kind == "image"
    assert (placement.left, placement.top) == pytest.approx((350, 250))
    assert (placement.width, placement.height) == pytest.approx((300, 150))

    arr = np.asarray(surface.snapshot()).astype(int)
    r, g, b, a = arr[325, 500]
    assert abs(r - 127) <= 2 and g == 0 and abs(b - 128) <= 2 and a == 255
    # Outside the box the product is untouched
    assert tuple(arr[325, 340]) == (255, 0, 0, 255)


def test_image_watermark_not_ready_draws_nothing():
    surface = Surface()
    state = ready_state(solid((255, 0, 0, 255)))
    state.set_watermark(WatermarkIngestor().ingest(UploadedFile("logo.webp", b"")))

    assert Renderer(surface).render(state) is None
    assert surface.has_frame
    assert np.all(np.asarray(surface.snapshot())[..., 0] == 255)


def test_text_watermark_end_to_end():
    surface = Surface()
    state = ready_state(solid((40, 40, 40, 255)))

    descriptor = WatermarkIngestor().ingest(UploadedFile("brand.txt", b"  Sample Co.  "))
    assert descriptor == TextWatermark(content="Sample Co.", source_name="brand.txt")
    state.set_watermark(descriptor)

    placement = Renderer(surface).render(state)

    assert placement.kind == "text"
    assert placement.text == "Sample Co."
    assert placement.center == pytest.approx((500, 325))
    assert placement.opacity == 0.5
    assert placement.font_size == pytest.approx(15.0)

    arr = np.asarray(surface.snapshot()).astype(int)
    region = arr[
        int(placement.top) - 2:int(placement.top + placement.height) + 3,
        int(placement.left) - 2:int(placement.left + placement.width) + 3,
        0
    ]
    assert region.max() > 100  # light fill
    assert region.min() < 35   # dark stroke


def test_empty_text_and_passthrough_draw_only_product():
    surface = Surface()
    renderer = Renderer(surface)
    state = ready_state(solid((10, 200, 10, 255)))

    state.set_watermark(TextWatermark(content=""))
    assert renderer.render(state) is None

    state.set_watermark(PassthroughWatermark(
        raw_file=UploadedFile("report.pdf", b"%PDF"), original_filename="report.pdf"
    ))
    assert renderer.render(state) is None
    assert np.all(np.asarray(surface.snapshot())[..., 1] == 200)


def test_render_is_idempotent():
    surface = Surface()
    renderer = Renderer(surface)
    state = ready_state()
    state.set_watermark(TextWatermark(content="Sample Co."))

    renderer.render(state)
    first = surface.snapshot().tobytes()
    renderer.render(state)
    assert surface.snapshot().tobytes() == first
    assert surface.frame_count == 2


def test_stretched_product_is_reused_until_product_changes():
    surface = Surface()
    renderer = Renderer(surface)
    state = ready_state(solid((255, 0, 0, 255)))
    state.set_watermark(TextWatermark(content="Sample Co."))

    renderer.render(state)
    base = renderer.cached_base
    state.set_anchor(0.2, 0.3)
    renderer.render(state)
    assert renderer.cached_base is base

    state.set_product("other.png")
    state.product_slot.complete("other.png", solid((0, 0, 255, 255)))
    renderer.render(state)

    assert renderer.cached_base is not base
    assert tuple(np.asarray(surface.snapshot())[0, 0]) == (0, 0, 255, 255)


def test_drag_over_large_product_stays_interactive():
    surface = Surface()
    renderer = Renderer(surface)
    state = ready_state(Image.new("RGB", (6000, 4000), (90, 90, 90)))
    state.set_watermark(TextWatermark(content="Sample Co."))
    state.subscribe(lambda: renderer.render(state))
    renderer.render(state)

    pointer = PointerController(state)
    rect = ViewRect(left=0, top=0, width=CANVAS_WIDTH, height=CANVAS_HEIGHT)
    pointer.pointer_down(500, 325, rect)

    start = time.perf_counter()
    for step in range(20):
        pointer.pointer_move(100 + step * 40, 200 + step * 10, rect)
    per_move = (time.perf_counter() - start) / 20

    assert per_move < 0.1
    assert state.transform.anchor == pytest.approx((0.86, 390 / CANVAS_HEIGHT))


# ===== Pointer controller =====

RECT = ViewRect(left=0, top=0, width=200, height=100)


def test_move_before_down_is_ignored():
    state = CompositionState()
    pointer = PointerController(state)

    assert not pointer.pointer_move(10, 10, RECT)
    assert state.transform.anchor == (0.5, 0.5)
    assert pointer.drag_state is DragState.IDLE


def test_drag_commits_anchor_and_up_returns_to_idle():
    state = CompositionState()
    pointer = PointerController(state)

    pointer.pointer_down(50, 25, RECT)
    assert pointer.drag_state is DragState.DRAGGING
    assert state.transform.anchor == (0.25, 0.25)

    assert pointer.pointer_move(150, 75, RECT)
    assert state.transform.anchor == (0.75, 0.75)
    assert pointer.session.commits == 2

    pointer.pointer_up()
    assert pointer.drag_state is DragState.IDLE
    assert pointer.session is None
    assert not pointer.pointer_move(0, 0, RECT)
    assert state.transform.anchor == (0.75, 0.75)


def test_leave_ends_drag():
    state = CompositionState()
    pointer = PointerController(state)
    pointer.pointer_down(100, 50, RECT)
    pointer.pointer_leave()

    assert not pointer.pointer_move(10, 10, RECT)
    assert state.transform.anchor == (0.5, 0.5)


@pytest.mark.parametrize("x, y", [(-500, -500), (10_000, 50), (100, -1), (201, 101), (-0.1, 1e9)])
def test_anchor_always_within_unit_square(x, y):
    state = CompositionState()
    pointer = PointerController(state)
    pointer.pointer_down(x, y, RECT)
    pointer.pointer_move(x * 2, y * 3, RECT)

    ax, ay = state.transform.anchor
    assert 0.0 <= ax <= 1.0
    assert 0.0 <= ay <= 1.0


def test_normalization_uses_displayed_rect():
    # Canvas shown at half size, offset inside its widget
    rect = ViewRect(left=10, top=20, width=500, height=325)
    assert normalize_point(260, 182.5, rect) == pytest.approx((0.5, 0.5))
    assert normalize_point(10, 20, rect) == (0.0, 0.0)


def test_degenerate_rect_does_not_divide_by_zero():
    assert normalize_point(5, 5, ViewRect(0, 0, 0, 0)) == (0.0, 0.0)


def test_view_rect_contains_edges_only():
    rect = ViewRect(left=0, top=175, width=1000, height=650)
    assert rect.contains(0, 175)
    assert rect.contains(1000, 825)
    assert not rect.contains(500, 174)
    assert not rect.contains(1001, 500)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
