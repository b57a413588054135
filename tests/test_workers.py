"""
Tests for worker threads.

Run with: python -m pytest tests/test_workers.py -v
"""

import io
import os
import sys
import time
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import httpx
import pytest
from PIL import Image
from PyQt6.QtCore import QEventLoop, QTimer
from PyQt6.QtWidgets import QApplication

from brandmark.core.exporter import ExportPayload, Exporter
from brandmark.core.ingest import PERMISSIVE, STRICT, WatermarkIngestor
from brandmark.core.renderer import Surface
from brandmark.core.resources import BlobHandle, ResourceSlot
from brandmark.core.state import TextWatermark
from brandmark.core.submitter import Submitter
from brandmark.workers import ImageLoadManager, ImageLoadWorker, IngestWorker, SubmitWorker
from brandmark.workers import load_worker

# Global QApplication instance
_app = None


def get_app():
    """Get or create QApplication instance."""
    global _app
    if _app is None:
        _app = QApplication.instance() or QApplication(sys.argv)
    return _app


def png_bytes(size=(40, 20), color=(0, 0, 255, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, "PNG")
    return buffer.getvalue()


def wait_for_signal(signal, trigger, timeout_ms: int = 10000):
    """
    Connect to a Qt signal, run trigger(), then wait for the emission.

    Returns:
        The emitted arguments as a tuple, or None on timeout.
    """
    get_app()
    loop = QEventLoop()
    result = [None]

    def on_signal(*args):
        result[0] = args
        loop.quit()

    signal.connect(on_signal)

    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(loop.quit)
    timer.start(timeout_ms)

    trigger()
    loop.exec()
    timer.stop()

    return result[0]


def test_load_worker_decodes_blob():
    get_app()
    slot = ResourceSlot("watermark")
    locator = BlobHandle(data=png_bytes(), name="logo.png")
    worker = ImageLoadWorker(slot, locator)

    emitted = wait_for_signal(worker.loaded, worker.start)
    worker.wait()

    assert emitted is not None, "Worker timed out"
    emitted_slot, emitted_locator, image = emitted
    assert emitted_slot is slot
    assert emitted_locator == locator
    assert image.size == (40, 20)


def test_load_worker_reports_decode_failure():
    get_app()
    slot = ResourceSlot("watermark")
    worker = ImageLoadWorker(slot, BlobHandle(data=b"<svg/>", name="logo.svg"))

    emitted = wait_for_signal(worker.failed, worker.start)
    worker.wait()

    assert emitted is not None, "Worker timed out"
    assert emitted[1].name == "logo.svg"
    assert emitted[2]


def test_manager_commits_current_load(tmp_path):
    app = get_app()
    path = tmp_path / "product.png"
    path.write_bytes(png_bytes(size=(64, 32)))

    notified = []
    slot = ResourceSlot("product", on_change=lambda: notified.append(True))
    resource = slot.assign(str(path))
    manager = ImageLoadManager()

    assert manager.load(slot) is not None
    manager.wait_all()
    app.processEvents()

    assert resource.ready
    assert (resource.natural_width, resource.natural_height) == (64, 32)
    assert notified == [True]
    assert manager.pending == 0


def test_manager_discards_superseded_load():
    app = get_app()
    slot = ResourceSlot("watermark")
    old = slot.assign(BlobHandle(data=png_bytes(), name="old.png"))
    manager = ImageLoadManager()

    worker = manager.load(slot)
    newer = slot.assign(BlobHandle(data=b"", name="new.png"))  # superseded before completion

    worker.wait()
    app.processEvents()

    assert slot.resource is newer
    assert not newer.ready
    assert not old.ready


def test_manager_skips_ready_or_empty_slots():
    get_app()
    manager = ImageLoadManager()
    slot = ResourceSlot("product")
    assert manager.load(slot) is None

    slot.assign("x.png")
    slot.complete("x.png", Image.new("RGB", (2, 2)))
    assert manager.load(slot) is None


def test_wait_all_blocks_until_slow_load_finishes(monkeypatch):
    get_app()

    def slow_load(locator, timeout=30.0):
        time.sleep(0.5)
        return Image.new("RGB", (8, 8))

    monkeypatch.setattr(load_worker, "load_image", slow_load)
    slot = ResourceSlot("product")
    slot.assign("https://cdn.test/mockup.png")
    manager = ImageLoadManager()

    worker = manager.load(slot)
    manager.wait_all()

    assert worker.isFinished()
    assert not worker.isRunning()


def test_ingest_worker_reads_text_file(tmp_path):
    get_app()
    path = tmp_path / "brand.txt"
    path.write_bytes(b"  Sample Co.\n")
    worker = IngestWorker(WatermarkIngestor(STRICT), path, request_id=7)

    emitted = wait_for_signal(worker.ingested, worker.start)
    worker.wait()

    assert emitted is not None, "Worker timed out"
    assert emitted == (7, TextWatermark(content="Sample Co.", source_name="brand.txt"))


def test_ingest_worker_reports_rejection_and_read_errors(tmp_path):
    get_app()
    path = tmp_path / "payload.exe"
    path.write_bytes(b"MZ")

    worker = IngestWorker(WatermarkIngestor(STRICT), path, request_id=1)
    emitted = wait_for_signal(worker.rejected, worker.start)
    worker.wait()
    assert emitted is not None, "Worker timed out"
    assert emitted[0] == 1
    assert ".exe" in emitted[1]

    worker = IngestWorker(WatermarkIngestor(PERMISSIVE), tmp_path / "missing.pdf", request_id=2)
    emitted = wait_for_signal(worker.failed, worker.start)
    worker.wait()
    assert emitted is not None, "Worker timed out"
    assert emitted[0] == 2


def test_submit_worker_success_and_failure():
    get_app()

    def handler(request):
        if request.url.path.endswith("/unprotected"):
            return httpx.Response(502)
        return httpx.Response(200, json={"status": "clean"})

    client = httpx.Client(base_url="http://scanner.test", transport=httpx.MockTransport(handler))
    submitter = Submitter(Exporter(Surface()), client=client)
    payload = ExportPayload(filename="brand.png", data=png_bytes())

    worker = SubmitWorker(submitter, payload, protection_enabled=True)
    emitted = wait_for_signal(worker.succeeded, worker.start)
    worker.wait()
    assert emitted is not None, "Worker timed out"
    assert emitted[0].payload == {"status": "clean"}

    worker = SubmitWorker(submitter, payload, protection_enabled=False)
    emitted = wait_for_signal(worker.failed, worker.start)
    worker.wait()
    assert emitted == ("Upload failed (HTTP 502)",)
    assert not submitter.in_flight


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
