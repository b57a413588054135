"""
BrandMark Studio - Main Entry Point
===================================
Preview a brand watermark on a product mockup and export or submit it.

Usage:
    python main.py --product "Paper Stack=images/paper_products.png"
    python main.py --policy permissive --api-base http://localhost:8000

Architecture:
    - Model: brandmark/core/ (state, renderer, ingestion, export, upload)
    - View: brandmark/ui/ (PyQt6 interface)
    - Controller: This file (signal/slot connections)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import QApplication

from brandmark import __app_name__, __version__
from brandmark.config import AppConfig
from brandmark.core import (
    CompositionState, Exporter, PointerController, Renderer,
    Submitter, Surface, WatermarkIngestor, derive_filename
)
from brandmark.core.resources import describe_locator
from brandmark.core.state import ImageWatermark, PassthroughWatermark
from brandmark.core.submitter import DEFAULT_BASE_URL, ScanResult
from brandmark.ui import MainWindow
from brandmark.workers import ImageLoadManager, IngestWorker, SubmitWorker

logger = logging.getLogger(__name__)

EMPTY_HINT = "Upload a watermark image or text file to begin"
PASSTHROUGH_HINT = "No preview available for {name}; the raw file will be uploaded as-is"


class WatermarkController:
    """
    Controller connecting the window to the compositing engine.

    Responsibilities:
    - Own the CompositionState and re-render on every change
    - Start image loads and uploads on worker threads
    - Translate window requests into state mutations
    """

    def __init__(self, main_window: MainWindow, config: AppConfig):
        self.window = main_window
        self.config = config

        self.state = CompositionState()
        self.surface = Surface(config.canvas_width, config.canvas_height)
        self.renderer = Renderer(self.surface, font_path=config.font_path)
        self.exporter = Exporter(self.surface, default_stem=config.export_default_stem)
        self.submitter = Submitter(
            self.exporter,
            base_url=config.api_base_url,
            protected_path=config.protected_path,
            unprotected_path=config.unprotected_path,
            timeout=config.request_timeout,
        )
        self.ingestor = WatermarkIngestor(config.ingestion_policy)
        self.pointer = PointerController(self.state)
        self.loader = ImageLoadManager(timeout=config.request_timeout)

        # Worker references (to prevent garbage collection)
        self._submit_worker: Optional[SubmitWorker] = None
        self._ingest_workers: list[IngestWorker] = []
        self._ingest_request = 0
        self._ingest_name = ""

        self.state.subscribe(self._render)
        self.window.canvas.set_pointer_controller(self.pointer)
        self._connect_signals()
        self._render()

        if config.products:
            self._on_product_selected(config.products[0].locator)

    def _connect_signals(self):
        self.window.watermark_file_selected.connect(self._on_watermark_file)
        self.window.product_selected.connect(self._on_product_selected)
        self.window.scale_changed.connect(self.state.set_scale)
        self.window.opacity_changed.connect(self.state.set_opacity)
        self.window.reset_requested.connect(self.state.reset_transform)
        self.window.download_requested.connect(self._on_download)
        self.window.submit_requested.connect(self._on_submit)
        self.loader.load_failed.connect(self._on_load_failed)

    # ===== Rendering =====

    def _render(self):
        self.renderer.render(self.state)
        self.window.set_frame(self.surface.snapshot())
        self.window.set_transform(self.state.transform)
        self.window.set_canvas_message(self._canvas_message())
        self.window.set_suggested_filename(
            derive_filename(self.state.watermark, self.config.export_default_stem)
        )

    def _canvas_message(self) -> Optional[str]:
        watermark = self.state.watermark
        if isinstance(watermark, PassthroughWatermark):
            return PASSTHROUGH_HINT.format(name=watermark.original_filename)
        if self.state.product is None:
            return "Choose a product mockup"
        if watermark is None:
            return EMPTY_HINT
        return None

    # ===== Inputs =====

    def _on_product_selected(self, locator):
        self.state.set_product(locator)
        self.loader.load(self.state.product_slot)

    def _on_watermark_file(self, path: Path):
        self._ingest_request += 1
        self._ingest_name = path.name
        worker = IngestWorker(self.ingestor, path, self._ingest_request)
        worker.ingested.connect(self._on_watermark_ingested)
        worker.rejected.connect(self._on_watermark_rejected)
        worker.failed.connect(self._on_watermark_read_failed)
        worker.finished.connect(lambda: self._on_ingest_finished(worker))
        self._ingest_workers.append(worker)

        self.window.show_message(f"Reading {path.name}...")
        worker.start()

    def _on_watermark_ingested(self, request_id: int, descriptor):
        if request_id != self._ingest_request:
            return  # superseded by a newer selection

        self.state.set_watermark(descriptor)
        if isinstance(descriptor, ImageWatermark):
            self.loader.load(self.state.watermark_slot)
        self.window.show_message(f"Watermark: {self._ingest_name}")

    def _on_watermark_rejected(self, request_id: int, message: str):
        if request_id == self._ingest_request:
            self.window.show_error("Unsupported file", message)

    def _on_watermark_read_failed(self, request_id: int, message: str):
        if request_id == self._ingest_request:
            self.window.show_error("Could not read file", message)

    def _on_ingest_finished(self, worker: IngestWorker):
        if worker in self._ingest_workers:
            self._ingest_workers.remove(worker)
            worker.deleteLater()

    def _on_load_failed(self, slot_name: str, message: str):
        resource = getattr(self.state, f"{slot_name}_slot").resource
        name = describe_locator(resource.locator) if resource is not None else slot_name
        self.window.show_message(f"Could not load {name}: {message}", 5000)

    # ===== Outputs =====

    def _on_download(self, path: Path):
        try:
            written = self.exporter.save_to(self.state, path)
        except OSError as e:
            self.window.show_error("Download failed", str(e))
            return
        self.window.show_message(f"Saved {written}", 5000)

    def _on_submit(self, protection_enabled: bool):
        if self._submit_worker is not None:
            return

        self.window.clear_submit_feedback()
        payload = self.exporter.payload(self.state)

        self._submit_worker = SubmitWorker(self.submitter, payload, protection_enabled)
        self._submit_worker.succeeded.connect(self._on_submit_succeeded)
        self._submit_worker.failed.connect(self._on_submit_failed)
        self._submit_worker.finished.connect(self._on_submit_finished)

        self.window.set_submitting(True)
        self.window.show_message(f"Uploading {payload.filename}...")
        self._submit_worker.start()

    def _on_submit_succeeded(self, result: ScanResult):
        self.window.show_submit_success(result.pretty())
        self.window.show_message("Uploaded successfully", 5000)

    def _on_submit_failed(self, message: str):
        self.window.show_submit_error(message)

    def _on_submit_finished(self):
        self.window.set_submitting(False)
        if self._submit_worker:
            self._submit_worker.deleteLater()
            self._submit_worker = None

    def shutdown(self):
        for worker in list(self._ingest_workers):
            worker.wait()
        self.loader.wait_all()
        if self._submit_worker is not None:
            self._submit_worker.wait()
        self.submitter.close()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Preview a brand watermark on a product mockup.",
    )
    parser.add_argument(
        "--policy",
        choices=["strict", "permissive"],
        default="strict",
        help="Watermark file policy: strict rejects unrecognized files, "
             "permissive uploads them as-is (default: strict).",
    )
    parser.add_argument(
        "--api-base",
        default=DEFAULT_BASE_URL,
        help="Scan backend origin (default: %(default)s).",
    )
    parser.add_argument(
        "--product",
        action="append",
        default=[],
        metavar="[LABEL=]PATH",
        help="Product mockup image; repeat to offer several.",
    )
    parser.add_argument(
        "--font",
        default=None,
        help="TTF font for text watermarks.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def main():
    """Application entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = AppConfig.from_options(
        policy=args.policy,
        api_base_url=args.api_base,
        products=args.product,
        font_path=args.font,
    )
    logger.info("Starting %s %s (%s policy, backend %s)", __app_name__, __version__,
                config.ingestion_policy.name, config.api_base_url)

    app = QApplication(sys.argv)
    app.setApplicationName(__app_name__)
    app.setApplicationVersion(__version__)

    window = MainWindow(config)
    controller = WatermarkController(window, config)
    app.aboutToQuit.connect(controller.shutdown)

    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
