"""
Load Worker - Async Image Decoding
==================================
QThread worker that reads and decodes one image locator off the UI
thread, and a manager that routes the result back into the ResourceSlot
it was started for.

The slot decides whether the result is still wanted (stale-load guard),
so the manager never cancels workers: a superseded load simply finishes
and is discarded.
"""

import logging
from typing import Optional

import httpx
from PyQt6.QtCore import QObject, QThread, pyqtSignal

from brandmark.core.resources import Locator, ResourceSlot, describe_locator, load_image

logger = logging.getLogger(__name__)


class ImageLoadWorker(QThread):
    """
    Worker thread decoding a single image.

    Signals:
        loaded(ResourceSlot, locator, PIL.Image): Decode succeeded
        failed(ResourceSlot, locator, str): Read or decode failed
    """

    loaded = pyqtSignal(object, object, object)
    failed = pyqtSignal(object, object, str)

    def __init__(self, slot: ResourceSlot, locator: Locator,
                 timeout: float = 30.0, parent=None):
        super().__init__(parent)
        self.slot = slot
        self.locator = locator
        self.timeout = timeout

    def run(self):
        try:
            image = load_image(self.locator, timeout=self.timeout)
        except (OSError, ValueError, httpx.HTTPError) as e:
            self.failed.emit(self.slot, self.locator, str(e))
            return
        except Exception as e:
            logger.exception("Unexpected error loading %s", describe_locator(self.locator))
            self.failed.emit(self.slot, self.locator, f"Load failed: {e}")
            return

        self.loaded.emit(self.slot, self.locator, image)


class ImageLoadManager(QObject):
    """
    Starts load workers and commits their results on the GUI thread.

    Signals:
        load_failed(str, str): (slot name, message) for the current resource
    """

    load_failed = pyqtSignal(str, str)

    def __init__(self, timeout: float = 30.0, parent=None):
        super().__init__(parent)
        self._timeout = timeout
        # Worker references (to prevent garbage collection)
        self._workers: list[ImageLoadWorker] = []

    @property
    def pending(self) -> int:
        return len(self._workers)

    def load(self, slot: ResourceSlot) -> Optional[ImageLoadWorker]:
        """Start loading the slot's current resource, if any."""
        resource = slot.resource
        if resource is None or resource.ready:
            return None

        worker = ImageLoadWorker(slot, resource.locator, self._timeout)
        worker.loaded.connect(self._on_loaded)
        worker.failed.connect(self._on_failed)
        worker.finished.connect(self._on_worker_finished)
        self._workers.append(worker)

        logger.debug("Loading %s: %s", slot.name, describe_locator(resource.locator))
        worker.start()
        return worker

    def _on_loaded(self, slot: ResourceSlot, locator, image):
        slot.complete(locator, image)

    def _on_failed(self, slot: ResourceSlot, locator, message: str):
        if slot.fail(locator, message):
            self.load_failed.emit(slot.name, message)

    def _on_worker_finished(self):
        worker = self.sender()
        if worker in self._workers:
            self._workers.remove(worker)
            worker.deleteLater()

    def wait_all(self):
        """
        Block until running workers finish (used on shutdown).

        Waits without a deadline; remote loads are bounded by the request
        timeout. A QThread destroyed while running aborts the process.
        """
        for worker in list(self._workers):
            worker.wait()
