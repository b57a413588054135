"""
Ingest Worker - Async Watermark File Read
=========================================
QThread worker that reads a chosen watermark file and classifies it with
the WatermarkIngestor off the UI thread.

Each worker carries the request id it was started for; the controller
drops results for anything but its latest request.
"""

import logging
from pathlib import Path

from PyQt6.QtCore import QThread, pyqtSignal

from brandmark.core.ingest import IngestError, UploadedFile, WatermarkIngestor

logger = logging.getLogger(__name__)


class IngestWorker(QThread):
    """
    Worker thread for a single watermark file.

    Signals:
        ingested(int, descriptor): File read and classified
        rejected(int, str): The ingestion policy refused the file
        failed(int, str): The file could not be read
    """

    ingested = pyqtSignal(int, object)
    rejected = pyqtSignal(int, str)
    failed = pyqtSignal(int, str)

    def __init__(self, ingestor: WatermarkIngestor, path: Path,
                 request_id: int = 0, parent=None):
        super().__init__(parent)
        self.ingestor = ingestor
        self.path = Path(path)
        self.request_id = request_id

    def run(self):
        try:
            descriptor = self.ingestor.ingest(UploadedFile.from_path(self.path))
        except IngestError as e:
            self.rejected.emit(self.request_id, str(e))
        except OSError as e:
            self.failed.emit(self.request_id, str(e))
        except Exception as e:
            logger.exception("Unexpected error reading %s", self.path)
            self.failed.emit(self.request_id, f"Read failed: {e}")
        else:
            self.ingested.emit(self.request_id, descriptor)
