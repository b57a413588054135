"""
Submit Worker - Async Upload
============================
QThread worker running one Submitter.send() call so the UI stays
responsive while the backend scans the file.

The payload is built on the GUI thread before the worker starts; the
worker never touches CompositionState or the canvas.
"""

import logging

from PyQt6.QtCore import QThread, pyqtSignal

from brandmark.core.exporter import ExportPayload
from brandmark.core.submitter import Submitter, UploadError

logger = logging.getLogger(__name__)


class SubmitWorker(QThread):
    """
    Worker thread for a single submission.

    Signals:
        succeeded(ScanResult): Backend accepted the upload
        failed(str): Human-readable failure message
    """

    succeeded = pyqtSignal(object)
    failed = pyqtSignal(str)

    def __init__(self, submitter: Submitter, payload: ExportPayload,
                 protection_enabled: bool, parent=None):
        super().__init__(parent)
        self.submitter = submitter
        self.payload = payload
        self.protection_enabled = protection_enabled

    def run(self):
        try:
            result = self.submitter.send(self.payload, self.protection_enabled)
        except UploadError as e:
            self.failed.emit(str(e))
        except Exception as e:
            logger.exception("Unexpected error uploading %s", self.payload.filename)
            self.failed.emit(f"Upload failed: {e}")
        else:
            self.succeeded.emit(result)
