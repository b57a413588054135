"""
Workers Module - Async Thread Management
========================================
QThread workers for the operations that must not block the UI:

- IngestWorker: watermark file read + classification
- ImageLoadWorker / ImageLoadManager: image read + decode
- SubmitWorker: multipart upload to the scan backend
"""

from .ingest_worker import IngestWorker
from .load_worker import ImageLoadWorker, ImageLoadManager
from .submit_worker import SubmitWorker

__all__ = [
    "IngestWorker",
    "ImageLoadWorker",
    "ImageLoadManager",
    "SubmitWorker",
]
