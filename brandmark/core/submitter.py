"""
Submitter - Multipart Upload To The Scan Backend
================================================
POSTs the export as multipart/form-data:

    file            - PNG export, or the raw file for passthrough
    scanProtection  - "true" / "false"

The endpoint depends on the protection toggle. A 2xx response's JSON
body is returned verbatim as the scan result; anything else is an
UploadError. Only one submission may be in flight at a time.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .exporter import ExportPayload, Exporter
from .state import CompositionState

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
PROTECTED_UPLOAD_PATH = "/api/sdk/upload"
UNPROTECTED_UPLOAD_PATH = "/api/sdk/upload/unprotected"
DEFAULT_TIMEOUT = 30.0


class UploadError(Exception):
    """A submission failed; the message is shown to the user as-is."""


class SubmissionInProgressError(UploadError):
    pass


@dataclass(frozen=True)
class ScanResult:
    payload: Any
    endpoint: str
    status_code: int
    filename: str
    protection_enabled: bool

    def pretty(self) -> str:
        return json.dumps(self.payload, indent=2, ensure_ascii=False)


class Submitter:
    """
    Sends exports to the backend.

    Args:
        exporter: Produces the payload for a composition.
        base_url: Backend origin.
        protected_path: Endpoint used when scan protection is on.
        unprotected_path: Endpoint used when it is off.
        timeout: Request timeout in seconds.
        client: Optional preconfigured httpx.Client (its base_url is used).
    """

    def __init__(
            self,
            exporter: Exporter,
            base_url: str = DEFAULT_BASE_URL,
            protected_path: str = PROTECTED_UPLOAD_PATH,
            unprotected_path: str = UNPROTECTED_UPLOAD_PATH,
            timeout: float = DEFAULT_TIMEOUT,
            client: Optional[httpx.Client] = None
    ):
        self.exporter = exporter
        self.protected_path = protected_path
        self.unprotected_path = unprotected_path
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def endpoint_for(self, protection_enabled: bool) -> str:
        return self.protected_path if protection_enabled else self.unprotected_path

    def submit(self, state: CompositionState, protection_enabled: bool) -> ScanResult:
        """Export the composition and upload it."""
        return self.send(self.exporter.payload(state), protection_enabled)

    def send(self, payload: ExportPayload, protection_enabled: bool) -> ScanResult:
        """
        Upload a prepared payload.

        Raises:
            SubmissionInProgressError: If another submission is running.
            UploadError: On transport failure, non-2xx status or a
                         response body that is not JSON.
        """
        if self._in_flight:
            raise SubmissionInProgressError("A submission is already in progress")

        endpoint = self.endpoint_for(protection_enabled)
        files = {"file": (payload.filename, payload.data, payload.content_type)}
        data = {"scanProtection": "true" if protection_enabled else "false"}

        self._in_flight = True
        try:
            logger.info("Uploading %s (%d bytes) to %s",
                        payload.filename, len(payload.data), endpoint)
            try:
                response = self._client.post(endpoint, files=files, data=data)
            except httpx.HTTPError as e:
                logger.error("Upload to %s failed: %s", endpoint, e)
                raise UploadError(f"Upload failed: {e}") from e

            if not response.is_success:
                logger.error("Upload to %s returned HTTP %d", endpoint, response.status_code)
                raise UploadError(f"Upload failed (HTTP {response.status_code})")

            try:
                result = response.json()
            except ValueError as e:
                raise UploadError("Upload failed: response was not valid JSON") from e

            logger.info("Upload accepted by %s (HTTP %d)", endpoint, response.status_code)
            return ScanResult(
                payload=result,
                endpoint=endpoint,
                status_code=response.status_code,
                filename=payload.filename,
                protection_enabled=protection_enabled,
            )
        finally:
            self._in_flight = False

    def close(self):
        self._client.close()
