"""
Image Resources - Owned Slots With Stale-Load Guard
===================================================
An ImageResource is a handle to one image (product or watermark) that
becomes ready once its pixels have been decoded.

Loading is asynchronous (see workers/load_worker.py). A ResourceSlot owns
the current resource and only accepts a completed load when the load was
started for the locator the slot still holds, so a slow load for an old
source can never overwrite a newer one.

Locators:
    - str / Path: a local file
    - "http://..." / "https://...": fetched with httpx
    - BlobHandle: bytes already in memory (an uploaded file)
"""

import io
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

import httpx
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobHandle:
    """In-memory image bytes, identified by a unique key."""
    data: bytes = field(repr=False, compare=False)
    name: str = field(default="", compare=False)
    key: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __str__(self) -> str:
        return f"blob:{self.key}"


Locator = Union[str, Path, BlobHandle]


def describe_locator(locator: Locator) -> str:
    """Short human-readable form of a locator for logs and messages."""
    if isinstance(locator, BlobHandle):
        return locator.name or str(locator)
    return str(locator)


def read_locator(locator: Locator, timeout: float = 30.0) -> bytes:
    """
    Read the raw bytes behind a locator.

    Raises:
        OSError: If a local file cannot be read.
        httpx.HTTPError: If a remote fetch fails.
    """
    if isinstance(locator, BlobHandle):
        return locator.data

    text = str(locator)
    if text.startswith(("http://", "https://")):
        response = httpx.get(text, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
        return response.content

    return Path(locator).read_bytes()


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into a fully loaded PIL image.

    Raises:
        OSError: If Pillow cannot identify or decode the data.
    """
    image = Image.open(io.BytesIO(data))
    image.load()
    # Phone photos store rotation in EXIF instead of the pixels
    return ImageOps.exif_transpose(image)


def load_image(locator: Locator, timeout: float = 30.0) -> Image.Image:
    """Read and decode the image behind a locator."""
    return decode_image(read_locator(locator, timeout=timeout))


class ImageResource:
    """
    Handle to an image that may still be loading.

    Not-ready resources are valid: renderers treat them as
    "nothing to draw".
    """

    def __init__(self, locator: Locator):
        self.locator = locator
        self.image: Optional[Image.Image] = None
        self.error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.image is not None

    @property
    def natural_width(self) -> int:
        return self.image.width if self.image is not None else 0

    @property
    def natural_height(self) -> int:
        return self.image.height if self.image is not None else 0

    def __repr__(self) -> str:
        state = "ready" if self.ready else "pending"
        return f"ImageResource({describe_locator(self.locator)!r}, {state})"


class ResourceSlot:
    """
    Owner of at most one ImageResource.

    Args:
        name: Slot name used in log messages ("product", "watermark").
        on_change: Called after a load is committed to this slot.
    """

    def __init__(self, name: str, on_change: Optional[Callable[[], None]] = None):
        self.name = name
        self._resource: Optional[ImageResource] = None
        self._on_change = on_change

    @property
    def resource(self) -> Optional[ImageResource]:
        return self._resource

    @property
    def locator(self) -> Optional[Locator]:
        return self._resource.locator if self._resource is not None else None

    def assign(self, locator: Locator) -> ImageResource:
        """Supersede the current resource with a new, not-ready one."""
        self._resource = ImageResource(locator)
        return self._resource

    def install(self, resource: ImageResource):
        """Adopt a resource created elsewhere (e.g. by the ingestor)."""
        self._resource = resource

    def clear(self):
        self._resource = None

    def _is_current(self, locator: Locator) -> bool:
        return self._resource is not None and self._resource.locator == locator

    def complete(self, locator: Locator, image: Image.Image) -> bool:
        """
        Commit a finished load.

        Returns:
            True if committed, False if the load was stale.
        """
        if not self._is_current(locator):
            logger.debug(
                "Discarding stale %s load for %s", self.name, describe_locator(locator)
            )
            return False

        self._resource.image = image
        self._resource.error = None
        logger.debug("%s ready: %s %dx%d", self.name, describe_locator(locator),
                     image.width, image.height)
        if self._on_change is not None:
            self._on_change()
        return True

    def fail(self, locator: Locator, message: str) -> bool:
        """Record a failed load; the resource stays not-ready."""
        if not self._is_current(locator):
            logger.debug(
                "Ignoring stale %s failure for %s", self.name, describe_locator(locator)
            )
            return False

        self._resource.error = message
        logger.warning("Could not load %s %s: %s", self.name,
                       describe_locator(locator), message)
        return True
