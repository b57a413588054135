"""
Watermark Ingestion
===================
Classifies an uploaded file into a watermark variant by its extension
alone (lower-cased suffix after the last "."). File contents are never
inspected.

    txt                        -> TextWatermark (UTF-8, stripped)
    jpg jpeg png gif bmp webp svg -> ImageWatermark (loads asynchronously)
    anything else              -> per policy: PassthroughWatermark or rejected

The policy is configuration, not a code path: STRICT rejects unrecognized
files at the input boundary, PERMISSIVE passes them through untouched.
Filename sanitization and size limits are opt-in policy knobs and are
off in both presets.
"""

import logging
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PureWindowsPath
from typing import FrozenSet, Optional, Union

from .resources import BlobHandle, ImageResource
from .state import ImageWatermark, PassthroughWatermark, TextWatermark, WatermarkDescriptor

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "bmp", "webp", "svg"})
TEXT_EXTENSIONS = frozenset({"txt"})


class IngestError(Exception):
    """Base class for files refused at the input boundary."""


class UnsupportedFileError(IngestError):
    pass


class FileTooLargeError(IngestError):
    pass


class FileKind(Enum):
    IMAGE = "image"
    TEXT = "text"
    PASSTHROUGH = "passthrough"
    REJECTED = "rejected"


class UnrecognizedFilePolicy(Enum):
    REJECT = "reject"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class UploadedFile:
    """A file handed to the ingestor: client-declared name plus bytes."""
    name: str
    data: bytes = field(repr=False)
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "UploadedFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), content_type=content_type)

    @property
    def size(self) -> int:
        return len(self.data)


def file_extension(filename: str) -> str:
    """Lower-cased suffix after the last '.', or '' if there is none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def sanitize_filename(filename: str, fallback: str = "upload") -> str:
    """Keep only the final path component of a client-declared name."""
    name = PureWindowsPath(filename).name
    if name in ("", ".", ".."):
        return fallback
    return name


@dataclass(frozen=True)
class IngestionPolicy:
    """
    Which files are accepted and what happens to unrecognized ones.

    Attributes:
        name: Preset name ("strict" / "permissive").
        image_extensions: Extensions composited as images.
        text_extensions: Extensions read as text watermarks.
        fallback: What to do with any other extension.
        sanitize_filenames: Strip directory components from filenames.
        max_file_size: Reject files larger than this many bytes.
    """
    name: str
    image_extensions: FrozenSet[str] = IMAGE_EXTENSIONS
    text_extensions: FrozenSet[str] = TEXT_EXTENSIONS
    fallback: UnrecognizedFilePolicy = UnrecognizedFilePolicy.PASSTHROUGH
    sanitize_filenames: bool = False
    max_file_size: Optional[int] = None

    @property
    def accepts_any_file(self) -> bool:
        return self.fallback is UnrecognizedFilePolicy.PASSTHROUGH

    def file_dialog_filter(self) -> str:
        """Accept set for the file input, in Qt file dialog syntax."""
        if self.accepts_any_file:
            return "All files (*)"
        patterns = " ".join(
            f"*.{ext}" for ext in sorted(self.image_extensions | self.text_extensions)
        )
        return f"Images and text ({patterns})"

    @classmethod
    def named(cls, name: str) -> "IngestionPolicy":
        presets = {STRICT.name: STRICT, PERMISSIVE.name: PERMISSIVE}
        try:
            return presets[name.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown ingestion policy {name!r} (expected one of: {', '.join(presets)})"
            ) from None


STRICT = IngestionPolicy(name="strict", fallback=UnrecognizedFilePolicy.REJECT)
PERMISSIVE = IngestionPolicy(name="permissive", fallback=UnrecognizedFilePolicy.PASSTHROUGH)


class WatermarkIngestor:
    """Turns uploaded files into watermark descriptors under a policy."""

    def __init__(self, policy: IngestionPolicy = STRICT):
        self.policy = policy

    def classify(self, filename: str) -> FileKind:
        ext = file_extension(filename)
        if ext in self.policy.text_extensions:
            return FileKind.TEXT
        if ext in self.policy.image_extensions:
            return FileKind.IMAGE
        if self.policy.accepts_any_file:
            return FileKind.PASSTHROUGH
        return FileKind.REJECTED

    def ingest(self, file: UploadedFile) -> WatermarkDescriptor:
        """
        Classify a file and build its watermark descriptor.

        Raises:
            UnsupportedFileError: If the policy rejects the extension.
            FileTooLargeError: If the policy's size limit is exceeded.
        """
        limit = self.policy.max_file_size
        if limit is not None and file.size > limit:
            raise FileTooLargeError(
                f"{file.name} is {file.size} bytes; the limit is {limit} bytes"
            )

        name = sanitize_filename(file.name) if self.policy.sanitize_filenames else file.name
        kind = self.classify(file.name)
        logger.info("Ingesting %s as %s (%s policy)", file.name, kind.value, self.policy.name)

        if kind is FileKind.TEXT:
            # utf-8-sig drops a leading BOM like a browser text reader does
            content = file.data.decode("utf-8-sig", errors="replace").strip()
            return TextWatermark(content=content, source_name=name)

        if kind is FileKind.IMAGE:
            resource = ImageResource(BlobHandle(data=file.data, name=name))
            return ImageWatermark(resource=resource, source_name=name)

        if kind is FileKind.PASSTHROUGH:
            return PassthroughWatermark(raw_file=file, original_filename=name)

        ext = file_extension(file.name)
        reason = f".{ext} files" if ext else "files without an extension"
        raise UnsupportedFileError(f"{reason} are not accepted: {file.name}")
