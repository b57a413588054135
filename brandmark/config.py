"""
Application Configuration
=========================
Everything a session is configured with. Nothing is read from the
environment and nothing is persisted; main.py builds this from
command-line flags.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .core.exporter import DEFAULT_EXPORT_STEM
from .core.ingest import STRICT, IngestionPolicy
from .core.renderer import CANVAS_HEIGHT, CANVAS_WIDTH
from .core.resources import Locator
from .core.submitter import (
    DEFAULT_BASE_URL, DEFAULT_TIMEOUT, PROTECTED_UPLOAD_PATH, UNPROTECTED_UPLOAD_PATH
)


@dataclass(frozen=True)
class ProductOption:
    """A product mockup offered in the picker."""
    label: str
    locator: Locator

    @classmethod
    def parse(cls, spec: str) -> "ProductOption":
        """Parse "LABEL=PATH" or a bare path (labelled by its file stem)."""
        label, sep, location = spec.partition("=")
        if not sep or label.startswith(("http:", "https:")):
            location, label = spec, ""
        if not label:
            label = Path(location).stem or location
        return cls(label=label.strip(), locator=location.strip())


@dataclass
class AppConfig:
    canvas_width: int = CANVAS_WIDTH
    canvas_height: int = CANVAS_HEIGHT
    products: List[ProductOption] = field(default_factory=list)
    ingestion_policy: IngestionPolicy = STRICT
    api_base_url: str = DEFAULT_BASE_URL
    protected_path: str = PROTECTED_UPLOAD_PATH
    unprotected_path: str = UNPROTECTED_UPLOAD_PATH
    request_timeout: float = DEFAULT_TIMEOUT
    export_default_stem: str = DEFAULT_EXPORT_STEM
    scan_protection_default: bool = True
    font_path: Optional[str] = None

    @classmethod
    def from_options(
            cls,
            policy: str = STRICT.name,
            api_base_url: str = DEFAULT_BASE_URL,
            products: Sequence[str] = (),
            font_path: Optional[str] = None
    ) -> "AppConfig":
        """
        Build a config from command-line style values.

        Raises:
            ValueError: If the policy name is unknown.
        """
        return cls(
            products=[ProductOption.parse(p) for p in products],
            ingestion_policy=IngestionPolicy.named(policy),
            api_base_url=api_base_url,
            font_path=font_path,
        )
