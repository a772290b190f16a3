"""
Job result data models.

These models represent what the pipeline hands back to the gateway after
a uProduce job: preview pages, the final PDF, or a thumbnail.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


@dataclass(frozen=True)
class PreviewImage:
    """
    One rendered preview page.

    Images are sorted by the page number embedded in the entry name
    (e.g. 'brochure_p003.jpg' -> page 3).
    """

    name: str
    """Entry name inside the output bundle."""

    data: str
    """Base64 data URL (data:image/jpeg;base64,...)."""

    page: int = 0
    """Page number parsed from the entry name (0 if none)."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape the browser client expects."""
        return {"name": self.name, "data": self.data}


@dataclass(frozen=True)
class ExtractedDocument:
    """The PDF found in a print bundle."""

    filename: str
    """Entry name, sanitized for a Content-Disposition header."""

    content: bytes
    """Raw PDF bytes."""


@dataclass
class PreviewResult:
    """Result of a Proof job."""

    job_id: str
    """uProduce friendly job id."""

    images: List[PreviewImage] = field(default_factory=list)
    """Pages in page order."""

    @property
    def page_count(self) -> int:
        return len(self.images)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "jobId": self.job_id,
            "images": [image.to_dict() for image in self.images],
            "pageCount": self.page_count,
        }


@dataclass
class DocumentResult:
    """Result of a Print job."""

    job_id: str
    """uProduce friendly job id."""

    filename: str
    """Suggested download filename."""

    content: bytes
    """Raw PDF bytes."""

    page_count: Optional[int] = None
    """Pages in the PDF, if it could be analyzed."""


class ThumbnailSource(Enum):
    """Where a thumbnail came from."""

    STATIC = "static"
    """Configured in products.json."""

    CACHE = "cache"
    """Served from the thumbnail cache."""

    GENERATED = "generated"
    """Freshly rendered via a Proof job."""


@dataclass(frozen=True)
class CachedThumbnail:
    """
    A thumbnail held by the thumbnail cache.

    With the durable (S3) backend, data is an object URL; with the memory
    backend it is the data URL itself.
    """

    product_id: str
    data: str
    durable: bool = False


@dataclass
class ThumbnailResult:
    """Thumbnail returned to the browser client."""

    product_id: str
    image: str
    """Data URL or object URL."""

    source: ThumbnailSource
    persistent: bool = False
    """Whether the backing cache survives restarts."""

    @property
    def cached(self) -> bool:
        return self.source == ThumbnailSource.CACHE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "productId": self.product_id,
            "image": self.image,
            "cached": self.cached,
            "persistent": self.persistent,
            "source": self.source.value,
        }
