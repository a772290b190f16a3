"""
Services layer for the brochure proxy.

This module contains the business logic services:
- JobService: Preview and print pipelines guarded by the circuit breaker
- ThumbnailService: Static / cached / generated product thumbnails
- ThumbnailCache: Thumbnail storage over memory or S3

Thread Model:
    Flask request threads call the services directly. Shared state
    (breaker, rate limiter, memory cache) is lock-guarded.
"""

from .job_service import JobService
from .thumbnail_cache import (
    MemoryThumbnailBackend,
    S3ThumbnailBackend,
    ThumbnailCache,
    create_thumbnail_cache,
)
from .thumbnail_service import ThumbnailService

__all__ = [
    "JobService",
    "MemoryThumbnailBackend",
    "S3ThumbnailBackend",
    "ThumbnailCache",
    "ThumbnailService",
    "create_thumbnail_cache",
]
