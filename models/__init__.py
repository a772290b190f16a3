"""
Data models for the brochure proxy.

This module contains immutable dataclasses for:
- Product catalog: Product, SizeOption, SelectVariable, TextVariable
- Job tickets: JobKind, JobRequest, JobTicket, Customization
- Job results: PreviewResult, DocumentResult, ThumbnailResult

Catalog and ticket models are frozen so they can be shared between
request threads without locks.
"""

from .product import (
    PlanObjectBinding,
    PlanObjectType,
    Product,
    ProductCatalog,
    SelectOption,
    SelectVariable,
    SizeOption,
    TextVariable,
)
from .job_ticket import Customization, JobKind, JobRequest, JobTicket, RecipientSource
from .job_result import (
    CachedThumbnail,
    DocumentResult,
    ExtractedDocument,
    PreviewImage,
    PreviewResult,
    ThumbnailResult,
    ThumbnailSource,
)

__all__ = [
    # Catalog models
    "PlanObjectBinding",
    "PlanObjectType",
    "Product",
    "ProductCatalog",
    "SelectOption",
    "SelectVariable",
    "SizeOption",
    "TextVariable",
    # Ticket models
    "Customization",
    "JobKind",
    "JobRequest",
    "JobTicket",
    "RecipientSource",
    # Result models
    "CachedThumbnail",
    "DocumentResult",
    "ExtractedDocument",
    "PreviewImage",
    "PreviewResult",
    "ThumbnailResult",
    "ThumbnailSource",
]
