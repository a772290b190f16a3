"""
Core module for the brochure proxy.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- circuit_breaker: Failure guard around uProduce calls
- rate_limiter: Per-client request limiter for the job endpoints
- uproduce_client: REST client for job submission and output download
"""

from .exceptions import (
    BrochureProxyError,
    ConfigurationError,
    CatalogError,
    InvalidRequestError,
    ProductNotFoundError,
    SizeNotFoundError,
    InvalidFieldValueError,
    RateLimitExceededError,
    CircuitOpenError,
    RemoteJobError,
    JobIncompleteError,
    NoImagesInOutputError,
    NoDocumentInOutputError,
    InvalidOutputBundleError,
    TransportError,
    RemoteTimeoutError,
)
from .circuit_breaker import CircuitBreaker, CircuitState
from .rate_limiter import RateLimiter
from .uproduce_client import UProduceClient, RemoteJobOutput

__all__ = [
    "BrochureProxyError",
    "ConfigurationError",
    "CatalogError",
    "InvalidRequestError",
    "ProductNotFoundError",
    "SizeNotFoundError",
    "InvalidFieldValueError",
    "RateLimitExceededError",
    "CircuitOpenError",
    "RemoteJobError",
    "JobIncompleteError",
    "NoImagesInOutputError",
    "NoDocumentInOutputError",
    "InvalidOutputBundleError",
    "TransportError",
    "RemoteTimeoutError",
    "CircuitBreaker",
    "CircuitState",
    "RateLimiter",
    "UProduceClient",
    "RemoteJobOutput",
]
