"""
Custom exceptions for the brochure proxy.

Exception Hierarchy:
    BrochureProxyError (base)
    ├── ConfigurationError          - Missing/invalid settings (startup failure)
    ├── CatalogError                - products.json could not be loaded (startup failure)
    ├── InvalidRequestError         - Client input errors (400)
    │   ├── ProductNotFoundError    - Unknown product id (404)
    │   ├── SizeNotFoundError       - Unknown size for product (400)
    │   └── InvalidFieldValueError  - Field value rejected by variable rules (400)
    ├── RateLimitExceededError      - Too many requests from one client (429)
    ├── CircuitOpenError            - uProduce guarded off after repeated failures (503)
    └── RemoteJobError              - uProduce call failed (502)
        ├── JobIncompleteError      - Job finished in a non-Completed status
        ├── NoImagesInOutputError   - Preview bundle had no JPG pages
        ├── NoDocumentInOutputError - Print bundle had no PDF
        ├── InvalidOutputBundleError- Output bundle is not a readable ZIP
        ├── TransportError          - HTTP/connection failure
        └── RemoteTimeoutError      - Shared call deadline exceeded (504)

Usage:
    Startup errors (ConfigurationError, CatalogError) cause the app to fail fast.
    Runtime errors carry status_code/error_code so the gateway can render a
    stable, non-leaking JSON response.
"""

from typing import Optional, Dict, Any


class BrochureProxyError(Exception):
    """
    Base exception for all brochure proxy errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.

    Class Attributes:
        status_code: HTTP status the gateway answers with
        error_code: Stable machine-readable classification
        public_message: Message that is safe to show untrusted callers
    """

    status_code = 500
    error_code = "internal_error"
    public_message = "An unexpected error occurred"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message (logged, not always shown)
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    @property
    def retry_after(self) -> Optional[int]:
        """Seconds until a retry is sensible, if meaningful for this error."""
        return None

    def to_response(self) -> Dict[str, Any]:
        """Build the JSON body returned to the browser client."""
        body: Dict[str, Any] = {
            "success": False,
            "error": self.error_code,
            "message": self.public_message,
        }
        if self.retry_after is not None:
            body["retryAfter"] = self.retry_after
        return body


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class ConfigurationError(BrochureProxyError):
    """
    A required setting is missing or malformed.

    This is a FATAL error - the proxy cannot talk to uProduce without its
    URL and service credentials.
    """

    def __init__(self, setting: str, reason: str = "is not set"):
        message = f"Configuration error: {setting} {reason}"
        details = {
            "setting": setting,
            "resolution": f"Set {setting} in the environment or .env file"
        }
        super().__init__(message, details)
        self.setting = setting


class CatalogError(BrochureProxyError):
    """
    The product catalog could not be loaded.

    Raised for unreadable files, invalid JSON, duplicate product ids and
    malformed variable definitions.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        details = {"source": source} if source else {}
        super().__init__(message, details)
        self.source = source


# =============================================================================
# CLIENT INPUT ERRORS - Detected before any remote call
# =============================================================================

class InvalidRequestError(BrochureProxyError):
    """Base class for input errors. These never touch the circuit breaker."""

    status_code = 400
    error_code = "invalid_request"
    public_message = "The request is invalid"


class ProductNotFoundError(InvalidRequestError):
    """No catalog entry matches the requested product id."""

    status_code = 404
    error_code = "product_not_found"
    public_message = "Product not found"

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}", {"product_id": product_id})
        self.product_id = product_id


class SizeNotFoundError(InvalidRequestError):
    """The requested size name is not one of the product's size options."""

    error_code = "size_not_found"
    public_message = "Size not available for this product"

    def __init__(self, product_id: str, size_name: str):
        super().__init__(
            f"Size not found: {size_name}",
            {"product_id": product_id, "size": size_name}
        )
        self.product_id = product_id
        self.size_name = size_name


class InvalidFieldValueError(InvalidRequestError):
    """A submitted field value was rejected by its variable definition."""

    error_code = "invalid_field_value"

    def __init__(self, field_name: str, reason: str):
        super().__init__(
            f"Invalid value for '{field_name}': {reason}",
            {"field": field_name, "reason": reason}
        )
        self.field_name = field_name
        self.reason = reason

    @property
    def public_message(self) -> str:
        return f"Invalid value for field '{self.field_name}': {self.reason}"


# =============================================================================
# FAST-FAIL ERRORS - Request denied without calling uProduce
# =============================================================================

class RateLimitExceededError(BrochureProxyError):
    """A client exceeded its request allowance for the current window."""

    status_code = 429
    error_code = "rate_limited"
    public_message = "Too many requests, please slow down"

    def __init__(self, client_key: str, retry_after_seconds: int):
        super().__init__(
            f"Rate limit exceeded for {client_key}",
            {"client": client_key, "retry_after": retry_after_seconds}
        )
        self._retry_after = retry_after_seconds

    @property
    def retry_after(self) -> Optional[int]:
        return self._retry_after


class CircuitOpenError(BrochureProxyError):
    """
    The circuit breaker is open - uProduce has failed repeatedly.

    The request is rejected immediately. retry_after tells the client when
    the breaker will admit a probe request again.
    """

    status_code = 503
    error_code = "service_unavailable"
    public_message = "Document service is temporarily unavailable"

    def __init__(self, retry_after_seconds: int):
        super().__init__(
            "Circuit breaker is open",
            {"retry_after": retry_after_seconds}
        )
        self._retry_after = retry_after_seconds

    @property
    def retry_after(self) -> Optional[int]:
        return self._retry_after


# =============================================================================
# REMOTE DEPENDENCY ERRORS - Always reported to the circuit breaker
# =============================================================================

class RemoteJobError(BrochureProxyError):
    """
    Base class for uProduce job failures.

    Subclasses identify which stage failed. The original vendor payload is
    kept in details for logging only.
    """

    status_code = 502
    error_code = "remote_job_failed"
    public_message = "Document generation failed"

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if job_id:
            error_details["job_id"] = job_id
        super().__init__(message, error_details)
        self.job_id = job_id


class JobIncompleteError(RemoteJobError):
    """uProduce answered, but the job did not reach the Completed status."""

    error_code = "job_incomplete"
    public_message = "Document job did not complete successfully"

    def __init__(self, status: str, status_info: Any = None, job_id: Optional[str] = None):
        super().__init__(
            f"Job did not complete successfully: {status}",
            job_id,
            {"status": status, "status_info": status_info}
        )
        self.status = status
        self.status_info = status_info


class NoImagesInOutputError(RemoteJobError):
    """A preview bundle contained no JPG pages."""

    error_code = "no_images_in_output"
    public_message = "No preview images found in output"

    def __init__(self, entry_count: int = 0, job_id: Optional[str] = None):
        super().__init__(
            f"No preview images in output ({entry_count} entries)",
            job_id,
            {"entry_count": entry_count}
        )


class NoDocumentInOutputError(RemoteJobError):
    """A print bundle contained no PDF."""

    error_code = "no_document_in_output"
    public_message = "No PDF found in output"

    def __init__(self, entry_count: int = 0, job_id: Optional[str] = None):
        super().__init__(
            f"No PDF in output ({entry_count} entries)",
            job_id,
            {"entry_count": entry_count}
        )


class InvalidOutputBundleError(RemoteJobError):
    """The downloaded output could not be opened as a ZIP archive."""

    error_code = "invalid_output_bundle"
    public_message = "Document service returned an unreadable output"


class TransportError(RemoteJobError):
    """Connection failure, HTTP error status or malformed uProduce response."""

    error_code = "transport_error"
    public_message = "Could not reach the document service"

    def __init__(
        self,
        operation: str,
        reason: str,
        http_status: Optional[int] = None,
        job_id: Optional[str] = None
    ):
        details: Dict[str, Any] = {"operation": operation, "reason": reason}
        if http_status is not None:
            details["http_status"] = http_status
        super().__init__(f"uProduce {operation} failed: {reason}", job_id, details)
        self.operation = operation
        self.http_status = http_status


class RemoteTimeoutError(RemoteJobError):
    """
    uProduce did not answer within the shared call deadline.

    The job may still be running on the server side - it is abandoned,
    not cancelled.
    """

    status_code = 504
    error_code = "timeout"
    public_message = "Document generation timed out"

    def __init__(self, operation: str, timeout_seconds: float, job_id: Optional[str] = None):
        super().__init__(
            f"uProduce {operation} timed out after {timeout_seconds:.1f}s",
            job_id,
            {"operation": operation, "timeout_seconds": timeout_seconds}
        )
        self.operation = operation
        self.timeout_seconds = timeout_seconds
