"""
API routes (JSON endpoints used by the brochure customizer).

Handles:
- POST   /api/preview                 - Render JPG preview pages
- POST   /api/download-pdf            - Render and download the print PDF
- GET    /api/thumbnail/<product_id>  - Product thumbnail (?refresh=1 regenerates)
- DELETE /api/thumbnail/<product_id>  - Invalidate a cached thumbnail
- GET    /api/products                - Product catalog
- GET    /api/health                  - Health check with circuit state

Errors are raised as BrochureProxyError subclasses and rendered by the
error handler registered in create_app().
"""

from flask import (
    Blueprint,
    Response,
    current_app,
    request,
)

from core.circuit_breaker import CircuitState
from modules.request_parser import parse_job_request
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)

REFRESH_VALUES = {"1", "true", "yes"}


def _check_rate_limit() -> None:
    """Count this request against the caller's allowance."""
    rate_limiter = current_app.config.get("RATE_LIMITER")
    if rate_limiter is not None:
        rate_limiter.check(request.remote_addr or "unknown")


@api_bp.route("/api/preview", methods=["POST"])
def preview():
    """
    Generate preview images for the brochure.

    Body: {"productId": ..., "pageSize": ..., <variable>: <value>, ...}
    Returns: {"success", "jobId", "images": [{"name", "data"}], "pageCount"}
    """
    _check_rate_limit()
    job_service = current_app.config["JOB_SERVICE"]

    job_request = parse_job_request(request.get_json(silent=True), job_service.catalog)
    result = job_service.generate_preview(job_request)

    logger.info(f"Preview served: job {result.job_id}, {result.page_count} page(s)")
    return result.to_dict()


@api_bp.route("/api/download-pdf", methods=["POST"])
def download_pdf():
    """
    Generate and download the print-ready PDF.

    Same body as /api/preview. Returns the PDF as an attachment.
    """
    _check_rate_limit()
    job_service = current_app.config["JOB_SERVICE"]

    job_request = parse_job_request(request.get_json(silent=True), job_service.catalog)
    result = job_service.generate_document(job_request)

    headers = {
        "Content-Disposition": f'attachment; filename="{result.filename}"',
        "X-Job-Id": result.job_id,
    }
    if result.page_count is not None:
        headers["X-Page-Count"] = str(result.page_count)

    logger.info(f"PDF served: job {result.job_id}, {result.filename}")
    return Response(result.content, mimetype="application/pdf", headers=headers)


@api_bp.route("/api/thumbnail/<product_id>", methods=["GET"])
def get_thumbnail(product_id: str):
    """Thumbnail from static config, cache, or a fresh preview."""
    refresh = request.args.get("refresh", "").lower() in REFRESH_VALUES
    if refresh:
        _check_rate_limit()

    thumbnail_service = current_app.config["THUMBNAIL_SERVICE"]
    result = thumbnail_service.get_thumbnail(product_id, refresh=refresh)
    return result.to_dict()


@api_bp.route("/api/thumbnail/<product_id>", methods=["DELETE"])
def invalidate_thumbnail(product_id: str):
    """Drop the cached thumbnail of a product."""
    _check_rate_limit()

    thumbnail_service = current_app.config["THUMBNAIL_SERVICE"]
    invalidated = thumbnail_service.invalidate(product_id)

    status_code = 200 if invalidated else 500
    return {"success": invalidated, "productId": product_id, "invalidated": invalidated}, status_code


@api_bp.route("/api/products", methods=["GET"])
def products():
    """Product catalog for the customizer form."""
    catalog = current_app.config["PRODUCT_CATALOG"]
    return catalog.to_dict()


@api_bp.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "message": "Brochure Customizer API is running",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Check catalog
    catalog = current_app.config.get("PRODUCT_CATALOG")
    health_status["checks"]["products"] = len(catalog) if catalog is not None else 0

    # Check circuit breaker
    breaker = current_app.config.get("CIRCUIT_BREAKER")
    if breaker is not None:
        health_status["checks"]["uproduce"] = breaker.snapshot()
        if breaker.state == CircuitState.OPEN:
            health_status["status"] = "degraded"

    # Check thumbnail cache
    cache = current_app.config.get("THUMBNAIL_CACHE")
    if cache is not None:
        health_status["checks"]["thumbnail_cache"] = "persistent" if cache.is_durable() else "memory"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
