"""
Brochure proxy - Flask Application Entry Point.

This is a slim app factory that:
1. Loads settings and validates the uProduce connection settings (fail-fast)
2. Loads the product catalog once
3. Creates the shared circuit breaker, rate limiter and uProduce client
4. Creates the job, thumbnail cache and thumbnail services
5. Registers route blueprints and error handlers

ARCHITECTURE:
    Request threads (Flask)
    ├── Rate limiter            (shared, lock-guarded)
    ├── JobService              (stateless per request)
    │   ├── CircuitBreaker      (shared, lock-guarded)
    │   └── UProduceClient      (shared session, shared deadline per job)
    └── ThumbnailService
        └── ThumbnailCache      (S3 or lock-guarded memory map)

Everything shared lives in app.config so tests can swap it out.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
from werkzeug.middleware.proxy_fix import ProxyFix

from logging_config import setup_logging, get_logger
from core.circuit_breaker import CircuitBreaker
from core.exceptions import BrochureProxyError, ConfigurationError
from core.rate_limiter import RateLimiter
from core.uproduce_client import UProduceClient
from models.job_ticket import RecipientSource
from models.product import ProductCatalog
from modules.pdf_analyzer import PDFAnalyzer
from routes import register_blueprints
from services.job_service import JobService
from services.thumbnail_cache import create_thumbnail_cache
from services.thumbnail_service import ThumbnailService


# Module logger (configured after setup_logging)
logger = get_logger(__name__)

REQUIRED_SETTINGS = ("UPRODUCE_API_URL", "UPRODUCE_USERNAME", "UPRODUCE_PASSWORD")


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent


def _validate_settings(config: Dict[str, Any]) -> None:
    """
    Check that the uProduce settings are present.

    Raises:
        ConfigurationError: For the first missing setting
    """
    for setting in REQUIRED_SETTINGS:
        if not config.get(setting):
            raise ConfigurationError(setting)
    if config.get("REMOTE_TIMEOUT_SECONDS", 0) <= 0:
        raise ConfigurationError("REMOTE_TIMEOUT_SECONDS", "must be positive")


def create_app(
    config_object: str = "config.Config",
    overrides: Optional[Dict[str, Any]] = None
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: If the uProduce settings are missing or the catalog cannot
    be loaded, the app will not start.

    Args:
        config_object: Import path of the config class
        overrides: Extra settings applied after the config class (tests)

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If uProduce settings are missing
        CatalogError: If products.json cannot be loaded
    """
    # Load .env from base path (next to executable in production)
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        log_dir=app.config.get("LOG_DIR"),
        enable_file_logging=enable_file_logging,
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting brochure proxy in {app.config.get('ENVIRONMENT')} mode")

    if app.config.get("TRUST_PROXY_HEADERS"):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    try:
        _validate_settings(app.config)
        catalog = ProductCatalog.load(app.config["PRODUCTS_FILE"])
    except BrochureProxyError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    app.config["PRODUCT_CATALOG"] = catalog

    breaker = CircuitBreaker(
        failure_threshold=app.config["CIRCUIT_FAILURE_THRESHOLD"],
        reset_timeout=app.config["CIRCUIT_RESET_TIMEOUT_SECONDS"],
    )
    app.config["CIRCUIT_BREAKER"] = breaker

    app.config["RATE_LIMITER"] = RateLimiter(
        max_requests=app.config["RATE_LIMIT_REQUESTS"],
        window_seconds=app.config["RATE_LIMIT_WINDOW_SECONDS"],
    )

    uproduce_client = UProduceClient(
        base_url=app.config["UPRODUCE_API_URL"],
        username=app.config["UPRODUCE_USERNAME"],
        password=app.config["UPRODUCE_PASSWORD"],
        timeout_seconds=app.config["REMOTE_TIMEOUT_SECONDS"],
    )
    app.config["UPRODUCE_CLIENT"] = uproduce_client
    logger.info(f"uProduce API URL: {uproduce_client.base_url}")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    recipient_source = RecipientSource(
        filter_type="TableName",
        filter=app.config["PRINT_RECIPIENT_TABLE"],
        source_id=app.config["PRINT_RECIPIENT_SOURCE_ID"],
    )
    job_service = JobService(
        catalog,
        uproduce_client,
        breaker,
        recipient_source=recipient_source,
        pdf_analyzer=PDFAnalyzer(),
    )
    app.config["JOB_SERVICE"] = job_service

    thumbnail_cache = create_thumbnail_cache(
        bucket=app.config.get("THUMBNAIL_BUCKET"),
        url_expiry_seconds=app.config["THUMBNAIL_URL_EXPIRY_SECONDS"],
        public_base_url=app.config.get("THUMBNAIL_PUBLIC_BASE_URL"),
        region_name=app.config.get("THUMBNAIL_REGION"),
    )
    app.config["THUMBNAIL_CACHE"] = thumbnail_cache
    app.config["THUMBNAIL_SERVICE"] = ThumbnailService(catalog, job_service, thumbnail_cache)

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        uproduce_client.close()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(BrochureProxyError)
    def handle_proxy_error(e: BrochureProxyError):
        if e.status_code >= 500:
            logger.error(f"{e.error_code}: {e}")
        else:
            logger.warning(f"{e.error_code}: {e}")

        headers = {}
        if e.retry_after is not None:
            headers["Retry-After"] = str(e.retry_after)
        return e.to_response(), e.status_code, headers

    @app.errorhandler(RequestEntityTooLarge)
    def handle_body_too_large(e):
        return {"success": False, "error": "payload_too_large", "message": "Request body too large"}, 413

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {"success": False, "error": "http_error", "message": e.name}, e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return {"success": False, "error": "internal_error", "message": "An unexpected error occurred"}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode, port=int(os.environ.get("PORT", "3000")))
