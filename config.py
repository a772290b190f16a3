"""
Configuration for the brochure proxy.

The uProduce URL and service credentials are required.
Application will fail-fast if they are missing.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB JSON bodies
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # Behind a reverse proxy, trust X-Forwarded-For for client addresses
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "0") == "1"

    # Rotating log files are written in production only (default: ./logs)
    LOG_DIR = os.environ.get("LOG_DIR") or None

    # Product catalog (loaded once at startup)
    PRODUCTS_FILE = os.environ.get("PRODUCTS_FILE", str(BASE_DIR / "products.json"))

    # ==========================================================================
    # uProduce API
    # ==========================================================================
    UPRODUCE_API_URL = os.environ.get("UPRODUCE_API_URL", "")
    UPRODUCE_USERNAME = os.environ.get("UPRODUCE_USERNAME", "")
    UPRODUCE_PASSWORD = os.environ.get("UPRODUCE_PASSWORD", "")

    # Shared budget for submit + download, kept under the hosting platform's
    # request ceiling
    REMOTE_TIMEOUT_SECONDS = float(os.environ.get("REMOTE_TIMEOUT_SECONDS", "25"))

    # Recipient list used by print jobs
    PRINT_RECIPIENT_SOURCE_ID = int(os.environ.get("PRINT_RECIPIENT_SOURCE_ID", "14485"))
    PRINT_RECIPIENT_TABLE = os.environ.get("PRINT_RECIPIENT_TABLE", "RecipientList")

    # ==========================================================================
    # Circuit breaker / rate limiting
    # ==========================================================================
    CIRCUIT_FAILURE_THRESHOLD = int(os.environ.get("CIRCUIT_FAILURE_THRESHOLD", "5"))
    CIRCUIT_RESET_TIMEOUT_SECONDS = float(os.environ.get("CIRCUIT_RESET_TIMEOUT_SECONDS", "30"))

    RATE_LIMIT_REQUESTS = int(os.environ.get("RATE_LIMIT_REQUESTS", "10"))
    RATE_LIMIT_WINDOW_SECONDS = float(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "60"))

    # ==========================================================================
    # Thumbnail cache
    # ==========================================================================
    # Without a bucket, thumbnails are cached in memory and lost on restart
    THUMBNAIL_BUCKET = os.environ.get("THUMBNAIL_BUCKET", "")
    THUMBNAIL_REGION = os.environ.get("THUMBNAIL_REGION") or None
    THUMBNAIL_PUBLIC_BASE_URL = os.environ.get("THUMBNAIL_PUBLIC_BASE_URL") or None
    THUMBNAIL_URL_EXPIRY_SECONDS = int(os.environ.get("THUMBNAIL_URL_EXPIRY_SECONDS", "3600"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    ENVIRONMENT = "production"


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    ENVIRONMENT = "testing"
    PRODUCTS_FILE = str(BASE_DIR / "tests" / "fixtures" / "products.json")
    UPRODUCE_API_URL = "https://uproduce.test/XMPieAPI"
    UPRODUCE_USERNAME = "test-user"
    UPRODUCE_PASSWORD = "test-password"
    THUMBNAIL_BUCKET = ""
