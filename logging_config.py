"""
Centralized logging configuration for the brochure proxy.

Flask serves requests on worker threads, so every log line carries the
worker thread and, inside a request, the client address and endpoint.
uProduce job lines additionally go through a per-job logger so one job can
be grepped end to end.

Log Format:
    2026-01-29 10:15:30 [INFO    ] [MainThread] [-] brochure_proxy.app - Starting brochure proxy
    2026-01-29 10:15:31 [INFO    ] [Thread-4] [10.0.0.7 POST /api/preview] brochure_proxy.services.job_service - Generating preview ...
    2026-01-29 10:15:33 [INFO    ] [Thread-4] [10.0.0.7 POST /api/preview] brochure_proxy.job.48213 - Preview ready: 4 page(s)

Usage:
    from logging_config import setup_logging, get_logger, get_job_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)
    logger = get_logger(__name__)
    get_job_logger("48213").info("...")
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

from flask import has_request_context, request


APP_LOGGER_NAME = "brochure_proxy"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] [%(request_context)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Libraries that log every HTTP round trip at INFO/DEBUG
NOISY_LOGGERS = ("urllib3", "botocore", "boto3", "s3transfer")


class RequestContextFilter(logging.Filter):
    """
    Adds the thread name and, inside a Flask request, "<client> <method> <path>".

    Outside a request (startup, atexit) the request context is "-".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name
        if has_request_context():
            record.request_context = f"{request.remote_addr or 'unknown'} {request.method} {request.path}"
        else:
            record.request_context = "-"
        return True


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      context_filter: logging.Filter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(context_filter)
    return handler


def quiet_third_party_loggers(names: Iterable[str] = NOISY_LOGGERS, level: int = logging.WARNING) -> None:
    """Raise the level of chatty library loggers."""
    for name in names:
        logging.getLogger(name).setLevel(level)


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure the application logger.

    Console output is always on. With file logging enabled, everything
    goes to <app_name>.log and ERROR/CRITICAL also to <app_name>_error.log,
    both rotated at 10 MB.

    Args:
        app_name: Name of the application logger
        log_level: Minimum log level
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write log files

    Returns:
        The configured application logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Allows re-configuration (one app per test)
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    context_filter = RequestContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_dir = Path(log_dir) if log_dir else Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter, context_filter))
        logger.addHandler(
            _rotating_handler(log_dir / f"{app_name}_error.log", logging.ERROR, formatter, context_filter)
        )
        logger.info(f"File logging enabled: {app_log_file}")

    if log_level > logging.DEBUG:
        quiet_third_party_loggers()

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Child logger in the application namespace.

    get_logger("services.job_service") -> "brochure_proxy.services.job_service"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_job_logger(job_id: str) -> logging.Logger:
    """Logger for one uProduce job, named "brochure_proxy.job.<job_id>"."""
    return logging.getLogger(f"{APP_LOGGER_NAME}.job.{job_id}")
