from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from smartstay.config.settings import SERVICE_NAME

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
VENDOR_CLIENT_LOGGERS = ("httpx", "httpcore")


def _env_level(name: str, default: str) -> str:
    level = os.getenv(name, default).strip().upper()
    return level if isinstance(logging.getLevelName(level), int) else default


def setup_logging(component: Optional[str] = None) -> logging.Logger:
    """Configure the ``smartstay`` package logger and return a component logger.

    Env vars:
      LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default INFO, unknown names fall back to it)
      LOG_FILE: optional path; logs also go to a rotating file
      HTTPX_LOG_LEVEL: level for the vendor HTTP client loggers (default WARNING)

    Handlers live on the package logger only, so module loggers
    (``smartstay.services.liteapi_service`` ...) and component loggers
    (``smartstay.api``) share them. Calling this again only refreshes levels.
    """
    package_logger = logging.getLogger(SERVICE_NAME)
    package_logger.setLevel(_env_level("LOG_LEVEL", "INFO"))

    if not package_logger.handlers:
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        package_logger.addHandler(stream_handler)

        log_file = os.getenv("LOG_FILE", "").strip()
        if log_file:
            file_handler = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    vendor_level = _env_level("HTTPX_LOG_LEVEL", "WARNING")
    for name in VENDOR_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(vendor_level)

    if component:
        return package_logger.getChild(component)
    return package_logger
