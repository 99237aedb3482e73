"""
Loguru configuration for the application.

This module configures loguru with:
- Automatic deployment id in each log
- Configurable format from settings
- Redirection of standard library logs to loguru (vendor SDKs log there)
- A silent logger for deployers whose diagnostics are switched off
"""

import logging
import sys
from typing import Any

from loguru import logger

from certdeploy.config import settings
from certdeploy.core.trace_context import deployment_id_context


def add_deployment_id(record: dict[str, Any]) -> bool:
    """
    Adds the deployment_id to the log record.

    Args:
        record: Loguru record

    Returns:
        True to indicate that the filter passed
    """
    deployment_id = deployment_id_context.get()
    record["extra"]["deployment_id"] = deployment_id if deployment_id else "N/A"
    return True


def configure_logger() -> None:
    """
    Configures loguru with application settings.

    This function:
    1. Removes default loguru handlers
    2. Adds handler to stderr with custom configuration
    """
    logger.remove()

    logger.add(
        sink=sys.stderr,
        level=settings.log_level.upper(),
        format=settings.log_format,
        filter=add_deployment_id,
        colorize=True,
        serialize=False,
        backtrace=True,
        diagnose=False,
        enqueue=settings.logger_enqueue,
    )


# Configure logger when importing the module
configure_logger()


__all__ = ["logger", "InterceptHandler", "NullLogger", "intercept_standard_logging"]


class InterceptHandler(logging.Handler):
    """
    Handler to redirect standard logging logs to loguru.

    botocore, httpx and the Tencent Cloud SDK log through the standard
    library; this handler sends those records through the loguru sink.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """
        Redirects a standard logging record to loguru.

        Args:
            record: logging.LogRecord record
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def intercept_standard_logging(level: int = logging.WARNING) -> None:
    """
    Configures redirection of standard logging to loguru.

    Intercepts logs from:
    - botocore / boto3 (AWS SDK)
    - httpx (HTTP client)
    - tencentcloud_sdk_common (Tencent Cloud SDK)

    Args:
        level: Minimum level forwarded from the intercepted libraries
    """
    for logger_name in [
        "botocore",
        "boto3",
        "httpx",
        "tencentcloud_sdk_common",
    ]:
        logging_logger = logging.getLogger(logger_name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.setLevel(level)
        logging_logger.propagate = False


class NullLogger:
    """
    Logger that discards every message.

    Installed by ``set_logger(None)`` on deployers. Exposes the subset of the
    loguru logger API used by this package.
    """

    def bind(self, **kwargs: Any) -> "NullLogger":
        return self

    def opt(self, *args: Any, **kwargs: Any) -> "NullLogger":
        return self

    def log(self, level: str | int, message: str, *args: Any, **kwargs: Any) -> None:
        return None

    def _discard(self, message: str, *args: Any, **kwargs: Any) -> None:
        return None

    trace = debug = info = success = warning = error = critical = exception = _discard
