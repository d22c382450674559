"""
Enhanced logging infrastructure for the Ethereum gateway.

This module provides context-rich error logging that complements the Prometheus
metrics exposed by the gateway. Every record carries the service name and the
correlation ID of the request that produced it.
"""

import os
import sys
import time
import uuid
import traceback
from contextvars import ContextVar
from typing import Dict, Any, Optional
from urllib.parse import urlsplit, urlunsplit
from loguru import logger
import psutil


# Context-local storage for correlation IDs, copied into worker threads by Starlette
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    """Get the correlation ID bound to the current context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]):
    """Bind a correlation ID to the current context."""
    _correlation_id.set(correlation_id)


def get_system_state() -> Dict[str, Any]:
    """Get current system state for error context."""
    try:
        process = psutil.Process()
        return {
            "memory_usage_mb": round(process.memory_info().rss / 1024 / 1024, 2),
            "cpu_percent": process.cpu_percent(),
            "threads": process.num_threads(),
            "timestamp": time.time()
        }
    except Exception:
        return {"error": "unable_to_get_system_state"}


def mask_rpc_url(url: Optional[str]) -> str:
    """
    Hide credentials in a node endpoint URL before it reaches the logs.

    Hosted providers put the API key either in the userinfo part or in
    a path segment (e.g. ``https://mainnet.infura.io/v3/<key>``). Query strings
    are dropped since some providers pass the key there.
    """
    if not url:
        return "unset"

    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        # IPC paths carry no secret
        return url

    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    if parts.username or parts.password:
        netloc = f"***@{netloc}"

    segments = ["***" if len(segment) >= 16 else segment for segment in parts.path.split("/")]

    return urlunsplit((parts.scheme, netloc, "/".join(segments), "", ""))


def setup_enhanced_logger(service_name: str, logs_dir: Optional[str] = None):
    """
    Setup enhanced logger with correlation ID support and structured context.

    Args:
        service_name: Name of the service (e.g., 'eth-gateway')
        logs_dir: Directory for the JSON log file, defaults to ``<project>/logs``
    """
    def patch_record(record):
        record["extra"]["service"] = service_name
        record["extra"]["correlation_id"] = get_correlation_id() or "no_correlation"
        return True

    if logs_dir is None:
        project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        logs_dir = os.getenv("LOGS_DIR", os.path.join(project_root, "logs"))

    os.makedirs(logs_dir, exist_ok=True)

    logger.remove()

    # File logger with JSON serialization for Loki ingestion
    logger.add(
        os.path.join(logs_dir, f"{service_name}.log"),
        rotation="500 MB",
        level="INFO",
        filter=patch_record,
        serialize=True,
    )

    # Console logger with human-readable format
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | <cyan>{extra[service]}</cyan> | <blue>{extra[correlation_id]}</blue> | <white>{message}</white>",
        level="INFO",
        filter=patch_record,
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )


class ErrorContextManager:
    """
    Structured error logging for a service.

    Adds correlation ID, system state and the caller's business context to
    every error record.
    """

    def __init__(self, service_name: str):
        self.service_name = service_name

    def log_error(self, message: str, error: Exception, **context):
        """
        Log an error with enhanced context.

        Args:
            message: Human-readable error message
            error: The exception that occurred
            **context: Additional context for the error
        """
        logger.error(
            message,
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error),
                "correlation_id": get_correlation_id(),
                "service": self.service_name,
                "system_state": get_system_state(),
                "stack_trace": traceback.format_exc(),
                **context
            }
        )

    def log_service_lifecycle(self, event: str, **context):
        """
        Log service lifecycle events.

        Args:
            event: The lifecycle event (start, stop, ...)
            **context: Additional context for the event
        """
        logger.info(
            f"Service lifecycle: {event}",
            extra={
                "lifecycle_event": event,
                "correlation_id": get_correlation_id(),
                "service": self.service_name,
                "timestamp": time.time(),
                **context
            }
        )


def classify_error(error: Exception) -> str:
    """
    Classify errors into categories for metrics and alerting.

    Args:
        error: The exception to classify

    Returns:
        str: Error category
    """
    error_type = type(error).__name__.lower()
    error_message = str(error).lower()

    if 'connection' in error_type or 'timeout' in error_type:
        return 'connection_error'
    elif 'validation' in error_type or error_type == 'valueerror':
        return 'validation_error'
    elif 'remotecall' in error_type or 'rpc' in error_type or 'rpc' in error_message:
        return 'rpc_error'
    elif 'permission' in error_message or 'auth' in error_message:
        return 'authorization_error'
    else:
        return 'unknown_error'


def log_service_start(service_name: str, **config):
    """Log service startup with configuration."""
    error_ctx = ErrorContextManager(service_name)
    error_ctx.log_service_lifecycle(
        "service_start",
        configuration=config,
        pid=os.getpid()
    )


def log_service_stop(service_name: str, **context):
    """Log service shutdown."""
    error_ctx = ErrorContextManager(service_name)
    error_ctx.log_service_lifecycle(
        "service_stop",
        **context
    )
