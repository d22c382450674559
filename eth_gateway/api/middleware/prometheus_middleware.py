import time
from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from eth_gateway.base.metrics import DURATION_BUCKETS


class PrometheusMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for collecting Prometheus metrics"""

    def __init__(self, app: ASGIApp, metrics_registry=None, service_name: str = "eth-gateway"):
        super().__init__(app)
        self.metrics_registry = metrics_registry
        self.service_name = service_name

        if metrics_registry:
            self._init_metrics()
        else:
            logger.warning(f"No metrics registry provided for {service_name}")

    def _init_metrics(self):
        """Initialize HTTP metrics"""
        self.http_requests_total = self.metrics_registry.create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status']
        )

        self.http_request_duration = self.metrics_registry.create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            buckets=DURATION_BUCKETS
        )

        self.http_requests_in_progress = self.metrics_registry.create_gauge(
            'http_requests_in_progress',
            'HTTP requests currently being processed',
            ['method', 'endpoint']
        )

        self.http_errors_total = self.metrics_registry.create_counter(
            'http_errors_total',
            'Total HTTP errors',
            ['method', 'endpoint', 'status', 'error_type']
        )

    async def dispatch(self, request: Request, call_next):
        """Process HTTP request and collect metrics"""
        if not self.metrics_registry:
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_endpoint(request.url.path)

        self.http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()

        start_time = time.time()
        try:
            response = await call_next(request)

            duration = time.time() - start_time
            status_code = response.status_code

            self.http_requests_total.labels(
                method=method, endpoint=endpoint, status=status_code
            ).inc()

            self.http_request_duration.labels(
                method=method, endpoint=endpoint
            ).observe(duration)

            if status_code >= 400:
                self.http_errors_total.labels(
                    method=method, endpoint=endpoint, status=status_code,
                    error_type=self._categorize_error(status_code)
                ).inc()

            return response

        except Exception as e:
            self.http_errors_total.labels(
                method=method, endpoint=endpoint, status=500, error_type="internal_error"
            ).inc()

            logger.error(f"Error processing request {method} {request.url.path}: {e}")
            raise

        finally:
            self.http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()

    def _normalize_endpoint(self, path: str) -> str:
        """Collapse unknown paths into one label value to bound cardinality"""
        if path in ("/latest-block", "/balance"):
            return path
        return "other"

    def _categorize_error(self, status_code: int) -> str:
        """Categorize HTTP error by status code"""
        if status_code == 400:
            return "bad_request"
        elif status_code == 404:
            return "not_found"
        elif status_code == 405:
            return "method_not_allowed"
        elif 400 <= status_code < 500:
            return "client_error"
        elif status_code == 500:
            return "internal_error"
        elif 500 <= status_code < 600:
            return "server_error"
        else:
            return "unknown"
