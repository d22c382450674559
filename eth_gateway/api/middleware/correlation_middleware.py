"""
Correlation ID middleware for the gateway.

Every request gets a correlation ID that is bound to the logging context and
returned to the caller, so one request can be followed through the logs.
"""

import time
from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from eth_gateway.base.enhanced_logging import generate_correlation_id, set_correlation_id

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle correlation IDs for request tracing.

    Reuses the caller's X-Correlation-ID header when present, otherwise
    generates one, and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()

        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)
        request.state.start_time = time.time()

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as e:
            logger.bind(**get_request_context(request)).error(
                f"Unhandled error for {request.method} {request.url.path}: {e}"
            )
            return Response(
                content=f"Internal server error: {str(e)}",
                status_code=500,
                headers={CORRELATION_HEADER: correlation_id}
            )

        finally:
            set_correlation_id(None)


def get_request_context(request: Request) -> dict:
    """
    Extract request context for logging.

    Args:
        request: FastAPI request object

    Returns:
        dict: Request context for logging
    """
    return {
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_ip": request.client.host if request.client else "unknown",
        "correlation_id": getattr(request.state, 'correlation_id', None),
        "processing_time": time.time() - getattr(request.state, 'start_time', time.time())
    }
