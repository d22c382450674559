import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from loguru import logger
from starlette.concurrency import run_in_threadpool

from eth_gateway import __version__
from eth_gateway.api.middleware.correlation_middleware import CorrelationMiddleware
from eth_gateway.api.middleware.prometheus_middleware import PrometheusMiddleware
from eth_gateway.api.routers import chain
from eth_gateway.base import (
    setup_enhanced_logger, setup_metrics, shutdown_metrics_servers, log_service_start, log_service_stop,
    mask_rpc_url, get_service_name, get_node_rpc_url, get_node_request_timeout, get_gateway_settings,
    MetricsRegistry, GatewayMetrics
)
from eth_gateway.node import ChainClient, NodeConnectionError, connect


def create_app(chain_client: Optional[ChainClient] = None,
               metrics_registry: Optional[MetricsRegistry] = None,
               service_name: Optional[str] = None) -> FastAPI:
    """
    Build the gateway application.

    When no chain client is given, the node named by ETH_NODE_RPC_URL is dialed
    during startup and a connection failure aborts the startup.
    """
    service_name = service_name or get_service_name()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.chain_client is None:
            node_rpc_url = get_node_rpc_url()
            metrics = GatewayMetrics(metrics_registry) if metrics_registry else None
            app.state.chain_client = await run_in_threadpool(
                connect, node_rpc_url, get_node_request_timeout(), metrics
            )
        log_service_start(service_name, version=__version__, metrics_enabled=metrics_registry is not None)
        yield
        log_service_stop(service_name)

    # No docs or schema routes: the gateway serves only the chain endpoints
    app = FastAPI(
        title="Ethereum Gateway",
        description="REST access to the latest block number and account balances of an Ethereum node",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan
    )
    app.state.chain_client = chain_client

    # Add correlation middleware FIRST (before other middleware)
    app.add_middleware(CorrelationMiddleware)

    app.add_middleware(PrometheusMiddleware, metrics_registry=metrics_registry, service_name=service_name)

    app.include_router(chain.router)

    return app


def main():
    service_name = get_service_name()
    setup_enhanced_logger(service_name)
    settings = get_gateway_settings()
    metrics_registry = setup_metrics(service_name, port=settings["metrics_port"])

    try:
        node_rpc_url = get_node_rpc_url()
        chain_client = connect(node_rpc_url, get_node_request_timeout(), GatewayMetrics(metrics_registry))
    except ValueError as e:
        logger.error(f"Invalid gateway configuration: {e}")
        sys.exit(1)
    except NodeConnectionError as e:
        logger.error(f"Failed to connect to Ethereum: {e}")
        sys.exit(1)

    logger.info(
        f"Server running on port {settings['port']}",
        extra={"host": settings["host"], "endpoint": mask_rpc_url(node_rpc_url)}
    )

    try:
        uvicorn.run(
            create_app(chain_client, metrics_registry, service_name),
            host=settings["host"],
            port=settings["port"],
            log_level="info",
        )
    finally:
        shutdown_metrics_servers()


if __name__ == "__main__":
    main()
