import os
from dotenv import load_dotenv
from .enhanced_logging import (
    setup_enhanced_logger, ErrorContextManager, classify_error,
    generate_correlation_id, get_correlation_id, set_correlation_id,
    log_service_start, log_service_stop, mask_rpc_url
)
from .metrics import setup_metrics, shutdown_metrics_servers, MetricsRegistry, GatewayMetrics


load_dotenv()

DEFAULT_SERVICE_NAME = "eth-gateway"


def get_service_name() -> str:
    return os.getenv("SERVICE_NAME", DEFAULT_SERVICE_NAME)


def get_node_rpc_url() -> str:
    node_rpc_url = os.getenv("ETH_NODE_RPC_URL")

    if not node_rpc_url:
        raise ValueError("Node RPC URL not set. Please check the ETH_NODE_RPC_URL environment variable.")

    return node_rpc_url


def get_node_request_timeout() -> float:
    return float(os.getenv("ETH_NODE_REQUEST_TIMEOUT", "30"))


def get_gateway_settings():
    settings = {
        "host": os.getenv("GATEWAY_HOST", "0.0.0.0"),
        "port": int(os.getenv("GATEWAY_PORT", "8080")),
        "metrics_port": int(os.getenv("GATEWAY_METRICS_PORT", "9200")),
    }

    return settings
