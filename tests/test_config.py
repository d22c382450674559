import pytest

from eth_gateway.base import get_node_rpc_url, get_node_request_timeout, get_gateway_settings, get_service_name


def test_node_rpc_url_is_required(monkeypatch):
    monkeypatch.delenv("ETH_NODE_RPC_URL", raising=False)

    with pytest.raises(ValueError, match="ETH_NODE_RPC_URL"):
        get_node_rpc_url()


def test_node_rpc_url_from_environment(monkeypatch):
    monkeypatch.setenv("ETH_NODE_RPC_URL", "http://localhost:8545")
    assert get_node_rpc_url() == "http://localhost:8545"


def test_defaults(monkeypatch):
    for name in ("GATEWAY_HOST", "GATEWAY_PORT", "GATEWAY_METRICS_PORT", "ETH_NODE_REQUEST_TIMEOUT", "SERVICE_NAME"):
        monkeypatch.delenv(name, raising=False)

    assert get_gateway_settings() == {"host": "0.0.0.0", "port": 8080, "metrics_port": 9200}
    assert get_node_request_timeout() == 30.0
    assert get_service_name() == "eth-gateway"


def test_overrides(monkeypatch):
    monkeypatch.setenv("GATEWAY_PORT", "9000")
    monkeypatch.setenv("ETH_NODE_REQUEST_TIMEOUT", "2.5")

    assert get_gateway_settings()["port"] == 9000
    assert get_node_request_timeout() == 2.5
