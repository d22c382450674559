from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from eth_gateway.api import main as gateway_main
from eth_gateway.api.main import create_app
from eth_gateway.base.metrics import MetricsRegistry
from eth_gateway.node import ChainClient, NodeConnectionError
from tests.fakes import FakeNode, ZERO_ADDRESS


@pytest.fixture
def client(chain_client):
    with TestClient(create_app(chain_client, service_name="test-gateway")) as test_client:
        yield test_client


def failing_client(message="upstream node unavailable"):
    chain_client = ChainClient(FakeNode(error=RuntimeError(message)))
    return TestClient(create_app(chain_client, service_name="test-gateway"))


def test_latest_block(client):
    response = client.get("/latest-block")

    assert response.status_code == 200
    assert response.json() == {"latest_block": "12345"}


def test_balance(client, fake_node):
    response = client.get("/balance", params={"address": "0x0"})

    assert response.status_code == 200
    assert response.json() == {"balance": "1000"}
    assert fake_node.calls == [("get_balance", ZERO_ADDRESS, None)]


def test_balance_without_address(client, fake_node):
    response = client.get("/balance")

    assert response.status_code == 400
    assert response.text == "Address is required"
    assert fake_node.calls == []


def test_balance_with_empty_address(client):
    response = client.get("/balance?address=")

    assert response.status_code == 400
    assert response.text == "Address is required"


def test_balance_with_malformed_address(client, fake_node):
    response = client.get("/balance", params={"address": "0xnothex"})

    assert response.status_code == 400
    assert "Invalid address" in response.text
    assert fake_node.calls == []


def test_balance_prefix_is_optional(client):
    with_prefix = client.get("/balance", params={"address": ZERO_ADDRESS})
    without_prefix = client.get("/balance", params={"address": ZERO_ADDRESS[2:]})

    assert with_prefix.status_code == without_prefix.status_code == 200
    assert with_prefix.json() == without_prefix.json() == {"balance": "1000"}


def test_large_values_are_decimal_strings():
    chain_client = ChainClient(FakeNode(block_number=2 ** 64, balances={ZERO_ADDRESS: 10 ** 30}))
    client = TestClient(create_app(chain_client, service_name="test-gateway"))

    assert client.get("/latest-block").json() == {"latest_block": str(2 ** 64)}
    assert client.get("/balance?address=0x0").json() == {"balance": "1" + "0" * 30}


@pytest.mark.parametrize("path", ["/latest-block", "/balance?address=0x0"])
def test_node_failure_is_500_with_message(path):
    response = failing_client("upstream node unavailable").get(path)

    assert response.status_code == 500
    assert response.text == "upstream node unavailable"


def test_concurrent_requests(client):
    with ThreadPoolExecutor(max_workers=8) as executor:
        futures = [
            executor.submit(client.get, "/latest-block" if i % 2 else "/balance?address=0x0")
            for i in range(16)
        ]
        responses = [f.result(timeout=10) for f in futures]

    for i, response in enumerate(responses):
        assert response.status_code == 200
        if i % 2:
            assert response.json() == {"latest_block": "12345"}
        else:
            assert response.json() == {"balance": "1000"}


def test_correlation_id_is_echoed(client):
    response = client.get("/latest-block", headers={"X-Correlation-ID": "req_test123"})
    assert response.headers["X-Correlation-ID"] == "req_test123"

    generated = client.get("/latest-block").headers["X-Correlation-ID"]
    assert generated.startswith("req_")


@pytest.mark.parametrize("path", ["/", "/docs", "/openapi.json", "/metrics", "/health"])
def test_no_other_routes(client, path):
    assert client.get(path).status_code == 404


def test_http_metrics_are_recorded(chain_client):
    registry = MetricsRegistry("test-gateway-http")
    client = TestClient(create_app(chain_client, registry, service_name="test-gateway-http"))

    client.get("/latest-block")
    client.get("/balance")

    assert registry.registry.get_sample_value(
        'http_requests_total', {'method': 'GET', 'endpoint': '/latest-block', 'status': '200'}
    ) == 1.0
    assert registry.registry.get_sample_value(
        'http_errors_total',
        {'method': 'GET', 'endpoint': '/balance', 'status': '400', 'error_type': 'bad_request'}
    ) == 1.0


def test_startup_connects_when_no_client_is_given(monkeypatch):
    calls = []

    def fake_connect(node_rpc_url, request_timeout, metrics):
        calls.append(node_rpc_url)
        return ChainClient(FakeNode(block_number=5))

    monkeypatch.setenv("ETH_NODE_RPC_URL", "http://localhost:8545")
    monkeypatch.setattr(gateway_main, "connect", fake_connect)

    with TestClient(create_app(service_name="test-gateway")) as client:
        assert client.get("/latest-block").json() == {"latest_block": "5"}

    assert calls == ["http://localhost:8545"]


def test_startup_fails_when_node_is_unreachable(monkeypatch):
    monkeypatch.setenv("ETH_NODE_RPC_URL", "ftp://not-a-node.example")

    with pytest.raises(NodeConnectionError):
        with TestClient(create_app(service_name="test-gateway")):
            pass


def test_importing_main_builds_no_app():
    assert not hasattr(gateway_main, "app")
