import pytest

from eth_gateway.node import ChainClient
from tests.fakes import FakeNode, ZERO_ADDRESS


@pytest.fixture
def fake_node():
    return FakeNode(block_number=12345, balances={ZERO_ADDRESS: 1000})


@pytest.fixture
def chain_client(fake_node):
    return ChainClient(fake_node)
