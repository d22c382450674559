"""
Chain client adapter for a remote Ethereum node.

The HTTP layer only sees ChainClient; the Node interface keeps it independent
of web3 so a substitute node can be plugged in without a network connection.
"""

from .abstract_node import Node
from .address import normalize_address
from .chain_client import ChainClient, connect
from .ethereum_node import EthereumNode
from .exceptions import NodeConnectionError, RemoteCallError, AddressValidationError

__all__ = [
    'Node', 'EthereumNode', 'ChainClient', 'connect', 'normalize_address',
    'NodeConnectionError', 'RemoteCallError', 'AddressValidationError'
]
