import threading
from contextlib import nullcontext
from typing import Any, Mapping

from loguru import logger
from web3 import Web3, LegacyWebSocketProvider

from eth_gateway.base.enhanced_logging import ErrorContextManager, classify_error, mask_rpc_url
from eth_gateway.node.abstract_node import Node, BlockIdentifier
from eth_gateway.node.exceptions import NodeConnectionError, RemoteCallError
from eth_gateway.node.web3_factory import Web3ProviderFactory

LATEST_BLOCK = "latest"


class EthereumNode(Node):
    """Node backed by a web3 connection to a remote Ethereum JSON-RPC endpoint"""

    _error_ctx = ErrorContextManager("ethereum-node")

    def __init__(self, web3: Web3, node_rpc_url: str = None):
        super().__init__()
        self.web3 = web3
        self.node_rpc_url = node_rpc_url
        # One shared socket: a WebSocket request must not interleave with another send/recv
        self._request_lock = threading.Lock() if isinstance(web3.provider, LegacyWebSocketProvider) else nullcontext()

    @classmethod
    def connect(cls, node_rpc_url: str, request_timeout: float = 30) -> "EthereumNode":
        """
        Dial the node and check that it answers.

        Raises:
            NodeConnectionError: If the endpoint is unsupported, unreachable or fails the handshake
        """
        endpoint = mask_rpc_url(node_rpc_url)

        try:
            web3 = Web3ProviderFactory.create_web3(node_rpc_url, request_timeout)
            if not web3.is_connected():
                raise NodeConnectionError(f"Ethereum node at {endpoint} is not reachable")
            chain_id = web3.eth.chain_id
        except NodeConnectionError as e:
            cls._error_ctx.log_error(
                "Ethereum node handshake failed",
                e,
                endpoint=endpoint,
                error_category="connection_error"
            )
            raise
        except Exception as e:
            cls._error_ctx.log_error(
                "Failed to connect to Ethereum node",
                e,
                endpoint=endpoint,
                error_category=classify_error(e)
            )
            raise NodeConnectionError(f"Failed to connect to Ethereum node at {endpoint}: {e}") from e

        logger.info(
            "Ethereum node connection established",
            extra={
                "endpoint": endpoint,
                "chain_id": chain_id
            }
        )
        return cls(web3, node_rpc_url)

    def get_block_header(self, block_identifier: BlockIdentifier = None) -> Mapping[str, Any]:
        """Get block header, chain head when no block is given"""
        try:
            with self._request_lock:
                return self.web3.eth.get_block(
                    LATEST_BLOCK if block_identifier is None else block_identifier,
                    full_transactions=False
                )
        except Exception as e:
            self._error_ctx.log_error(
                "Failed to fetch block header via RPC",
                e,
                block_identifier=block_identifier,
                endpoint=mask_rpc_url(self.node_rpc_url),
                rpc_method="eth_getBlockByNumber"
            )
            raise RemoteCallError(str(e)) from e

    def get_balance(self, address: str, block_identifier: BlockIdentifier = None) -> int:
        """Get balance in wei, at chain head when no block is given"""
        try:
            with self._request_lock:
                return self.web3.eth.get_balance(
                    address,
                    LATEST_BLOCK if block_identifier is None else block_identifier
                )
        except Exception as e:
            self._error_ctx.log_error(
                "Failed to fetch balance via RPC",
                e,
                address=address,
                block_identifier=block_identifier,
                endpoint=mask_rpc_url(self.node_rpc_url),
                rpc_method="eth_getBalance"
            )
            raise RemoteCallError(str(e)) from e
