import time
from typing import Optional

from eth_gateway.base.metrics import GatewayMetrics
from eth_gateway.node.abstract_node import Node
from eth_gateway.node.address import normalize_address
from eth_gateway.node.ethereum_node import EthereumNode
from eth_gateway.node.exceptions import RemoteCallError


class ChainClient:
    """
    Read-only view of the chain head for the HTTP layer.

    Each operation issues exactly one call to the underlying node and returns a
    plain integer. Node failures surface as RemoteCallError with the original
    message; nothing is cached or retried.
    """

    def __init__(self, node: Node, metrics: Optional[GatewayMetrics] = None):
        self.node = node
        self.metrics = metrics

    def latest_block_number(self) -> int:
        block_number = self._call("get_block_header", _block_number, self.node.get_block_header, None)

        if self.metrics:
            self.metrics.update_latest_block(block_number)
        return block_number

    def balance_of(self, address: str) -> int:
        account = normalize_address(address)
        return self._call("get_balance", _balance, self.node.get_balance, account, None)

    def _call(self, method: str, parse, func, *args):
        """Issue one node call and parse its result; both count toward the call's outcome"""
        start_time = time.time()
        success = False
        try:
            result = parse(func(*args))
            success = True
            return result
        except RemoteCallError:
            raise
        except Exception as e:
            raise RemoteCallError(str(e)) from e
        finally:
            if self.metrics:
                self.metrics.record_rpc_call(method, time.time() - start_time, success)


def _block_number(header) -> int:
    try:
        return int(header["number"])
    except (KeyError, TypeError, ValueError) as e:
        raise RemoteCallError(f"Malformed block header from node: {e}") from e


def _balance(balance) -> int:
    try:
        return int(balance)
    except (TypeError, ValueError) as e:
        raise RemoteCallError(f"Malformed balance from node: {e}") from e


def connect(node_rpc_url: str, request_timeout: float = 30,
            metrics: Optional[GatewayMetrics] = None) -> ChainClient:
    """
    Connect to the Ethereum node and wrap it in a ChainClient.

    Raises:
        NodeConnectionError: If the node cannot be reached
    """
    node = EthereumNode.connect(node_rpc_url, request_timeout)
    return ChainClient(node, metrics)
