from web3 import Web3, HTTPProvider, IPCProvider, LegacyWebSocketProvider

from eth_gateway.base.enhanced_logging import (
    ErrorContextManager,
    classify_error,
    mask_rpc_url
)


class Web3ProviderFactory:
    """
    Factory class for creating Web3 instances based on the endpoint transport.
    HTTP(S), WebSocket and IPC endpoints each need a different provider class.
    """

    # Class-level error context manager
    _error_ctx = ErrorContextManager("web3-provider-factory")

    HTTP_SCHEMES = ("http://", "https://")
    WS_SCHEMES = ("ws://", "wss://")

    @staticmethod
    def create_web3(endpoint_url: str, request_timeout: float = 30) -> Web3:
        """
        Create a Web3 instance for the given endpoint.

        Args:
            endpoint_url: JSON-RPC endpoint, e.g. 'https://...', 'wss://...' or '/path/geth.ipc'
            request_timeout: Transport timeout in seconds

        Returns:
            Web3: Instance bound to the matching provider, not yet connected

        Raises:
            ValueError: If the endpoint transport is not supported
        """
        lowered = endpoint_url.lower()

        try:
            if lowered.startswith(Web3ProviderFactory.HTTP_SCHEMES):
                return Web3ProviderFactory._create_http_web3(endpoint_url, request_timeout)
            elif lowered.startswith(Web3ProviderFactory.WS_SCHEMES):
                return Web3ProviderFactory._create_websocket_web3(endpoint_url, request_timeout)
            elif lowered.endswith(".ipc"):
                return Web3ProviderFactory._create_ipc_web3(endpoint_url, request_timeout)
            else:
                error = ValueError(f"Unsupported node endpoint: {mask_rpc_url(endpoint_url)}")
                Web3ProviderFactory._error_ctx.log_error(
                    "Unsupported node endpoint",
                    error,
                    endpoint=mask_rpc_url(endpoint_url),
                    error_category="validation_error",
                    supported_transports=["http", "https", "ws", "wss", "ipc"]
                )
                raise error
        except Exception as e:
            if not isinstance(e, ValueError):
                Web3ProviderFactory._error_ctx.log_error(
                    "Failed to create Web3 provider",
                    e,
                    endpoint=mask_rpc_url(endpoint_url),
                    error_category=classify_error(e)
                )
            raise

    @staticmethod
    def _create_http_web3(endpoint_url: str, request_timeout: float) -> Web3:
        """Create a Web3 instance over HTTP(S)"""
        return Web3(HTTPProvider(endpoint_url, request_kwargs={"timeout": request_timeout}))

    @staticmethod
    def _create_websocket_web3(endpoint_url: str, request_timeout: float) -> Web3:
        """Create a Web3 instance over a WebSocket"""
        return Web3(LegacyWebSocketProvider(endpoint_url, websocket_timeout=request_timeout))

    @staticmethod
    def _create_ipc_web3(ipc_path: str, request_timeout: float) -> Web3:
        """Create a Web3 instance over a local IPC socket"""
        return Web3(IPCProvider(ipc_path, timeout=request_timeout))
