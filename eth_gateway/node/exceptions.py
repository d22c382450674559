class NodeConnectionError(ConnectionError):
    """The upstream Ethereum node could not be reached or failed the handshake."""


class RemoteCallError(RuntimeError):
    """An upstream call failed: transport error, node error or malformed response."""


class AddressValidationError(ValueError):
    """A caller-supplied address is missing or is not a 20-byte hex value."""
