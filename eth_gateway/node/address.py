import string

from web3 import Web3

from eth_gateway.node.exceptions import AddressValidationError

ADDRESS_LENGTH = 20
_HEX_DIGITS = set(string.hexdigits)


def normalize_address(raw_address: str) -> str:
    """
    Convert a caller-supplied hex string into an EIP-55 checksummed address.

    The ``0x`` prefix is optional, odd-length values get a leading zero nibble
    and short values are left-padded to 20 bytes, so ``0x0`` is the zero
    address. Normalizing an already normalized address returns it unchanged.

    Raises:
        AddressValidationError: If the value is empty, not hex or longer than 20 bytes
    """
    if raw_address is None:
        raise AddressValidationError("Address is required")

    value = raw_address.strip()
    if value[:2] in ("0x", "0X"):
        value = value[2:]

    if not value:
        raise AddressValidationError(f"Invalid address: {raw_address!r} has no hex digits")

    if any(c not in _HEX_DIGITS for c in value):
        raise AddressValidationError(f"Invalid address: {raw_address!r} is not a hex string")

    if len(value) % 2:
        value = "0" + value

    if len(value) > ADDRESS_LENGTH * 2:
        raise AddressValidationError(f"Invalid address: {raw_address!r} is longer than {ADDRESS_LENGTH} bytes")

    return Web3.to_checksum_address("0x" + value.rjust(ADDRESS_LENGTH * 2, "0"))
