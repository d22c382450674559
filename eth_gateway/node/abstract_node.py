from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Union

BlockIdentifier = Optional[Union[int, str]]


class Node(ABC):
    def __init__(self):
        pass

    @abstractmethod
    def get_block_header(self, block_identifier: BlockIdentifier = None) -> Mapping[str, Any]:
        """Get block header at the given block, chain head when None"""
        ...

    @abstractmethod
    def get_balance(self, address: str, block_identifier: BlockIdentifier = None) -> int:
        """Get balance in wei of a checksummed address, at chain head when None"""
        ...
