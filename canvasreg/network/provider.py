# canvasreg/network/provider.py
"""
Network provider interfaces.

A ChainReader answers status queries; that is all the confirmation
waiter needs. A NetworkProvider also accepts signed transactions, which
the deployer needs. Implementations raise NetworkError when the network
is unreachable or rejects a request.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .transaction import SignedTransaction, TransactionReceipt


class ChainReader(ABC):
    """Read-only view of a chain."""

    chain_id: int

    @abstractmethod
    def get_transaction(self, tx_hash: str) -> Optional[TransactionReceipt]:
        """
        Look up a transaction.

        Returns:
            Receipt with block_number set once included, a receipt with
            block_number None while pending, or None if the network does
            not know the transaction (dropped or replaced).
        """
        pass

    @abstractmethod
    def block_number(self) -> int:
        """Current head block number."""
        pass

    @abstractmethod
    def get_block_hash(self, number: int) -> Optional[str]:
        """Hash of the canonical block at `number`, None if beyond head."""
        pass


class NetworkProvider(ChainReader):
    """Chain that accepts this package's signed transactions."""

    @abstractmethod
    def send_transaction(self, signed: SignedTransaction) -> str:
        """
        Submit a signed transaction.

        Returns:
            Transaction hash
        """
        pass

    @abstractmethod
    def get_nonce(self, address: str) -> int:
        """Next nonce for `address`, counting pending transactions."""
        pass
