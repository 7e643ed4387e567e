# canvasreg/network/__init__.py
"""
Network collaborators for the deployment pipeline.

- ChainReader: status queries the confirmation waiter polls
- NetworkProvider: ChainReader that also accepts signed transactions
- LocalNetwork: in-memory chain the deployer submits to
- JsonRpcProvider: read-only view of a remote node over HTTP
"""

from .jsonrpc import JsonRpcProvider
from .local import Block, LocalNetwork
from .provider import ChainReader, NetworkProvider
from .transaction import (
    BlockReference,
    LOCAL_CHAIN_ID,
    PendingTransaction,
    SignedTransaction,
    Signer,
    Transaction,
    TransactionReceipt,
    contract_address,
    implementation_address,
    source_hash,
)

__all__ = [
    "ChainReader",
    "NetworkProvider",
    "LocalNetwork",
    "Block",
    "JsonRpcProvider",
    "Transaction",
    "SignedTransaction",
    "PendingTransaction",
    "TransactionReceipt",
    "BlockReference",
    "Signer",
    "LOCAL_CHAIN_ID",
    "contract_address",
    "implementation_address",
    "source_hash",
]
