# canvasreg/network/local.py
"""
In-memory chain for tests and dry runs.

Mirrors the behaviour the deployment pipeline relies on from a real
network: signed submissions, nonces, blocks with hashes, receipts, and
contract creation. Test hooks can mine blocks, drop transactions or
reorganise recent blocks to exercise the confirmation waiter.

By default each accepted transaction is mined into its own block
immediately (automine). Set `blocks_per_poll` to advance the chain on
every `block_number()` call, which lets a waiter observe confirmations
accumulate without a background miner.
"""

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..contracts import UpgradeableProxy, get_contract
from ..errors import NetworkError
from .provider import NetworkProvider
from .transaction import (
    LOCAL_CHAIN_ID,
    SignedTransaction,
    TransactionReceipt,
    contract_address,
    implementation_address,
)

logger = logging.getLogger(__name__)

GENESIS_HASH = "0x" + "0" * 64


def _implementation_key(payload: Dict[str, Any]) -> str:
    return payload.get("implementation") or payload.get("contract", "")


@dataclass
class Block:
    number: int
    hash: str
    parent_hash: str
    tx_hashes: List[str] = field(default_factory=list)


class LocalNetwork(NetworkProvider):
    """
    Single-process chain simulator.

    Args:
        chain_id: Chain identifier transactions must carry
        automine: Mine a block for every accepted transaction
        blocks_per_poll: Empty blocks mined on each block_number() call
    """

    def __init__(
        self,
        chain_id: int = LOCAL_CHAIN_ID,
        automine: bool = True,
        blocks_per_poll: int = 0,
    ):
        self.chain_id = chain_id
        self.automine = automine
        self.blocks_per_poll = blocks_per_poll
        self._lock = threading.RLock()
        self._blocks: List[Block] = [Block(0, GENESIS_HASH, GENESIS_HASH)]
        self._mempool: Dict[str, SignedTransaction] = {}
        self._included: Dict[str, SignedTransaction] = {}
        self._receipts: Dict[str, TransactionReceipt] = {}
        self._nonces: Dict[str, int] = {}
        self._contracts: Dict[str, Any] = {}
        self._code_hashes: Dict[str, str] = {}
        self._salt = 0
        self.poll_count = 0

    # NetworkProvider

    def send_transaction(self, signed: SignedTransaction) -> str:
        tx = signed.transaction
        with self._lock:
            if tx.chain_id != self.chain_id:
                raise NetworkError(f"Wrong chain id {tx.chain_id}, expected {self.chain_id}")
            if not signed.verify():
                raise NetworkError("Invalid transaction signature")
            expected = self._nonces.get(tx.sender.lower(), 0)
            if tx.nonce != expected:
                raise NetworkError(f"Nonce too {'low' if tx.nonce < expected else 'high'}: "
                                   f"got {tx.nonce}, expected {expected}")
            if tx.kind == "deploy_proxy" and get_contract(_implementation_key(tx.payload)) is None:
                raise NetworkError(f"Unknown contract {_implementation_key(tx.payload)!r}")

            tx_hash = signed.tx_hash
            self._nonces[tx.sender.lower()] = expected + 1
            self._mempool[tx_hash] = signed
            logger.debug(f"Accepted {tx.kind} transaction {tx_hash}")

            if self.automine:
                self.mine()
            return tx_hash

    def get_transaction(self, tx_hash: str) -> Optional[TransactionReceipt]:
        with self._lock:
            receipt = self._receipts.get(tx_hash)
            if receipt is not None:
                return receipt
            if tx_hash in self._mempool:
                return TransactionReceipt(tx_hash=tx_hash)
            return None

    def block_number(self) -> int:
        with self._lock:
            self.poll_count += 1
            if self.blocks_per_poll:
                self.mine(self.blocks_per_poll)
            return self._blocks[-1].number

    def get_block_hash(self, number: int) -> Optional[str]:
        with self._lock:
            if 0 <= number < len(self._blocks):
                return self._blocks[number].hash
            return None

    def get_nonce(self, address: str) -> int:
        with self._lock:
            return self._nonces.get(address.lower(), 0)

    # Chain control

    @property
    def head(self) -> Block:
        with self._lock:
            return self._blocks[-1]

    def mine(self, count: int = 1) -> Block:
        """
        Mine `count` blocks. Pending transactions go into the first one.

        Returns:
            The new head block
        """
        with self._lock:
            for i in range(count):
                pending = list(self._mempool.values()) if i == 0 else []
                if i == 0:
                    self._mempool.clear()
                block = self._new_block([s.tx_hash for s in pending])
                for signed in pending:
                    self._execute(signed, block)
            return self._blocks[-1]

    def _new_block(self, tx_hashes: List[str]) -> Block:
        parent = self._blocks[-1]
        number = parent.number + 1
        self._salt += 1
        seed = f"{parent.hash}:{number}:{','.join(tx_hashes)}:{self._salt}"
        block = Block(
            number=number,
            hash="0x" + hashlib.sha3_256(seed.encode()).hexdigest(),
            parent_hash=parent.hash,
            tx_hashes=tx_hashes,
        )
        self._blocks.append(block)
        return block

    def _execute(self, signed: SignedTransaction, block: Block):
        tx = signed.transaction
        created = None
        status = 1

        if tx.kind == "deploy_proxy":
            created = contract_address(tx.sender, tx.nonce)
            impl_cls = get_contract(_implementation_key(tx.payload))
            try:
                self._contracts[created] = UpgradeableProxy(impl_cls, admin=tx.sender, address=created)
                code_hash = tx.payload.get("source_hash", "")
                self._code_hashes[created] = code_hash
                self._code_hashes[implementation_address(created)] = code_hash
            except Exception as e:
                logger.warning(f"Deployment {signed.tx_hash} reverted: {e}")
                created = None
                status = 0

        self._included[signed.tx_hash] = signed
        self._receipts[signed.tx_hash] = TransactionReceipt(
            tx_hash=signed.tx_hash,
            block_number=block.number,
            block_hash=block.hash,
            contract_address=created,
            status=status,
        )
        logger.debug(f"Mined {signed.tx_hash} in block {block.number}")

    def drop_transaction(self, tx_hash: str) -> bool:
        """Forget a pending or included transaction, as if it was replaced."""
        with self._lock:
            dropped = self._mempool.pop(tx_hash, None) is not None
            if tx_hash in self._receipts:
                self._receipts.pop(tx_hash)
                self._included.pop(tx_hash, None)
                dropped = True
            return dropped

    def reorg(self, depth: int, reinclude: bool = False) -> None:
        """
        Replace the last `depth` blocks with fresh ones.

        Transactions in the replaced blocks are dropped unless `reinclude`
        is set, in which case they go back to the mempool and are mined
        into the first replacement block.
        """
        with self._lock:
            if depth <= 0 or depth >= len(self._blocks):
                raise ValueError(f"Cannot reorg {depth} blocks at height {self.head.number}")
            removed = self._blocks[-depth:]
            del self._blocks[-depth:]
            for block in removed:
                for tx_hash in block.tx_hashes:
                    self._receipts.pop(tx_hash, None)
                    signed = self._included.pop(tx_hash, None)
                    if reinclude and signed is not None:
                        self._mempool[tx_hash] = signed
            self.mine(depth)
            logger.debug(f"Reorganised {depth} blocks, head now {self.head.number}")

    # Contract state

    def get_contract(self, address: str) -> Any:
        """The deployed contract object at `address`."""
        with self._lock:
            contract = self._contracts.get(address.lower())
        if contract is None:
            raise NetworkError(f"No contract at {address}")
        return contract

    def code_hash(self, address: str) -> Optional[str]:
        """Source hash recorded for a deployed address."""
        with self._lock:
            return self._code_hashes.get(address.lower())
