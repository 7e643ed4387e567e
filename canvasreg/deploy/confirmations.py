# canvasreg/deploy/confirmations.py
"""
Waiting for transaction finality.

The waiter polls the provider until the transaction's inclusion block
has enough blocks on top of it. The inclusion block counts as the first
confirmation, so a depth of 5 means the inclusion block plus four more.

Outcomes are distinct:
- depth reached: the inclusion BlockReference is returned
- transaction dropped or reorganised away: TransactionLostError
- wait too long: ConfirmationTimeoutError (the transaction may still confirm)
- cancel_event set: WaitCancelled (the submitted transaction is untouched)

A poll that fails with NetworkError is logged and retried on the next
interval.
"""

import logging
import threading
import time
from typing import Callable, Optional, Tuple

from ..errors import ConfirmationTimeoutError, NetworkError, TransactionLostError, WaitCancelled
from ..network.provider import ChainReader
from ..network.transaction import BlockReference

logger = logging.getLogger(__name__)

# Progress callback type: receives the observed confirmation count
ProgressCallback = Callable[[int], None]


class ConfirmationWaiter:
    """
    Polls a provider until a transaction is final.

    Args:
        provider: Network to poll
        poll_interval: Seconds between polls
        timeout: Maximum seconds to wait
    """

    def __init__(self, provider: ChainReader, poll_interval: float = 1.0, timeout: float = 300.0):
        self.provider = provider
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._clock = time.monotonic

    def _report_progress(self, callback: Optional[ProgressCallback], confirmations: int):
        if callback:
            try:
                callback(confirmations)
            except Exception as e:
                logger.warning(f"Progress callback error: {e}")

    def await_confirmations(
        self,
        tx_hash: str,
        required_depth: int,
        cancel_event: threading.Event = None,
        on_progress: ProgressCallback = None,
    ) -> BlockReference:
        """
        Block until `tx_hash` has `required_depth` confirmations.

        Args:
            tx_hash: Transaction to wait for
            required_depth: Confirmations required (>= 1)
            cancel_event: Set from another thread to stop waiting
            on_progress: Called whenever the confirmation count changes

        Returns:
            Reference to the block the transaction was included in
        """
        if required_depth < 1:
            raise ValueError(f"required_depth must be at least 1, got {required_depth}")

        cancel_event = cancel_event or threading.Event()
        deadline = self._clock() + self.timeout
        confirmations = 0
        included: Optional[BlockReference] = None

        while True:
            if cancel_event.is_set():
                logger.info(f"Wait for {tx_hash} cancelled at {confirmations} confirmations")
                raise WaitCancelled(tx_hash, confirmations)

            try:
                observed, included = self._observe(tx_hash, included)
            except NetworkError as e:
                # A failed poll changes nothing; the deadline decides
                logger.warning(f"Polling {tx_hash} failed: {e}")
                observed = confirmations

            if observed != confirmations:
                confirmations = observed
                logger.debug(f"{tx_hash}: {confirmations}/{required_depth} confirmations")
                self._report_progress(on_progress, confirmations)

            if included is not None and confirmations >= required_depth:
                logger.info(
                    f"{tx_hash} confirmed in block {included.number} "
                    f"with {confirmations} confirmations"
                )
                return included

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ConfirmationTimeoutError(tx_hash, confirmations, required_depth, self.timeout)

            # Event.wait returns True if cancelled while sleeping
            if cancel_event.wait(min(self.poll_interval, remaining)):
                logger.info(f"Wait for {tx_hash} cancelled at {confirmations} confirmations")
                raise WaitCancelled(tx_hash, confirmations)

    def _observe(
        self, tx_hash: str, included: Optional[BlockReference]
    ) -> Tuple[int, Optional[BlockReference]]:
        """One poll: (confirmations, inclusion block or None while pending)."""
        receipt = self.provider.get_transaction(tx_hash)
        if receipt is None:
            raise TransactionLostError(tx_hash, "dropped or replaced")

        if receipt.pending:
            if included is not None:
                logger.info(f"{tx_hash} returned to pending after block {included.number}")
            return 0, None

        block = receipt.block
        canonical = self.provider.get_block_hash(block.number)
        if canonical != block.hash:
            raise TransactionLostError(
                tx_hash, f"block {block.number} reorganised ({block.hash} -> {canonical})"
            )
        if included is not None and included != block:
            logger.info(f"{tx_hash} re-included in block {block.number}")
        head = self.provider.block_number()
        return max(0, head - block.number + 1), block
