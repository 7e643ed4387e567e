# canvasreg/deploy/pipeline.py
"""
Deploy, confirm, verify.

A deployment run is strictly sequential:

1. Deployer submits the proxy deployment
2. ConfirmationWaiter waits for the configured depth
3. Verifier registers the address with the verification service

Each stage's typed error propagates unchanged. The DeploymentRecord
tracks what happened so far and lives only for the run.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import DeploymentSubmissionError, VerificationFailedError
from ..network.transaction import BlockReference, implementation_address
from .confirmations import ConfirmationWaiter
from .deployer import Deployer, ImplementationFactory
from .verifier import SourceMetadata, VerificationStatus, Verifier

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATIONS = 5


class VerificationState(Enum):
    UNVERIFIED = "unverified"
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass
class DeploymentRecord:
    """
    Progress of a single deployment run.

    Attributes:
        contract_name: Implementation deployed behind the proxy
        proxy_address: Address callers use
        implementation_address: Address of the implementation code
        tx_hash: Deployment transaction
        confirmations: Confirmations observed so far
        block: Inclusion block once confirmed
        verification: Verification state
        verification_message: Last message from the verification service
    """
    contract_name: str
    proxy_address: Optional[str] = None
    implementation_address: Optional[str] = None
    tx_hash: Optional[str] = None
    confirmations: int = 0
    block: Optional[BlockReference] = None
    verification: VerificationState = VerificationState.UNVERIFIED
    verification_message: str = ""
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def confirmed(self) -> bool:
        return self.block is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract_name": self.contract_name,
            "proxy_address": self.proxy_address,
            "implementation_address": self.implementation_address,
            "tx_hash": self.tx_hash,
            "confirmations": self.confirmations,
            "block_number": self.block.number if self.block else None,
            "block_hash": self.block.hash if self.block else None,
            "verification": self.verification.value,
            "verification_message": self.verification_message,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


class DeploymentPipeline:
    """
    Runs deploy -> confirm -> verify for one network.

    Usage:
        pipeline = DeploymentPipeline(deployer, waiter, verifier, confirmations=5)
        record = pipeline.run(ImplementationFactory.from_class("Canvas", Registry))
    """

    def __init__(
        self,
        deployer: Deployer,
        waiter: ConfirmationWaiter,
        verifier: Optional[Verifier] = None,
        confirmations: int = DEFAULT_CONFIRMATIONS,
    ):
        self.deployer = deployer
        self.waiter = waiter
        self.verifier = verifier
        self.confirmations = confirmations

    def run(
        self,
        implementation_factory: ImplementationFactory,
        source_metadata: SourceMetadata = None,
        cancel_event: threading.Event = None,
        skip_verification: bool = False,
    ) -> DeploymentRecord:
        """
        Deploy, wait for finality, verify.

        Args:
            implementation_factory: Implementation to deploy
            source_metadata: Source for verification (defaults to the factory's source)
            cancel_event: Set from another thread to abandon the confirmation wait
            skip_verification: Stop after confirmation

        Returns:
            The completed DeploymentRecord

        Raises:
            DeploymentSubmissionError, TransactionLostError,
            ConfirmationTimeoutError, WaitCancelled, VerificationFailedError
        """
        record = DeploymentRecord(contract_name=implementation_factory.contract_name)

        proxy_address, pending = self.deployer.deploy(implementation_factory)
        record.proxy_address = proxy_address
        record.implementation_address = implementation_address(proxy_address)
        record.tx_hash = pending.tx_hash

        def on_progress(confirmations: int):
            record.confirmations = confirmations

        record.block = self.waiter.await_confirmations(
            pending.tx_hash,
            self.confirmations,
            cancel_event=cancel_event,
            on_progress=on_progress,
        )
        receipt = self.deployer.provider.get_transaction(pending.tx_hash)
        if receipt is not None and receipt.status == 0:
            raise DeploymentSubmissionError(f"Deployment {pending.tx_hash} reverted")
        logger.info(f"Deployed {record.contract_name} at {proxy_address} (block {record.block.number})")

        if skip_verification or self.verifier is None:
            record.finished_at = time.time()
            return record

        if source_metadata is None:
            source_metadata = SourceMetadata(
                contract_name=implementation_factory.contract_name,
                source_code=implementation_factory.source_code,
            )
        if source_metadata.implementation_address is None:
            source_metadata.implementation_address = record.implementation_address

        record.verification = VerificationState.SUBMITTED
        result = self.verifier.verify(proxy_address, source_metadata)
        record.verification_message = result.message
        record.finished_at = time.time()

        if result.status == VerificationStatus.FAILED:
            record.verification = VerificationState.FAILED
            raise VerificationFailedError(proxy_address, result.message, record=record)
        if result.status == VerificationStatus.PENDING:
            # Left as SUBMITTED; the service may still accept it
            return record

        record.verification = VerificationState.VERIFIED
        return record
