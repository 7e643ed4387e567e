# canvasreg/deploy/verifier.py
"""
Source verification of deployed contracts.

Verification is idempotent: the verifier asks the service whether the
address is already verified before submitting anything, so running the
pipeline twice never produces a duplicate submission. A rejection is
reported as VerificationStatus.FAILED and not retried; the usual cause
is a source mismatch, which a retry would not fix. A submission the
service has not decided yet is reported as PENDING, not as a rejection.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..network.transaction import source_hash

logger = logging.getLogger(__name__)


@dataclass
class SourceMetadata:
    """
    Source and build information submitted for verification.

    Attributes:
        contract_name: Name of the implementation contract
        source_code: Full source text
        compiler_version: Compiler used to build the deployed code
        constructor_arguments: Encoded constructor arguments, if any
        implementation_address: Implementation behind a proxy, if known
    """
    contract_name: str
    source_code: str
    compiler_version: str = ""
    constructor_arguments: str = ""
    implementation_address: Optional[str] = None

    @property
    def source_hash(self) -> str:
        return source_hash(self.source_code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract_name": self.contract_name,
            "source_code": self.source_code,
            "compiler_version": self.compiler_version,
            "constructor_arguments": self.constructor_arguments,
            "implementation_address": self.implementation_address,
        }


class VerificationStatus(Enum):
    """Outcome of a verify() call."""
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"
    PENDING = "pending"
    FAILED = "failed"


@dataclass
class VerificationResult:
    address: str
    status: VerificationStatus
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status in (VerificationStatus.VERIFIED, VerificationStatus.ALREADY_VERIFIED)


@dataclass
class SubmissionOutcome:
    """
    Service response to a single submission.

    `pending` means the service accepted the submission but had not
    decided it when we stopped asking.
    """
    accepted: bool
    message: str = ""
    already_verified: bool = False
    pending: bool = False


class VerificationService(ABC):
    """External source-verification service."""

    @abstractmethod
    def is_verified(self, address: str) -> bool:
        pass

    @abstractmethod
    def submit(self, address: str, source_metadata: SourceMetadata) -> SubmissionOutcome:
        pass


class Verifier:
    """Submits deployed addresses to a verification service at most once."""

    def __init__(self, service: VerificationService):
        self.service = service

    def verify(self, address: str, source_metadata: SourceMetadata) -> VerificationResult:
        """
        Verify a deployed address.

        Args:
            address: Deployed contract (or proxy) address
            source_metadata: Source to verify against

        Returns:
            VERIFIED, ALREADY_VERIFIED, PENDING or FAILED result
        """
        if self.service.is_verified(address):
            logger.info(f"{address} is already verified")
            return VerificationResult(address, VerificationStatus.ALREADY_VERIFIED)

        logger.info(f"Submitting {source_metadata.contract_name} at {address} for verification")
        outcome = self.service.submit(address, source_metadata)

        if outcome.already_verified:
            logger.info(f"{address} is already verified")
            return VerificationResult(address, VerificationStatus.ALREADY_VERIFIED, outcome.message)
        if outcome.accepted:
            logger.info(f"Verified {address}")
            return VerificationResult(address, VerificationStatus.VERIFIED, outcome.message)
        if outcome.pending:
            logger.warning(f"Verification of {address} still pending: {outcome.message}")
            return VerificationResult(address, VerificationStatus.PENDING, outcome.message)

        logger.warning(f"Verification of {address} rejected: {outcome.message}")
        return VerificationResult(address, VerificationStatus.FAILED, outcome.message)


class LocalVerificationService(VerificationService):
    """
    Verification against a LocalNetwork.

    A submission is accepted when the hash of the submitted source matches
    the source hash the deployment recorded on-chain.
    """

    def __init__(self, network):
        self.network = network
        self._verified: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.submissions: List[str] = []

    def is_verified(self, address: str) -> bool:
        with self._lock:
            return address.lower() in self._verified

    def submit(self, address: str, source_metadata: SourceMetadata) -> SubmissionOutcome:
        with self._lock:
            self.submissions.append(address.lower())
            if address.lower() in self._verified:
                return SubmissionOutcome(accepted=False, already_verified=True,
                                         message="Contract source code already verified")

            deployed = self.network.code_hash(address)
            if deployed is None:
                return SubmissionOutcome(accepted=False, message=f"No contract at {address}")
            if deployed != source_metadata.source_hash:
                return SubmissionOutcome(accepted=False, message="Bytecode does not match source")

            self._verified[address.lower()] = source_metadata.contract_name
            return SubmissionOutcome(accepted=True, message="Pass - Verified")
