# canvasreg/errors.py
"""
Error types for the canvas registry and its deployment pipeline.

Precondition violations (duplicate names, unknown identifiers) are raised
by the registry and never retried. Deployment errors describe what went
wrong at each pipeline stage so the caller can decide whether to resubmit,
re-poll or abandon.
"""

from typing import Any, Optional


class CanvasError(Exception):
    """Base class for all canvasreg errors."""


# Registry


class RegistryError(CanvasError):
    """A registry precondition was violated."""


class DuplicateNameError(RegistryError):
    """The name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"already mint: {name!r}")
        self.name = name


class NotFoundError(RegistryError, KeyError):
    """The identifier or name was never registered."""

    def __init__(self, key: Any):
        super().__init__(f"not mint: {key!r}")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class InvalidNameError(RegistryError, ValueError):
    """Names must be non-empty strings."""


# Network


class NetworkError(CanvasError, ConnectionError):
    """A network collaborator could not be reached or rejected the request."""


# Deployment


class DeploymentError(CanvasError):
    """Base class for deployment pipeline failures."""


class DeploymentSubmissionError(DeploymentError):
    """The deployment transaction could not be built or was rejected."""


class TransactionLostError(DeploymentError):
    """
    The transaction left the canonical chain before reaching depth.

    Raised when the transaction is dropped, replaced, or its inclusion
    block is reorganised away. The caller decides whether to resubmit.
    """

    def __init__(self, tx_hash: str, reason: str = "dropped"):
        super().__init__(f"Transaction {tx_hash} lost: {reason}")
        self.tx_hash = tx_hash
        self.reason = reason


class ConfirmationTimeoutError(DeploymentError):
    """
    The wait expired before reaching the required depth.

    The transaction may still confirm later.
    """

    def __init__(self, tx_hash: str, confirmations: int, required: int, timeout: float):
        super().__init__(
            f"Transaction {tx_hash} has {confirmations}/{required} confirmations "
            f"after {timeout:.1f}s"
        )
        self.tx_hash = tx_hash
        self.confirmations = confirmations
        self.required = required
        self.timeout = timeout


class WaitCancelled(DeploymentError):
    """The local wait loop was cancelled. The transaction itself is unaffected."""

    def __init__(self, tx_hash: str, confirmations: int = 0):
        super().__init__(f"Wait for {tx_hash} cancelled at {confirmations} confirmations")
        self.tx_hash = tx_hash
        self.confirmations = confirmations


class VerificationFailedError(DeploymentError):
    """The verification service rejected the submission."""

    def __init__(self, address: str, message: str, record: Optional[Any] = None):
        super().__init__(f"Verification of {address} failed: {message}")
        self.address = address
        self.message = message
        self.record = record
