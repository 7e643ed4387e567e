# canvasreg/deploy/__init__.py
"""
Deployment pipeline for the canvas registry.

Deployer creates the proxy, ConfirmationWaiter waits for finality,
Verifier registers the address with a source-verification service.
DeploymentPipeline runs the three in order.
"""

from .confirmations import ConfirmationWaiter
from .deployer import Deployer, ImplementationFactory
from .etherscan import EtherscanVerificationClient
from .pipeline import DEFAULT_CONFIRMATIONS, DeploymentPipeline, DeploymentRecord, VerificationState
from .verifier import (
    LocalVerificationService,
    SourceMetadata,
    SubmissionOutcome,
    VerificationResult,
    VerificationService,
    VerificationStatus,
    Verifier,
)

__all__ = [
    "Deployer",
    "ImplementationFactory",
    "ConfirmationWaiter",
    "Verifier",
    "VerificationService",
    "LocalVerificationService",
    "EtherscanVerificationClient",
    "SourceMetadata",
    "SubmissionOutcome",
    "VerificationResult",
    "VerificationStatus",
    "DeploymentPipeline",
    "DeploymentRecord",
    "VerificationState",
    "DEFAULT_CONFIRMATIONS",
]
