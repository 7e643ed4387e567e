# canvasreg - Uniquely named asset registry with a proxy deployment pipeline
#
# Each asset is registered once under a unique name, receives the next
# sequential identifier, and resolves to a content pointer derived from
# its name. The registry is deployed behind an upgradeable proxy, the
# deployment is confirmed to a required depth, and the address is then
# submitted for source verification.
#
# Core concepts:
# - Registry: Append-only name -> identifier -> entry store
# - UpgradeableProxy: Stable address in front of a swappable implementation
# - Deployer: Submits the proxy deployment
# - ConfirmationWaiter: Waits for the deployment to become final
# - Verifier: Idempotent source verification

from .errors import (
    CanvasError,
    ConfirmationTimeoutError,
    DeploymentError,
    DeploymentSubmissionError,
    DuplicateNameError,
    InvalidNameError,
    NetworkError,
    NotFoundError,
    RegistryError,
    TransactionLostError,
    VerificationFailedError,
    WaitCancelled,
)
from .registry import Registry, RegistryStorage, Entry, ContentResolver, content_pointer
from .contracts import UpgradeableProxy, register_contract, get_contract
from .network import ChainReader, LocalNetwork, JsonRpcProvider, NetworkProvider, Signer
from .deploy import (
    ConfirmationWaiter,
    Deployer,
    DeploymentPipeline,
    DeploymentRecord,
    ImplementationFactory,
    SourceMetadata,
    VerificationResult,
    VerificationStatus,
    Verifier,
)

__all__ = [
    # Registry
    "Registry",
    "RegistryStorage",
    "Entry",
    "ContentResolver",
    "content_pointer",
    "UpgradeableProxy",
    "register_contract",
    "get_contract",
    # Network
    "ChainReader",
    "NetworkProvider",
    "LocalNetwork",
    "JsonRpcProvider",
    "Signer",
    # Deployment
    "Deployer",
    "ImplementationFactory",
    "ConfirmationWaiter",
    "Verifier",
    "SourceMetadata",
    "VerificationResult",
    "VerificationStatus",
    "DeploymentPipeline",
    "DeploymentRecord",
    # Errors
    "CanvasError",
    "RegistryError",
    "DuplicateNameError",
    "NotFoundError",
    "InvalidNameError",
    "NetworkError",
    "DeploymentError",
    "DeploymentSubmissionError",
    "TransactionLostError",
    "ConfirmationTimeoutError",
    "WaitCancelled",
    "VerificationFailedError",
]

__version__ = "0.1.0"
