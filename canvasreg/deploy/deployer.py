# canvasreg/deploy/deployer.py
"""
Proxy deployment.

The deployer builds one contract-creation transaction for an
upgradeable proxy in front of a fresh implementation, signs it, and
submits it. It returns as soon as the network accepts the submission;
waiting for confirmations is the ConfirmationWaiter's job.
"""

import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Type

from ..contracts import contract_key, get_contract
from ..errors import DeploymentSubmissionError, NetworkError
from ..network.provider import NetworkProvider
from ..network.transaction import (
    PendingTransaction,
    Signer,
    Transaction,
    contract_address,
    source_hash,
)

logger = logging.getLogger(__name__)


@dataclass
class ImplementationFactory:
    """
    Describes the implementation to put behind the proxy.

    Attributes:
        contract_name: Registered contract name (e.g. "Canvas")
        source_code: Source submitted for verification and hashed on-chain
        build: Optional constructor override; defaults to the registered class
    """
    contract_name: str
    source_code: str = ""
    build: Optional[Callable[..., Any]] = None

    @classmethod
    def from_class(cls, contract_name: str, implementation_cls: Type) -> "ImplementationFactory":
        """Factory whose source is the implementation's own Python source."""
        try:
            source = inspect.getsource(implementation_cls)
        except (OSError, TypeError):
            source = ""
        return cls(contract_name=contract_name, source_code=source, build=implementation_cls)

    @classmethod
    def from_file(cls, contract_name: str, path: Path | str) -> "ImplementationFactory":
        return cls(contract_name=contract_name, source_code=Path(path).read_text())

    @property
    def source_hash(self) -> str:
        return source_hash(self.source_code)

    def implementation_class(self) -> Optional[Type]:
        return self.build or get_contract(self.contract_name)

    def instantiate(self) -> Any:
        """Build a fresh implementation with default construction."""
        impl_cls = self.implementation_class()
        if impl_cls is None:
            raise LookupError(f"No implementation registered for {self.contract_name!r}")
        return impl_cls()


class Deployer:
    """
    Submits proxy deployments.

    Args:
        provider: Network to submit to
        signer: Account that signs and pays for the deployment
    """

    def __init__(self, provider: NetworkProvider, signer: Signer):
        self.provider = provider
        self.signer = signer

    def deploy(self, implementation_factory: ImplementationFactory) -> Tuple[str, PendingTransaction]:
        """
        Submit a proxy deployment.

        Args:
            implementation_factory: Implementation to deploy behind the proxy

        Returns:
            (proxy_address, pending transaction)

        Raises:
            DeploymentSubmissionError: the implementation could not be built
                or the network rejected the submission
        """
        name = implementation_factory.contract_name
        try:
            implementation = implementation_factory.instantiate()
        except Exception as e:
            raise DeploymentSubmissionError(f"Cannot instantiate {name}: {e}") from e
        implementation_cls = type(implementation)
        logger.debug(f"Instantiated {implementation_cls.__name__} for {name}")

        try:
            nonce = self.provider.get_nonce(self.signer.address)
            tx = Transaction(
                sender=self.signer.address,
                nonce=nonce,
                kind="deploy_proxy",
                payload={
                    "contract": name,
                    "implementation": contract_key(implementation_cls),
                    "source_hash": implementation_factory.source_hash,
                    "initializer": None,
                },
                chain_id=self.provider.chain_id,
            )
            signed = self.signer.sign(tx)
            tx_hash = self.provider.send_transaction(signed)
        except (NetworkError, ValueError) as e:
            raise DeploymentSubmissionError(f"Deployment of {name} rejected: {e}") from e

        proxy_address = contract_address(self.signer.address, nonce)
        pending = PendingTransaction(
            tx_hash=tx_hash,
            sender=self.signer.address,
            nonce=nonce,
            contract_address=proxy_address,
        )
        logger.info(f"{name} proxy deploying to {proxy_address} (tx {tx_hash})")
        return proxy_address, pending
