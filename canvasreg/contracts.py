# canvasreg/contracts.py
"""
Contract implementations and the upgradeable proxy.

Implementations are registered by name and looked up when a
deployment transaction is executed. An implementation is any class that
can be built with no arguments and accepts `storage=` to bind to
existing state.

A proxy owns the storage and forwards calls to its current
implementation. Upgrading swaps the implementation but keeps the
storage, so the address and every registered entry survive.
"""

import logging
from typing import Any, Callable, Dict, Optional, Type

from .registry import Registry, RegistryStorage

logger = logging.getLogger(__name__)

# Global contract registry
_CONTRACTS: Dict[str, Type] = {}


def register_contract(name: str) -> Callable:
    """
    Decorator to register a contract implementation under a name.

    Usage:
        @register_contract("CanvasV2")
        class CanvasV2(Registry):
            ...
    """
    def decorator(cls: Type) -> Type:
        if name in _CONTRACTS:
            logger.warning(f"Overwriting contract {name}")
        _CONTRACTS[name] = cls
        return cls
    return decorator


def get_contract(name: str) -> Optional[Type]:
    """Get a registered implementation class, None if unknown."""
    return _CONTRACTS.get(name)


def list_contracts() -> Dict[str, Type]:
    return dict(_CONTRACTS)


def contract_key(implementation_cls: Type) -> str:
    """
    Name an implementation class is registered under.

    Unregistered classes are registered under their qualified name, so a
    deployment transaction can always name the exact class to run.
    """
    for name, cls in _CONTRACTS.items():
        if cls is implementation_cls:
            return name
    name = f"{implementation_cls.__module__}.{implementation_cls.__qualname__}"
    register_contract(name)(implementation_cls)
    return name


register_contract("Canvas")(Registry)


class UpgradeableProxy:
    """
    Stable address in front of a swappable implementation.

    Attribute access that the proxy does not define itself is forwarded
    to the current implementation:

        proxy = UpgradeableProxy(Registry, admin="0xadmin")
        proxy.register("0xowner", "A")   # runs Registry.register
    """

    def __init__(
        self,
        implementation_cls: Type,
        admin: str,
        address: str = None,
        storage: RegistryStorage = None,
    ):
        self.address = address
        self.admin = admin
        self.storage = storage if storage is not None else RegistryStorage()
        self._implementation = implementation_cls(storage=self.storage)
        self.version = 1

    @property
    def implementation(self) -> Any:
        return self._implementation

    @property
    def implementation_name(self) -> str:
        return type(self._implementation).__name__

    def upgrade_to(self, implementation_cls: Type, caller: str) -> None:
        """
        Point the proxy at a new implementation.

        Args:
            implementation_cls: New implementation class
            caller: Account requesting the upgrade (must be the admin)
        """
        if caller.lower() != self.admin.lower():
            raise PermissionError(f"{caller} is not the proxy admin")
        self._implementation = implementation_cls(storage=self.storage)
        self.version += 1
        logger.info(
            f"Proxy {self.address} upgraded to {self.implementation_name} (v{self.version})"
        )

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._implementation, name)

    def __repr__(self) -> str:
        return f"UpgradeableProxy({self.address}, implementation={self.implementation_name})"
