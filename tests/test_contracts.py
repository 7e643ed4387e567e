# tests/test_contracts.py
"""Tests for contract registration and the upgradeable proxy."""

import pytest

from canvasreg.contracts import (
    UpgradeableProxy,
    contract_key,
    get_contract,
    list_contracts,
    register_contract,
)
from canvasreg.errors import DuplicateNameError
from canvasreg.registry import Registry


class CanvasV2(Registry):
    """Registry with an extra query, used to test upgrades."""

    def names(self):
        return [entry.name for entry in self.list()]


class UnregisteredCanvas(Registry):
    """Registry subclass that is never registered by name."""


@pytest.fixture
def proxy():
    return UpgradeableProxy(Registry, admin="0xadmin", address="0xproxy")


class TestContractRegistry:
    """Test the named contract registry."""

    def test_canvas_is_registered(self):
        """Test the registry is available as Canvas."""
        assert get_contract("Canvas") is Registry
        assert "Canvas" in list_contracts()

    def test_unknown_contract(self):
        """Test lookup of an unknown name returns None."""
        assert get_contract("Nope") is None

    def test_register_decorator(self):
        """Test registering a class with the decorator."""
        decorated = register_contract("CanvasV2Test")(CanvasV2)
        assert decorated is CanvasV2
        assert get_contract("CanvasV2Test") is CanvasV2

    def test_contract_key_of_registered_class(self):
        """Test a registered class is named by its registered name."""
        assert contract_key(Registry) == "Canvas"

    def test_contract_key_registers_unknown_class(self):
        """Test an unregistered class is registered under its qualified name."""
        key = contract_key(UnregisteredCanvas)

        assert key == f"{__name__}.UnregisteredCanvas"
        assert get_contract(key) is UnregisteredCanvas
        assert contract_key(UnregisteredCanvas) == key


class TestUpgradeableProxy:
    """Test proxy forwarding and upgrades."""

    def test_forwards_calls(self, proxy):
        """Test calls reach the implementation."""
        assert proxy.register("0xowner", "A") == 1
        assert proxy.resolve_content(1) == "ipfs://A"
        assert proxy.display_name() == "Canvas"
        assert proxy.implementation_name == "Registry"

    def test_forwards_errors(self, proxy):
        """Test implementation errors surface unchanged."""
        proxy.register("0xowner", "A")
        with pytest.raises(DuplicateNameError):
            proxy.register("0xowner", "A")

    def test_upgrade_keeps_state(self, proxy):
        """Test upgrading keeps every registered entry."""
        proxy.register("0xowner", "A")
        proxy.register("0xowner", "B")

        proxy.upgrade_to(CanvasV2, caller="0xADMIN")

        assert proxy.version == 2
        assert proxy.implementation_name == "CanvasV2"
        assert proxy.names() == ["A", "B"]
        assert proxy.identifier_of("B") == 2
        assert proxy.register("0xowner", "C") == 3

    def test_upgrade_requires_admin(self, proxy):
        """Test only the admin can upgrade."""
        with pytest.raises(PermissionError):
            proxy.upgrade_to(CanvasV2, caller="0xmallory")
        assert proxy.version == 1
        assert proxy.implementation_name == "Registry"

    def test_private_attributes_not_forwarded(self, proxy):
        """Test underscore names are not forwarded."""
        with pytest.raises(AttributeError):
            proxy._missing
