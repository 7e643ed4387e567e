# canvasreg/config.py
"""
Deployment configuration.

Configuration is YAML. String values may reference environment
variables as ${VAR}, so secrets stay out of the file:

    confirmations: 5
    networks:
      local:
        chain_id: 31337
        signing_key: ${LOCAL_DEPLOYER_SECRET}
      fuji:
        url: ${AVALANCHE_CHAIN_URL}
        chain_id: 43113
        verification:
          api_url: https://api-testnet.snowtrace.io/api
          browser_url: https://testnet.snowtrace.io
          api_key: ${SNOW_TRACE_API_KEY}
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .network.transaction import LOCAL_CHAIN_ID

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env(value: Any, env: Mapping[str, str] = None, strict: bool = False) -> Any:
    """
    Expand ${VAR} references in strings, recursively through lists and dicts.

    Unset variables expand to "" unless strict is set, so one file can
    name secrets for networks that are not used in this run.
    """
    env = os.environ if env is None else env
    if isinstance(value, str):
        def replace(match):
            name = match.group(1)
            if name not in env:
                if strict:
                    raise KeyError(f"Environment variable {name} is not set")
                return ""
            return env[name]
        return _ENV_PATTERN.sub(replace, value)
    if isinstance(value, list):
        return [expand_env(v, env, strict) for v in value]
    if isinstance(value, dict):
        return {k: expand_env(v, env, strict) for k, v in value.items()}
    return value


@dataclass
class VerificationConfig:
    api_url: str
    api_key: str = ""
    browser_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerificationConfig":
        return cls(
            api_url=data["api_url"],
            api_key=data.get("api_key", ""),
            browser_url=data.get("browser_url"),
        )


@dataclass
class NetworkConfig:
    """
    One target network.

    A network without a url is the in-process LocalNetwork, which `deploy`
    runs on. A network with a url is a live chain that `wait` reads and
    whose verification service `verify` submits to.
    """
    name: str
    chain_id: int = LOCAL_CHAIN_ID
    url: Optional[str] = None
    signing_key: Optional[str] = None
    verification: Optional[VerificationConfig] = None

    @property
    def is_local(self) -> bool:
        return not self.url

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "NetworkConfig":
        verification = data.get("verification")
        return cls(
            name=name,
            chain_id=int(data.get("chain_id", LOCAL_CHAIN_ID)),
            url=data.get("url"),
            signing_key=data.get("signing_key"),
            verification=VerificationConfig.from_dict(verification) if verification else None,
        )


@dataclass
class DeployConfig:
    """Top-level deployment configuration."""
    networks: Dict[str, NetworkConfig] = field(default_factory=dict)
    default_network: str = "local"
    contract: str = "Canvas"
    source_path: Optional[str] = None
    compiler_version: str = ""
    confirmations: int = 5
    poll_interval: float = 1.0
    timeout: float = 300.0

    def network(self, name: str = None) -> NetworkConfig:
        name = name or self.default_network
        if name not in self.networks:
            if name == "local":
                return NetworkConfig(name="local")
            raise KeyError(f"Unknown network {name!r}, configured: {sorted(self.networks)}")
        return self.networks[name]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeployConfig":
        networks = {
            name: NetworkConfig.from_dict(name, net or {})
            for name, net in (data.get("networks") or {}).items()
        }
        confirmations = int(data.get("confirmations", 5))
        if confirmations < 1:
            raise ValueError(f"confirmations must be at least 1, got {confirmations}")
        return cls(
            networks=networks,
            default_network=data.get("default_network", "local"),
            contract=data.get("contract", "Canvas"),
            source_path=data.get("source_path"),
            compiler_version=data.get("compiler_version", ""),
            confirmations=confirmations,
            poll_interval=float(data.get("poll_interval", 1.0)),
            timeout=float(data.get("timeout", 300.0)),
        )

    @classmethod
    def from_yaml(cls, yaml_content: str, env: Mapping[str, str] = None) -> "DeployConfig":
        data = yaml.safe_load(yaml_content) or {}
        return cls.from_dict(expand_env(data, env))

    @classmethod
    def from_file(cls, path: Path | str, env: Mapping[str, str] = None) -> "DeployConfig":
        with open(path, "r") as f:
            return cls.from_yaml(f.read(), env)
