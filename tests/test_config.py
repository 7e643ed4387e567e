# tests/test_config.py
"""Tests for deployment configuration loading."""

import pytest

from canvasreg.config import DeployConfig, expand_env

CONFIG_YAML = """
default_network: fuji
confirmations: 5
poll_interval: 2
networks:
  local:
    chain_id: 31337
  fuji:
    url: ${AVALANCHE_CHAIN_URL}
    chain_id: 43113
    signing_key: ${WALLET_SECRET}
    verification:
      api_url: https://api-testnet.snowtrace.io/api
      browser_url: https://testnet.snowtrace.io
      api_key: ${SNOW_TRACE_API_KEY}
"""

ENV = {
    "AVALANCHE_CHAIN_URL": "https://api.avax-test.network/ext/bc/C/rpc",
    "WALLET_SECRET": "0x" + "22" * 32,
    "SNOW_TRACE_API_KEY": "snow-key",
}


class TestExpandEnv:
    """Test ${VAR} expansion."""

    def test_expands_nested(self):
        """Test expansion through dicts and lists."""
        data = {"a": "${X}", "b": ["${X}-${Y}"], "c": 3}
        assert expand_env(data, {"X": "1", "Y": "2"}) == {"a": "1", "b": ["1-2"], "c": 3}

    def test_missing_expands_to_empty(self):
        """Test an unset variable expands to an empty string."""
        assert expand_env("${MISSING}", {}) == ""

    def test_missing_strict(self):
        """Test an unset variable raises in strict mode."""
        with pytest.raises(KeyError):
            expand_env("${MISSING}", {}, strict=True)


class TestDeployConfig:
    """Test YAML deployment configuration."""

    def test_from_yaml(self):
        """Test loading a full configuration."""
        config = DeployConfig.from_yaml(CONFIG_YAML, env=ENV)

        assert config.default_network == "fuji"
        assert config.confirmations == 5
        assert config.poll_interval == 2.0

        fuji = config.network()
        assert fuji.name == "fuji"
        assert fuji.chain_id == 43113
        assert fuji.url == ENV["AVALANCHE_CHAIN_URL"]
        assert fuji.signing_key == ENV["WALLET_SECRET"]
        assert fuji.verification.api_key == "snow-key"
        assert fuji.verification.browser_url == "https://testnet.snowtrace.io"
        assert not fuji.is_local

    def test_local_network(self):
        """Test a network without a url is local."""
        config = DeployConfig.from_yaml(CONFIG_YAML, env=ENV)
        local = config.network("local")
        assert local.is_local
        assert local.verification is None

    def test_local_is_implicit(self):
        """Test the defaults provide a local network."""
        config = DeployConfig()
        assert config.network().name == "local"
        assert config.contract == "Canvas"
        assert config.confirmations == 5

    def test_unknown_network(self):
        """Test an unknown network name raises KeyError."""
        config = DeployConfig.from_yaml(CONFIG_YAML, env=ENV)
        with pytest.raises(KeyError):
            config.network("mainnet")

    def test_invalid_confirmations(self):
        """Test confirmations below 1 are rejected."""
        with pytest.raises(ValueError):
            DeployConfig.from_yaml("confirmations: 0", env={})

    def test_empty_file(self):
        """Test an empty file gives the defaults."""
        config = DeployConfig.from_yaml("", env={})
        assert config.networks == {}

    def test_from_file(self, tmp_path):
        """Test loading from a file."""
        path = tmp_path / "deploy.yaml"
        path.write_text(CONFIG_YAML)
        config = DeployConfig.from_file(path, env=ENV)
        assert "fuji" in config.networks
