#!/usr/bin/env python3
"""
Canvas registry CLI

  canvasreg deploy - Deploy the registry behind a proxy on the local network, wait, verify
  canvasreg wait - Wait for a transaction on a live network to reach depth
  canvasreg verify - Submit a deployed address to the network's verification service
  canvasreg mint - Register a name in a file-backed registry
  canvasreg token-uri - Content pointer for an identifier
  canvasreg token-id-of - Identifier for a name
  canvasreg info - Registry name, symbol and entries

Usage:
  canvasreg deploy [--config deploy.yaml] [--skip-verify]
  canvasreg wait --config deploy.yaml --network fuji <tx_hash>
  canvasreg verify --config deploy.yaml --network fuji <address>
  canvasreg mint --registry-dir <dir> <owner> <name>
  canvasreg token-uri --registry-dir <dir> <id>
  canvasreg token-id-of --registry-dir <dir> <name>
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import DeployConfig, NetworkConfig
from .errors import CanvasError

logger = logging.getLogger(__name__)


def _open_registry(args):
    from .registry import Registry
    return Registry(registry_dir=Path(args.registry_dir))


def _load_config(args) -> DeployConfig:
    if args.config:
        config = DeployConfig.from_file(Path(args.config))
    else:
        config = DeployConfig()
    if getattr(args, "confirmations", None) is not None:
        if args.confirmations < 1:
            raise ValueError(f"--confirmations must be at least 1, got {args.confirmations}")
        config.confirmations = args.confirmations
    return config


def _implementation_factory(config: DeployConfig):
    from .contracts import get_contract
    from .deploy import ImplementationFactory

    if config.source_path:
        return ImplementationFactory.from_file(config.contract, config.source_path)
    impl_cls = get_contract(config.contract)
    if impl_cls is None:
        raise CanvasError(f"Unknown contract {config.contract!r}")
    return ImplementationFactory.from_class(config.contract, impl_cls)


def _remote_network(config: DeployConfig, network_name: str = None) -> NetworkConfig:
    net = config.network(network_name)
    if not net.url:
        raise CanvasError(f"Network {net.name!r} has no url")
    return net


def build_pipeline(config: DeployConfig, network_name: str = None):
    """
    Assemble the local network, signer and pipeline for a deployment.

    Deployments run on the in-process LocalNetwork only. Networks with a
    url are live chains: use `wait` and `verify` against those.

    Returns:
        (pipeline, network)
    """
    from .deploy import (
        ConfirmationWaiter,
        Deployer,
        DeploymentPipeline,
        LocalVerificationService,
        Verifier,
    )
    from .network import LocalNetwork, Signer

    net = config.network(network_name)
    if not net.is_local:
        raise CanvasError(
            f"Network {net.name!r} is a live network; deploy runs on the local network only "
            f"(use 'wait' and 'verify' for {net.name!r})"
        )
    if net.name != "local":
        raise CanvasError(f"Network {net.name!r} has no url")

    network = LocalNetwork(chain_id=net.chain_id, blocks_per_poll=1)
    signer = Signer.from_secret(net.signing_key) if net.signing_key else Signer.generate()

    pipeline = DeploymentPipeline(
        Deployer(network, signer),
        ConfirmationWaiter(network, poll_interval=0.0, timeout=config.timeout),
        verifier=Verifier(LocalVerificationService(network)),
        confirmations=config.confirmations,
    )
    return pipeline, network


def cmd_deploy(args):
    """Run deploy -> confirm -> verify."""
    from .deploy import SourceMetadata

    config = _load_config(args)
    factory = _implementation_factory(config)
    pipeline, _ = build_pipeline(config, args.network)
    metadata = SourceMetadata(
        contract_name=config.contract,
        source_code=factory.source_code,
        compiler_version=config.compiler_version,
    )

    print(f"Deploying {config.contract} to {config.network(args.network).name}...")
    record = pipeline.run(factory, metadata, skip_verification=args.skip_verify)

    print(f"deployed to: {record.proxy_address}")
    print(json.dumps(record.to_dict(), indent=2))


def cmd_wait(args):
    """Wait for a transaction on a live network."""
    from .deploy import ConfirmationWaiter
    from .network import JsonRpcProvider

    config = _load_config(args)
    net = _remote_network(config, args.network)
    provider = JsonRpcProvider(net.url, chain_id=net.chain_id)

    chain_id = provider.get_chain_id()
    if chain_id != net.chain_id:
        raise CanvasError(f"Node at {net.url} is chain {chain_id}, expected {net.chain_id}")

    waiter = ConfirmationWaiter(provider, poll_interval=config.poll_interval, timeout=config.timeout)
    block = waiter.await_confirmations(args.tx_hash, config.confirmations)
    print(f"{args.tx_hash} confirmed in block {block.number} ({block.hash})")


def cmd_verify(args):
    """Submit an address to the network's verification service."""
    from .deploy import (
        EtherscanVerificationClient,
        SourceMetadata,
        VerificationStatus,
        Verifier,
    )
    from .errors import VerificationFailedError

    config = _load_config(args)
    net = config.network(args.network)
    if net.verification is None:
        raise CanvasError(f"Network {net.name!r} has no verification service configured")

    client = EtherscanVerificationClient(
        api_url=net.verification.api_url,
        api_key=net.verification.api_key,
        browser_url=net.verification.browser_url,
    )
    factory = _implementation_factory(config)
    metadata = SourceMetadata(
        contract_name=config.contract,
        source_code=factory.source_code,
        compiler_version=config.compiler_version,
        implementation_address=args.implementation,
    )

    result = Verifier(client).verify(args.address, metadata)
    if result.status == VerificationStatus.FAILED:
        raise VerificationFailedError(args.address, result.message)
    print(f"{result.status.value}: {client.explorer_link(args.address)}")
    if result.message:
        print(result.message)


def cmd_mint(args):
    registry = _open_registry(args)
    identifier = registry.register(args.owner, args.name)
    print(identifier)


def cmd_token_uri(args):
    registry = _open_registry(args)
    print(registry.resolve_content(args.identifier))


def cmd_token_id_of(args):
    registry = _open_registry(args)
    print(registry.identifier_of(args.name))


def cmd_info(args):
    registry = _open_registry(args)
    print(f"{registry.display_name()} ({registry.display_symbol()})")
    print(f"Total supply: {registry.total_supply()}")
    for entry in registry:
        print(f"  #{entry.identifier} {entry.name} -> {entry.content_pointer} (owner {entry.owner})")


def _error_message(e: Exception) -> str:
    # KeyError quotes its argument
    if isinstance(e, KeyError) and not isinstance(e, CanvasError) and e.args:
        return str(e.args[0])
    return str(e)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="canvasreg",
        description="Canvas registry - uniquely named assets",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # deploy command
    deploy_parser = subparsers.add_parser("deploy", help="Deploy behind a proxy, confirm, verify")
    deploy_parser.add_argument("--config", help="Deployment YAML file")
    deploy_parser.add_argument("--network", help="Network name from the config")
    deploy_parser.add_argument("--confirmations", type=int, help="Override required confirmations")
    deploy_parser.add_argument("--skip-verify", action="store_true",
                               help="Stop after confirmation")

    # wait command
    wait_parser = subparsers.add_parser("wait", help="Wait for a transaction on a live network")
    wait_parser.add_argument("--config", help="Deployment YAML file")
    wait_parser.add_argument("--network", help="Network name from the config")
    wait_parser.add_argument("--confirmations", type=int, help="Override required confirmations")
    wait_parser.add_argument("tx_hash", help="Transaction hash")

    # verify command
    verify_parser = subparsers.add_parser("verify", help="Submit an address for source verification")
    verify_parser.add_argument("--config", help="Deployment YAML file")
    verify_parser.add_argument("--network", help="Network name from the config")
    verify_parser.add_argument("--implementation", help="Implementation address behind the proxy")
    verify_parser.add_argument("address", help="Deployed address")

    # registry commands
    for name, help_text in (
        ("mint", "Register a name"),
        ("token-uri", "Content pointer for an identifier"),
        ("token-id-of", "Identifier for a name"),
        ("info", "Registry summary"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--registry-dir", required=True, help="Registry directory")
        if name == "mint":
            sub.add_argument("owner", help="Owner account")
            sub.add_argument("name", help="Name to register")
        elif name == "token-uri":
            sub.add_argument("identifier", type=int, help="Identifier")
        elif name == "token-id-of":
            sub.add_argument("name", help="Registered name")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    commands = {
        "deploy": cmd_deploy,
        "wait": cmd_wait,
        "verify": cmd_verify,
        "mint": cmd_mint,
        "token-uri": cmd_token_uri,
        "token-id-of": cmd_token_id_of,
        "info": cmd_info,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        command(args)
    except (CanvasError, KeyError, ValueError, OSError) as e:
        print(f"Error: {_error_message(e)}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
