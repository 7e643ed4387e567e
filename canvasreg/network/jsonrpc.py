# canvasreg/network/jsonrpc.py
"""
JSON-RPC reader for a remote node.

Used to watch an existing transaction reach finality on a live network
(`canvasreg wait`). It does not submit: deployments in this package run
on the in-process LocalNetwork, whose transactions no remote node accepts.

Usage:
    provider = JsonRpcProvider("https://api.avax-test.network/ext/bc/C/rpc", chain_id=43113)
    provider.block_number()
"""

import itertools
import json
import logging
from typing import Any, List, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import NetworkError
from .provider import ChainReader
from .transaction import TransactionReceipt

logger = logging.getLogger(__name__)


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return int(value, 16)


class JsonRpcProvider(ChainReader):
    """
    Chain reader speaking JSON-RPC 2.0 over HTTP.

    Args:
        url: Node endpoint
        chain_id: Expected chain id
        timeout: Request timeout in seconds
    """

    def __init__(self, url: str, chain_id: int, timeout: float = 30):
        self.url = url
        self.chain_id = chain_id
        self.timeout = timeout
        self._ids = itertools.count(1)

    def _call(self, method: str, params: List[Any] = None) -> Any:
        """Make a JSON-RPC call and return its result."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        req = Request(
            self.url,
            data=json.dumps(payload).encode(),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urlopen(req, timeout=self.timeout) as response:
                data = json.loads(response.read().decode())
        except HTTPError as e:
            raise NetworkError(f"HTTP {e.code} from {self.url}: {e.read().decode()}") from e
        except URLError as e:
            raise NetworkError(f"Failed to connect to {self.url}: {e}") from e
        except json.JSONDecodeError as e:
            raise NetworkError(f"Invalid JSON from {self.url}: {e}") from e

        if data.get("error"):
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise NetworkError(f"{method} failed: {message}")

        logger.debug(f"{method} -> {data.get('result')!r}")
        return data.get("result")

    def get_transaction(self, tx_hash: str) -> Optional[TransactionReceipt]:
        receipt = self._call("eth_getTransactionReceipt", [tx_hash])
        if receipt is None:
            # Not mined: pending if the node still knows it, otherwise gone
            tx = self._call("eth_getTransactionByHash", [tx_hash])
            if tx is None:
                return None
            return TransactionReceipt(tx_hash=tx_hash)

        return TransactionReceipt(
            tx_hash=tx_hash,
            block_number=_to_int(receipt.get("blockNumber")),
            block_hash=receipt.get("blockHash"),
            contract_address=receipt.get("contractAddress"),
            status=_to_int(receipt.get("status")) if receipt.get("status") else 1,
        )

    def block_number(self) -> int:
        return _to_int(self._call("eth_blockNumber"))

    def get_block_hash(self, number: int) -> Optional[str]:
        block = self._call("eth_getBlockByNumber", [hex(number), False])
        if block is None:
            return None
        return block.get("hash")

    def get_chain_id(self) -> int:
        return _to_int(self._call("eth_chainId"))
