# canvasreg/deploy/etherscan.py
"""
Client for Etherscan-compatible verification APIs (Etherscan, Snowtrace, ...).

Usage:
    service = EtherscanVerificationClient(
        api_url="https://api-testnet.snowtrace.io/api",
        api_key=os.environ["SNOW_TRACE_API_KEY"],
    )
    Verifier(service).verify(address, source_metadata)

Submissions are processed asynchronously by the service: submit()
posts the source, receives a GUID, and polls checkverifystatus until
the service reports a final answer.
"""

import json
import logging
import time
from typing import Any, Dict
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ..errors import NetworkError
from .verifier import SourceMetadata, SubmissionOutcome, VerificationService

logger = logging.getLogger(__name__)

ALREADY_VERIFIED_MARKERS = ("already verified",)
PENDING_MARKERS = ("pending in queue", "in progress")


def _is_already_verified(message: str) -> bool:
    return any(marker in message.lower() for marker in ALREADY_VERIFIED_MARKERS)


def _is_pending(message: str) -> bool:
    return any(marker in message.lower() for marker in PENDING_MARKERS)


class EtherscanVerificationClient(VerificationService):
    """
    Verification service backed by an Etherscan-style HTTP API.

    Args:
        api_url: API endpoint (e.g. "https://api.etherscan.io/api")
        api_key: API key
        browser_url: Explorer URL, used only for log links
        timeout: Request timeout in seconds
        poll_interval: Seconds between status checks after submission
        max_polls: Status checks before giving up on a pending submission
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        browser_url: str = None,
        timeout: float = 30,
        poll_interval: float = 5.0,
        max_polls: int = 24,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.browser_url = browser_url.rstrip("/") if browser_url else None
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    def _request(self, params: Dict[str, Any], post: bool = False) -> Dict[str, Any]:
        """Make a request to the API and return the decoded body."""
        params = {**params, "apikey": self.api_key}
        encoded = urlencode(params)

        if post:
            req = Request(
                self.api_url,
                data=encoded.encode(),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                method="POST",
            )
        else:
            req = Request(f"{self.api_url}?{encoded}", method="GET")

        try:
            with urlopen(req, timeout=self.timeout) as response:
                return json.loads(response.read().decode())
        except HTTPError as e:
            raise NetworkError(f"HTTP {e.code} from verification service: {e.read().decode()}") from e
        except URLError as e:
            raise NetworkError(f"Failed to connect to verification service: {e}") from e
        except json.JSONDecodeError as e:
            raise NetworkError(f"Invalid JSON from verification service: {e}") from e

    def is_verified(self, address: str) -> bool:
        data = self._request({
            "module": "contract",
            "action": "getsourcecode",
            "address": address,
        })
        result = data.get("result")
        if data.get("status") != "1" or not isinstance(result, list) or not result:
            return False
        return bool(result[0].get("SourceCode"))

    def submit(self, address: str, source_metadata: SourceMetadata) -> SubmissionOutcome:
        data = self._request({
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": address,
            "sourceCode": source_metadata.source_code,
            "codeformat": "solidity-single-file",
            "contractname": source_metadata.contract_name,
            "compilerversion": source_metadata.compiler_version,
            # Field name as spelled by the API
            "constructorArguements": source_metadata.constructor_arguments,
        }, post=True)

        result = str(data.get("result", ""))
        if data.get("status") != "1":
            if _is_already_verified(result):
                return SubmissionOutcome(accepted=False, already_verified=True, message=result)
            return SubmissionOutcome(accepted=False, message=result or data.get("message", ""))

        return self._wait_for_guid(result)

    def _wait_for_guid(self, guid: str) -> SubmissionOutcome:
        """Poll checkverifystatus until the submission is decided."""
        message = ""
        for _ in range(self.max_polls):
            data = self._request({
                "module": "contract",
                "action": "checkverifystatus",
                "guid": guid,
            })
            message = str(data.get("result", ""))
            logger.debug(f"Verification {guid}: {message}")

            if _is_already_verified(message):
                return SubmissionOutcome(accepted=False, already_verified=True, message=message)
            if _is_pending(message):
                time.sleep(self.poll_interval)
                continue
            if data.get("status") == "1":
                return SubmissionOutcome(accepted=True, message=message)
            return SubmissionOutcome(accepted=False, message=message)

        return SubmissionOutcome(
            accepted=False,
            pending=True,
            message=f"Verification {guid} still pending after {self.max_polls} checks: {message}",
        )

    def explorer_link(self, address: str) -> str:
        if not self.browser_url:
            return address
        return f"{self.browser_url}/address/{address}#code"
