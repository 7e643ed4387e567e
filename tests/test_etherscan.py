# tests/test_etherscan.py
"""Tests for the Etherscan-compatible verification client."""

import json
from unittest.mock import patch
from urllib.error import URLError
from urllib.parse import parse_qs, urlparse

import pytest

from canvasreg.deploy import (
    EtherscanVerificationClient,
    SourceMetadata,
    VerificationStatus,
    Verifier,
)
from canvasreg.errors import NetworkError


class FakeResponse:
    """Minimal urlopen response."""

    def __init__(self, body):
        self._body = json.dumps(body).encode()

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


class FakeApi:
    """Canned Etherscan API keyed by action."""

    def __init__(self, responses):
        self.responses = {k: list(v) for k, v in responses.items()}
        self.requests = []

    def __call__(self, req, timeout=None):
        if req.data is not None:
            params = parse_qs(req.data.decode())
        else:
            params = parse_qs(urlparse(req.full_url).query)
        action = params["action"][0]
        self.requests.append((req.get_method(), action, params))
        queue = self.responses[action]
        body = queue.pop(0) if len(queue) > 1 else queue[0]
        return FakeResponse(body)

    def actions(self):
        return [action for _, action, _ in self.requests]


@pytest.fixture
def client():
    return EtherscanVerificationClient(
        api_url="https://api.example/api",
        api_key="KEY",
        browser_url="https://explorer.example/",
        poll_interval=0,
        max_polls=3,
    )


@pytest.fixture
def metadata():
    return SourceMetadata(
        contract_name="Canvas",
        source_code="contract Canvas {}",
        compiler_version="v0.8.17+commit.8df45f5f",
    )


UNVERIFIED = {"status": "1", "message": "OK", "result": [{"SourceCode": "", "ContractName": ""}]}
VERIFIED = {"status": "1", "message": "OK", "result": [{"SourceCode": "contract Canvas {}"}]}


class TestStatusCheck:
    """Test getsourcecode handling."""

    def test_unverified(self, client):
        """Test an address without source is unverified."""
        api = FakeApi({"getsourcecode": [UNVERIFIED]})
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            assert not client.is_verified("0xabc")

        method, action, params = api.requests[0]
        assert method == "GET"
        assert params["address"] == ["0xabc"]
        assert params["apikey"] == ["KEY"]

    def test_verified(self, client):
        """Test an address with source is verified."""
        api = FakeApi({"getsourcecode": [VERIFIED]})
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            assert client.is_verified("0xabc")

    def test_error_status_means_unverified(self, client):
        """Test an error response counts as unverified."""
        api = FakeApi({"getsourcecode": [{"status": "0", "message": "NOTOK", "result": "Invalid"}]})
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            assert not client.is_verified("0xabc")


class TestSubmission:
    """Test verifysourcecode and checkverifystatus handling."""

    def test_submit_and_poll_until_verified(self, client, metadata):
        """Test submitting and polling the GUID until it passes."""
        api = FakeApi({
            "verifysourcecode": [{"status": "1", "message": "OK", "result": "guid-1"}],
            "checkverifystatus": [
                {"status": "0", "message": "NOTOK", "result": "Pending in queue"},
                {"status": "1", "message": "OK", "result": "Pass - Verified"},
            ],
        })
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            outcome = client.submit("0xabc", metadata)

        assert outcome.accepted
        assert api.actions() == ["verifysourcecode", "checkverifystatus", "checkverifystatus"]
        method, _, params = api.requests[0]
        assert method == "POST"
        assert params["contractname"] == ["Canvas"]
        assert params["compilerversion"] == ["v0.8.17+commit.8df45f5f"]
        assert params["sourceCode"] == ["contract Canvas {}"]

    def test_submit_rejected(self, client, metadata):
        """Test a rejected submission."""
        api = FakeApi({
            "verifysourcecode": [{"status": "0", "message": "NOTOK", "result": "Invalid constructor arguments"}],
        })
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            outcome = client.submit("0xabc", metadata)

        assert not outcome.accepted
        assert not outcome.already_verified
        assert outcome.message == "Invalid constructor arguments"

    def test_submit_already_verified(self, client, metadata):
        """Test an already-verified reply on submission."""
        api = FakeApi({
            "verifysourcecode": [{"status": "0", "message": "NOTOK",
                                  "result": "Contract source code already verified"}],
        })
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            outcome = client.submit("0xabc", metadata)
        assert outcome.already_verified

    def test_verification_fails(self, client, metadata):
        """Test a submission that fails verification."""
        api = FakeApi({
            "verifysourcecode": [{"status": "1", "message": "OK", "result": "guid-1"}],
            "checkverifystatus": [{"status": "0", "message": "NOTOK", "result": "Fail - Unable to verify"}],
        })
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            outcome = client.submit("0xabc", metadata)
        assert not outcome.accepted
        assert outcome.message == "Fail - Unable to verify"

    def test_gives_up_after_max_polls(self, client, metadata):
        """Test a submission still queued after max polls is pending, not rejected."""
        api = FakeApi({
            "verifysourcecode": [{"status": "1", "message": "OK", "result": "guid-1"}],
            "checkverifystatus": [{"status": "0", "message": "NOTOK", "result": "Pending in queue"}],
        })
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            outcome = client.submit("0xabc", metadata)

        assert not outcome.accepted
        assert outcome.pending
        assert not outcome.already_verified
        assert "still pending" in outcome.message
        assert api.actions().count("checkverifystatus") == 3

    def test_connection_error(self, client):
        """Test connection failures raise NetworkError."""
        def unreachable(req, timeout=None):
            raise URLError("connection refused")

        with patch("canvasreg.deploy.etherscan.urlopen", unreachable):
            with pytest.raises(NetworkError):
                client.is_verified("0xabc")


class TestWithVerifier:
    """Test the client through the idempotent Verifier."""

    def test_verified_then_already_verified(self, client, metadata):
        """Test a second verify does not resubmit."""
        api = FakeApi({
            "getsourcecode": [UNVERIFIED, VERIFIED],
            "verifysourcecode": [{"status": "1", "message": "OK", "result": "guid-1"}],
            "checkverifystatus": [{"status": "1", "message": "OK", "result": "Pass - Verified"}],
        })
        verifier = Verifier(client)
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            first = verifier.verify("0xabc", metadata)
            second = verifier.verify("0xabc", metadata)

        assert first.status == VerificationStatus.VERIFIED
        assert second.status == VerificationStatus.ALREADY_VERIFIED
        assert api.actions().count("verifysourcecode") == 1

    def test_explorer_link(self, client):
        """Test the explorer link for an address."""
        assert client.explorer_link("0xabc") == "https://explorer.example/address/0xabc#code"

    def test_pending_is_not_failure(self, client, metadata):
        """Test an undecided submission is reported as pending."""
        api = FakeApi({
            "getsourcecode": [UNVERIFIED],
            "verifysourcecode": [{"status": "1", "message": "OK", "result": "guid-1"}],
            "checkverifystatus": [{"status": "0", "message": "NOTOK", "result": "Pending in queue"}],
        })
        with patch("canvasreg.deploy.etherscan.urlopen", api):
            result = Verifier(client).verify("0xabc", metadata)

        assert result.status == VerificationStatus.PENDING
        assert not result.success
        assert "still pending" in result.message
