# canvasreg/network/transaction.py
"""
Transactions, receipts and signing.

Transactions are canonicalized as sorted-key JSON and hashed with
SHA-3-256. Signatures use ECDSA over secp256k1; an account address is
the last 20 bytes of the SHA-3-256 hash of the uncompressed public key.

These are LocalNetwork identities. SHA-3-256 is not Ethereum's Keccak-256,
so a Signer built from a wallet secret does not have that wallet's
Ethereum address.
"""

import hashlib
import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

LOCAL_CHAIN_ID = 31337


def _canonicalize(data: Dict[str, Any]) -> str:
    """Sorted keys, no whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _sha3_hex(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode()
    return hashlib.sha3_256(data).hexdigest()


def source_hash(source_code: str) -> str:
    """SHA-3-256 of contract source, used to match deployed code to verified source."""
    return _sha3_hex(source_code)


def contract_address(sender: str, nonce: int) -> str:
    """
    Address of a contract created by `sender` at `nonce`.

    Deterministic, so the deployer knows the address before the
    transaction is mined.
    """
    return "0x" + _sha3_hex(f"{sender.lower()}:{nonce}")[:40]


def implementation_address(proxy_address: str) -> str:
    """Address of the implementation deployed alongside a proxy."""
    return "0x" + _sha3_hex(f"{proxy_address.lower()}:implementation")[:40]


def _address_from_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    point = public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return "0x" + hashlib.sha3_256(point[1:]).hexdigest()[-40:]


@dataclass
class Transaction:
    """
    An unsigned state-changing transaction.

    Attributes:
        sender: Address of the signing account
        nonce: Sender's transaction count at submission
        kind: Operation ("deploy_proxy", "upgrade", ...)
        payload: Operation arguments
        chain_id: Target chain, prevents replay across networks
    """
    sender: str
    nonce: int
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)
    chain_id: int = LOCAL_CHAIN_ID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "nonce": self.nonce,
            "kind": self.kind,
            "payload": self.payload,
            "chain_id": self.chain_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            sender=data["sender"],
            nonce=int(data["nonce"]),
            kind=data["kind"],
            payload=data.get("payload", {}),
            chain_id=int(data.get("chain_id", LOCAL_CHAIN_ID)),
        )

    def signing_bytes(self) -> bytes:
        return _canonicalize(self.to_dict()).encode()


@dataclass
class SignedTransaction:
    """A transaction with the sender's signature and public key attached."""
    transaction: Transaction
    signature: str   # hex-encoded DER signature
    public_key: str  # PEM-encoded public key

    @property
    def tx_hash(self) -> str:
        return "0x" + _sha3_hex(self.transaction.signing_bytes() + bytes.fromhex(self.signature))

    def verify(self) -> bool:
        """Check the signature and that the public key owns the sender address."""
        try:
            public_key = serialization.load_pem_public_key(self.public_key.encode())
            if not isinstance(public_key, ec.EllipticCurvePublicKey):
                return False
            if _address_from_public_key(public_key) != self.transaction.sender.lower():
                return False
            public_key.verify(
                bytes.fromhex(self.signature),
                self.transaction.signing_bytes(),
                ec.ECDSA(hashes.SHA256()),
            )
            return True
        except (InvalidSignature, ValueError):
            return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction": self.transaction.to_dict(),
            "signature": self.signature,
            "public_key": self.public_key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedTransaction":
        return cls(
            transaction=Transaction.from_dict(data["transaction"]),
            signature=data["signature"],
            public_key=data["public_key"],
        )


class Signer:
    """
    An account key pair.

    Usage:
        signer = Signer.from_secret(os.environ["LOCAL_DEPLOYER_SECRET"])
        signed = signer.sign(Transaction(sender=signer.address, nonce=0, kind="deploy_proxy"))
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey):
        self._private_key = private_key
        self.address = _address_from_public_key(private_key.public_key())

    @classmethod
    def generate(cls) -> "Signer":
        return cls(ec.generate_private_key(ec.SECP256K1()))

    @classmethod
    def from_secret(cls, secret: str) -> "Signer":
        """Load from a hex-encoded private scalar (with or without 0x)."""
        secret = secret.strip()
        if secret.startswith("0x"):
            secret = secret[2:]
        try:
            value = int(secret, 16)
        except ValueError:
            raise ValueError("Signing secret must be a hex-encoded private key") from None
        return cls(ec.derive_private_key(value, ec.SECP256K1()))

    @classmethod
    def from_pem(cls, pem: bytes) -> "Signer":
        private_key = serialization.load_pem_private_key(pem, password=None)
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise ValueError("Signing key must be an EC private key")
        return cls(private_key)

    def public_key_pem(self) -> str:
        return self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    def sign(self, transaction: Transaction) -> SignedTransaction:
        if transaction.sender.lower() != self.address:
            raise ValueError(f"Transaction sender {transaction.sender} is not {self.address}")
        signature = self._private_key.sign(
            transaction.signing_bytes(),
            ec.ECDSA(hashes.SHA256()),
        )
        return SignedTransaction(
            transaction=transaction,
            signature=signature.hex(),
            public_key=self.public_key_pem(),
        )

    def __repr__(self) -> str:
        return f"Signer({self.address})"


@dataclass(frozen=True)
class BlockReference:
    """A block identified by number and hash."""
    number: int
    hash: str


@dataclass
class TransactionReceipt:
    """
    Network view of a submitted transaction.

    block_number is None while the transaction is still pending.
    """
    tx_hash: str
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    contract_address: Optional[str] = None
    status: int = 1

    @property
    def pending(self) -> bool:
        return self.block_number is None

    @property
    def block(self) -> Optional[BlockReference]:
        if self.block_number is None:
            return None
        return BlockReference(self.block_number, self.block_hash)


@dataclass
class PendingTransaction:
    """Handle returned once a transaction has been accepted for inclusion."""
    tx_hash: str
    sender: str
    nonce: int
    contract_address: Optional[str] = None
    submitted_at: float = field(default_factory=time.time)
