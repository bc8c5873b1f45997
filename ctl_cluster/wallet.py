"""
Wallet handles built from the key material the emulator hands out.

Keys arrive as hex-encoded CBOR byte strings (`5820` followed by 32 bytes); bare 32-byte hex is
accepted too.
"""

import hashlib

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from ctl_cluster.errors import KeyDecodeError

# CBOR major type 2 (byte string) with a one-byte length of 32.
CBOR_BYTES32_PREFIX = bytes([0x58, 0x20])
PRIVATE_KEY_LENGTH = 32
KEY_HASH_LENGTH = 28


def decode_private_key(encoded: str) -> Ed25519PrivateKey:
    """
    Decode an emulator-provided private key.

    Raises:
        KeyDecodeError: If the value is not hex or doesn't hold exactly 32 key bytes
    """
    if not isinstance(encoded, str):
        raise KeyDecodeError(f"private key must be a hex string, got {type(encoded).__name__}")
    try:
        raw = bytes.fromhex(encoded.removeprefix("0x"))
    except ValueError as e:
        raise KeyDecodeError(f"private key is not valid hex: {e}") from e

    if len(raw) == len(CBOR_BYTES32_PREFIX) + PRIVATE_KEY_LENGTH and raw.startswith(
        CBOR_BYTES32_PREFIX
    ):
        raw = raw[len(CBOR_BYTES32_PREFIX) :]
    if len(raw) != PRIVATE_KEY_LENGTH:
        raise KeyDecodeError(f"private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(raw)}")

    return Ed25519PrivateKey.from_private_bytes(raw)


class KeyWallet:
    """
    A funded test wallet backed by an Ed25519 payment key.

    Usage:
        wallet = KeyWallet.from_encoded("5820" + "01" * 32, name="alice")
        wallet.payment_key_hash
        wallet.sign(b"tx body hash")
    """

    def __init__(self, private_key: Ed25519PrivateKey, name: str | None = None):
        self._private_key = private_key
        self.name = name

    @classmethod
    def from_encoded(cls, encoded: str, name: str | None = None) -> "KeyWallet":
        return cls(decode_private_key(encoded), name)

    @property
    def private_key_bytes(self) -> bytes:
        return self._private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )

    @property
    def public_key_bytes(self) -> bytes:
        return self._private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    @property
    def public_key_hex(self) -> str:
        return self.public_key_bytes.hex()

    @property
    def payment_key_hash(self) -> str:
        """Blake2b-224 hash of the public key, hex encoded."""
        return hashlib.blake2b(self.public_key_bytes, digest_size=KEY_HASH_LENGTH).hexdigest()

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def __repr__(self) -> str:
        label = f"{self.name!r}, " if self.name else ""
        return f"KeyWallet({label}pkh={self.payment_key_hash})"
