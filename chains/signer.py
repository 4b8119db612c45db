"""
chains/signer.py - Ed25519 signing capability.

Wraps a PyNaCl SigningKey. The rest of the harness only sees
`address`, `public_key()` and `sign(message)`; key bytes never leave here.

Address derivation (single-signer Ed25519 accounts):
    authentication_key = sha3_256(public_key || 0x00)
    address = authentication_key   (for accounts that never rotated keys)
"""

import hashlib
from typing import Optional

from nacl.exceptions import CryptoError
from nacl.signing import SigningKey

from core.constants import ED25519_SCHEME, ErrorCode
from core.exceptions import ConfigError
from core.validators import normalize_address


def derive_address(public_key: bytes) -> str:
    """Derive the account address of a single-key Ed25519 account."""
    return "0x" + hashlib.sha3_256(public_key + ED25519_SCHEME).hexdigest()


def _strip_key_prefix(private_key_hex: str) -> str:
    key = private_key_hex.strip()
    # AIP-80 style "ed25519-priv-0x..." keys
    if key.startswith("ed25519-priv-"):
        key = key[len("ed25519-priv-"):]
    if key.startswith(("0x", "0X")):
        key = key[2:]
    return key


class Ed25519Signer:
    """Signing capability backed by an Ed25519 private key."""

    def __init__(self, signing_key: SigningKey, address: Optional[str] = None):
        self._signing_key = signing_key
        # Rotated-key accounts have an address that differs from the derived one
        self._address = normalize_address(address) if address else derive_address(self.public_key())

    @classmethod
    def from_hex(cls, private_key_hex: str, address: Optional[str] = None) -> "Ed25519Signer":
        """
        Build a signer from a hex-encoded 32-byte seed.

        Raises:
            ConfigError: If the key is missing or malformed
        """
        if not private_key_hex:
            raise ConfigError("Private key is empty", code=ErrorCode.CONFIG_MISSING)
        try:
            seed = bytes.fromhex(_strip_key_prefix(private_key_hex))
            return cls(SigningKey(seed), address=address)
        except (ValueError, CryptoError, TypeError) as e:
            raise ConfigError(f"Invalid Ed25519 private key: {e}") from e

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        """Fresh random key, used for throwaway accounts and tests."""
        return cls(SigningKey.generate())

    @property
    def address(self) -> str:
        return self._address

    def public_key(self) -> bytes:
        return bytes(self._signing_key.verify_key)

    def public_key_hex(self) -> str:
        return "0x" + self.public_key().hex()

    def sign(self, message: bytes) -> bytes:
        """Detached 64-byte Ed25519 signature over `message`."""
        return self._signing_key.sign(message).signature

    def __repr__(self) -> str:
        return f"Ed25519Signer(address={self._address})"
