"""
tests/unit/test_signer.py - Ed25519 signer and address derivation.
"""

import hashlib
import unittest

from nacl.signing import VerifyKey

from chains.signer import Ed25519Signer, derive_address
from core.constants import ErrorCode
from core.exceptions import ConfigError


SEED_HEX = "0x" + "11" * 32


class TestDeriveAddress(unittest.TestCase):
    """Address = sha3_256(public_key || 0x00)."""

    def test_derivation(self):
        public_key = bytes(range(32))
        expected = "0x" + hashlib.sha3_256(public_key + b"\x00").hexdigest()
        self.assertEqual(derive_address(public_key), expected)

    def test_long_form(self):
        self.assertEqual(len(derive_address(b"\x01" * 32)), 66)


class TestEd25519Signer(unittest.TestCase):
    """Signing capability."""

    def test_address_matches_public_key(self):
        signer = Ed25519Signer.from_hex(SEED_HEX)
        self.assertEqual(signer.address, derive_address(signer.public_key()))

    def test_prefixes_accepted(self):
        plain = Ed25519Signer.from_hex("11" * 32)
        prefixed = Ed25519Signer.from_hex("ed25519-priv-0x" + "11" * 32)
        self.assertEqual(plain.address, prefixed.address)
        self.assertEqual(plain.address, Ed25519Signer.from_hex(SEED_HEX).address)

    def test_signature_verifies(self):
        signer = Ed25519Signer.from_hex(SEED_HEX)
        signature = signer.sign(b"message")
        self.assertEqual(len(signature), 64)
        VerifyKey(signer.public_key()).verify(b"message", signature)

    def test_explicit_address_for_rotated_account(self):
        signer = Ed25519Signer.from_hex(SEED_HEX, address="0x1")
        self.assertEqual(signer.address, "0x" + "0" * 63 + "1")

    def test_empty_key(self):
        with self.assertRaises(ConfigError) as ctx:
            Ed25519Signer.from_hex("")
        self.assertEqual(ctx.exception.code, ErrorCode.CONFIG_MISSING)

    def test_malformed_key(self):
        with self.assertRaises(ConfigError) as ctx:
            Ed25519Signer.from_hex("0xnothex")
        self.assertEqual(ctx.exception.code, ErrorCode.CONFIG_INVALID)

    def test_wrong_length_key(self):
        with self.assertRaises(ConfigError):
            Ed25519Signer.from_hex("0x1234")

    def test_repr_hides_key(self):
        signer = Ed25519Signer.from_hex(SEED_HEX)
        self.assertNotIn("11" * 32, repr(signer))
        self.assertIn(signer.address, repr(signer))

    def test_generate(self):
        a, b = Ed25519Signer.generate(), Ed25519Signer.generate()
        self.assertNotEqual(a.address, b.address)


if __name__ == "__main__":
    unittest.main()
