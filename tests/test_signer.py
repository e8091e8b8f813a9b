"""
Known-answer tests for Manta HTTP-Signature request signing.

A throwaway RSA key is generated per test class; signatures must verify
against its public half with PKCS#1 v1.5 / SHA-256 over ``date: <Date>``.
"""
import base64
import hashlib
import unittest

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from manta_jobs.manta.client import MantaSigner
from manta_jobs.manta.errors import MantaError

DATE = "Thu, 16 Nov 2023 12:00:00 GMT"


def _pem(key) -> str:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode("ascii")


class MantaSignerTests(unittest.TestCase):
    """Tests for signature format and key handling."""

    @classmethod
    def setUpClass(cls):
        cls.key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        cls.pem = _pem(cls.key)

    def test_signature_verifies_with_public_key(self):
        signer = MantaSigner(account="alice", key_id="aa:bb", private_key_pem=self.pem)
        sig = base64.b64decode(signer.sign(DATE))
        # Raises InvalidSignature on mismatch.
        self.key.public_key().verify(
            sig, f"date: {DATE}".encode("utf-8"), padding.PKCS1v15(), hashes.SHA256(),
        )

    def test_authorization_header_format(self):
        signer = MantaSigner(account="alice", key_id="aa:bb", private_key_pem=self.pem)
        header = signer.authorization(DATE)
        self.assertTrue(header.startswith('Signature keyId="/alice/keys/aa:bb",'))
        self.assertIn('algorithm="rsa-sha256"', header)
        self.assertIn('headers="date"', header)
        self.assertIn('signature="', header)

    def test_subuser_key_id(self):
        signer = MantaSigner(account="alice", subuser="bob", key_id="aa:bb", sign_func=lambda p: b"x")
        self.assertEqual(signer.key_id_path(), "/alice/bob/keys/aa:bb")

    def test_fingerprint_derived_from_key(self):
        signer = MantaSigner(account="alice", private_key_pem=self.pem)
        openssh = self.key.public_key().public_bytes(
            serialization.Encoding.OpenSSH, serialization.PublicFormat.OpenSSH,
        )
        digest = hashlib.md5(base64.b64decode(openssh.split()[1])).hexdigest()
        expected = ":".join(digest[i:i + 2] for i in range(0, 32, 2))
        self.assertEqual(signer.fingerprint(), expected)
        self.assertEqual(signer.key_id_path(), f"/alice/keys/{expected}")

    def test_key_loaded_from_path(self):
        import os
        import tempfile

        with tempfile.NamedTemporaryFile("w", suffix=".pem", delete=False) as tf:
            tf.write(self.pem)
            path = tf.name
        try:
            signer = MantaSigner(account="alice", key_id="aa", private_key_path=path)
            self.assertTrue(signer.available())
            self.assertTrue(signer.sign(DATE))
        finally:
            os.unlink(path)

    def test_sign_func_bytes_are_base64_encoded(self):
        seen = []

        def fake_sign(payload):
            seen.append(payload)
            return b"\x01\x02"

        signer = MantaSigner(account="alice", key_id="aa", sign_func=fake_sign)
        self.assertEqual(signer.sign(DATE), base64.b64encode(b"\x01\x02").decode("ascii"))
        self.assertEqual(seen, [f"date: {DATE}".encode("utf-8")])

    def test_availability(self):
        self.assertFalse(MantaSigner(account="").available())
        self.assertFalse(MantaSigner(account="alice").available())
        self.assertTrue(MantaSigner(account="alice", private_key_pem=self.pem).available())
        # A signing callback cannot derive a fingerprint, so it needs a key id.
        self.assertFalse(MantaSigner(account="alice", sign_func=lambda p: b"x").available())

    def test_missing_key_material_raises(self):
        signer = MantaSigner(account="alice", key_id="aa")
        with self.assertRaises(MantaError):
            signer.sign(DATE)

    def test_non_rsa_key_rejected(self):
        ec_pem = ec.generate_private_key(ec.SECP256R1()).private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        signer = MantaSigner(account="alice", key_id="aa", private_key_pem=ec_pem)
        with self.assertRaises(MantaError):
            signer.sign(DATE)


if __name__ == "__main__":
    unittest.main()
