"""Tests for key derivation and authenticated encryption."""

import unittest
from unittest.mock import patch

from credring.store.cipher import (
    KEY_LENGTH,
    NONCE_LENGTH,
    SALT_LENGTH,
    TAG_LENGTH,
    AuthenticationFailedError,
    CipherError,
    EncryptedPayload,
    InvalidPassphraseError,
    WeakPassphraseError,
    decrypt,
    derive_key,
    encrypt,
    generate_salt,
    wipe,
)


class TestDeriveKey(unittest.TestCase):
    """Tests for derive_key()."""

    def setUp(self) -> None:
        self.salt = generate_salt()

    def test_key_length(self) -> None:
        """Test that derived keys are AES-256 sized."""
        key = derive_key("correct horse battery", self.salt)

        self.assertEqual(len(key), KEY_LENGTH)

    def test_deterministic(self) -> None:
        """Test same passphrase and salt give the same key."""
        key1 = derive_key("correct horse battery", self.salt)
        key2 = derive_key("correct horse battery", self.salt)

        self.assertEqual(key1, key2)

    def test_different_salt_different_key(self) -> None:
        """Test that the salt is mixed into the key."""
        key1 = derive_key("correct horse battery", self.salt)
        key2 = derive_key("correct horse battery", generate_salt())

        self.assertNotEqual(key1, key2)

    def test_different_passphrase_different_key(self) -> None:
        """Test that different passphrases give different keys."""
        key1 = derive_key("correct horse battery", self.salt)
        key2 = derive_key("correct horse battery!", self.salt)

        self.assertNotEqual(key1, key2)

    def test_unicode_passphrase(self) -> None:
        """Test non-ASCII passphrases are accepted."""
        key = derive_key("pässwörd-密码", self.salt)

        self.assertEqual(len(key), KEY_LENGTH)

    def test_rejects_short_passphrase_with_policy(self) -> None:
        """Test the minimum length policy."""
        with self.assertRaises(WeakPassphraseError) as ctx:
            derive_key("short", self.salt, min_length=12)

        self.assertIn("at least 12 characters", str(ctx.exception))

    def test_weak_passphrase_is_value_error(self) -> None:
        """Test WeakPassphraseError can be handled as ValueError."""
        with self.assertRaises(ValueError):
            derive_key("", self.salt, min_length=1)

    def test_accepts_minimum_length(self) -> None:
        """Test a passphrase of exactly the minimum length."""
        key = derive_key("123456789012", self.salt, min_length=12)

        self.assertEqual(len(key), KEY_LENGTH)

    def test_rejects_unencodable_passphrase(self) -> None:
        """Test a lone surrogate in the passphrase raises a typed error."""
        with self.assertRaises(InvalidPassphraseError) as ctx:
            derive_key("pass\udcffphrase", self.salt)

        self.assertIsInstance(ctx.exception, CipherError)
        self.assertNotIn("\udcff", str(ctx.exception))
        self.assertIsNone(ctx.exception.__cause__)

    def test_passphrase_buffer_is_wiped(self) -> None:
        """Test the encoded passphrase handed to scrypt is zeroed afterwards."""
        with patch("credring.store.cipher.Scrypt") as mock_scrypt:
            mock_scrypt.return_value.derive.return_value = b"k" * KEY_LENGTH

            key = derive_key("correct horse", self.salt)

        (secret,), _ = mock_scrypt.return_value.derive.call_args
        self.assertEqual(key, b"k" * KEY_LENGTH)
        self.assertIsInstance(secret, bytearray)
        self.assertEqual(secret, bytearray(len("correct horse")))

    def test_no_policy_allows_empty(self) -> None:
        """Test that without a policy an empty passphrase still derives a key."""
        key = derive_key("", self.salt)

        self.assertEqual(len(key), KEY_LENGTH)

    def test_wrong_salt_length(self) -> None:
        """Test that a malformed salt is rejected."""
        with self.assertRaises(CipherError):
            derive_key("correct horse battery", b"short-salt")


class TestEncryptDecrypt(unittest.TestCase):
    """Tests for encrypt() and decrypt()."""

    def setUp(self) -> None:
        self.key = derive_key("correct horse battery", generate_salt())

    def test_roundtrip(self) -> None:
        """Test that decrypt() reverses encrypt()."""
        payload = encrypt(self.key, b"top secret")

        plaintext = decrypt(self.key, payload.nonce, payload.ciphertext, payload.tag)

        self.assertEqual(bytes(plaintext), b"top secret")

    def test_payload_shape(self) -> None:
        """Test nonce and tag sizes."""
        payload = encrypt(self.key, b"top secret")

        self.assertIsInstance(payload, EncryptedPayload)
        self.assertEqual(len(payload.nonce), NONCE_LENGTH)
        self.assertEqual(len(payload.tag), TAG_LENGTH)
        self.assertEqual(payload.sealed(), payload.ciphertext + payload.tag)
        self.assertNotIn(b"top secret", payload.sealed())

    def test_fresh_nonce_per_call(self) -> None:
        """Test that identical plaintexts encrypt differently."""
        first = encrypt(self.key, b"same")
        second = encrypt(self.key, b"same")

        self.assertNotEqual(first.nonce, second.nonce)
        self.assertNotEqual(first.sealed(), second.sealed())

    def test_wrong_key_fails(self) -> None:
        """Test that a different key fails authentication."""
        payload = encrypt(self.key, b"top secret")
        other_key = derive_key("wrong passphrase", generate_salt())

        with self.assertRaises(AuthenticationFailedError):
            decrypt(other_key, payload.nonce, payload.ciphertext, payload.tag)

    def test_tampered_ciphertext_fails(self) -> None:
        """Test that a flipped ciphertext bit is detected."""
        payload = encrypt(self.key, b"top secret")
        tampered = bytes([payload.ciphertext[0] ^ 0x01]) + payload.ciphertext[1:]

        with self.assertRaises(AuthenticationFailedError):
            decrypt(self.key, payload.nonce, tampered, payload.tag)

    def test_tampered_tag_fails(self) -> None:
        """Test that a modified tag is detected."""
        payload = encrypt(self.key, b"top secret")
        tampered = bytes([payload.tag[0] ^ 0x01]) + payload.tag[1:]

        with self.assertRaises(AuthenticationFailedError):
            decrypt(self.key, payload.nonce, payload.ciphertext, tampered)

    def test_associated_data_is_authenticated(self) -> None:
        """Test that associated data must match."""
        payload = encrypt(self.key, b"top secret", associated_data=b"header-1")

        plaintext = decrypt(
            self.key, payload.nonce, payload.ciphertext, payload.tag, b"header-1"
        )
        self.assertEqual(bytes(plaintext), b"top secret")

        with self.assertRaises(AuthenticationFailedError):
            decrypt(self.key, payload.nonce, payload.ciphertext, payload.tag, b"header-2")

    def test_malformed_nonce_fails(self) -> None:
        """Test that a short nonce is reported as an authentication failure."""
        payload = encrypt(self.key, b"top secret")

        with self.assertRaises(AuthenticationFailedError):
            decrypt(self.key, payload.nonce[:4], payload.ciphertext, payload.tag)

    def test_empty_plaintext(self) -> None:
        """Test encrypting an empty payload."""
        payload = encrypt(self.key, b"")

        self.assertEqual(payload.ciphertext, b"")
        self.assertEqual(
            bytes(decrypt(self.key, payload.nonce, payload.ciphertext, payload.tag)),
            b"",
        )


class TestHelpers(unittest.TestCase):
    """Tests for generate_salt() and wipe()."""

    def test_salt_length_and_randomness(self) -> None:
        """Test salts are the right size and not repeated."""
        salt1 = generate_salt()
        salt2 = generate_salt()

        self.assertEqual(len(salt1), SALT_LENGTH)
        self.assertNotEqual(salt1, salt2)

    def test_wipe(self) -> None:
        """Test wipe() zeroes a buffer in place."""
        buffer = bytearray(b"secret")

        wipe(buffer)

        self.assertEqual(buffer, bytearray(6))


if __name__ == "__main__":
    unittest.main()
