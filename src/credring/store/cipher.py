"""
Key derivation and authenticated encryption for the credential keyring.

This module is the only place that touches cryptographic primitives. It
derives a symmetric key from the user passphrase and seals/opens an opaque
byte payload with an AEAD cipher.

Security Design:
    - Key derived with scrypt (memory-hard) from passphrase + per-store salt
    - Random 256-bit salt generated once per store and persisted in the header
    - AES-256-GCM authenticated encryption, fresh 96-bit nonce per call
    - A failed tag check is the only signal for "wrong passphrase" and
      "tampered file"; callers must not try to tell the two apart

Threat Model:
    - Protects against: offline brute force of a stolen keyring file,
      tampering with the file, casual inspection of the config directory
    - Does NOT protect against: memory inspection, keyloggers, root access,
      or compromise of the running process
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

logger = logging.getLogger(__name__)

# Security parameters - do not reduce these values.
# These are fixed by the file format version; changing them requires a new
# format version or existing keyrings become unreadable.
SCRYPT_N = 2**15  # CPU/memory cost, ~32 MiB with r=8
SCRYPT_R = 8
SCRYPT_P = 1
SALT_LENGTH = 32  # 256 bits
KEY_LENGTH = 32  # AES-256
NONCE_LENGTH = 12  # 96 bits, the GCM standard nonce size
TAG_LENGTH = 16


class CipherError(Exception):
    """Base exception for key derivation and encryption errors."""

    pass


class AuthenticationFailedError(CipherError):
    """Raised when a ciphertext fails tag verification."""

    pass


class WeakPassphraseError(CipherError, ValueError):
    """Raised when a passphrase does not meet the minimum length policy."""

    pass


class InvalidPassphraseError(CipherError, ValueError):
    """Raised when a passphrase cannot be encoded as UTF-8."""

    pass


@dataclass(frozen=True)
class EncryptedPayload:
    """
    Output of a single encryption call.

    Attributes:
        nonce: Random nonce used for this call (NONCE_LENGTH bytes).
        ciphertext: Encrypted payload without the authentication tag.
        tag: GCM authentication tag (TAG_LENGTH bytes).
    """

    nonce: bytes
    ciphertext: bytes
    tag: bytes

    def sealed(self) -> bytes:
        """Return ciphertext with the tag appended, as stored on disk."""
        return self.ciphertext + self.tag


def generate_salt() -> bytes:
    """Generate a cryptographically secure random salt."""
    return secrets.token_bytes(SALT_LENGTH)


def derive_key(passphrase: str, salt: bytes, min_length: int = 0) -> bytes:
    """
    Derive an encryption key from passphrase and salt.

    Args:
        passphrase: User-provided passphrase.
        salt: Per-store random salt (SALT_LENGTH bytes).
        min_length: Minimum accepted passphrase length. 0 disables the check.

    Returns:
        KEY_LENGTH bytes of key material.

    Raises:
        WeakPassphraseError: If the passphrase is shorter than min_length.
        InvalidPassphraseError: If the passphrase is not valid text (for
            example a lone surrogate from undecodable terminal input).
        CipherError: If the salt has the wrong size.
    """
    if len(passphrase) < min_length:
        raise WeakPassphraseError(
            f"Passphrase must be at least {min_length} characters."
        )
    if len(salt) != SALT_LENGTH:
        raise CipherError(f"Salt must be {SALT_LENGTH} bytes, got {len(salt)}")

    kdf = Scrypt(
        salt=salt,
        length=KEY_LENGTH,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
    )
    try:
        secret = bytearray(passphrase, "utf-8")
    except UnicodeEncodeError:
        raise InvalidPassphraseError("Passphrase is not valid text.") from None
    try:
        return kdf.derive(secret)
    finally:
        wipe(secret)


def encrypt(
    key: bytes,
    plaintext: bytes | bytearray,
    associated_data: bytes | None = None,
) -> EncryptedPayload:
    """
    Encrypt and authenticate a payload.

    A new random nonce is drawn on every call, so the same key never sees
    the same nonce twice in practice.

    Args:
        key: KEY_LENGTH bytes from derive_key().
        plaintext: Data to encrypt.
        associated_data: Optional data that is authenticated but not encrypted.

    Returns:
        EncryptedPayload with nonce, ciphertext and tag.
    """
    nonce = secrets.token_bytes(NONCE_LENGTH)
    sealed = AESGCM(key).encrypt(nonce, bytes(plaintext), associated_data)
    return EncryptedPayload(
        nonce=nonce,
        ciphertext=sealed[:-TAG_LENGTH],
        tag=sealed[-TAG_LENGTH:],
    )


def decrypt(
    key: bytes,
    nonce: bytes,
    ciphertext: bytes,
    tag: bytes,
    associated_data: bytes | None = None,
) -> bytearray:
    """
    Verify and decrypt a payload.

    Returns:
        The plaintext as a mutable buffer so callers can wipe() it.

    Raises:
        AuthenticationFailedError: If the tag does not verify (wrong key or
            tampered data). No partial plaintext is ever returned.
    """
    if len(nonce) != NONCE_LENGTH or len(tag) != TAG_LENGTH:
        raise AuthenticationFailedError("Malformed nonce or tag.")

    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, associated_data)
    except InvalidTag as e:
        logger.debug("Authentication tag did not verify")
        raise AuthenticationFailedError("Authentication failed.") from e
    return bytearray(plaintext)


def wipe(buffer: bytearray) -> None:
    """
    Overwrite a mutable buffer with zeros.

    Note: Python does not guarantee that no other copies of the data exist
    (immutable bytes/str objects cannot be scrubbed). This is a best-effort
    attempt to reduce the window of exposure.
    """
    for i in range(len(buffer)):
        buffer[i] = 0
