"""
Exceptions raised by the credential keyring.

Messages never include passwords, passphrases or key material. URLs are
treated as identifiers and may appear in messages.
"""


class KeyringError(Exception):
    """Base exception for keyring-related errors."""

    pass


class InvalidCredentialsError(KeyringError, ValueError):
    """Raised when a credentials item is missing a required field."""

    pass


class DecryptionFailedError(KeyringError):
    """
    Raised when the keyring file cannot be decrypted.

    This covers both a wrong passphrase and a corrupted or tampered file.
    The two cases are deliberately reported the same way.
    """

    pass


class CorruptStoreError(KeyringError):
    """Raised when the decrypted keyring content is structurally invalid."""

    pass


class ItemNotFoundError(KeyringError, KeyError):
    """Raised when a requested credentials item does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class PersistFailedError(KeyringError):
    """Raised when the keyring cannot be written to disk."""

    pass


class KeyringClosedError(KeyringError):
    """Raised when a closed keyring is used."""

    pass
