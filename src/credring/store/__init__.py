"""
Encrypted credential keyring.

This package holds the passphrase-protected store of login credentials:
the item model, the key derivation and encryption pipeline, the file
format, and the store that ties them together.

Usage:
    from credring.store import CredentialStore, CredentialsItem

    with CredentialStore(config_dir, passphrase) as store:
        store.add_item(CredentialsItem("https://git.example.com", "alice", "s3cret"))
        store.save()
"""

from credring.store.cipher import (
    AuthenticationFailedError,
    CipherError,
    InvalidPassphraseError,
    WeakPassphraseError,
)
from credring.store.errors import (
    CorruptStoreError,
    DecryptionFailedError,
    InvalidCredentialsError,
    ItemNotFoundError,
    KeyringClosedError,
    KeyringError,
    PersistFailedError,
)
from credring.store.keyring import (
    DEFAULT_KEYRING_FILENAME,
    CredentialStore,
    Keyring,
    StoreState,
)
from credring.store.models import CredentialsItem, ItemCollection

__all__ = [
    # Store
    "CredentialStore",
    "Keyring",
    "StoreState",
    "DEFAULT_KEYRING_FILENAME",
    # Models
    "CredentialsItem",
    "ItemCollection",
    # Errors
    "KeyringError",
    "InvalidCredentialsError",
    "DecryptionFailedError",
    "CorruptStoreError",
    "ItemNotFoundError",
    "PersistFailedError",
    "KeyringClosedError",
    "CipherError",
    "AuthenticationFailedError",
    "WeakPassphraseError",
    "InvalidPassphraseError",
]
