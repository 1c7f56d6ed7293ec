"""
Encrypted credential keyring for credring.

This module owns the keyring file: it loads and decrypts it into an
in-memory collection, applies add/remove mutations, and writes the
collection back atomically.

Security Design:
    - Credentials are never stored in plaintext
    - Encryption key derived from the passphrase with scrypt (see cipher)
    - Random 256-bit salt generated on the first save and kept for the
      lifetime of the file
    - Fresh nonce on every save
    - Wrong passphrase and tampered file are reported as one error
    - File permissions set to owner-only (0600), directory to 0700

Durability:
    Saves write a temporary file in the same directory, fsync it, then
    rename it over the keyring. A crash or I/O error at any point leaves
    either the old or the new file, never a partial one. Two processes
    saving concurrently resolve to whichever rename happens last.
"""

from __future__ import annotations

import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Protocol, runtime_checkable

from credring.store import cipher, codec
from credring.store.cipher import AuthenticationFailedError
from credring.store.errors import (
    DecryptionFailedError,
    ItemNotFoundError,
    KeyringClosedError,
    KeyringError,
    PersistFailedError,
)
from credring.store.models import CredentialsItem, ItemCollection

logger = logging.getLogger(__name__)

DEFAULT_KEYRING_FILENAME = "keyring"


@runtime_checkable
class Keyring(Protocol):
    """Capability interface used by command handlers."""

    def add_item(self, item: CredentialsItem) -> None: ...

    def remove_item(self, url: str) -> None: ...

    def save(self) -> None: ...

    def get_item(self, url: str) -> CredentialsItem | None: ...


class StoreState(Enum):
    """Lifecycle state of a CredentialStore."""

    UNINITIALIZED = "uninitialized"  # no file on disk yet
    LOADED = "loaded"  # file read and decrypted, no changes
    DIRTY = "dirty"  # pending in-memory changes
    PERSISTED = "persisted"  # in-memory content matches the file


class CredentialStore:
    """
    Passphrase-protected store of login credentials.

    The keyring file is loaded once, during construction. Mutations only
    touch memory until save() is called.

    Usage:
        store = CredentialStore(config_dir, passphrase)
        store.add_item(CredentialsItem("https://git.example.com", "alice", "s3cret"))
        store.save()

        item = store.get_item("https://git.example.com")

        store.close()

    Attributes:
        config_dir: Directory containing the keyring file.
        path: Path to the keyring file.
        state: Current StoreState.
    """

    def __init__(
        self,
        config_dir: Path | str,
        passphrase: str,
        filename: str = DEFAULT_KEYRING_FILENAME,
        min_passphrase_length: int = 0,
    ) -> None:
        """
        Open the keyring, loading it from disk if it exists.

        Args:
            config_dir: Directory for the keyring file.
            passphrase: Passphrase used to derive the encryption key.
            filename: Name of the keyring file inside config_dir.
            min_passphrase_length: Minimum passphrase length required when a
                new keyring file is created. Existing files are always opened.

        Raises:
            DecryptionFailedError: Wrong passphrase or corrupted file.
            CorruptStoreError: File decrypted but its content is malformed.
            KeyringError: The file exists but cannot be read.
        """
        self.config_dir = Path(config_dir)
        self.path = self.config_dir / filename
        self.min_passphrase_length = min_passphrase_length
        self.state = StoreState.UNINITIALIZED

        self._passphrase: str | None = passphrase
        self._salt: bytes | None = None
        self._key: bytes | None = None
        self._items = ItemCollection()
        self._closed = False

        self.load()

    def __enter__(self) -> CredentialStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"CredentialStore(path={str(self.path)!r}, "
            f"state={self.state.value}, items={len(self._items)})"
        )

    def load(self) -> None:
        """
        Read and decrypt the keyring file into memory.

        A missing file is not an error: the store starts empty in the
        UNINITIALIZED state and the file is created on the first save().
        """
        self._require_open()

        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            self._items = ItemCollection()
            self._salt = None
            self._key = None
            self.state = StoreState.UNINITIALIZED
            logger.debug("No keyring at %s, starting empty", self.path)
            return
        except OSError as e:
            raise KeyringError(f"Cannot read keyring file {self.path}: {e}") from e

        header, ciphertext, tag = codec.unpack_file(data)
        key = cipher.derive_key(self._passphrase or "", header.salt)

        try:
            plaintext = cipher.decrypt(
                key, header.nonce, ciphertext, tag, header.associated_data
            )
        except AuthenticationFailedError as e:
            raise DecryptionFailedError(
                "Cannot decrypt keyring: wrong passphrase or corrupted file."
            ) from e

        try:
            items = codec.decode_items(plaintext)
        finally:
            cipher.wipe(plaintext)

        self._items = ItemCollection(items)
        self._salt = header.salt
        self._key = key
        self.state = StoreState.LOADED
        logger.debug("Loaded %d item(s) from %s", len(self._items), self.path)

    def add_item(self, item: CredentialsItem) -> None:
        """
        Insert or replace the item stored under item.url.

        Existing records for the same URL are replaced entirely; fields are
        not merged.

        Raises:
            InvalidCredentialsError: If the item has no URL.
        """
        self._require_open()
        item.validate()

        replaced = item.url in self._items
        self._items.put(item.copy())
        self.state = StoreState.DIRTY
        logger.debug("%s item for %s", "Replaced" if replaced else "Added", item.url)

    def remove_item(self, url: str) -> None:
        """
        Remove the item stored under url.

        Raises:
            ItemNotFoundError: If no item is stored for url. The store is
                left untouched.
        """
        self._require_open()

        if self._items.pop(url) is None:
            raise ItemNotFoundError(f"No credentials stored for: {url}")

        self.state = StoreState.DIRTY
        logger.debug("Removed item for %s", url)

    def get_item(self, url: str) -> CredentialsItem | None:
        """
        Look up an item by URL.

        Returns:
            A copy of the stored item, or None if there is none.
        """
        self._require_open()
        item = self._items.get(url)
        return item.copy() if item is not None else None

    def urls(self) -> list[str]:
        """List stored URLs in insertion order."""
        self._require_open()
        return self._items.urls()

    def items(self) -> list[CredentialsItem]:
        """Return copies of all stored items in insertion order."""
        self._require_open()
        return [item.copy() for item in self._items]

    def __len__(self) -> int:
        self._require_open()
        return len(self._items)

    def __contains__(self, url: object) -> bool:
        self._require_open()
        return url in self._items

    def exists(self) -> bool:
        """Check if the keyring file exists on disk."""
        return self.path.exists()

    @property
    def is_dirty(self) -> bool:
        return self.state is StoreState.DIRTY

    def change_passphrase(self, new_passphrase: str) -> None:
        """
        Re-key the store under a new passphrase.

        A new salt is generated. The change is applied to disk by the next
        save(); until then the file stays readable with the old passphrase.

        Raises:
            WeakPassphraseError: If new_passphrase is shorter than the
                configured minimum.
        """
        self._require_open()

        salt = cipher.generate_salt()
        key = cipher.derive_key(new_passphrase, salt, self.min_passphrase_length)

        self._passphrase = new_passphrase
        self._salt = salt
        self._key = key
        self.state = StoreState.DIRTY
        logger.info("Keyring passphrase changed, save pending")

    def save(self) -> None:
        """
        Encrypt the collection and atomically replace the keyring file.

        On failure the previous file is left intact and the store stays
        dirty, so calling save() again is safe.

        Raises:
            PersistFailedError: On any I/O error.
            WeakPassphraseError: If this save creates the file and the
                passphrase is shorter than the configured minimum.
        """
        self._require_open()

        if self._key is None or self._salt is None:
            salt = cipher.generate_salt()
            self._key = cipher.derive_key(
                self._passphrase or "", salt, self.min_passphrase_length
            )
            self._salt = salt

        plaintext = codec.encode_items(self._items)
        try:
            payload = cipher.encrypt(
                self._key, plaintext, codec.associated_data_for(self._salt)
            )
        finally:
            cipher.wipe(plaintext)

        data = codec.pack_file(self._salt, payload.nonce, payload.sealed())
        self._write_secure_file(data)

        self.state = StoreState.PERSISTED
        logger.info("Saved %d item(s) to %s", len(self._items), self.path)

    def close(self) -> None:
        """
        Drop decrypted items, key and passphrase from the store.

        Note: Python does not guarantee immediate memory clearing due to
        garbage collection and string interning. This is a best-effort
        attempt to reduce the window of exposure. Unsaved changes are lost.
        """
        if self._closed:
            return
        self._items.clear()
        self._key = None
        self._passphrase = None
        self._closed = True

    def _require_open(self) -> None:
        """Raise an error if the store has been closed."""
        if self._closed:
            raise KeyringClosedError("Keyring is closed.")

    def _write_secure_file(self, data: bytes) -> None:
        """
        Write data to the keyring path with restrictive permissions.

        Uses atomic write (write to temp, fsync, then rename) to prevent
        partial writes from corrupting the file.
        """
        if not self.config_dir.exists():
            try:
                self.config_dir.mkdir(parents=True, exist_ok=True)
                os.chmod(self.config_dir, 0o700)
            except OSError as e:
                raise PersistFailedError(
                    f"Cannot create keyring directory {self.config_dir}: {e}"
                ) from e

        try:
            fd, temp_name = tempfile.mkstemp(
                dir=self.config_dir, prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise PersistFailedError(f"Cannot write keyring file {self.path}: {e}") from e

        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())

            try:
                # Set restrictive permissions (owner read/write only)
                os.chmod(temp_path, 0o600)
            except OSError:
                # Windows - mkstemp already creates the file owner-only
                pass

            # Atomic rename
            os.replace(temp_path, self.path)

        except OSError as e:
            # Clean up temp file on error
            temp_path.unlink(missing_ok=True)
            raise PersistFailedError(f"Cannot write keyring file {self.path}: {e}") from e
        except BaseException:
            # Interrupted (e.g. Ctrl-C): clean up and let it propagate
            temp_path.unlink(missing_ok=True)
            raise

        self._fsync_directory()

    def _fsync_directory(self) -> None:
        """Flush the directory entry of the rename to disk where supported."""
        try:
            dir_fd = os.open(self.config_dir, os.O_RDONLY)
        except OSError:
            return
        try:
            os.fsync(dir_fd)
        except OSError:
            # Not supported on every platform/filesystem
            logger.debug("Directory fsync not supported for %s", self.config_dir)
        finally:
            os.close(dir_fd)
