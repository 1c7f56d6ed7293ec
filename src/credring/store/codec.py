"""
On-disk format of the keyring file.

File Structure:
    [format-version:1B][salt:32B][nonce:12B][ciphertext + tag(16B)]

The version byte and salt are authenticated as associated data, so editing
the header fails decryption just like editing the ciphertext.

Plaintext body (format version 1):
    [count:u32 BE] followed by `count` records. Each record is three fields
    in the order URL, Username, Password, each encoded as
    [length:u32 BE][UTF-8 bytes].
"""

from __future__ import annotations

import struct
from collections.abc import Iterable
from dataclasses import dataclass

from credring.store.cipher import NONCE_LENGTH, SALT_LENGTH, TAG_LENGTH
from credring.store.errors import CorruptStoreError, DecryptionFailedError
from credring.store.models import CredentialsItem

FORMAT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})

HEADER_LENGTH = 1 + SALT_LENGTH + NONCE_LENGTH
MIN_FILE_LENGTH = HEADER_LENGTH + TAG_LENGTH

_U32 = struct.Struct(">I")
_FIELDS_PER_RECORD = 3


@dataclass(frozen=True)
class StoreHeader:
    """Parsed keyring file header."""

    version: int
    salt: bytes
    nonce: bytes

    @property
    def associated_data(self) -> bytes:
        """Header bytes bound to the ciphertext by the AEAD tag."""
        return associated_data_for(self.salt, self.version)


def pack_file(salt: bytes, nonce: bytes, sealed: bytes) -> bytes:
    """Assemble the full file contents from header fields and sealed body."""
    return pack_header(salt, nonce) + sealed


def pack_header(salt: bytes, nonce: bytes, version: int = FORMAT_VERSION) -> bytes:
    """
    Encode the fixed-size file header.

    Raises:
        ValueError: If salt or nonce has the wrong length.
    """
    if len(salt) != SALT_LENGTH or len(nonce) != NONCE_LENGTH:
        raise ValueError("Invalid salt or nonce length")
    return bytes([version]) + salt + nonce


def associated_data_for(salt: bytes, version: int = FORMAT_VERSION) -> bytes:
    """Associated data for a body sealed under the given header fields."""
    return bytes([version]) + salt


def unpack_file(data: bytes) -> tuple[StoreHeader, bytes, bytes]:
    """
    Split raw file contents into header, ciphertext and tag.

    Raises:
        DecryptionFailedError: If the file is too short or has an unknown
            version. Such a file cannot be opened with any passphrase.
    """
    if len(data) < MIN_FILE_LENGTH:
        raise DecryptionFailedError("Keyring file is truncated or unreadable.")

    version = data[0]
    if version not in SUPPORTED_VERSIONS:
        raise DecryptionFailedError(
            f"Unsupported keyring format version: {version}"
        )

    salt_end = 1 + SALT_LENGTH
    header = StoreHeader(
        version=version,
        salt=data[1:salt_end],
        nonce=data[salt_end:HEADER_LENGTH],
    )
    body = data[HEADER_LENGTH:]
    return header, body[:-TAG_LENGTH], body[-TAG_LENGTH:]


def encode_items(items: Iterable[CredentialsItem]) -> bytearray:
    """
    Serialize items into the version 1 plaintext body.

    Returns a bytearray so the caller can wipe it after encryption.
    """
    records = list(items)
    buffer = bytearray(_U32.pack(len(records)))
    for item in records:
        for value in (item.url, item.username, item.password):
            raw = value.encode("utf-8")
            buffer += _U32.pack(len(raw))
            buffer += raw
    return buffer


def decode_items(data: bytes | bytearray) -> list[CredentialsItem]:
    """
    Deserialize a version 1 plaintext body.

    Raises:
        CorruptStoreError: On truncated data, trailing bytes, invalid UTF-8,
            an empty URL, or a duplicate URL.
    """
    view = memoryview(data)
    offset = 0

    def read_u32() -> int:
        nonlocal offset
        if offset + _U32.size > len(view):
            raise CorruptStoreError("Keyring content is truncated.")
        (value,) = _U32.unpack_from(view, offset)
        offset += _U32.size
        return value

    def read_field() -> str:
        nonlocal offset
        length = read_u32()
        if offset + length > len(view):
            raise CorruptStoreError("Keyring content is truncated.")
        raw = bytes(view[offset:offset + length])
        offset += length
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptStoreError("Keyring content is not valid UTF-8.") from e

    count = read_u32()
    items: list[CredentialsItem] = []
    seen: set[str] = set()
    for index in range(count):
        url, username, password = (read_field() for _ in range(_FIELDS_PER_RECORD))
        if not url:
            raise CorruptStoreError(f"Record {index} has an empty URL.")
        if url in seen:
            raise CorruptStoreError(f"Record {index} duplicates URL {url}.")
        seen.add(url)
        items.append(CredentialsItem(url=url, username=username, password=password))

    if offset != len(view):
        raise CorruptStoreError("Keyring content has trailing data.")

    return items
