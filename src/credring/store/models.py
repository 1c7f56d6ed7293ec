"""
In-memory models for the credential keyring.

Schema Design Decisions:
    - The URL is the unique key of a record
    - Username and password may be empty strings but are never None
    - Records keep insertion order so re-serialization is deterministic
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace

from credring.store.errors import InvalidCredentialsError


@dataclass
class CredentialsItem:
    """
    A single login record.

    Attributes:
        url: Service URL, unique identifier of the record.
        username: Login name for the service.
        password: Secret for the service. Never shown in repr().
    """

    url: str = ""
    username: str = ""
    password: str = field(default="", repr=False)

    def validate(self) -> None:
        """
        Check the item can be stored.

        Raises:
            InvalidCredentialsError: If the URL is empty or a field is not a
                string that can be stored as UTF-8.
        """
        for name in ("url", "username", "password"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise InvalidCredentialsError(f"Field '{name}' must be a string")
            try:
                value.encode("utf-8")
            except UnicodeEncodeError:
                # The error carries the whole value
                raise InvalidCredentialsError(
                    f"Field '{name}' is not valid text"
                ) from None
        if not self.url.strip():
            raise InvalidCredentialsError("URL is required")

    def copy(self) -> CredentialsItem:
        """Return a shallow copy of this item."""
        return replace(self)


class ItemCollection:
    """
    Insertion-ordered collection of credentials items keyed by URL.

    Overwriting an existing URL keeps its original position, so saving the
    same logical content twice produces the same plaintext.
    """

    def __init__(self, items: list[CredentialsItem] | None = None) -> None:
        self._items: dict[str, CredentialsItem] = {}
        for item in items or []:
            self.put(item)

    def put(self, item: CredentialsItem) -> None:
        """Insert or replace the item stored under item.url."""
        self._items[item.url] = item

    def get(self, url: str) -> CredentialsItem | None:
        return self._items.get(url)

    def pop(self, url: str) -> CredentialsItem | None:
        return self._items.pop(url, None)

    def urls(self) -> list[str]:
        return list(self._items)

    def items(self) -> list[CredentialsItem]:
        return list(self._items.values())

    def clear(self) -> None:
        """Drop all items and their field references."""
        for item in self._items.values():
            item.password = ""
            item.username = ""
        self._items.clear()

    def __contains__(self, url: object) -> bool:
        return url in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CredentialsItem]:
        return iter(list(self._items.values()))
