"""
Interactive terminal prompts.

Fills in the credential fields that were not given on the command line and
asks for the keyring passphrase. Passwords and passphrases are read with
getpass so they are not echoed.
"""

from __future__ import annotations

import getpass
from collections.abc import Callable

from credring.store.models import CredentialsItem

LineReader = Callable[[str], str]


class PromptError(Exception):
    """Raised when interactive input cannot be completed."""

    pass


class PassphraseMismatchError(PromptError):
    """Raised when a passphrase and its confirmation differ."""

    pass


def fill_missing_fields(
    item: CredentialsItem,
    read_line: LineReader = input,
    read_secret: LineReader = getpass.getpass,
) -> CredentialsItem:
    """
    Prompt for every empty field of item, in the order URL, Username, Password.

    Args:
        item: Partially filled item. Updated in place.
        read_line: Reader for plain text answers.
        read_secret: Reader for the password, must not echo input.

    Returns:
        The same item, for chaining.

    Raises:
        EOFError: If input ends before all fields are read.
    """
    if not item.url:
        item.url = read_line("URL: ").strip()

    if not item.username:
        item.username = read_line("Username: ").strip()

    if not item.password:
        item.password = read_secret("Password: ").strip()

    return item


def read_passphrase(
    prompt: str = "Keyring passphrase: ",
    confirm: bool = False,
    read_secret: LineReader = getpass.getpass,
) -> str:
    """
    Read a passphrase without echo.

    Args:
        prompt: Prompt text.
        confirm: Ask a second time and require both answers to match.
        read_secret: Reader used for both prompts.

    Raises:
        PassphraseMismatchError: If confirm is set and the answers differ.
    """
    passphrase = read_secret(prompt)
    if confirm and read_secret("Confirm passphrase: ") != passphrase:
        raise PassphraseMismatchError("Passphrases do not match.")
    return passphrase
