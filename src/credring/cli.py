"""
Command-line interface for credring.

Provides the login, logout, list and passwd commands on top of the
encrypted keyring.

Uses Python's argparse module (no external CLI libraries).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

from credring import __version__
from credring.config.settings import (
    ConfigurationError,
    Settings,
    load_config,
)
from credring.prompt import PromptError, fill_missing_fields, read_passphrase
from credring.store import (
    CipherError,
    CorruptStoreError,
    CredentialsItem,
    CredentialStore,
    DecryptionFailedError,
    InvalidCredentialsError,
    ItemNotFoundError,
    KeyringError,
    PersistFailedError,
)

# Set up logging
logger = logging.getLogger(__name__)

PASSPHRASE_ENV_VAR = "CREDRING_KEYRING_PASSPHRASE"

# Global verbosity settings (set during main() based on args)
_quiet_mode = False
_verbose_level = 0


def set_output_mode(quiet: bool = False, verbose: int = 0) -> None:
    """
    Set the output mode for the CLI.

    Args:
        quiet: If True, suppress non-essential output.
        verbose: Verbosity level (0=normal, 1+=verbose).
    """
    global _quiet_mode, _verbose_level
    _quiet_mode = quiet
    _verbose_level = verbose


def output(message: str = "", force: bool = False) -> None:
    """
    Print a message to stdout, respecting quiet mode.

    Args:
        message: The message to print.
        force: If True, print even in quiet mode (for essential output).
    """
    if force or not _quiet_mode:
        print(message)


def output_error(message: str) -> None:
    """Print an error message (always shown, even in quiet mode)."""
    print(message, file=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the credring CLI."""
    parser = argparse.ArgumentParser(
        prog="credring",
        description="Passphrase-protected keyring for service credentials",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"credring {__version__}",
    )

    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Override config file location (default: ~/.credring/config.yaml)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (can be repeated)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    parser.add_argument(
        "--keyring-passphrase",
        metavar="PASSPHRASE",
        default="",
        help=(
            "Passphrase for keyring encryption/decryption "
            f"(default: ${PASSPHRASE_ENV_VAR} or prompt)"
        ),
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    # login command
    login_parser = subparsers.add_parser(
        "login",
        help="Logs in to services like git, docker, etc.",
        description="Store credentials for a service. Missing fields are prompted for.",
    )
    login_parser.add_argument("--url", default="", help="URL")
    login_parser.add_argument("--username", default="", help="Username")
    login_parser.add_argument("--password", default="", help="Password")
    login_parser.set_defaults(func=cmd_login)

    # logout command
    logout_parser = subparsers.add_parser(
        "logout",
        help="Logs out from a service",
        description="Remove stored credentials for a service.",
    )
    logout_parser.add_argument("url", metavar="URL", help="URL to log out from")
    logout_parser.set_defaults(func=cmd_logout)

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List stored services",
        description="Show the URL and username of every stored login. Passwords are never shown.",
    )
    list_parser.set_defaults(func=cmd_list)

    # passwd command
    passwd_parser = subparsers.add_parser(
        "passwd",
        help="Change the keyring passphrase",
        description="Re-encrypt the keyring under a new passphrase.",
    )
    passwd_parser.set_defaults(func=cmd_passwd)

    return parser


def setup_logging(verbose: int, quiet: bool, default_level: str = "WARNING") -> None:
    """Configure logging based on verbosity level."""
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.getLevelName(default_level)
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def resolve_passphrase(args: argparse.Namespace, settings: Settings) -> str:
    """
    Get the keyring passphrase from the flag, the environment, or a prompt.

    When prompting for a keyring that does not exist yet, the passphrase is
    asked twice.
    """
    if args.keyring_passphrase:
        return args.keyring_passphrase

    env_value = os.environ.get(PASSPHRASE_ENV_VAR)
    if env_value:
        return env_value

    creating = not settings.keyring_path.exists()
    if creating:
        output(f"Creating a new keyring at {settings.keyring_path}")
    return read_passphrase(confirm=creating)


def open_keyring(args: argparse.Namespace, settings: Settings) -> CredentialStore:
    """Open the configured keyring with the resolved passphrase."""
    passphrase = resolve_passphrase(args, settings)
    return CredentialStore(
        Path(settings.config_dir).expanduser(),
        passphrase,
        filename=settings.keyring.filename,
        min_passphrase_length=settings.keyring.min_passphrase_length,
    )


def cmd_login(args: argparse.Namespace, settings: Settings) -> int:
    """Store credentials for a service."""
    creds = CredentialsItem(
        url=args.url,
        username=args.username,
        password=args.password,
    )

    with open_keyring(args, settings) as store:
        fill_missing_fields(creds)

        try:
            store.add_item(creds)
        except InvalidCredentialsError as e:
            output_error(f"Error: {e}")
            return 1

        store.save()
        output(f"Logged in to {creds.url}")

    return 0


def cmd_logout(args: argparse.Namespace, settings: Settings) -> int:
    """Remove stored credentials for a service."""
    with open_keyring(args, settings) as store:
        try:
            store.remove_item(args.url)
        except ItemNotFoundError:
            output_error(f"Nothing to log out of for {args.url}")
            return 1

        store.save()
        output(f"Logged out from {args.url}")

    return 0


def cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    """List stored services and usernames."""
    with open_keyring(args, settings) as store:
        items = store.items()

    if not items:
        output("No stored credentials.")
        return 0

    width = max(len(item.url) for item in items)
    for item in items:
        output(f"{item.url:<{width}}  {item.username}", force=True)
    return 0


def cmd_passwd(args: argparse.Namespace, settings: Settings) -> int:
    """Change the keyring passphrase."""
    if not settings.keyring_path.exists():
        output_error("Error: No keyring to re-encrypt. Run 'credring login' first.")
        return 1

    with open_keyring(args, settings) as store:
        new_passphrase = read_passphrase("New passphrase: ", confirm=True)
        store.change_passphrase(new_passphrase)
        store.save()

    output("Keyring passphrase changed.")
    return 0


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the credring CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    set_output_mode(args.quiet, args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        settings = load_config(Path(args.config) if args.config else None)
        setup_logging(args.verbose, args.quiet, settings.log_level)
        exit_code = args.func(args, settings)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        output("\nOperation cancelled.")
        sys.exit(130)
    except EOFError:
        output_error("Error: Input ended before all fields were entered.")
        sys.exit(1)
    except PromptError as e:
        output_error(f"Error: {e}")
        sys.exit(1)
    except PersistFailedError as e:
        output_error(f"Error saving keyring: {e}")
        sys.exit(1)
    except (DecryptionFailedError, CorruptStoreError, CipherError) as e:
        output_error(f"Keyring error: {e}")
        sys.exit(2)
    except ConfigurationError as e:
        output_error(f"Configuration error: {e}")
        sys.exit(2)
    except KeyringError as e:
        output_error(f"Keyring error: {e}")
        sys.exit(2)
    except Exception as e:
        if args.verbose > 0:
            raise
        output_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
