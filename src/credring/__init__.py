"""
credring - Passphrase-protected credential keyring

Stores login credentials (URL, username, password) for services such as git
hosts and container registries in a single encrypted file.

Key Features:
    - One encrypted file per user, unlocked with a single passphrase
    - scrypt key derivation and AES-256-GCM authenticated encryption
    - Atomic, durable saves: the file is never left half-written
    - login / logout / list commands for scripts and terminals

Design Principles:
    - Minimalism: Do one thing well
    - Security: Secrets never reach logs or error messages
    - Portability: A single self-describing file format
"""

__version__ = "0.1.0"
__author__ = ""
__email__ = ""

from credring.store import CredentialsItem, CredentialStore, Keyring

__all__ = [
    "__version__",
    "CredentialStore",
    "CredentialsItem",
    "Keyring",
]
