"""Tests for interactive prompts."""

import unittest
from unittest.mock import MagicMock

from credring.prompt import (
    PassphraseMismatchError,
    fill_missing_fields,
    read_passphrase,
)
from credring.store.models import CredentialsItem


class TestFillMissingFields(unittest.TestCase):
    """Tests for fill_missing_fields()."""

    def test_prompts_for_all_empty_fields(self) -> None:
        """Test URL and username are read as lines, password as secret."""
        read_line = MagicMock(side_effect=["  https://git.example.com \n", "alice\n"])
        read_secret = MagicMock(return_value=" s3cret ")

        item = fill_missing_fields(CredentialsItem(), read_line, read_secret)

        self.assertEqual(item.url, "https://git.example.com")
        self.assertEqual(item.username, "alice")
        self.assertEqual(item.password, "s3cret")
        self.assertEqual(
            [call.args[0] for call in read_line.call_args_list],
            ["URL: ", "Username: "],
        )
        read_secret.assert_called_once_with("Password: ")

    def test_skips_filled_fields(self) -> None:
        """Test that given fields are not prompted for."""
        read_line = MagicMock()
        read_secret = MagicMock(return_value="s3cret")
        item = CredentialsItem(url="https://git.example.com", username="alice")

        fill_missing_fields(item, read_line, read_secret)

        read_line.assert_not_called()
        self.assertEqual(item.password, "s3cret")

    def test_nothing_missing(self) -> None:
        """Test that a complete item triggers no prompts."""
        read_line = MagicMock()
        read_secret = MagicMock()
        item = CredentialsItem("https://git.example.com", "alice", "s3cret")

        result = fill_missing_fields(item, read_line, read_secret)

        self.assertIs(result, item)
        read_line.assert_not_called()
        read_secret.assert_not_called()

    def test_eof_propagates(self) -> None:
        """Test that end of input is raised to the caller."""
        read_line = MagicMock(side_effect=EOFError)

        with self.assertRaises(EOFError):
            fill_missing_fields(CredentialsItem(), read_line, MagicMock())


class TestReadPassphrase(unittest.TestCase):
    """Tests for read_passphrase()."""

    def test_single_prompt(self) -> None:
        """Test reading without confirmation."""
        read_secret = MagicMock(return_value="passphrase")

        self.assertEqual(read_passphrase(read_secret=read_secret), "passphrase")
        read_secret.assert_called_once()

    def test_confirm_match(self) -> None:
        """Test a confirmed passphrase."""
        read_secret = MagicMock(side_effect=["passphrase", "passphrase"])

        result = read_passphrase("New: ", confirm=True, read_secret=read_secret)

        self.assertEqual(result, "passphrase")
        self.assertEqual(read_secret.call_count, 2)

    def test_confirm_mismatch(self) -> None:
        """Test that differing answers raise an error."""
        read_secret = MagicMock(side_effect=["hunter2-abc", "hunter2-xyz"])

        with self.assertRaises(PassphraseMismatchError) as ctx:
            read_passphrase(confirm=True, read_secret=read_secret)

        self.assertNotIn("hunter2", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
