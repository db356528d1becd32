"""Resolve the account password from a flag, a file, stdin or a prompt."""

from pathlib import Path
from typing import TextIO

import click

from .errors import InputValidationError


def prompt_password() -> str:
    """Ask for the password twice on the terminal without echoing it."""
    first = click.prompt("Enter Password", hide_input=True, default="", show_default=False)
    second = click.prompt("Confirm Password", hide_input=True, default="", show_default=False)
    if first.strip() != second.strip():
        raise InputValidationError("Entered passwords don't match")
    return first.strip()


def get_password(
    password: str | None,
    password_file: Path | None,
    password_stdin: bool,
    stdin: TextIO,
) -> str:
    """Pick the password source.

    Priority: password file, then stdin, then an interactive prompt when no
    password was given on the command line. File and stdin contents are
    stripped of surrounding whitespace.

    Raises:
        InputValidationError: If a source cannot be read or the prompted
            passwords differ.
    """
    if password_file is not None:
        try:
            return password_file.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            raise InputValidationError(f"Unable to read password from file: {e}") from e

    if password_stdin:
        try:
            return stdin.read().strip()
        except (OSError, UnicodeDecodeError) as e:
            raise InputValidationError(f"Unable to read password from stdin: {e}") from e

    if not password:
        return prompt_password()

    return password
