"""Account creation and password reset tool for the homeserver."""

from .cli import cli

__all__ = ["cli", "main"]


def main() -> None:
    """Entry point for the create-account CLI."""
    cli()
