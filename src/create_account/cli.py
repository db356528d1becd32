"""Command-line interface for account creation and password resets."""

import logging
import sys
from pathlib import Path

import click

from . import registration
from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .errors import ConfigError, CreateAccountError
from .password import get_password
from .reset import reset_password
from .store import open_store
from .validation import validate_username

DEFAULT_SERVER_URL = "https://localhost:8448"


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG with --verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def password_options(func):
    """Attach the options shared by every command that needs a password."""
    func = click.option(
        "--password-stdin",
        is_flag=True,
        help="Read the password from stdin.",
    )(func)
    func = click.option(
        "--password-file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="File to read the password from (e.g. for automated account creation).",
    )(func)
    func = click.option(
        "--password",
        "-p",
        type=str,
        default=None,
        help="The password to associate with the account. Prompted for if omitted.",
    )(func)
    return func


def _prepare(config_path: Path, username: str) -> Config:
    config = load_config(config_path)
    validate_username(username, config.server_name)
    return config


@click.group()
@click.version_option(package_name="create-account")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    envvar="CREATE_ACCOUNT_CONFIG",
    show_default=True,
    help="Homeserver YAML config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """Create accounts on the homeserver or reset their passwords.

    The registration shared secret and the account database are read from
    the homeserver config file; neither can be given on the command line.
    """
    setup_logging(verbose)
    ctx.obj = config_path


@cli.command()
@click.argument("username")
@password_options
@click.option("--admin", is_flag=True, help="Create an admin account.")
@click.option(
    "--url",
    "server_url",
    type=str,
    default=DEFAULT_SERVER_URL,
    show_default=True,
    help="The URL to connect to.",
)
@click.pass_obj
def register(
    config_path: Path,
    username: str,
    password: str | None,
    password_file: Path | None,
    password_stdin: bool,
    admin: bool,
    server_url: str,
) -> None:
    """Create a new account using the registration shared secret.

    USERNAME is the localpart only, e.g. 'alice' for '@alice:example.org'.

    Examples:

        # provide password by parameter
        create-account -c dendrite.yaml register alice --password foobarbaz

        # use password from file
        create-account -c dendrite.yaml register alice --password-file my.pass

        # ask for the password
        create-account -c dendrite.yaml register alice

        # read password from stdin
        create-account -c dendrite.yaml register alice --password-stdin < my.pass
    """
    try:
        config = _prepare(config_path, username)
        if not config.registration_shared_secret:
            raise ConfigError(
                "client_api.registration_shared_secret is not set in "
                f"{config_path}; shared secret registration is disabled"
            )
        new_password = get_password(password, password_file, password_stdin, sys.stdin)
        access_token = registration.register(
            config.registration_shared_secret,
            server_url,
            username,
            new_password,
            admin,
        )
    except CreateAccountError as e:
        raise click.ClickException(f"Failed to create the account: {e}") from e

    click.echo(click.style(f"Created account: {username} (AccessToken: {access_token})", fg="green"))


@cli.command("reset-password")
@click.argument("username")
@password_options
@click.pass_obj
def reset_password_cmd(
    config_path: Path,
    username: str,
    password: str | None,
    password_file: Path | None,
    password_stdin: bool,
) -> None:
    """Reset the password of an existing account.

    Sets the new password directly in the account database and removes
    every device of the account, which logs out all of its sessions.

    Examples:

        create-account -c dendrite.yaml reset-password alice --password foobarbaz
    """
    try:
        config = _prepare(config_path, username)
        new_password = get_password(password, password_file, password_stdin, sys.stdin)
        with open_store(config) as store:
            removed = reset_password(store, username, new_password)
    except CreateAccountError as e:
        raise click.ClickException(str(e)) from e

    click.echo(click.style(f"Updated password for user {username} and invalidated all logins", fg="green"))
    click.echo(f"Sessions removed: {removed}")
