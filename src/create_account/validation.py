"""Username checks done before any network or database access."""

import re

from .errors import InputValidationError

VALID_USERNAME_RE = re.compile(r"[0-9a-z_\-=./]+")
MAX_USER_ID_LENGTH = 255


def user_id(username: str, server_name: str) -> str:
    """Return the fully qualified user ID, e.g. ``@alice:example.org``."""
    return f"@{username}:{server_name}"


def validate_username(username: str, server_name: str) -> None:
    """Check the localpart syntax and the length of the full user ID.

    Raises:
        InputValidationError: If the username cannot be registered.
    """
    if not username:
        raise InputValidationError("Username is required")
    if not VALID_USERNAME_RE.fullmatch(username):
        raise InputValidationError("Username can only contain characters a-z, 0-9, or '_-./='")
    full_id = user_id(username, server_name)
    if len(full_id) > MAX_USER_ID_LENGTH:
        raise InputValidationError(f"Username can not be longer than 255 characters: {full_id}")
