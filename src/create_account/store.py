"""SQLite account store of a running homeserver.

The tables are created and migrated by the homeserver itself; this module only
reads and updates rows in them:

- userapi_accounts: one row per (localpart, server_name), holds password_hash
- userapi_devices: one row per login, deleting a row revokes its access token
"""

import logging
import sqlite3
from pathlib import Path

import bcrypt

from .config import Config
from .errors import ConfigError, StoreError

logger = logging.getLogger(__name__)

SELECT_ACCOUNT_SQL = """
    SELECT localpart FROM userapi_accounts
    WHERE localpart = ? AND server_name = ?
"""

UPDATE_PASSWORD_SQL = """
    UPDATE userapi_accounts SET password_hash = ?
    WHERE localpart = ? AND server_name = ?
"""

DELETE_DEVICES_SQL = """
    DELETE FROM userapi_devices
    WHERE localpart = ? AND server_name = ? AND device_id != ?
"""


def hash_password(password: str, cost: int) -> str:
    """Hash a plaintext password the way the homeserver stores it (bcrypt)."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=cost)).decode("utf-8")


class SqliteAccountStore:
    """Account store backed by the homeserver's SQLite account database."""

    def __init__(self, db_path: Path, server_name: str, bcrypt_cost: int = 10):
        self.db_path = db_path
        self.server_name = server_name
        self.bcrypt_cost = bcrypt_cost
        try:
            self.conn = sqlite3.connect(db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to connect to the database: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def __enter__(self) -> "SqliteAccountStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def check_availability(self, username: str) -> bool:
        """Return True if no account exists for the localpart.

        Deactivated accounts still occupy their localpart.
        """
        try:
            row = self.conn.execute(SELECT_ACCOUNT_SQL, (username, self.server_name)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        return row is None

    def set_password(self, username: str, password: str) -> None:
        try:
            password_hash = hash_password(password, self.bcrypt_cost)
        except ValueError as e:
            raise StoreError(f"Unable to hash password: {e}") from e
        try:
            with self.conn:
                cursor = self.conn.execute(
                    UPDATE_PASSWORD_SQL,
                    (password_hash, username, self.server_name),
                )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        if cursor.rowcount == 0:
            raise StoreError(f"no account row for {username}")

    def remove_all_sessions(self, username: str, exclude_device_id: str = "") -> int:
        """Delete every device of the account except ``exclude_device_id``.

        Returns:
            Number of devices deleted.
        """
        try:
            with self.conn:
                cursor = self.conn.execute(
                    DELETE_DEVICES_SQL,
                    (username, self.server_name, exclude_device_id),
                )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        logger.debug("Removed %d device(s) for %s", cursor.rowcount, username)
        return cursor.rowcount


def sqlite_path(connection_string: str, base_dir: Path = Path(".")) -> Path:
    """Resolve a homeserver database connection string to a SQLite file path.

    Accepts ``file:name.db``, ``file:///abs/name.db`` and plain paths. Relative
    paths are resolved against ``base_dir``.

    Raises:
        ConfigError: For empty or non-SQLite connection strings.
    """
    if not connection_string:
        raise ConfigError("No account database connection_string in config")
    if connection_string.startswith(("postgres://", "postgresql://")):
        raise ConfigError("Only SQLite account databases are supported")

    path = connection_string
    if path.startswith("file:"):
        path = path[len("file:"):]
        if path.startswith("//"):
            path = path[2:]
        path = path.split("?", 1)[0]
    if not path:
        raise ConfigError(f"Invalid database connection_string: {connection_string}")

    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = base_dir / resolved
    return resolved


def open_store(config: Config) -> SqliteAccountStore:
    """Open the account store described by the homeserver config."""
    db_path = sqlite_path(config.account_database, config.config_dir)
    if not db_path.exists():
        raise StoreError(f"Account database not found at {db_path}")
    return SqliteAccountStore(db_path, config.server_name, config.bcrypt_cost)
