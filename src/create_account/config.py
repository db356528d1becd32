"""Homeserver configuration needed by create-account.

Only the handful of keys the two workflows need are read from the
homeserver's YAML config; everything else in the file is ignored.
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path("dendrite.yaml")
DEFAULT_SERVER_NAME = "localhost"
DEFAULT_BCRYPT_COST = 10


@dataclass(frozen=True)
class Config:
    """Resolved settings passed explicitly into each workflow."""

    server_name: str = DEFAULT_SERVER_NAME
    registration_shared_secret: str = ""
    account_database: str = ""
    bcrypt_cost: int = DEFAULT_BCRYPT_COST
    config_dir: Path = Path(".")

    def __repr__(self) -> str:
        secret = "<set>" if self.registration_shared_secret else "<unset>"
        return (
            f"Config(server_name={self.server_name!r}, "
            f"registration_shared_secret={secret}, "
            f"account_database={self.account_database!r}, "
            f"bcrypt_cost={self.bcrypt_cost})"
        )


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def parse_config(data: dict, config_dir: Path = Path(".")) -> Config:
    """Build a Config from an already-parsed YAML mapping."""
    global_ = _section(data, "global")
    client_api = _section(data, "client_api")
    user_api = _section(data, "user_api")

    # Monolith configs may only set the shared global database
    database = (
        _section(user_api, "account_database").get("connection_string")
        or _section(global_, "database").get("connection_string")
        or ""
    )

    cost = user_api.get("bcrypt_cost") or DEFAULT_BCRYPT_COST
    try:
        bcrypt_cost = int(cost)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid user_api.bcrypt_cost: {cost!r}") from e

    return Config(
        server_name=str(global_.get("server_name") or DEFAULT_SERVER_NAME),
        registration_shared_secret=str(client_api.get("registration_shared_secret") or ""),
        account_database=str(database),
        bcrypt_cost=bcrypt_cost,
        config_dir=config_dir,
    )


def load_config(path: Path) -> Config:
    """Load the homeserver YAML config file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a YAML mapping.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Unable to read config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} is not a YAML mapping")

    return parse_config(data, config_dir=path.resolve().parent)
