"""Password reset for an existing local account.

The reset runs three store calls in order and stops at the first failure:

1. availability check (the account must already exist)
2. password update
3. removal of every device/session of the account

There is no rollback. If step 3 fails the new password is already in place
while existing logins may still be valid; rerunning the reset closes that gap.
"""

import logging
from typing import Protocol

from .errors import AccountNotFoundError, StoreError

logger = logging.getLogger(__name__)


class AccountStore(Protocol):
    """The three account store operations the reset needs."""

    def check_availability(self, username: str) -> bool:
        """Return True if ``username`` is free, i.e. no account exists."""
        ...

    def set_password(self, username: str, password: str) -> None:
        ...

    def remove_all_sessions(self, username: str, exclude_device_id: str = "") -> int:
        """Remove the account's devices and return how many were removed."""
        ...


def reset_password(store: AccountStore, username: str, new_password: str) -> int:
    """Set a new password and invalidate all logins of an account.

    Returns:
        Number of devices/sessions removed.

    Raises:
        AccountNotFoundError: If no account exists for ``username``.
        StoreError: If any store call fails.
    """
    try:
        available = store.check_availability(username)
    except Exception as e:
        raise StoreError(f"Unable to check username existence: {e}") from e
    if available:
        raise AccountNotFoundError(username)

    try:
        store.set_password(username, new_password)
    except Exception as e:
        raise StoreError(f"Failed to update password for user {username}: {e}") from e

    try:
        removed = store.remove_all_sessions(username, "")
    except Exception as e:
        logger.warning("Password for %s was changed but sessions were not removed", username)
        raise StoreError(f"Failed to remove all devices: {e}") from e

    logger.info("Updated password for user %s and invalidated all logins", username)
    return removed
