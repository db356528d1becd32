"""MAC computation for shared-secret registration.

The homeserver recomputes this value from the request fields and its own copy
of the shared secret, so field order, the NUL separator and the admin literal
must match it byte for byte. HMAC-SHA1 is what the admin API expects.
"""

import hashlib
import hmac

ADMIN = "admin"
NOT_ADMIN = "notadmin"


def admin_literal(admin: bool) -> str:
    """Return the string bound into the MAC for the admin flag."""
    return ADMIN if admin else NOT_ADMIN


def register_mac(
    shared_secret: str,
    nonce: str,
    username: str,
    password: str,
    admin: str,
) -> str:
    """Compute the registration MAC.

    Args:
        shared_secret: Registration shared secret from the homeserver config.
        nonce: Nonce issued by the server for this attempt.
        username: Localpart of the account to create.
        password: Plaintext password of the account.
        admin: ``"admin"`` or ``"notadmin"`` (see :func:`admin_literal`).

    Returns:
        Lowercase hex HMAC-SHA1 digest (40 characters).
    """
    message = "\x00".join([nonce, username, password, admin])
    mac = hmac.new(shared_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha1)
    return mac.hexdigest()
