"""Shared-secret registration against the homeserver admin API."""

import json
import logging
import time

import httpx

from .errors import ProtocolError, TransportError
from .mac import admin_literal, register_mac

logger = logging.getLogger(__name__)

REGISTER_PATH = "/_synapse/admin/v1/register"
# Total time allowed for each request, body included
REQUEST_TIMEOUT_SECONDS = 10.0
USER_AGENT = "create-account/1.0"


def register_url(server_url: str) -> str:
    """Build the admin registration endpoint URL for a server base URL."""
    return server_url.rstrip("/") + REGISTER_PATH


def _json_str(body: bytes, key: str) -> str:
    """Read a top-level string field from a JSON body.

    Returns an empty string if the body is not a JSON object or the field is
    missing or not a string.
    """
    try:
        data = json.loads(body)
    except ValueError:
        return ""
    if not isinstance(data, dict):
        return ""
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _send(
    client: httpx.Client,
    method: str,
    url: str,
    what: str,
    timeout: float,
    **kwargs,
) -> tuple[int, bytes]:
    """Run one request and return its status code and body.

    httpx timeouts apply to each connect, read and write separately, so the
    body is streamed and the request is cut off once ``timeout`` seconds
    have passed in total.
    """
    deadline = time.monotonic() + timeout
    try:
        with client.stream(method, url, timeout=timeout, **kwargs) as response:
            chunks = []
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise TransportError(f"unable to {what}: request took longer than {timeout:g}s")
            return response.status_code, b"".join(chunks)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise TransportError(f"unable to {what}: {e}") from e


def fetch_nonce(client: httpx.Client, url: str, timeout: float = REQUEST_TIMEOUT_SECONDS) -> str:
    """Ask the server for a registration nonce.

    An unusable response body yields an empty nonce; the server then rejects
    the registration request with its own error.
    """
    status_code, body = _send(client, "GET", url, "get nonce", timeout)
    nonce = _json_str(body, "nonce")
    if not nonce:
        logger.warning("No nonce in response from %s (HTTP %d)", url, status_code)
    return nonce


def _register(
    client: httpx.Client,
    url: str,
    shared_secret: str,
    username: str,
    password: str,
    admin: bool,
    timeout: float,
) -> str:
    nonce = fetch_nonce(client, url, timeout)
    mac = register_mac(shared_secret, nonce, username, password, admin_literal(admin))

    payload = {
        "username": username,
        "password": password,
        "nonce": nonce,
        "mac": mac,
        "admin": admin,
    }
    logger.debug("Registering %s (admin=%s) at %s", username, admin, url)
    status_code, body = _send(client, "POST", url, "create account", timeout, json=payload)

    if not 200 <= status_code < 300:
        message = _json_str(body, "error")
        errcode = _json_str(body, "errcode") or None
        raise ProtocolError(
            message or f"HTTP {status_code}",
            status_code=status_code,
            errcode=errcode,
        )

    return _json_str(body, "access_token")


def register(
    shared_secret: str,
    server_url: str,
    username: str,
    password: str,
    admin: bool = False,
    *,
    client: httpx.Client | None = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> str:
    """Create an account using the shared-secret registration protocol.

    Performs a nonce request followed by the registration request. The shared
    secret itself is never sent, only the MAC derived from it.

    Args:
        shared_secret: Registration shared secret from the homeserver config.
        server_url: Base URL of the homeserver, e.g. ``https://localhost:8448``.
        username: Localpart of the new account.
        password: Plaintext password for the new account.
        admin: Whether the account should be a server admin.
        client: Optional pre-configured client. It is not closed afterwards.
        timeout: Total time in seconds allowed for each of the two requests.

    Returns:
        The access token of the new account.

    Raises:
        TransportError: If a request failed or ran past ``timeout``.
        ProtocolError: If the server rejected the registration.
    """
    url = register_url(server_url)
    if client is not None:
        return _register(client, url, shared_secret, username, password, admin, timeout)

    headers = {"User-Agent": USER_AGENT}
    with httpx.Client(timeout=timeout, headers=headers) as own_client:
        return _register(own_client, url, shared_secret, username, password, admin, timeout)
