"""Pytest configuration and fixtures.

This module provides fixtures for:
- A fake homeserver admin API served through httpx.MockTransport
- A recording in-memory account store
- A temporary SQLite account database laid out like the homeserver's
- A homeserver YAML config pointing at that database
"""

import json
import sqlite3
import time
from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest

SHARED_SECRET = "s3cr3t"
SERVER_NAME = "example.org"

ACCOUNTS_SCHEMA = """
CREATE TABLE userapi_accounts (
    localpart TEXT NOT NULL,
    server_name TEXT NOT NULL,
    created_ts BIGINT NOT NULL,
    password_hash TEXT,
    appservice_id TEXT,
    is_deactivated BOOLEAN DEFAULT 0,
    account_type INTEGER NOT NULL
);
CREATE UNIQUE INDEX userapi_accounts_idx ON userapi_accounts(localpart, server_name);

CREATE TABLE userapi_devices (
    access_token TEXT PRIMARY KEY,
    session_id INTEGER,
    device_id TEXT,
    localpart TEXT,
    server_name TEXT NOT NULL,
    created_ts BIGINT,
    display_name TEXT,
    last_seen_ts BIGINT,
    ip TEXT,
    user_agent TEXT,
    UNIQUE (localpart, server_name, device_id)
);
"""


class FakeHomeserver:
    """Admin registration endpoint backed by httpx.MockTransport."""

    __test__ = False

    def __init__(self, nonce_body: object = None, register_status: int = 200, register_body: object = None):
        self.nonce_body = {"nonce": "n1"} if nonce_body is None else nonce_body
        self.register_status = register_status
        self.register_body = {"access_token": "tok_abc"} if register_body is None else register_body
        self.requests: list[httpx.Request] = []

    @staticmethod
    def _encode(body: object) -> bytes:
        if isinstance(body, bytes):
            return body
        return json.dumps(body).encode()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, content=self._encode(self.nonce_body))
        return httpx.Response(self.register_status, content=self._encode(self.register_body))

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def posted_json(self) -> dict:
        """Body of the registration POST."""
        posts = [r for r in self.requests if r.method == "POST"]
        assert len(posts) == 1
        return json.loads(posts[0].content)


class FakeStore:
    """Account store that records every call made to it."""

    __test__ = False

    def __init__(
        self,
        available: bool = False,
        availability_error: Exception | None = None,
        set_password_error: Exception | None = None,
        remove_error: Exception | None = None,
        sessions: int = 2,
    ):
        self.available = available
        self.availability_error = availability_error
        self.set_password_error = set_password_error
        self.remove_error = remove_error
        self.sessions = sessions
        self.calls: list[tuple] = []

    def check_availability(self, username: str) -> bool:
        self.calls.append(("check_availability", username))
        if self.availability_error is not None:
            raise self.availability_error
        return self.available

    def set_password(self, username: str, password: str) -> None:
        self.calls.append(("set_password", username, password))
        if self.set_password_error is not None:
            raise self.set_password_error

    def remove_all_sessions(self, username: str, exclude_device_id: str = "") -> int:
        self.calls.append(("remove_all_sessions", username, exclude_device_id))
        if self.remove_error is not None:
            raise self.remove_error
        return self.sessions

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def homeserver() -> FakeHomeserver:
    """Homeserver that hands out nonce 'n1' and accepts the registration."""
    return FakeHomeserver()


@pytest.fixture
def account_db(tmp_path: Path) -> Path:
    """Create an account database with 'alice' (two devices) and 'bob'."""
    db_path = tmp_path / "userapi_accounts.db"
    now = int(time.time() * 1000)
    with sqlite3.connect(db_path) as conn:
        conn.executescript(ACCOUNTS_SCHEMA)
        conn.executemany(
            "INSERT INTO userapi_accounts (localpart, server_name, created_ts, password_hash, account_type) "
            "VALUES (?, ?, ?, ?, 1)",
            [
                ("alice", SERVER_NAME, now, "old-hash"),
                ("bob", SERVER_NAME, now, "bob-hash"),
            ],
        )
        conn.executemany(
            "INSERT INTO userapi_devices (access_token, session_id, device_id, localpart, server_name, created_ts) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [
                ("tok1", 1, "DEV1", "alice", SERVER_NAME, now),
                ("tok2", 2, "DEV2", "alice", SERVER_NAME, now),
                ("tok3", 3, "DEV3", "bob", SERVER_NAME, now),
            ],
        )
    conn.close()
    return db_path


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Return a function writing a homeserver YAML config into tmp_path."""

    def _write(
        shared_secret: str = SHARED_SECRET,
        database: str = "file:userapi_accounts.db",
        server_name: str = SERVER_NAME,
    ) -> Path:
        path = tmp_path / "dendrite.yaml"
        path.write_text(
            "version: 2\n"
            "global:\n"
            f"  server_name: {server_name}\n"
            "client_api:\n"
            f'  registration_shared_secret: "{shared_secret}"\n'
            "user_api:\n"
            "  bcrypt_cost: 4\n"
            "  account_database:\n"
            f"    connection_string: {database}\n"
        )
        return path

    return _write


def device_ids(db_path: Path, username: str) -> list[str]:
    """List the device IDs left for a user."""
    with sqlite3.connect(db_path) as conn:
        rows = conn.execute(
            "SELECT device_id FROM userapi_devices WHERE localpart = ? ORDER BY device_id",
            (username,),
        ).fetchall()
    conn.close()
    return [row[0] for row in rows]


def password_hash(db_path: Path, username: str) -> str:
    """Read the stored password hash of a user."""
    with sqlite3.connect(db_path) as conn:
        row = conn.execute(
            "SELECT password_hash FROM userapi_accounts WHERE localpart = ?",
            (username,),
        ).fetchone()
    conn.close()
    return row[0]


@pytest.fixture
def no_network(monkeypatch: pytest.MonkeyPatch) -> Generator[list, None, None]:
    """Fail the test if the CLI tries to register over the network."""
    from create_account import registration

    calls: list = []

    def _fail(*args, **kwargs):
        calls.append(args)
        raise AssertionError("registration must not be attempted")

    monkeypatch.setattr(registration, "register", _fail)
    yield calls
