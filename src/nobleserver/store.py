"""
=============================================================================
CREDENTIAL STORE
=============================================================================

SQLite-backed username → password hash table for the auth service.

    ┌──────────────────────────────────────────────┐
    │ users                                         │
    ├──────────────────┬───────────────────────────┤
    │ username TEXT PK │ password_hash TEXT NOT NULL│
    └──────────────────┴───────────────────────────┘

The server only ever calls get(). add() and remove() exist for
provisioning (scripts, tests).

=============================================================================
CONNECTIONS
=============================================================================

Each call opens its own short-lived sqlite3 connection. sqlite3
connections may not be shared across threads by default, and a fresh
connection per lookup keeps the store safe to call from worker threads
without a lock.

=============================================================================
"""

import sqlite3
import logging
from contextlib import closing
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    username      TEXT PRIMARY KEY,
    password_hash TEXT NOT NULL
)
"""


class CredentialStoreError(Exception):
    """The credential database could not be opened or queried."""


class CredentialStore:
    """
    Persistent credential table.

    Usage:
        store = CredentialStore("users.db")
        store.add("alice", "deadbeef")
        store.get("alice")    # "deadbeef"
        store.get("bob")      # None
    """

    def __init__(self, path: Union[str, Path], create: bool = True):
        """
        Args:
            path: SQLite database file.
            create: Create the users table if it is missing. With False the
                database must already exist and hold a users table.

        Raises:
            CredentialStoreError: The database can't be opened.
        """
        self.path = Path(path)
        if create:
            self._execute(SCHEMA)
        elif not self.path.is_file():
            raise CredentialStoreError(f"Credential database not found: {self.path}")
        else:
            # Fails here, not on the first lookup, if the table is missing
            self._execute("SELECT COUNT(*) FROM users")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.path))

    def _execute(self, sql: str, params: tuple = ()) -> list:
        try:
            with closing(self._connect()) as db:
                with db:  # commit on success, rollback on error
                    return db.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise CredentialStoreError(f"{self.path}: {e}") from e

    def get(self, username: str) -> Optional[str]:
        """
        Stored hash for username, or None if there is no such user.
        """
        rows = self._execute(
            "SELECT password_hash FROM users WHERE username = ?", (username,)
        )
        return rows[0][0] if rows else None

    def add(self, username: str, password_hash: str) -> None:
        """
        Insert or replace a user.

        Raises:
            ValueError: username or hash is empty or contains whitespace
                (the wire format could never express it).
        """
        for label, value in (("username", username), ("password_hash", password_hash)):
            if not value or len(value.split()) != 1 or value.strip() != value:
                raise ValueError(f"{label} must be a single non-empty token")

        self._execute(
            "INSERT OR REPLACE INTO users (username, password_hash) VALUES (?, ?)",
            (username, password_hash),
        )
        logger.info(f"Stored credentials for {username!r}")

    def remove(self, username: str) -> None:
        self._execute("DELETE FROM users WHERE username = ?", (username,))

    def __contains__(self, username: str) -> bool:
        return self.get(username) is not None

    def __len__(self) -> int:
        return self._execute("SELECT COUNT(*) FROM users")[0][0]
