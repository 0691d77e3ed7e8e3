from __future__ import annotations
from typing import Optional
import sqlite3, os
from linkstate_core.errors import PersistenceUnavailable
from linkstate_core.storage.provider import StorageProvider
from linkstate_core.utils import now_ts


class SQLiteStorage(StorageProvider):
    name = "sqlite"

    def __init__(self, path="db/linkstate.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.path = path
        self.db = sqlite3.connect(path, check_same_thread=False)

        self._init()

    def _init(self) -> None:
        self.db.execute("""CREATE TABLE IF NOT EXISTS auth_state(
            identity_key TEXT PRIMARY KEY,
            blob TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )""")
        self.db.commit()

    def load(self, identity_key: str) -> Optional[str]:
        try:
            cur = self.db.execute("SELECT blob FROM auth_state WHERE identity_key=?", (identity_key,))
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise PersistenceUnavailable("load", identity_key, self.name) from e
        if not row: return None
        return row[0]

    def store(self, identity_key: str, blob: str) -> None:
        try:
            self.db.execute(
                "INSERT INTO auth_state(identity_key,blob,updated_at) VALUES(?,?,?) "
                "ON CONFLICT(identity_key) DO UPDATE SET blob=excluded.blob, updated_at=excluded.updated_at",
                (identity_key, blob, now_ts())
            )
            self.db.commit()
        except sqlite3.Error as e:
            raise PersistenceUnavailable("store", identity_key, self.name) from e

    def delete(self, identity_key: str) -> None:
        try:
            self.db.execute("DELETE FROM auth_state WHERE identity_key=?", (identity_key,))
            self.db.commit()
        except sqlite3.Error as e:
            raise PersistenceUnavailable("delete", identity_key, self.name) from e

    def list_identities(self):
        cur = self.db.execute("SELECT identity_key, updated_at FROM auth_state")
        return [dict(zip(["identity_key", "updated_at"], r)) for r in cur.fetchall()]

    def close(self):
        self.db.close()
