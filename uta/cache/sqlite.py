from __future__ import annotations

import hashlib
import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


def account_key(media_user_token: str) -> str:
    # the credential itself is never written to disk
    return hashlib.sha256(media_user_token.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class CachedAuth:
    developer_token: str
    storefront: str
    language: str


class TokenCache:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path)
        con.row_factory = sqlite3.Row
        return con

    def _init_db(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_cache (
                    account TEXT PRIMARY KEY,
                    developer_token TEXT NOT NULL,
                    storefront TEXT NOT NULL,
                    language TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                );
                """
            )

    def get(self, account: str, *, max_age_s: int) -> CachedAuth | None:
        """
        Returns the cached auth for `account`, or None if missing or older than max_age_s.
        """
        with self._connect() as con:
            row = con.execute(
                "SELECT developer_token, storefront, language, updated_at FROM auth_cache WHERE account=?",
                (account,),
            ).fetchone()
        if row is None:
            return None
        if int(time.time()) - int(row["updated_at"]) > max_age_s:
            logger.debug("Cached developer token expired")
            return None
        return CachedAuth(
            developer_token=row["developer_token"],
            storefront=row["storefront"],
            language=row["language"],
        )

    def set(self, account: str, auth: CachedAuth) -> None:
        now = int(time.time())
        with self._connect() as con:
            con.execute(
                """
                INSERT INTO auth_cache(account, developer_token, storefront, language, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(account) DO UPDATE SET
                    developer_token=excluded.developer_token,
                    storefront=excluded.storefront,
                    language=excluded.language,
                    updated_at=excluded.updated_at
                """,
                (account, auth.developer_token, auth.storefront, auth.language, now),
            )

    def invalidate(self, account: str) -> None:
        with self._connect() as con:
            con.execute("DELETE FROM auth_cache WHERE account=?", (account,))

    def clear(self) -> None:
        with self._connect() as con:
            con.execute("DELETE FROM auth_cache")
