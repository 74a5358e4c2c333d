"""SQLite identity provider.

Keeps users and sessions in the same database file as the message store,
so a CLI user stays signed in across invocations.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

from ..errors import StoreNotConnectedError
from ..storage.models import utcnow
from .base import IdentityProvider
from .models import User


class SQLiteIdentityProvider(IdentityProvider):
    """SQLite-backed users and sessions."""

    def __init__(self, path: str | Path = "./data/pyparley.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_schema()

    async def _create_schema(self) -> None:
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT UNIQUE,
                created_at TEXT NOT NULL
            )
        """)

        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                token TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
            )
        """)

        await self._conn.commit()

    async def disconnect(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StoreNotConnectedError(self.backend_type)
        return self._connection

    async def resolve(self, token: str | None) -> str | None:
        if not token:
            return None
        async with self._conn.execute(
            "SELECT user_id FROM sessions WHERE token = ?",
            (token,)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else None

    async def sign_in(self, email: str | None = None) -> str:
        email = self._normalize_email(email)

        user_id = None
        if email:
            async with self._conn.execute(
                "SELECT id FROM users WHERE email = ?",
                (email,)
            ) as cursor:
                row = await cursor.fetchone()
            user_id = row[0] if row else None

        if user_id is None:
            user = User(email=email)
            await self._conn.execute(
                "INSERT INTO users (id, email, created_at) VALUES (?, ?, ?)",
                (user.id, user.email, user.created_at.isoformat())
            )
            user_id = user.id

        token = self._new_token()
        await self._conn.execute(
            "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
            (token, user_id, utcnow().isoformat())
        )
        await self._conn.commit()
        return token

    async def sign_out(self, token: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM sessions WHERE token = ?",
            (token,)
        )
        deleted = cursor.rowcount
        await cursor.close()
        await self._conn.commit()
        return deleted > 0

    async def get_user(self, user_id: str) -> User | None:
        async with self._conn.execute(
            "SELECT id, email, created_at FROM users WHERE id = ?",
            (user_id,)
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        uid, email, created_at = row
        return User(id=uid, email=email, created_at=datetime.fromisoformat(created_at))

    @property
    def backend_type(self) -> str:
        return "sqlite"
