"""SQLite message store backend.

Provides persistent message storage using a SQLite database file.
Uses aiosqlite for async access.
"""

from datetime import datetime
from pathlib import Path
from uuid import uuid4

import aiosqlite

from ..errors import StoreNotConnectedError
from .base import MessageStore
from .models import ConversationTurn, Message, TurnStatus, utcnow

_MESSAGE_COLUMNS = "seq, id, content, is_user, user_id"
_TURN_COLUMNS = "id, user_id, user_message_id, status, reply_message_id, created_at, updated_at"


class SQLiteMessageStore(MessageStore):
    """SQLite-backed message store.

    The ``seq`` autoincrement column is the creation order; the
    ``idx_messages_by_user`` index serves per-user listing.
    """

    def __init__(self, path: str | Path = "./data/pyparley.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._create_schema()

    async def _create_schema(self) -> None:
        """Create database tables."""
        conn = self._conn
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                content TEXT NOT NULL,
                is_user INTEGER NOT NULL,
                user_id TEXT
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_by_user
            ON messages(user_id, seq)
        """)

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS turns (
                rowid_order INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                user_id TEXT NOT NULL,
                user_message_id TEXT NOT NULL,
                status TEXT NOT NULL,
                reply_message_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_turns_by_user
            ON turns(user_id, rowid_order)
        """)

        await conn.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StoreNotConnectedError(self.backend_type)
        return self._connection

    async def insert_message(self, message: Message) -> Message:
        message_id = str(uuid4())
        cursor = await self._conn.execute(
            "INSERT INTO messages (id, content, is_user, user_id) VALUES (?, ?, ?, ?)",
            (message_id, message.content, int(message.is_user), message.user_id)
        )
        sequence = cursor.lastrowid
        await cursor.close()
        await self._conn.commit()
        return message.model_copy(update={"id": message_id, "sequence": sequence})

    async def list_messages_by_user(self, user_id: str) -> list[Message]:
        async with self._conn.execute(
            f"""
            SELECT {_MESSAGE_COLUMNS}
            FROM messages
            WHERE user_id = ?
            ORDER BY seq ASC
            """,
            (user_id,)
        ) as cursor:
            rows = await cursor.fetchall()

        return [_row_to_message(row) for row in rows]

    async def count_messages(self, user_id: str | None = None) -> int:
        if user_id is None:
            query, params = "SELECT COUNT(*) FROM messages", ()
        else:
            query, params = "SELECT COUNT(*) FROM messages WHERE user_id = ?", (user_id,)

        async with self._conn.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def insert_turn(self, turn: ConversationTurn) -> ConversationTurn:
        await self._conn.execute(
            f"INSERT INTO turns ({_TURN_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                turn.id,
                turn.user_id,
                turn.user_message_id,
                turn.status.value,
                turn.reply_message_id,
                turn.created_at.isoformat(),
                turn.updated_at.isoformat(),
            )
        )
        await self._conn.commit()
        return turn

    async def update_turn(
        self,
        turn_id: str,
        status: TurnStatus,
        reply_message_id: str | None = None
    ) -> ConversationTurn | None:
        cursor = await self._conn.execute(
            """
            UPDATE turns
            SET status = ?, reply_message_id = ?, updated_at = ?
            WHERE id = ?
            """,
            (status.value, reply_message_id, utcnow().isoformat(), turn_id)
        )
        updated = cursor.rowcount
        await cursor.close()
        await self._conn.commit()

        if not updated:
            return None
        return await self.get_turn(turn_id)

    async def get_turn(self, turn_id: str) -> ConversationTurn | None:
        async with self._conn.execute(
            f"SELECT {_TURN_COLUMNS} FROM turns WHERE id = ?",
            (turn_id,)
        ) as cursor:
            row = await cursor.fetchone()

        return _row_to_turn(row) if row else None

    async def list_turns_by_user(self, user_id: str) -> list[ConversationTurn]:
        async with self._conn.execute(
            f"""
            SELECT {_TURN_COLUMNS}
            FROM turns
            WHERE user_id = ?
            ORDER BY rowid_order ASC
            """,
            (user_id,)
        ) as cursor:
            rows = await cursor.fetchall()

        return [_row_to_turn(row) for row in rows]

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path


def _row_to_message(row: tuple) -> Message:
    seq, message_id, content, is_user, user_id = row
    return Message(
        id=message_id,
        sequence=seq,
        content=content,
        is_user=bool(is_user),
        user_id=user_id,
    )


def _row_to_turn(row: tuple) -> ConversationTurn:
    turn_id, user_id, user_message_id, status, reply_id, created_at, updated_at = row
    return ConversationTurn(
        id=turn_id,
        user_id=user_id,
        user_message_id=user_message_id,
        status=TurnStatus(status),
        reply_message_id=reply_id,
        created_at=datetime.fromisoformat(created_at),
        updated_at=datetime.fromisoformat(updated_at),
    )
