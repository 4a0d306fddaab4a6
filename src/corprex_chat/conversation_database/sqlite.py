"""
SQLite storage for conversations and messages.

The repository methods are async to fit the repository interfaces but run the
'sqlite3' calls inline on the event loop. Each call is a short statement
against a local file; a shared or remote database needs a non-blocking backend.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from corprex_chat.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from corprex_chat.conversation_database.data_models.message import Message, MessageDatabase, MessageType
from corprex_chat.llms.base import Roles
from corprex_chat.utils.database import generate_uid


class SQLiteStore:
    """Owns the connection and schema shared by the two SQLite repositories."""

    def __init__(self, db_path: Path | str = ":memory:"):
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._migrate()

    def _migrate(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS conversations (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                model TEXT,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_conversations_user
                ON conversations(user_id, updated_at);

            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'text',
                model TEXT,
                created_at INTEGER NOT NULL,
                edited INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_messages_conv
                ON messages(conversation_id, created_at);
        """)
        self.conn.commit()

    def close(self):
        self.conn.close()


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        model=row["model"],
        create_timestamp=row["created_at"],
        update_timestamp=row["updated_at"],
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    message_type = MessageType(row["type"] or MessageType.TEXT)
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=Roles(row["role"]),
        content=row["content"],
        type=message_type,
        image_url=row["content"] if message_type == MessageType.IMAGE else None,
        model=row["model"],
        create_timestamp=row["created_at"],
        edited=bool(row["edited"]),
    )


class SQLiteConversationDatabase(ConversationDatabase):
    def __init__(self, store: SQLiteStore):
        self.conn = store.conn

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        self.conn.execute(
            """INSERT INTO conversations (id, user_id, title, model, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                conversation.id,
                conversation.user_id,
                conversation.title,
                conversation.model,
                conversation.create_timestamp,
                conversation.update_timestamp,
            ),
        )
        self.conn.commit()
        return conversation

    async def get_conversations_by_user_id(self, user_id: str) -> list[Conversation]:
        rows = self.conn.execute(
            "SELECT * FROM conversations WHERE user_id = ? ORDER BY updated_at DESC",
            (user_id,),
        ).fetchall()
        return [_row_to_conversation(row) for row in rows]

    async def get_conversation_by_id(self, conversation_id: str) -> Conversation:
        row = self.conn.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,)).fetchone()
        if not row:
            raise ValueError(f"Conversation with id {conversation_id} not found")
        return _row_to_conversation(row)

    async def update_conversation(self, conversation: Conversation) -> Conversation:
        cursor = self.conn.execute(
            "UPDATE conversations SET title = ?, model = ?, updated_at = ? WHERE id = ?",
            (conversation.title, conversation.model, conversation.update_timestamp, conversation.id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise ValueError(f"Conversation with id {conversation.id} not found")
        return conversation

    async def delete_conversation(self, conversation_id: str) -> bool:
        cursor = self.conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        self.conn.commit()
        return cursor.rowcount > 0


class SQLiteMessageDatabase(MessageDatabase):
    def __init__(self, store: SQLiteStore):
        self.conn = store.conn

    async def create_message(self, message: Message) -> Message:
        stored = message.model_copy(update={"id": message.id or generate_uid()})
        self.conn.execute(
            """INSERT INTO messages (id, conversation_id, role, content, type, model, created_at, edited)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                stored.id,
                stored.conversation_id,
                stored.role.value,
                stored.content,
                stored.type.value,
                stored.model,
                stored.create_timestamp,
                int(stored.edited),
            ),
        )
        self.conn.commit()
        return stored

    async def get_messages_by_conversation_id(self, conversation_id: str) -> list[Message]:
        rows = self.conn.execute(
            "SELECT * FROM messages WHERE conversation_id = ? ORDER BY created_at, rowid",
            (conversation_id,),
        ).fetchall()
        return [_row_to_message(row) for row in rows]

    async def get_message_by_id(self, message_id: str) -> Message:
        row = self.conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        if not row:
            raise ValueError(f"Message with id {message_id} not found")
        return _row_to_message(row)

    async def update_message(self, message: Message) -> Message:
        cursor = self.conn.execute(
            "UPDATE messages SET content = ?, edited = ? WHERE id = ?",
            (message.content, int(message.edited), message.id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise ValueError(f"Message with id {message.id} not found")
        return await self.get_message_by_id(message.id)

    async def delete_message(self, message_id: str) -> bool:
        cursor = self.conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
        self.conn.commit()
        return cursor.rowcount > 0
