"""SQLite-backed store for agent chat conversations."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from agent_studio.security import redact_sensitive_text

CONTEXT_WINDOW = 10


@dataclass(frozen=True)
class ConversationRecord:
    """Conversation metadata."""

    conversation_id: str
    agent_id: str
    created_at: datetime


@dataclass(frozen=True)
class MessageRecord:
    """Single stored chat message."""

    conversation_id: str
    role: str
    content: str
    created_at: datetime


class ConversationStore:
    """Persists conversations and their messages; message bodies are redacted before storage."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        if str(db_path) != ":memory:":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(str(db_path), check_same_thread=False)
        self._lock = threading.Lock()
        self._init_schema()

    def create_conversation(self, agent_id: str) -> ConversationRecord:
        if not agent_id.strip():
            raise ValueError("agent_id must be non-empty.")
        record = ConversationRecord(
            conversation_id=uuid4().hex,
            agent_id=agent_id,
            created_at=datetime.now(UTC),
        )
        with self._lock:
            self._connection.execute(
                "INSERT INTO conversations (conversation_id, agent_id, created_at) "
                "VALUES (?, ?, ?)",
                (record.conversation_id, record.agent_id, record.created_at.isoformat()),
            )
            self._connection.commit()
        return record

    def get_conversation(self, conversation_id: str) -> ConversationRecord | None:
        with self._lock:
            row = self._connection.execute(
                "SELECT conversation_id, agent_id, created_at FROM conversations "
                "WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()
        if row is None:
            return None
        return ConversationRecord(
            conversation_id=row[0],
            agent_id=row[1],
            created_at=datetime.fromisoformat(row[2]),
        )

    def add_message(self, conversation_id: str, role: str, content: str) -> MessageRecord:
        if not role.strip():
            raise ValueError("role must be non-empty.")
        if not content.strip():
            raise ValueError("content must be non-empty.")
        record = MessageRecord(
            conversation_id=conversation_id,
            role=role.strip(),
            content=redact_sensitive_text(content.strip()),
            created_at=datetime.now(UTC),
        )
        with self._lock:
            self._connection.execute(
                "INSERT INTO messages (conversation_id, role, content, created_at) "
                "VALUES (?, ?, ?, ?)",
                (
                    record.conversation_id,
                    record.role,
                    record.content,
                    record.created_at.isoformat(),
                ),
            )
            self._connection.commit()
        return record

    def list_messages(
        self,
        conversation_id: str,
        *,
        limit: int | None = None,
    ) -> list[MessageRecord]:
        """Return messages oldest first; with ``limit`` only the most recent ones."""
        query = (
            "SELECT conversation_id, role, content, created_at FROM messages "
            "WHERE conversation_id = ? ORDER BY id DESC"
        )
        params: tuple[object, ...] = (conversation_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (conversation_id, limit)
        with self._lock:
            rows = self._connection.execute(query, params).fetchall()
        return [
            MessageRecord(
                conversation_id=row[0],
                role=row[1],
                content=row[2],
                created_at=datetime.fromisoformat(row[3]),
            )
            for row in reversed(rows)
        ]

    def recent_context(self, conversation_id: str, *, window: int = CONTEXT_WINDOW) -> str:
        """Render the last ``window`` messages as ``role: content`` lines."""
        messages = self.list_messages(conversation_id, limit=window)
        return "\n".join(f"{message.role}: {message.content}" for message in messages)

    def close(self) -> None:
        with self._lock:
            self._connection.close()

    def _init_schema(self) -> None:
        with self._lock:
            self._connection.execute(
                """
                CREATE TABLE IF NOT EXISTS conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT UNIQUE NOT NULL,
                    agent_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            self._connection.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            self._connection.commit()
