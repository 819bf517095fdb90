"""
Relational Persona and Message Storage.

Holds persona definitions and the user-visible chat transcript. This is
separate from the Redis conversation history: the two are written side
by side but never in one transaction.
"""

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Literal, Optional

from .models import Persona, Turn

logger = logging.getLogger("companion.messages")


class MessageStore(ABC):
    """Persona lookup and turn persistence."""

    @abstractmethod
    async def get_persona(
        self,
        persona_id: str,
        user_id: str,
        limit: int = 50,
    ) -> Optional[Persona]:
        """Persona with this user's ``limit`` most recent turns, newest first."""
        pass

    @abstractmethod
    async def create_turn(
        self,
        persona_id: str,
        user_id: str,
        role: Literal["user", "assistant"],
        content: str,
    ) -> int:
        """Record a turn and return its ID."""
        pass


class SQLiteMessageStore(MessageStore):
    """
    SQLite-backed message store.

    sqlite3 is blocking, so each call runs in a worker thread with its
    own connection.
    """

    def __init__(self, db_path: str = "companion.db"):
        self.db_path = db_path
        self._init_db()
        logger.info(f"SQLiteMessageStore initialized with database: {db_path}")

    def _init_db(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS personas (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    instructions TEXT NOT NULL,
                    seed TEXT NOT NULL DEFAULT '',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    persona_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_messages_persona_user
                ON messages(persona_id, user_id, created_at)
            """)

            conn.commit()

    def save_persona(self, persona: Persona) -> None:
        """Insert or replace a persona definition."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO personas (id, name, instructions, seed)
                VALUES (?, ?, ?, ?)
                """,
                (persona.id, persona.name, persona.instructions, persona.seed),
            )
            conn.commit()
        logger.info(f"Saved persona {persona.id} ({persona.name})")

    def _get_persona(self, persona_id: str, user_id: str, limit: int) -> Optional[Persona]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM personas WHERE id = ?", (persona_id,)
            ).fetchone()
            if row is None:
                return None

            turn_rows = conn.execute(
                """
                SELECT id, role, content, created_at FROM messages
                WHERE persona_id = ? AND user_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (persona_id, user_id, limit),
            ).fetchall()

        return Persona(
            id=row["id"],
            name=row["name"],
            instructions=row["instructions"],
            seed=row["seed"],
            turns=[
                Turn(
                    id=turn["id"],
                    role=turn["role"],
                    content=turn["content"],
                    created_at=datetime.fromisoformat(turn["created_at"]),
                )
                for turn in turn_rows
            ],
        )

    def _create_turn(self, persona_id: str, user_id: str, role: str, content: str) -> int:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO messages (persona_id, user_id, role, content, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (persona_id, user_id, role, content, datetime.now().isoformat()),
            )
            conn.commit()
            return cursor.lastrowid

    async def get_persona(
        self,
        persona_id: str,
        user_id: str,
        limit: int = 50,
    ) -> Optional[Persona]:
        return await asyncio.to_thread(self._get_persona, persona_id, user_id, limit)

    async def create_turn(
        self,
        persona_id: str,
        user_id: str,
        role: Literal["user", "assistant"],
        content: str,
    ) -> int:
        turn_id = await asyncio.to_thread(self._create_turn, persona_id, user_id, role, content)
        logger.debug(f"Stored {role} turn #{turn_id} for persona {persona_id}")
        return turn_id
