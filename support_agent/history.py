# support_agent/history.py
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from support_agent.db import connect, exec_all, DEFAULT_DB_PATH
from support_agent.models import ChatMessage

logger = logging.getLogger(__name__)


class ChatHistory:
    """Per-conversation transcript. Write failures are logged and dropped."""

    def __init__(self, conversation_id: str, db_path: Path = DEFAULT_DB_PATH):
        self.conversation_id = conversation_id
        self.db_path = Path(db_path)

    def add(self, role: str, content: str) -> None:
        try:
            conn = connect(self.db_path)
            try:
                conn.execute(
                    "INSERT INTO chat_messages(conversation_id, role, content, created_at) VALUES (?, ?, ?, ?)",
                    (self.conversation_id, role, content, datetime.now(timezone.utc).isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning("[history] could not save %s message: %s", role, e)

    def recent(self, limit: int = 10) -> List[ChatMessage]:
        try:
            conn = connect(self.db_path)
            try:
                rows = exec_all(
                    conn,
                    "SELECT role, content, created_at FROM ("
                    "  SELECT message_id, role, content, created_at FROM chat_messages"
                    "  WHERE conversation_id = ? ORDER BY message_id DESC LIMIT ?"
                    ") ORDER BY message_id ASC",
                    (self.conversation_id, limit),
                )
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning("[history] could not load history: %s", e)
            return []
        return [ChatMessage(**r) for r in rows]

    def clear(self) -> None:
        try:
            conn = connect(self.db_path)
            try:
                conn.execute("DELETE FROM chat_messages WHERE conversation_id = ?", (self.conversation_id,))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning("[history] could not clear history: %s", e)

    def render(self, limit: int = 50) -> str:
        messages = self.recent(limit)
        if not messages:
            return "No chat history available."
        out = ["=== Chat History ==="]
        for m in messages:
            out.append(f"[{m.created_at:%Y-%m-%d %H:%M:%S}] {m.role.upper()}: {m.content}")
        out.append("===================")
        return "\n".join(out)
