# support_agent/session.py
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from support_agent.config import CONFIRMATION_TTL_SECONDS
from support_agent.db import connect, exec_one, DEFAULT_DB_PATH
from support_agent.models import PendingConfirmation, Session

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """
    Authenticated identity and pending confirmation for one conversation.

    Nothing here validates credentials: save_session() must only be called
    after the store accepted the (name, pin) pair.

    Storage errors are logged and read as "no session" / "no pending
    confirmation", so a broken database sends the customer back to the
    credentials prompt instead of crashing the chat loop.
    """

    def __init__(
        self,
        conversation_id: str,
        db_path: Path = DEFAULT_DB_PATH,
        confirmation_ttl: timedelta = timedelta(seconds=CONFIRMATION_TTL_SECONDS),
    ):
        self.conversation_id = conversation_id
        self.db_path = Path(db_path)
        self.confirmation_ttl = confirmation_ttl

    # -------------------------
    # Session
    # -------------------------
    def save_session(self, customer_name: str, pin: str) -> None:
        try:
            conn = connect(self.db_path)
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO sessions(conversation_id, customer_name, pin, authenticated_at) "
                    "VALUES (?, ?, ?, ?)",
                    (self.conversation_id, customer_name, pin, _utc_now().isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
            logger.info("[session] saved session for conversation %s", self.conversation_id)
        except (sqlite3.Error, OSError) as e:
            logger.warning("[session] could not save session for %s: %s", self.conversation_id, e)

    def get_session(self) -> Optional[Session]:
        try:
            conn = connect(self.db_path)
            try:
                row = exec_one(
                    conn,
                    "SELECT conversation_id, customer_name, pin, authenticated_at FROM sessions "
                    "WHERE conversation_id = ?",
                    (self.conversation_id,),
                )
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning("[session] could not read session for %s: %s", self.conversation_id, e)
            return None
        if row is None:
            return None
        try:
            return Session(**row)
        except ValidationError as e:
            logger.warning("[session] unreadable session row for %s: %s", self.conversation_id, e)
            return None

    def clear_session(self) -> None:
        try:
            conn = connect(self.db_path)
            try:
                conn.execute("DELETE FROM sessions WHERE conversation_id = ?", (self.conversation_id,))
                conn.execute("DELETE FROM pending_confirmations WHERE conversation_id = ?", (self.conversation_id,))
                conn.commit()
            finally:
                conn.close()
            logger.info("[session] cleared conversation %s", self.conversation_id)
        except (sqlite3.Error, OSError) as e:
            logger.warning("[session] could not clear session for %s: %s", self.conversation_id, e)

    def is_authenticated(self) -> bool:
        return self.get_session() is not None

    # -------------------------
    # Pending confirmation
    # -------------------------
    def save_pending(self, operation: str, order_number: str, customer_name: str, status: str) -> None:
        """Record the proposal a yes/no prompt refers to; replaces any earlier one."""
        try:
            conn = connect(self.db_path)
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO pending_confirmations"
                    "(conversation_id, operation, order_number, customer_name, status, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (self.conversation_id, operation, order_number, customer_name, status, _utc_now().isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning("[session] could not save pending %s for %s: %s", operation, order_number, e)

    def get_pending(self) -> Optional[PendingConfirmation]:
        """Return the live proposal, or None if there is none or it expired."""
        try:
            conn = connect(self.db_path)
            try:
                row = exec_one(
                    conn,
                    "SELECT * FROM pending_confirmations WHERE conversation_id = ?",
                    (self.conversation_id,),
                )
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning("[session] could not read pending confirmation for %s: %s", self.conversation_id, e)
            return None
        if row is None:
            return None

        try:
            pending = PendingConfirmation(**row)
        except ValidationError as e:
            logger.warning("[session] dropping unreadable pending confirmation for %s: %s", self.conversation_id, e)
            self.clear_pending()
            return None

        created_at = pending.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if _utc_now() - created_at > self.confirmation_ttl:
            logger.info("[session] pending %s for %s expired", pending.operation, pending.order_number)
            self.clear_pending()
            return None
        return pending

    def clear_pending(self) -> None:
        try:
            conn = connect(self.db_path)
            try:
                conn.execute("DELETE FROM pending_confirmations WHERE conversation_id = ?", (self.conversation_id,))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning("[session] could not clear pending confirmation for %s: %s", self.conversation_id, e)
