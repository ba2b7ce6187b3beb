# support_agent/db.py
from __future__ import annotations
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Any, Dict

from support_agent.config import DB_PATH, DB_TIMEOUT_SECONDS

DEFAULT_DB_PATH = DB_PATH
SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

def connect(db_path: Path = DEFAULT_DB_PATH) -> sqlite3.Connection:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=DB_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn

def init_db(conn: sqlite3.Connection) -> None:
    schema = SCHEMA_PATH.read_text(encoding="utf-8")
    conn.executescript(schema)
    conn.commit()

def ensure_schema(db_path: Path = DEFAULT_DB_PATH) -> None:
    # CREATE TABLE IF NOT EXISTS throughout, safe on every startup
    conn = connect(db_path)
    try:
        init_db(conn)
    finally:
        conn.close()

def exec_one(conn: sqlite3.Connection, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
    cur = conn.execute(sql, params)
    row = cur.fetchone()
    return dict(row) if row else None

def exec_many(conn: sqlite3.Connection, sql: str, params_list: Iterable[tuple]) -> None:
    conn.executemany(sql, params_list)
    conn.commit()

def exec_all(conn: sqlite3.Connection, sql: str, params: tuple = ()) -> list[Dict[str, Any]]:
    cur = conn.execute(sql, params)
    return [dict(r) for r in cur.fetchall()]
