# support_agent/config.py
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

ROOT_DIR = Path(__file__).resolve().parents[1]


def require_env(key: str) -> str:
    v = os.getenv(key)
    if not v:
        raise RuntimeError(f"Missing environment variable: {key}")
    return v


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {key} must be an integer, got {raw!r}")


GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
DB_PATH = Path(os.getenv("SUPPORT_DB_PATH", str(ROOT_DIR / "data" / "support.db")))
DB_TIMEOUT_SECONDS = _int_env("SUPPORT_DB_TIMEOUT", 5)
STORE_LATENCY_MS = _int_env("STORE_LATENCY_MS", 0)
CONFIRMATION_TTL_SECONDS = _int_env("CONFIRMATION_TTL_SECONDS", 300)
LOG_LEVEL = os.getenv("SUPPORT_LOG_LEVEL", "WARNING").upper()
