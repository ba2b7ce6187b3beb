"""
Shared fixtures: a freshly seeded SQLite file per test and a SupportContext
with a fixed clock.

Seed data (support_agent/seed_db.py):
  Jane Doe / 1234      ORD001 processing, ORD002 delivered, ORD003 in_transit
  John Smith / 5678    ORD004 processing, ORD005 delivered
  Elena Garcia / 4321  ORD006 delivered,  ORD007 processing
"""
from datetime import date

import pytest

from support_agent.handlers import SupportContext
from support_agent.orders_api import OrderStore
from support_agent.seed_db import seed
from support_agent.session import SessionManager

TODAY = date(2025, 9, 25)


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "support.db"
    seed(path, quiet=True)
    return path


@pytest.fixture
def store(db_path):
    return OrderStore(db_path=db_path, latency_ms=0)


@pytest.fixture
def make_ctx(db_path, store):
    """Build a context for any conversation id over the same store."""
    def _make(conversation_id: str = "conv-1") -> SupportContext:
        return SupportContext(
            store=store,
            session=SessionManager(conversation_id, db_path=db_path),
            today=lambda: TODAY,
        )
    return _make


@pytest.fixture
def ctx(make_ctx):
    return make_ctx("conv-1")


@pytest.fixture
def jane_ctx(ctx):
    """Context whose conversation is already authenticated as Jane Doe."""
    ctx.session.save_session("Jane Doe", "1234")
    return ctx
