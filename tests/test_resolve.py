"""
Tests for authenticate_and_resolve_order in support_agent/handlers.py
=====================================================================
Covers:
  - credentials are required before anything else
  - explicit credentials win over the session and are verified
  - a failed login leaves an existing session untouched
  - orders are scoped to the resolved identity
  - NeedsOrderNumber after a successful login without an order number
  - store failures become StoreUnavailable
"""
import sqlite3

import pytest

from support_agent.errors import StoreUnavailableError
from support_agent.handlers import authenticate_and_resolve_order
from support_agent.models import (
    AuthenticationFailed,
    NeedsCredentials,
    NeedsOrderNumber,
    OrderLookupRequest,
    OrderNotFound,
    Resolved,
    StoreUnavailable,
)


def _resolve(ctx, **kwargs):
    return authenticate_and_resolve_order(ctx, OrderLookupRequest(**kwargs))


class TestCredentials:
    def test_no_session_no_credentials_needs_credentials(self, ctx):
        assert isinstance(_resolve(ctx, order_number="ORD005"), NeedsCredentials)

    def test_name_without_pin_needs_credentials(self, ctx):
        assert isinstance(_resolve(ctx, order_number="ORD002", customer_name="Jane Doe"), NeedsCredentials)

    def test_credentials_checked_before_order_number(self, ctx):
        assert isinstance(_resolve(ctx), NeedsCredentials)

    def test_wrong_pin_fails_and_saves_nothing(self, ctx):
        result = _resolve(ctx, order_number="ORD002", customer_name="Jane Doe", pin="0000")
        assert isinstance(result, AuthenticationFailed)
        assert ctx.session.get_session() is None

    def test_failed_login_keeps_existing_session(self, jane_ctx):
        result = _resolve(jane_ctx, order_number="ORD004", customer_name="John Smith", pin="0000")
        assert isinstance(result, AuthenticationFailed)
        assert jane_ctx.session.get_session().customer_name == "Jane Doe"

    def test_fresh_login_saves_canonical_name(self, ctx):
        result = _resolve(ctx, order_number="ORD002", customer_name="jane doe", pin=1234)
        assert isinstance(result, Resolved)
        assert result.fresh_login is True
        assert result.identity.customer_name == "Jane Doe"
        assert ctx.session.get_session().customer_name == "Jane Doe"

    def test_login_without_order_number_saves_session(self, ctx):
        result = _resolve(ctx, customer_name="Jane Doe", pin="1234")
        assert isinstance(result, NeedsOrderNumber)
        assert ctx.session.is_authenticated()


class TestSessionReuse:
    def test_session_credentials_are_used(self, jane_ctx):
        result = _resolve(jane_ctx, order_number="ORD002")
        assert isinstance(result, Resolved)
        assert result.fresh_login is False
        assert result.order.product_name == "Bluetooth Speaker"

    def test_explicit_credentials_override_session(self, jane_ctx):
        result = _resolve(jane_ctx, order_number="ORD005", customer_name="John Smith", pin="5678")
        assert isinstance(result, Resolved)
        assert result.identity.customer_name == "John Smith"
        assert jane_ctx.session.get_session().customer_name == "John Smith"

    def test_blank_arguments_fall_back_to_session(self, jane_ctx):
        result = _resolve(jane_ctx, order_number=" ord002 ", customer_name="  ", pin="")
        assert isinstance(result, Resolved)
        assert result.order.order_number == "ORD002"

    def test_sessions_do_not_leak_between_conversations(self, jane_ctx, make_ctx):
        other = make_ctx("conv-2")
        assert isinstance(_resolve(other, order_number="ORD002"), NeedsCredentials)


class TestOwnership:
    def test_other_customers_order_is_not_found(self, jane_ctx):
        result = _resolve(jane_ctx, order_number="ORD005")
        assert isinstance(result, OrderNotFound)
        assert result.order_number == "ORD005"

    def test_unknown_order_is_not_found(self, jane_ctx):
        assert isinstance(_resolve(jane_ctx, order_number="ORD999"), OrderNotFound)


class TestStoreFailure:
    def test_store_error_becomes_store_unavailable(self, jane_ctx, monkeypatch):
        def boom(*args, **kwargs):
            raise StoreUnavailableError("database is locked")

        monkeypatch.setattr(jane_ctx.store, "find_order", boom)
        result = _resolve(jane_ctx, order_number="ORD002")
        assert isinstance(result, StoreUnavailable)
        assert "locked" in result.detail


class TestPinCoercion:
    @pytest.mark.parametrize("raw,expected", [(42, "0042"), (1234, "1234"), (7.0, "0007"), (" 0042 ", "0042")])
    def test_numeric_pins_keep_four_digits(self, raw, expected):
        assert OrderLookupRequest(pin=raw).pin == expected

    def test_numeric_pin_with_leading_zero_authenticates(self, db_path, ctx):
        conn = sqlite3.connect(str(db_path))
        conn.execute("INSERT INTO customers(name, name_key, pin) VALUES ('Zoe Park', 'zoe park', '0042')")
        conn.commit()
        conn.close()

        result = _resolve(ctx, customer_name="Zoe Park", pin=42)
        assert isinstance(result, NeedsOrderNumber)
        assert ctx.session.get_session().pin == "0042"
