"""
Tests for support_agent/orders_api.py
=====================================
Covers:
  - authenticate: case-insensitive name, wrong PIN, unknown customer
  - find_order: ownership scoping, unknown numbers
  - order_is_cancellable / order_is_returnable per status
  - execute_cancel: mutates status, rejects non-processing orders
  - execute_return: label URL and instructions, no mutation
  - sqlite failures surface as StoreUnavailableError
"""
import sqlite3

import pytest

from support_agent.errors import InvalidStateError, OrderNotFoundError, StoreUnavailableError
from support_agent.handlers import handle_order_cancellation, handle_shipment_status
from support_agent.orders_api import OrderStore, RETURN_INSTRUCTIONS, return_label_url


class TestAuthenticate:
    def test_valid_credentials_return_customer_with_orders(self, store):
        customer = store.authenticate("Jane Doe", "1234")
        assert customer is not None
        assert customer.name == "Jane Doe"
        assert {o.order_number for o in customer.orders} == {"ORD001", "ORD002", "ORD003"}

    def test_name_match_is_case_and_whitespace_insensitive(self, store):
        customer = store.authenticate("  jane   DOE ", "1234")
        assert customer is not None
        assert customer.name == "Jane Doe"

    def test_wrong_pin_returns_none(self, store):
        assert store.authenticate("Jane Doe", "9999") is None

    def test_unknown_customer_returns_none(self, store):
        assert store.authenticate("Nobody Here", "1234") is None

    def test_pin_of_other_customer_returns_none(self, store):
        assert store.authenticate("Jane Doe", "5678") is None


class TestFindOrder:
    def test_own_order_is_found(self, store):
        order = store.find_order("Jane Doe", "1234", "ORD002")
        assert order.product_name == "Bluetooth Speaker"
        assert order.status == "delivered"

    def test_other_customers_order_is_not_found(self, store):
        assert store.find_order("Jane Doe", "1234", "ORD005") is None

    def test_unknown_order_is_not_found(self, store):
        assert store.find_order("Jane Doe", "1234", "ORD999") is None

    def test_bad_credentials_find_nothing(self, store):
        assert store.find_order("Jane Doe", "0000", "ORD002") is None


class TestStatusChecks:
    def test_processing_order_is_cancellable_not_returnable(self, store):
        assert store.order_is_cancellable("Jane Doe", "1234", "ORD001") is True
        assert store.order_is_returnable("Jane Doe", "1234", "ORD001") is False

    def test_delivered_order_is_returnable_not_cancellable(self, store):
        assert store.order_is_returnable("Jane Doe", "1234", "ORD002") is True
        assert store.order_is_cancellable("Jane Doe", "1234", "ORD002") is False

    def test_in_transit_order_is_neither(self, store):
        assert store.order_is_cancellable("Jane Doe", "1234", "ORD003") is False
        assert store.order_is_returnable("Jane Doe", "1234", "ORD003") is False

    def test_missing_order_raises(self, store):
        with pytest.raises(OrderNotFoundError):
            store.order_is_cancellable("Jane Doe", "1234", "ORD005")


class TestExecuteCancel:
    def test_cancel_processing_order(self, store):
        out = store.execute_cancel("Jane Doe", "1234", "ORD001")
        assert out == (
            "Order ORD001 has been successfully cancelled. "
            "You will receive a confirmation email shortly."
        )
        assert store.find_order("Jane Doe", "1234", "ORD001").status == "cancelled"

    def test_cancel_twice_raises_invalid_state(self, store):
        store.execute_cancel("Jane Doe", "1234", "ORD001")
        with pytest.raises(InvalidStateError) as exc:
            store.execute_cancel("Jane Doe", "1234", "ORD001")
        assert exc.value.status == "cancelled"

    def test_cancel_delivered_raises_invalid_state(self, store):
        with pytest.raises(InvalidStateError):
            store.execute_cancel("Jane Doe", "1234", "ORD002")
        assert store.find_order("Jane Doe", "1234", "ORD002").status == "delivered"

    def test_cancel_other_customers_order_raises_not_found(self, store):
        with pytest.raises(OrderNotFoundError):
            store.execute_cancel("Jane Doe", "1234", "ORD004")
        assert store.find_order("John Smith", "5678", "ORD004").status == "processing"


class TestExecuteReturn:
    def test_return_delivered_order(self, store):
        out = store.execute_return("Jane Doe", "1234", "ORD002")
        assert out.startswith("Return approved for order ORD002.")
        assert return_label_url("ORD002", "Jane Doe") in out
        assert out.endswith(RETURN_INSTRUCTIONS)

    def test_return_does_not_change_status(self, store):
        store.execute_return("Jane Doe", "1234", "ORD002")
        assert store.find_order("Jane Doe", "1234", "ORD002").status == "delivered"

    def test_return_processing_order_raises(self, store):
        with pytest.raises(InvalidStateError):
            store.execute_return("Jane Doe", "1234", "ORD001")

    def test_label_url_strips_spaces_from_name(self):
        assert return_label_url("ORD002", "Jane Doe") == "https://returns.example.com/label/ORD002/JaneDoe"


class TestStoreFailures:
    def test_missing_tables_raise_store_unavailable(self, tmp_path):
        path = tmp_path / "empty.db"
        sqlite3.connect(str(path)).close()
        with pytest.raises(StoreUnavailableError):
            OrderStore(db_path=path).authenticate("Jane Doe", "1234")

    def test_unopenable_path_raises_store_unavailable(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        with pytest.raises(StoreUnavailableError):
            OrderStore(db_path=blocker / "support.db").find_order("Jane Doe", "1234", "ORD001")

    def test_inconsistent_stored_order_raises_store_unavailable(self, db_path, store):
        # processing orders must not carry a shipped_date
        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "INSERT INTO orders(order_number, customer_id, order_date, product_name, quantity, status, "
            "estimated_shipping_date, shipped_date) "
            "SELECT 'ORD008', customer_id, '2025-09-20', 'USB Cable', 1, 'processing', '2025-09-24', '2025-09-23' "
            "FROM customers WHERE name_key = 'jane doe'"
        )
        conn.commit()
        conn.close()

        with pytest.raises(StoreUnavailableError):
            store.find_order("Jane Doe", "1234", "ORD008")

    def test_inconsistent_stored_order_becomes_handler_text(self, db_path, ctx):
        conn = sqlite3.connect(str(db_path))
        conn.execute(
            "INSERT INTO orders(order_number, customer_id, order_date, product_name, quantity, status, "
            "estimated_shipping_date, shipped_date) "
            "SELECT 'ORD008', customer_id, '2025-09-20', 'USB Cable', 1, 'processing', '2025-09-24', '2025-09-23' "
            "FROM customers WHERE name_key = 'jane doe'"
        )
        conn.commit()
        conn.close()

        ctx.session.save_session("Jane Doe", "1234")
        assert handle_shipment_status(ctx, order_number="ORD008") == (
            "Sorry, there was an error checking your shipment status. Please try again."
        )
        assert handle_order_cancellation(ctx, order_number="ORD008") == (
            "Sorry, there was an error cancelling your order. Please try again."
        )
