# support_agent/orders_api.py
from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, Iterator

from pydantic import ValidationError

from support_agent.config import STORE_LATENCY_MS
from support_agent.db import connect, exec_one, exec_all, DEFAULT_DB_PATH
from support_agent.errors import InvalidStateError, OrderNotFoundError, StoreUnavailableError
from support_agent.models import Customer, Order

logger = logging.getLogger(__name__)

RETURN_LABEL_BASE_URL = "https://returns.example.com/label"

RETURN_INSTRUCTIONS = (
    "Instructions:\n"
    "1. Package the item(s) in original packaging if possible\n"
    "2. Print and attach the return label\n"
    "3. Drop off at any authorized shipping location\n"
    "4. Processing will be completed within 5-7 business days after we receive the item(s)"
)

# -------------------------
# Helpers (internal)
# -------------------------

def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def _name_key(name: str) -> str:
    return " ".join(name.split()).lower()

def _row_to_order(row: Dict[str, Any]) -> Order:
    return Order(
        order_number=row["order_number"],
        date=row["order_date"],
        product_name=row["product_name"],
        quantity=int(row["quantity"]),
        status=row["status"],
        estimated_shipping_date=row["estimated_shipping_date"],
        shipped_date=row["shipped_date"],
    )

def return_label_url(order_number: str, customer_name: str) -> str:
    return f"{RETURN_LABEL_BASE_URL}/{order_number}/{''.join(customer_name.split())}"


class OrderStore:
    """
    Credential and order store backed by SQLite.

    Every call opens its own connection. sqlite3 errors surface as
    StoreUnavailableError so callers only deal with the SupportError family.
    latency_ms adds a fixed sleep per call to mimic a remote API.
    """

    def __init__(self, db_path: Path = DEFAULT_DB_PATH, latency_ms: int = STORE_LATENCY_MS):
        self.db_path = Path(db_path)
        self.latency_ms = latency_ms

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        self._simulate_latency()
        try:
            conn = connect(self.db_path)
        except (sqlite3.Error, OSError) as e:
            logger.warning("[store] cannot open %s: %s", self.db_path, e)
            raise StoreUnavailableError(str(e)) from e
        try:
            yield conn
        except sqlite3.Error as e:
            conn.rollback()
            logger.warning("[store] query failed: %s", e)
            raise StoreUnavailableError(str(e)) from e
        except ValidationError as e:
            conn.rollback()
            logger.warning("[store] stored record failed validation: %s", e)
            raise StoreUnavailableError(f"invalid stored record: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _simulate_latency(self) -> None:
        if self.latency_ms > 0:
            time.sleep(self.latency_ms / 1000)

    def _customer_row(self, conn: sqlite3.Connection, name: str, pin: str) -> Optional[Dict[str, Any]]:
        return exec_one(
            conn,
            "SELECT customer_id, name, pin FROM customers WHERE name_key = ? AND pin = ?",
            (_name_key(name), pin),
        )

    def _order_row(self, conn: sqlite3.Connection, customer_id: int, order_number: str) -> Optional[Dict[str, Any]]:
        return exec_one(
            conn,
            "SELECT * FROM orders WHERE customer_id = ? AND order_number = ?",
            (customer_id, order_number),
        )

    # -------------------------
    # Reads
    # -------------------------
    def authenticate(self, name: str, pin: str) -> Optional[Customer]:
        """Return the customer for (name, pin), matching the name case-insensitively."""
        with self._connection() as conn:
            cust = self._customer_row(conn, name, pin)
            if cust is None:
                return None
            rows = exec_all(
                conn,
                "SELECT * FROM orders WHERE customer_id = ? ORDER BY order_date ASC, order_number ASC",
                (cust["customer_id"],),
            )
            return Customer(name=cust["name"], pin=cust["pin"], orders=[_row_to_order(r) for r in rows])

    def find_order(self, name: str, pin: str, order_number: str) -> Optional[Order]:
        # None for unknown numbers, other customers' orders and bad credentials alike
        with self._connection() as conn:
            cust = self._customer_row(conn, name, pin)
            if cust is None:
                return None
            row = self._order_row(conn, cust["customer_id"], order_number)
            return _row_to_order(row) if row else None

    def _require_order(self, name: str, pin: str, order_number: str) -> Order:
        order = self.find_order(name, pin, order_number)
        if order is None:
            raise OrderNotFoundError(order_number)
        return order

    def order_is_cancellable(self, name: str, pin: str, order_number: str) -> bool:
        return self._require_order(name, pin, order_number).status == "processing"

    def order_is_returnable(self, name: str, pin: str, order_number: str) -> bool:
        return self._require_order(name, pin, order_number).status == "delivered"

    # -------------------------
    # Mutations
    # -------------------------
    def execute_cancel(self, name: str, pin: str, order_number: str) -> str:
        with self._connection() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            cust = self._customer_row(conn, name, pin)
            row = self._order_row(conn, cust["customer_id"], order_number) if cust else None
            if row is None:
                raise OrderNotFoundError(order_number)
            if row["status"] != "processing":
                raise InvalidStateError(order_number, row["status"], "cancel")

            conn.execute(
                "UPDATE orders SET status = 'cancelled', updated_at = ? WHERE customer_id = ? AND order_number = ?",
                (_utc_now_iso(), cust["customer_id"], order_number),
            )
            conn.commit()

        logger.info("[store] cancelled order %s", order_number)
        return (
            f"Order {order_number} has been successfully cancelled. "
            "You will receive a confirmation email shortly."
        )

    def execute_return(self, name: str, pin: str, order_number: str) -> str:
        with self._connection() as conn:
            cust = self._customer_row(conn, name, pin)
            row = self._order_row(conn, cust["customer_id"], order_number) if cust else None
            if row is None:
                raise OrderNotFoundError(order_number)
            if row["status"] != "delivered":
                raise InvalidStateError(order_number, row["status"], "return")
            label = return_label_url(order_number, cust["name"])

        logger.info("[store] return approved for order %s", order_number)
        return (
            f"Return approved for order {order_number}. "
            f"Please download your return label here: {label}\n\n"
            f"{RETURN_INSTRUCTIONS}"
        )
