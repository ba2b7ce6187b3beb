# support_agent/errors.py
from __future__ import annotations


class SupportError(Exception):
    """Base class for failures raised by the order/credential store."""


class OrderNotFoundError(SupportError):
    def __init__(self, order_number: str):
        super().__init__(f"Order {order_number} not found")
        self.order_number = order_number


class InvalidStateError(SupportError):
    def __init__(self, order_number: str, status: str, operation: str):
        super().__init__(f"Order {order_number} is {status}; {operation} not allowed")
        self.order_number = order_number
        self.status = status
        self.operation = operation


class StoreUnavailableError(SupportError):
    """The backing database could not be read or written."""
