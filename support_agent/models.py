# support_agent/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Literal, List, Union

from pydantic import BaseModel, Field, field_validator, model_validator


# ---------- Shared ----------
OrderStatus = Literal["processing", "in_transit", "delivered", "cancelled"]
Operation = Literal["cancel", "return"]


class ToolError(BaseModel):
    error: str
    detail: Optional[str] = None


# ---------- Store records ----------
class Order(BaseModel):
    order_number: str
    date: date
    product_name: str
    quantity: int = Field(..., gt=0)
    status: OrderStatus
    estimated_shipping_date: date
    shipped_date: Optional[date] = None

    @model_validator(mode="after")
    def _shipped_date_matches_status(self) -> "Order":
        shipped = self.status in ("in_transit", "delivered")
        if shipped and self.shipped_date is None:
            raise ValueError(f"{self.status} order {self.order_number} needs a shipped_date")
        if not shipped and self.status != "cancelled" and self.shipped_date is not None:
            raise ValueError(f"{self.status} order {self.order_number} cannot have a shipped_date")
        return self


class Customer(BaseModel):
    name: str
    pin: str = Field(..., pattern=r"^\d{4}$")
    orders: List[Order] = Field(default_factory=list)


# ---------- Session ----------
class Session(BaseModel):
    conversation_id: str
    customer_name: str
    pin: str
    authenticated_at: datetime


class PendingConfirmation(BaseModel):
    conversation_id: str
    operation: Operation
    order_number: str
    customer_name: str
    status: OrderStatus
    created_at: datetime

    def matches(self, operation: str, order_number: str, customer_name: str, status: str) -> bool:
        return (
            self.operation == operation
            and self.order_number == order_number
            and self.customer_name.lower() == customer_name.lower()
            and self.status == status
        )


# ---------- Tool requests ----------
def _blank_to_none(v):
    if v is None:
        return None
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        v = str(int(v))
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class CredentialsRequest(BaseModel):
    customer_name: Optional[str] = Field(default=None, description="Customer full name")
    pin: Optional[str] = Field(default=None, description="4-digit PIN")

    @field_validator("customer_name", mode="before")
    @classmethod
    def _strip(cls, v):
        return _blank_to_none(v)

    @field_validator("pin", mode="before")
    @classmethod
    def _pin_text(cls, v):
        # numeric PINs lose their leading zeros, so 42 means "0042"
        if isinstance(v, (int, float)) and not isinstance(v, bool) and 0 <= v <= 9999 and v == int(v):
            return f"{int(v):04d}"
        return _blank_to_none(v)

    @property
    def has_any(self) -> bool:
        return self.customer_name is not None or self.pin is not None


class OrderLookupRequest(CredentialsRequest):
    order_number: Optional[str] = Field(default=None, description="Order number, e.g. ORD002")

    @field_validator("order_number", mode="before")
    @classmethod
    def _strip_order(cls, v):
        v = _blank_to_none(v)
        return v.upper() if isinstance(v, str) else v


class OrderActionRequest(OrderLookupRequest):
    confirmation: bool = Field(default=False, description="True once the customer said yes")

    @field_validator("confirmation", mode="before")
    @classmethod
    def _none_is_false(cls, v):
        return False if v is None else v


# ---------- Resolution (tagged result) ----------
class Identity(BaseModel):
    customer_name: str
    pin: str


class Resolved(BaseModel):
    kind: Literal["resolved"] = "resolved"
    identity: Identity
    order: Order
    fresh_login: bool = False


class NeedsCredentials(BaseModel):
    kind: Literal["needs_credentials"] = "needs_credentials"


class NeedsOrderNumber(BaseModel):
    kind: Literal["needs_order_number"] = "needs_order_number"


class AuthenticationFailed(BaseModel):
    kind: Literal["authentication_failed"] = "authentication_failed"


class OrderNotFound(BaseModel):
    kind: Literal["order_not_found"] = "order_not_found"
    order_number: str


class StoreUnavailable(BaseModel):
    kind: Literal["store_unavailable"] = "store_unavailable"
    detail: Optional[str] = None


Resolution = Union[
    Resolved,
    NeedsCredentials,
    NeedsOrderNumber,
    AuthenticationFailed,
    OrderNotFound,
    StoreUnavailable,
]


# ---------- Chat history ----------
class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime
