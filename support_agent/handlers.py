# support_agent/handlers.py
"""
Order operation handlers exposed as agent tools.

Every handler takes a SupportContext (store + this conversation's session)
and returns text for the customer. Nothing raises across this boundary;
each failure kind maps to one fixed message.

Cancellation and return are two-phase: the first call validates the order
and records a pending proposal, the confirmed call executes only if it
matches that proposal and the order is still in the required status.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from support_agent.config import STORE_LATENCY_MS
from support_agent.db import DEFAULT_DB_PATH
from support_agent.errors import InvalidStateError, OrderNotFoundError, SupportError
from support_agent.models import (
    AuthenticationFailed,
    CredentialsRequest,
    Identity,
    NeedsCredentials,
    NeedsOrderNumber,
    OrderActionRequest,
    OrderLookupRequest,
    OrderNotFound,
    Resolution,
    Resolved,
    StoreUnavailable,
)
from support_agent.orders_api import OrderStore
from support_agent.session import SessionManager

logger = logging.getLogger(__name__)

NEEDS_CREDENTIALS_MESSAGE = "Please provide your full name and 4-digit PIN."
NEEDS_ORDER_NUMBER_MESSAGE = "Please provide your order number."
AUTH_FAILED_MESSAGE = "Authentication failed. Please check your name and PIN."
REFUND_WINDOW_DAYS = 30


def order_not_found_message(order_number: str) -> str:
    return (
        f"Order {order_number} not found. "
        "Please check the order number and make sure it belongs to your account."
    )


@dataclass
class SupportContext:
    store: OrderStore
    session: SessionManager
    today: Callable[[], date] = field(default=date.today)


def build_context(
    conversation_id: str,
    db_path: Path = DEFAULT_DB_PATH,
    latency_ms: int = STORE_LATENCY_MS,
) -> SupportContext:
    return SupportContext(
        store=OrderStore(db_path=db_path, latency_ms=latency_ms),
        session=SessionManager(conversation_id, db_path=db_path),
    )


RequestT = TypeVar("RequestT", bound=BaseModel)


def _parse(model: Type[RequestT], **kwargs) -> Optional[RequestT]:
    try:
        return model(**kwargs)
    except ValidationError as e:
        logger.info("[handlers] rejected %s arguments: %s", model.__name__, e.errors())
        return None


# -------------------------
# Shared primitive
# -------------------------
def authenticate_and_resolve_order(ctx: SupportContext, request: OrderLookupRequest) -> Resolution:
    """
    Resolve credentials, then the order they own.

    Explicit name/PIN win over the session field by field. Any explicit
    credential makes the pair "fresh": it is verified before anything else
    and only a successful verification replaces the session. A failed login
    leaves an existing session untouched.

    Orders are looked up scoped to the identity, so another customer's
    order number is reported exactly like an unknown one.
    """
    session = ctx.session.get_session()
    name = request.customer_name or (session.customer_name if session else None)
    pin = request.pin or (session.pin if session else None)
    if not name or not pin:
        return NeedsCredentials()

    fresh = request.has_any
    try:
        if fresh:
            customer = ctx.store.authenticate(name, pin)
            if customer is None:
                logger.info("[handlers] authentication failed for %r", name)
                return AuthenticationFailed()
            name, pin = customer.name, customer.pin
            ctx.session.save_session(name, pin)

        if not request.order_number:
            return NeedsOrderNumber()

        order = ctx.store.find_order(name, pin, request.order_number)
    except SupportError as e:
        return StoreUnavailable(detail=str(e))

    if order is None:
        return OrderNotFound(order_number=request.order_number)
    return Resolved(identity=Identity(customer_name=name, pin=pin), order=order, fresh_login=fresh)


def _resolution_message(resolution: Resolution, failure_message: str) -> str:
    if isinstance(resolution, NeedsCredentials):
        return NEEDS_CREDENTIALS_MESSAGE
    if isinstance(resolution, NeedsOrderNumber):
        return NEEDS_ORDER_NUMBER_MESSAGE
    if isinstance(resolution, AuthenticationFailed):
        return AUTH_FAILED_MESSAGE
    if isinstance(resolution, OrderNotFound):
        return order_not_found_message(resolution.order_number)
    return failure_message


# -------------------------
# Two-phase order actions
# -------------------------
@dataclass(frozen=True)
class _OrderAction:
    operation: str
    required_status: str
    failure_message: str

    def rejection(self, order_number: str, status: str) -> str:
        if self.operation == "cancel":
            return (
                f"Order {order_number} cannot be cancelled because it is already {status}. "
                "Only orders in processing status can be cancelled."
            )
        return (
            f"Order {order_number} cannot be returned because it is {status}. "
            "Only delivered orders can be returned."
        )

    def prompt(self, order_number: str, product_name: str) -> str:
        if self.operation == "cancel":
            what = f"cancel order {order_number}"
        else:
            what = f"process a return for order {order_number}"
        return f"Just confirming that we need to {what} ({product_name}). Please respond with yes/no."

    def execute(self, store: OrderStore, identity: Identity, order_number: str) -> str:
        if self.operation == "cancel":
            return store.execute_cancel(identity.customer_name, identity.pin, order_number)
        return store.execute_return(identity.customer_name, identity.pin, order_number)


CANCEL = _OrderAction(
    operation="cancel",
    required_status="processing",
    failure_message="Sorry, there was an error cancelling your order. Please try again.",
)
RETURN = _OrderAction(
    operation="return",
    required_status="delivered",
    failure_message="Sorry, there was an error processing your return. Please try again.",
)


def _run_order_action(ctx: SupportContext, action: _OrderAction, request: Optional[OrderActionRequest]) -> str:
    if request is None:
        return action.failure_message

    resolution = authenticate_and_resolve_order(ctx, request)
    if not isinstance(resolution, Resolved):
        return _resolution_message(resolution, action.failure_message)

    identity, order = resolution.identity, resolution.order
    if order.status != action.required_status:
        return action.rejection(order.order_number, order.status)

    if request.confirmation:
        pending = ctx.session.get_pending()
        if pending is not None and pending.matches(
            action.operation, order.order_number, identity.customer_name, order.status
        ):
            try:
                result = action.execute(ctx.store, identity, order.order_number)
            except InvalidStateError as e:
                ctx.session.clear_pending()
                return action.rejection(order.order_number, e.status)
            except OrderNotFoundError:
                ctx.session.clear_pending()
                return order_not_found_message(order.order_number)
            except SupportError as e:
                logger.warning("[handlers] %s of %s failed: %s", action.operation, order.order_number, e)
                return action.failure_message
            ctx.session.clear_pending()
            logger.info("[handlers] %s executed for %s", action.operation, order.order_number)
            return result

        logger.info(
            "[handlers] %s confirmation for %s has no matching proposal; asking again",
            action.operation, order.order_number,
        )

    ctx.session.save_pending(action.operation, order.order_number, identity.customer_name, order.status)
    return action.prompt(order.order_number, order.product_name)


def handle_order_cancellation(
    ctx: SupportContext,
    order_number: Optional[str] = None,
    customer_name: Optional[str] = None,
    pin: Optional[str] = None,
    confirmation: Optional[bool] = False,
) -> str:
    request = _parse(
        OrderActionRequest,
        order_number=order_number, customer_name=customer_name, pin=pin, confirmation=confirmation,
    )
    return _run_order_action(ctx, CANCEL, request)


def handle_order_return(
    ctx: SupportContext,
    order_number: Optional[str] = None,
    customer_name: Optional[str] = None,
    pin: Optional[str] = None,
    confirmation: Optional[bool] = False,
) -> str:
    request = _parse(
        OrderActionRequest,
        order_number=order_number, customer_name=customer_name, pin=pin, confirmation=confirmation,
    )
    return _run_order_action(ctx, RETURN, request)


# -------------------------
# Read-only tools
# -------------------------
def handle_shipment_status(
    ctx: SupportContext,
    order_number: Optional[str] = None,
    customer_name: Optional[str] = None,
    pin: Optional[str] = None,
) -> str:
    failure = "Sorry, there was an error checking your shipment status. Please try again."
    request = _parse(OrderLookupRequest, order_number=order_number, customer_name=customer_name, pin=pin)
    if request is None:
        return failure

    resolution = authenticate_and_resolve_order(ctx, request)
    if not isinstance(resolution, Resolved):
        return _resolution_message(resolution, failure)

    order = resolution.order
    n = order.order_number
    if order.status == "processing":
        return (
            f"Order {n} is currently being processed. "
            f"Estimated shipping date: {order.estimated_shipping_date.isoformat()}. "
            "You will receive a tracking number once the order ships."
        )
    if order.status == "in_transit":
        return (
            f"Order {n} is in transit. It was shipped on {order.shipped_date.isoformat()}. "
            "Estimated delivery: 2-3 business days from ship date. "
            "Tracking information has been sent to your email."
        )
    if order.status == "delivered":
        return (
            f"Order {n} was delivered on {order.shipped_date.isoformat()}. "
            "If you haven't received your package, please check with neighbors "
            "or your building's front desk."
        )
    return f"Order {n} has been cancelled and will not be shipped."


def authenticate_customer(
    ctx: SupportContext,
    customer_name: Optional[str] = None,
    pin: Optional[str] = None,
) -> str:
    request = _parse(CredentialsRequest, customer_name=customer_name, pin=pin)
    if request is None or not request.customer_name or not request.pin:
        return NEEDS_CREDENTIALS_MESSAGE

    try:
        customer = ctx.store.authenticate(request.customer_name, request.pin)
    except SupportError:
        return "Sorry, there was an error during authentication. Please try again."

    if customer is None:
        logger.info("[handlers] authentication failed for %r", request.customer_name)
        return AUTH_FAILED_MESSAGE

    ctx.session.save_session(customer.name, customer.pin)
    return f"Authentication successful for {customer.name}. Please provide your order number."


def handle_refund_request(
    ctx: SupportContext,
    order_number: Optional[str] = None,
    customer_name: Optional[str] = None,
    pin: Optional[str] = None,
) -> str:
    failure = "Sorry, there was an error processing your refund request. Please try again."
    request = _parse(OrderLookupRequest, order_number=order_number, customer_name=customer_name, pin=pin)
    if request is None:
        return failure

    resolution = authenticate_and_resolve_order(ctx, request)
    if not isinstance(resolution, Resolved):
        return _resolution_message(resolution, failure)

    order = resolution.order
    age_days = (ctx.today() - order.date).days
    if age_days <= REFUND_WINDOW_DAYS:
        return (
            f"Refund approved for order {order.order_number}. "
            "The refund will be processed within 3-5 business days."
        )
    return (
        f"Refund request denied for order {order.order_number}. "
        f"Orders must be within {REFUND_WINDOW_DAYS} days of purchase. "
        f"This order was placed {age_days} days ago."
    )
