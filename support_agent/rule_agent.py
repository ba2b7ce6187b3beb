# support_agent/rule_agent.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from support_agent.catalog import PRODUCTS, find_product, general_question, product_information
from support_agent.handlers import (
    AUTH_FAILED_MESSAGE,
    NEEDS_CREDENTIALS_MESSAGE,
    NEEDS_ORDER_NUMBER_MESSAGE,
    SupportContext,
    authenticate_customer,
    handle_order_cancellation,
    handle_order_return,
    handle_refund_request,
    handle_shipment_status,
)

logger = logging.getLogger(__name__)

YES = {"yes", "y", "yeah", "yep", "sure", "ok", "okay", "confirm"}
NO = {"no", "n", "nope", "stop", "don't", "dont"}

ORDER_RE = re.compile(r"\bORD\d+\b", re.IGNORECASE)
PIN_RE = re.compile(r"(?<!\d)\d{4}(?!\d)")
WORD_RE = re.compile(r"[A-Za-z][A-Za-z'\-]*")

# Words that never belong to a customer name when reading "... Jane Doe 1234"
_NOT_NAME = {
    "my", "name", "is", "i", "am", "i'm", "im", "this", "it's", "its", "pin", "and", "for", "the",
    "order", "please", "cancel", "return", "refund", "status", "track", "where", "of", "with",
    "hi", "hello", "hey", "here", "yes", "no", "want", "to", "a", "an", "me", "can", "you",
}

POLICY_WORDS = ("policy", "policies", "warranty", "guarantee", "payment", "pay with", "privacy",
                "contact", "support hours", "customer support")
PRICE_WORDS = ("price", "cost", "how much")
DIMENSION_WORDS = ("dimension", "size", "how big")
STATUS_WORDS = ("where", "track", "status", "shipped", "shipping status", "arrive")

OrderHandler = Callable[..., str]

ORDER_HANDLERS: Dict[str, OrderHandler] = {
    "cancel": handle_order_cancellation,
    "return": handle_order_return,
    "status": handle_shipment_status,
    "refund": handle_refund_request,
}

_NEEDS_MORE = {NEEDS_CREDENTIALS_MESSAGE, NEEDS_ORDER_NUMBER_MESSAGE, AUTH_FAILED_MESSAGE}


@dataclass
class PendingAction:
    operation: str
    order_number: str


@dataclass
class AwaitingDetails:
    intent: str
    order_number: Optional[str] = None


def extract_order_number(text: str) -> Optional[str]:
    m = ORDER_RE.search(text)
    return m.group(0).upper() if m else None


def extract_credentials(text: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Pull "<name> <4-digit pin>" out of free text.

    The name is the run of words right before the PIN, so
    "cancel ORD001, I'm Jane Doe 1234" gives ("Jane Doe", "1234").
    """
    cleaned = ORDER_RE.sub(" ", text)
    m = PIN_RE.search(cleaned)
    if not m:
        return None, None

    words = WORD_RE.findall(cleaned[: m.start()])
    name_words = []
    for w in reversed(words):
        if w.lower() in _NOT_NAME:
            if name_words:
                break
            continue  # "Jane Doe, pin 1234"
        name_words.insert(0, w)
        if len(name_words) == 3:
            break
    name = " ".join(name_words) or None
    return name, m.group(0)


class RuleAgent:
    """
    Deterministic agent over the same handlers the LLM uses.
    Keeps support working when the Gemini quota is exhausted.
    """

    def __init__(self, ctx: SupportContext):
        self.ctx = ctx
        self.pending: Optional[PendingAction] = None
        self.awaiting: Optional[AwaitingDetails] = None

    @property
    def has_open_state(self) -> bool:
        return self.pending is not None or self.awaiting is not None

    def reset(self) -> None:
        self.pending = None
        self.awaiting = None

    def _detect_intent(self, tl: str) -> Optional[str]:
        if "cancel" in tl:
            return "cancel"
        if "return" in tl:
            return "return"
        if "refund" in tl:
            return "refund"
        if any(w in tl for w in STATUS_WORDS):
            return "status"
        return None

    def _product_in(self, tl: str):
        for key, product in PRODUCTS.items():
            if key in tl:
                return product
        # "how much are the keyboards" style
        tail = re.sub(r"^.*?\b(?:of|is|are|for|about)\s+(?:the\s+|a\s+|an\s+)?", "", tl).strip(" ?.!")
        return find_product(tail) if tail else None

    def _run_order_intent(self, intent: str, order_number: Optional[str],
                          customer_name: Optional[str], pin: Optional[str]) -> str:
        handler = ORDER_HANDLERS[intent]
        reply = handler(self.ctx, order_number=order_number, customer_name=customer_name, pin=pin)

        if reply in _NEEDS_MORE:
            self.awaiting = AwaitingDetails(intent=intent, order_number=order_number)
        else:
            self.awaiting = None

        if reply.startswith("Just confirming") and order_number:
            self.pending = PendingAction(operation=intent, order_number=order_number.upper())
        return reply

    def _resolve_pending(self, tl: str) -> str:
        pa = self.pending
        if tl in YES:
            self.pending = None
            logger.info("[rule_agent] customer confirmed %s of %s", pa.operation, pa.order_number)
            handler = ORDER_HANDLERS[pa.operation]
            reply = handler(self.ctx, order_number=pa.order_number, confirmation=True)
            if reply.startswith("Just confirming"):
                # proposal expired or changed; the handler asked again
                self.pending = pa
            return reply
        if tl in NO:
            self.pending = None
            self.ctx.session.clear_pending()
            if pa.operation == "cancel":
                return f"Okay, order {pa.order_number} will not be cancelled."
            return f"Okay, no return will be processed for order {pa.order_number}."
        return "Please reply 'yes' to confirm or 'no' to leave the order as it is."

    def handle(self, user_text: str) -> str:
        t = user_text.strip()
        tl = t.lower().strip(" .!")

        # --- confirmation for a proposed cancel/return ---
        if self.pending is not None:
            return self._resolve_pending(tl)

        order_number = extract_order_number(t)
        name, pin = extract_credentials(t)

        # --- policy and catalog questions (stateless) ---
        if any(w in tl for w in POLICY_WORDS):
            return general_question(t)

        if any(w in tl for w in PRICE_WORDS + DIMENSION_WORDS) and not order_number:
            product = self._product_in(tl)
            if product is None:
                return "Which product are you asking about?"
            query_type = "price" if any(w in tl for w in PRICE_WORDS) else "dimensions"
            return product_information(product.name, query_type, t)

        # --- order intents ---
        intent = self._detect_intent(tl)
        if intent is not None:
            if "?" in tl and intent in ("return", "refund", "cancel") and not order_number and pin is None \
                    and ("how" in tl or "can i" in tl or "what" in tl):
                return general_question(t)
            return self._run_order_intent(intent, order_number, name, pin)

        # --- follow-up details for an intent that asked for them ---
        if self.awaiting is not None and (order_number or pin):
            aw = self.awaiting
            return self._run_order_intent(aw.intent, order_number or aw.order_number, name, pin)

        # the turn did not answer the earlier request for details
        self.awaiting = None

        if pin is not None:
            return authenticate_customer(self.ctx, customer_name=name, pin=pin)

        if order_number:
            return "What would you like to do with that order? I can check its status, cancel, return, or refund it."

        if "tell me about" in tl or "product" in tl:
            product = self._product_in(tl)
            if product is not None:
                return product_information(product.name, "general", t)

        if any(w in tl for w in ("ship", "delivery", "help")):
            return general_question(t)

        return (
            "I can help with: order status, cancel <order>, return <order>, refund <order>, "
            "product prices and dimensions, and store policies.\n"
            "Example: 'cancel ORD001' or 'where is ORD003? Jane Doe 1234'."
        )
