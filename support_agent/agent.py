# support_agent/agent.py
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

from google.genai import types

from support_agent.catalog import general_question, product_information
from support_agent.config import GEMINI_MODEL
from support_agent.handlers import (
    SupportContext,
    authenticate_customer,
    handle_order_cancellation,
    handle_order_return,
    handle_refund_request,
    handle_shipment_status,
)
from support_agent.llm_clients import GeminiClient
from support_agent.models import ToolError
from support_agent.prompts import SYSTEM_INSTRUCTIONS

logger = logging.getLogger(__name__)

ToolFn = Callable[..., str]


def _handle_product_information(ctx: SupportContext, product_name: str, query_type: str = "general",
                                question: Optional[str] = None) -> str:
    return product_information(product_name, query_type, question)


def _handle_general_question(ctx: SupportContext, question: str) -> str:
    return general_question(question)


def _dispatch_tool(name: str) -> ToolFn:
    mapping: Dict[str, ToolFn] = {
        "authenticate_customer": authenticate_customer,
        "handle_order_cancellation": handle_order_cancellation,
        "handle_order_return": handle_order_return,
        "handle_shipment_status": handle_shipment_status,
        "handle_refund_request": handle_refund_request,
        "handle_product_information": _handle_product_information,
        "handle_general_question": _handle_general_question,
    }
    if name not in mapping:
        raise ValueError(f"Tool not found: {name}")
    return mapping[name]


def _redacted(args: Dict[str, Any]) -> Dict[str, Any]:
    return {k: ("****" if k == "pin" else v) for k, v in args.items()}


def run_tool(ctx: SupportContext, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    """Execute one tool call for the model; failures come back as an error payload."""
    logger.info("[agent] tool call %s(%s)", name, _redacted(args))
    try:
        fn = _dispatch_tool(name)
        payload: Dict[str, Any] = {"result": fn(ctx, **args)}
    except Exception as e:
        payload = ToolError(error=f"Tool {name} failed", detail=str(e)).model_dump()
    logger.info("[agent] tool result %s: %s", name, payload)
    return payload


_CREDENTIAL_PROPS = {
    "customer_name": {"type": "STRING", "description": "Customer full name. Omit if already authenticated."},
    "pin": {"type": "STRING", "description": "Customer 4-digit PIN. Omit if already authenticated."},
}
_ORDER_NUMBER_PROP = {"order_number": {"type": "STRING", "description": "Order number, e.g. ORD002"}}
_CONFIRMATION_PROP = {
    "confirmation": {
        "type": "BOOLEAN",
        "description": "true ONLY after the customer answered yes to the confirmation question.",
    }
}


def _gemini_tool_declarations() -> list[types.Tool]:
    # NOTE: google-genai expects uppercase "type" values.
    return [
        types.Tool(
            function_declarations=[
                types.FunctionDeclaration(
                    name="authenticate_customer",
                    description="Verify a customer's name and PIN and start an authenticated session.",
                    parameters={"type": "OBJECT", "properties": dict(_CREDENTIAL_PROPS),
                                "required": ["customer_name", "pin"]},
                ),
                types.FunctionDeclaration(
                    name="handle_order_cancellation",
                    description="Cancel an order that is still processing. Two-phase: ask first, "
                                "then call again with confirmation=true after the customer says yes.",
                    parameters={
                        "type": "OBJECT",
                        "properties": {**_ORDER_NUMBER_PROP, **_CREDENTIAL_PROPS, **_CONFIRMATION_PROP},
                        "required": ["order_number"],
                    },
                ),
                types.FunctionDeclaration(
                    name="handle_order_return",
                    description="Start a return for a delivered order. Two-phase: ask first, "
                                "then call again with confirmation=true after the customer says yes.",
                    parameters={
                        "type": "OBJECT",
                        "properties": {**_ORDER_NUMBER_PROP, **_CREDENTIAL_PROPS, **_CONFIRMATION_PROP},
                        "required": ["order_number"],
                    },
                ),
                types.FunctionDeclaration(
                    name="handle_shipment_status",
                    description="Get the shipment status of an order.",
                    parameters={
                        "type": "OBJECT",
                        "properties": {**_ORDER_NUMBER_PROP, **_CREDENTIAL_PROPS},
                        "required": ["order_number"],
                    },
                ),
                types.FunctionDeclaration(
                    name="handle_refund_request",
                    description="Check whether an order is eligible for a refund (30 days from purchase).",
                    parameters={
                        "type": "OBJECT",
                        "properties": {**_ORDER_NUMBER_PROP, **_CREDENTIAL_PROPS},
                        "required": ["order_number"],
                    },
                ),
                types.FunctionDeclaration(
                    name="handle_product_information",
                    description="Get price, dimensions, or a general description of a product.",
                    parameters={
                        "type": "OBJECT",
                        "properties": {
                            "product_name": {"type": "STRING"},
                            "query_type": {"type": "STRING", "enum": ["price", "dimensions", "general"]},
                            "question": {"type": "STRING", "description": "Original question for context"},
                        },
                        "required": ["product_name", "query_type"],
                    },
                ),
                types.FunctionDeclaration(
                    name="handle_general_question",
                    description="Answer questions about store policies and support.",
                    parameters={"type": "OBJECT", "properties": {"question": {"type": "STRING"}},
                                "required": ["question"]},
                ),
            ]
        )
    ]


class SupportAgent:
    def __init__(self, ctx: SupportContext, gemini_model: str = GEMINI_MODEL, client: Optional[Any] = None):
        self.ctx = ctx
        self.gemini_tools = _gemini_tool_declarations()
        self.gemini = client if client is not None else GeminiClient(model=gemini_model, tools=self.gemini_tools)

        # Gemini conversation state
        self.gemini_contents: list[types.Content] = [
            types.Content(role="user", parts=[types.Part(text=SYSTEM_INSTRUCTIONS)])
        ]

    def reset(self) -> None:
        del self.gemini_contents[1:]

    # -------------------------
    # GEMINI PATH
    # -------------------------
    def _chat_gemini(self, user_text: str) -> str:
        self.gemini_contents.append(types.Content(role="user", parts=[types.Part(text=user_text)]))

        for _ in range(10):
            resp = self.gemini.generate(self.gemini_contents)

            cand = (resp.candidates or [None])[0]
            if cand is None or cand.content is None:
                return "Sorry — no valid response."

            parts = cand.content.parts or []
            function_calls = []
            text_chunks = []

            for part in parts:
                if getattr(part, "text", None):
                    text_chunks.append(part.text)
                fc = getattr(part, "function_call", None)
                if fc is not None:
                    function_calls.append(fc)

            if function_calls:
                self.gemini_contents.append(cand.content)
                for fc in function_calls:
                    payload = run_tool(self.ctx, fc.name, dict(fc.args or {}))
                    self.gemini_contents.append(
                        types.Content(
                            role="tool",
                            parts=[types.Part.from_function_response(name=fc.name, response=payload)],
                        )
                    )
                continue

            out = "".join(text_chunks).strip()
            if out:
                self.gemini_contents.append(types.Content(role="model", parts=[types.Part(text=out)]))
                return out

            return "Sorry — empty response."

        return "Sorry — step limit reached."

    # -------------------------
    # PUBLIC CHAT
    # -------------------------
    def chat(self, user_message: str) -> str:
        session = self.ctx.session.get_session()
        user_ctx = {
            "authenticated": session is not None,
            "customer_name": session.customer_name if session else None,
        }
        wrapped = f"USER_CONTEXT:\n{json.dumps(user_ctx)}\n\nUSER_MESSAGE:\n{user_message}"
        return self._chat_gemini(wrapped)
