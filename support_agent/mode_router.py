# support_agent/mode_router.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from support_agent.agent import SupportAgent  # Gemini tool-calling agent
from support_agent.config import GEMINI_MODEL
from support_agent.handlers import SupportContext
from support_agent.rule_agent import RuleAgent

logger = logging.getLogger(__name__)

Mode = Literal["llm", "rule", "auto"]


def is_quota_error(e: Exception) -> bool:
    s = str(e).lower()
    return (
        "429" in s
        or "resource_exhausted" in s
        or "quota" in s
        or "rate limit" in s
        or "too many requests" in s
    )


def looks_like_simple_command(text: str) -> bool:
    t = text.strip().lower()
    # catalog and policy lookups are stateless, no need to spend an LLM call
    keywords = [
        "price", "cost", "how much", "dimension",
        "policy", "warranty", "payment", "privacy",
    ]
    return any(k in t for k in keywords)


@dataclass
class ChatRouter:
    ctx: SupportContext
    mode: Mode = "auto"
    gemini_model: str = GEMINI_MODEL

    _rule: Optional[RuleAgent] = None
    _llm: Optional[SupportAgent] = None
    _auto_locked_to_rule: bool = False

    def __post_init__(self):
        self._rule = RuleAgent(self.ctx)
        if self.mode in ("llm", "auto"):
            self._llm = SupportAgent(self.ctx, gemini_model=self.gemini_model)

    def reset(self) -> None:
        self._rule.reset()
        if self._llm is not None:
            self._llm.reset()

    def respond(self, user_text: str) -> str:
        if self.mode == "rule":
            return self._rule.handle(user_text)

        if self.mode == "llm":
            return self._llm.chat(user_text)

        # auto
        if self._auto_locked_to_rule:
            return self._rule.handle(user_text)

        # the rule agent owns the conversation while it waits for yes/no or details
        if self._rule.has_open_state or looks_like_simple_command(user_text):
            return self._rule.handle(user_text)

        try:
            return self._llm.chat(user_text)
        except Exception as e:
            if is_quota_error(e):
                logger.warning("[router] Gemini quota exhausted, locking to rule agent: %s", e)
                self._auto_locked_to_rule = True
                return (
                    "⚠️ LLM quota/rate-limit reached. Switching to RuleAgent for the rest of this session.\n"
                    + self._rule.handle(user_text)
                )
            raise
