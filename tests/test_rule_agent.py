"""
Tests for support_agent/rule_agent.py
=====================================
Covers:
  - extract_order_number / extract_credentials on free text
  - full cancel and return conversations through yes/no
  - follow-up turns supplying credentials or an order number
  - catalog and policy questions routed without credentials
"""
import pytest

from support_agent.catalog import KNOWLEDGE_BASE
from support_agent.rule_agent import RuleAgent, extract_credentials, extract_order_number


class TestExtraction:
    def test_order_number_is_uppercased(self):
        assert extract_order_number("cancel ord001 please") == "ORD001"
        assert extract_order_number("cancel my order") is None

    @pytest.mark.parametrize("text,expected", [
        ("Jane Doe 1234", ("Jane Doe", "1234")),
        ("my name is Jane Doe, pin 1234", ("Jane Doe", "1234")),
        ("cancel ORD001 for Jane Doe 1234", ("Jane Doe", "1234")),
        ("where is ORD003? jane doe 1234", ("jane doe", "1234")),
        ("1234", (None, "1234")),
        ("no pin here", (None, None)),
    ])
    def test_credentials(self, text, expected):
        assert extract_credentials(text) == expected

    def test_order_digits_are_not_a_pin(self):
        assert extract_credentials("status of ORD1234") == (None, None)


class TestOrderFlows:
    def test_cancel_conversation(self, ctx):
        agent = RuleAgent(ctx)
        assert agent.handle("I want to cancel ORD001") == "Please provide your full name and 4-digit PIN."
        assert agent.handle("Jane Doe 1234").startswith("Just confirming that we need to cancel order ORD001")
        out = agent.handle("yes")
        assert out.startswith("Order ORD001 has been successfully cancelled.")
        assert ctx.store.find_order("Jane Doe", "1234", "ORD001").status == "cancelled"
        assert agent.has_open_state is False

    def test_return_declined(self, jane_ctx):
        agent = RuleAgent(jane_ctx)
        assert agent.handle("return ORD002").startswith("Just confirming")
        assert agent.handle("no") == "Okay, no return will be processed for order ORD002."
        assert jane_ctx.session.get_pending() is None

    def test_unclear_answer_reprompts(self, jane_ctx):
        agent = RuleAgent(jane_ctx)
        agent.handle("cancel ORD001")
        assert agent.handle("hmm") == "Please reply 'yes' to confirm or 'no' to leave the order as it is."
        assert agent.handle("yes").startswith("Order ORD001 has been successfully cancelled.")

    def test_order_number_as_follow_up(self, jane_ctx):
        agent = RuleAgent(jane_ctx)
        assert agent.handle("where is my order?") == "Please provide your order number."
        assert agent.handle("ORD003").startswith("Order ORD003 is in transit.")

    def test_credentials_alone_authenticate(self, ctx):
        agent = RuleAgent(ctx)
        assert agent.handle("Jane Doe 1234") == (
            "Authentication successful for Jane Doe. Please provide your order number."
        )
        assert ctx.session.is_authenticated()

    def test_cancel_delivered_is_rejected(self, jane_ctx):
        agent = RuleAgent(jane_ctx)
        assert "cannot be cancelled" in agent.handle("cancel ORD002")
        assert agent.pending is None

    def test_refund(self, jane_ctx):
        assert RuleAgent(jane_ctx).handle("refund ORD001").startswith("Refund approved for order ORD001.")


class TestQuestions:
    def test_price_needs_no_credentials(self, ctx):
        assert RuleAgent(ctx).handle("How much is the Smart Watch?") == "The Smart Watch costs $199.99."

    def test_dimensions(self, ctx):
        assert RuleAgent(ctx).handle("what size is the keyboard") == (
            "The Keyboard dimensions are 18 x 6 x 1.5 inches."
        )

    def test_policy(self, ctx):
        assert RuleAgent(ctx).handle("what is your return policy?") == KNOWLEDGE_BASE["returns policy"]

    def test_fallback_help(self, ctx):
        assert RuleAgent(ctx).handle("hello there").startswith("I can help with:")

    def test_unrelated_turn_drops_request_for_details(self, ctx):
        agent = RuleAgent(ctx)
        agent.handle("cancel ORD001")
        assert agent.has_open_state is True
        assert agent.handle("hello there").startswith("I can help with:")
        assert agent.has_open_state is False
