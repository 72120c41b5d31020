"""AI Agents package."""

from pixelledger.agents.ai_agents import QueryAgent, TransactionAgent
from pixelledger.agents.prompts import (
    build_final_answer_prompt,
    build_intent_system_prompt,
    build_transaction_prompt,
)
from pixelledger.agents.rules import DEFAULT_CHAT_REPLY, RuleBasedIntentParser

__all__ = [
    "DEFAULT_CHAT_REPLY",
    "QueryAgent",
    "RuleBasedIntentParser",
    "TransactionAgent",
    "build_final_answer_prompt",
    "build_intent_system_prompt",
    "build_transaction_prompt",
]
