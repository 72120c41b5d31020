"""Tests for the AI agents, with the LLM client mocked."""

import pytest
from decimal import Decimal

from pixelledger.agents import QueryAgent, TransactionAgent
from pixelledger.agents.ai_agents import (
    ANSWER_MAX_TOKENS,
    ANSWER_TEMPERATURE,
    INTENT_MAX_TOKENS,
    INTENT_TEMPERATURE,
    TRANSACTION_TEMPERATURE,
)
from pixelledger.models.intent import IntentParseError, Operation
from pixelledger.services.llm import LLMNetworkError

from conftest import NOW


CATEGORIES = ["餐饮", "出租车"]
ACCOUNTS = ["微信支付", "现金"]


class TestQueryAgent:
    """Tests for question parsing and answer phrasing."""

    @pytest.mark.asyncio
    async def test_parse_question(self, mock_client):
        mock_client.complete.return_value = (
            '{"operation": "sum", "startDate": "2024-05-01T00:00:00", '
            '"endDate": "2024-05-15T14:30:00", "category": "餐饮", "account": null}'
        )
        agent = QueryAgent(mock_client)

        intent = await agent.parse_question("这个月餐饮花了多少", CATEGORIES, ACCOUNTS, now=NOW)

        assert intent.operation == Operation.SUM
        assert intent.category_name == "餐饮"
        kwargs = mock_client.complete.call_args.kwargs
        assert kwargs["temperature"] == INTENT_TEMPERATURE == 0.1
        assert kwargs["max_tokens"] == INTENT_MAX_TOKENS == 300
        assert kwargs["user_prompt"] == "这个月餐饮花了多少"
        assert "餐饮, 出租车" in kwargs["system_prompt"]

    @pytest.mark.asyncio
    async def test_parse_question_bad_reply_raises(self, mock_client):
        mock_client.complete.return_value = "I am not sure."
        with pytest.raises(IntentParseError):
            await QueryAgent(mock_client).parse_question("?", CATEGORIES, ACCOUNTS, now=NOW)

    @pytest.mark.asyncio
    async def test_parse_question_propagates_llm_errors(self, mock_client):
        mock_client.complete.side_effect = LLMNetworkError(OSError("unreachable"))
        with pytest.raises(LLMNetworkError):
            await QueryAgent(mock_client).parse_question("?", CATEGORIES, ACCOUNTS, now=NOW)

    @pytest.mark.asyncio
    async def test_final_answer(self, mock_client):
        mock_client.complete.return_value = "You spent ¥42.00 on food this month."
        answer = await QueryAgent(mock_client).generate_final_answer(
            "How much on food?", "Total: 42.00\nRecords: 2"
        )
        assert answer == "You spent ¥42.00 on food this month."
        kwargs = mock_client.complete.call_args.kwargs
        assert kwargs["temperature"] == ANSWER_TEMPERATURE == 0.7
        assert kwargs["max_tokens"] == ANSWER_MAX_TOKENS == 500

    @pytest.mark.asyncio
    async def test_final_answer_falls_back_on_failure(self, mock_client):
        mock_client.complete.side_effect = LLMNetworkError(OSError("unreachable"))
        answer = await QueryAgent(mock_client).generate_final_answer(
            "How much?", "Total: 42.00", fallback_text="Total: ¥42.00\nFound 2 records."
        )
        assert answer == "Total: ¥42.00\nFound 2 records."

    @pytest.mark.asyncio
    async def test_final_answer_empty_reply_uses_data(self, mock_client):
        mock_client.complete.return_value = ""
        answer = await QueryAgent(mock_client).generate_final_answer("How much?", "Total: 42.00")
        assert answer == "Total: 42.00"


class TestTransactionAgent:
    """Tests for transaction extraction."""

    @pytest.mark.asyncio
    async def test_parse_transaction(self, mock_client):
        mock_client.complete.return_value = (
            '{"amount": 30, "category_name": "出租车", "account_name": "微信支付", '
            '"note": "打车", "date": "-1d"}'
        )
        draft = await TransactionAgent(mock_client).parse_transaction(
            "昨天打车花了30块，用微信支付", CATEGORIES, ACCOUNTS, today=NOW
        )
        assert draft.amount == Decimal("30.00")
        assert draft.category_name == "出租车"
        assert draft.account_name == "微信支付"
        assert draft.resolve_date(NOW).date() == NOW.date().replace(day=14)

        kwargs = mock_client.complete.call_args.kwargs
        assert kwargs["json_mode"] is True
        assert kwargs["temperature"] == TRANSACTION_TEMPERATURE == 0.3

    @pytest.mark.asyncio
    async def test_unknown_names_are_dropped(self, mock_client):
        mock_client.complete.return_value = (
            '{"amount": 12, "category_name": "Coffee", "account_name": "Visa"}'
        )
        draft = await TransactionAgent(mock_client).parse_transaction(
            "coffee 12", CATEGORIES, ACCOUNTS, today=NOW
        )
        assert draft.category_name is None
        assert draft.account_name is None
