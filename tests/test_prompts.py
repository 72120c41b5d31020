"""Tests for prompt builders."""

from datetime import date, datetime

from pixelledger.agents.prompts import (
    build_final_answer_prompt,
    build_intent_system_prompt,
    build_transaction_prompt,
    date_anchors,
)

from conftest import NOW


class TestDateAnchors:
    """Range bounds computed for NOW = Wed 2024-05-15 14:30."""

    def test_anchor_values(self):
        anchors = date_anchors(NOW)
        assert anchors == {
            "now": "2024-05-15T14:30:00",
            "today_start": "2024-05-15T00:00:00",
            "yesterday_start": "2024-05-14T00:00:00",
            "yesterday_end": "2024-05-14T23:59:59",
            "month_start": "2024-05-01T00:00:00",
            "last_month_start": "2024-04-01T00:00:00",
            "last_month_end": "2024-04-30T23:59:59",
            "week_start": "2024-05-13T00:00:00",
        }

    def test_january_rolls_back_a_year(self):
        anchors = date_anchors(datetime(2024, 1, 3, 9, 0))
        assert anchors["last_month_start"] == "2023-12-01T00:00:00"
        assert anchors["last_month_end"] == "2023-12-31T23:59:59"


class TestIntentPrompt:
    """Tests for the question -> intent prompt."""

    def test_includes_catalog_and_time(self):
        prompt = build_intent_system_prompt(NOW, ["餐饮", "出租车"], ["微信支付", "现金"])
        assert "**Current Time:** 2024-05-15T14:30:00" in prompt
        assert "**Available Categories:** 餐饮, 出租车" in prompt
        assert "**Available Accounts:** 微信支付, 现金" in prompt

    def test_examples_use_concrete_dates(self):
        prompt = build_intent_system_prompt(NOW, [], [])
        assert '"startDate": "2024-05-14T00:00:00", "endDate": "2024-05-14T23:59:59"' in prompt
        assert "{d[" not in prompt


class TestOtherPrompts:
    """Tests for the answer and transaction prompts."""

    def test_final_answer_prompt_embeds_data(self):
        prompt = build_final_answer_prompt("How much?", "Total: 12.50\nRecords: 2")
        assert "**User Question:** How much?" in prompt
        assert "Total: 12.50\nRecords: 2" in prompt
        assert "Do NOT make up data" in prompt

    def test_transaction_prompt_defaults(self):
        prompt = build_transaction_prompt(date(2024, 5, 15), ["餐饮", "其他"], ["微信支付", "现金"])
        assert "Today is 2024-05-15." in prompt
        assert "the date is 2024-05-14" in prompt
        assert "use the 'Others' category" in prompt
        assert 'default to "现金"' in prompt

    def test_transaction_prompt_without_fallbacks(self):
        prompt = build_transaction_prompt(date(2024, 5, 15), ["餐饮"], ["支付宝"])
        assert "return null" in prompt
        assert 'default to "支付宝"' in prompt

    def test_transaction_prompt_without_accounts(self):
        prompt = build_transaction_prompt(date(2024, 5, 15), [], [])
        assert 'default to "Cash"' in prompt
