"""
AI Agents for PixelLedger

CRITICAL BOUNDARIES:

1. QUERY AGENT (local RAG):
   - CAN: Convert natural language to a QueryIntent
   - CAN: Phrase an answer FROM query results it is handed
   - CANNOT: Answer questions about the user's money from its own knowledge
   - CANNOT: Invent or hallucinate data
   - MUST: Say "no records found" when the results are empty

2. TRANSACTION AGENT:
   - CAN: Extract amount, category, account, note and date from free text
   - CANNOT: Persist anything; its output is a TransactionDraft that
     goes through TransactionValidator and then LedgerService

The LLM is a TRANSLATOR, not an ORACLE.
It converts between human language and structured operations.
It NEVER makes up financial data.
"""

from datetime import datetime
from typing import Optional, Sequence

import structlog

from pixelledger.agents.prompts import (
    build_final_answer_prompt,
    build_intent_system_prompt,
    build_transaction_prompt,
)
from pixelledger.models.intent import QueryIntent, TransactionDraft
from pixelledger.services.llm import LLMClient, LLMServiceError


logger = structlog.get_logger(__name__)


# Sampling parameters per call
INTENT_TEMPERATURE = 0.1       # Very low for consistency
INTENT_MAX_TOKENS = 300
ANSWER_TEMPERATURE = 0.7       # A little warmth for the final wording
ANSWER_MAX_TOKENS = 500
TRANSACTION_TEMPERATURE = 0.3


class QueryAgent:
    """
    AI agent for the question-answering flow.

    FLOW:
    1. User asks question -> LLM extracts intent (parse_question)
    2. Intent executes on the local ledger (deterministic, QueryExecutor)
    3. Results -> LLM phrases the answer (generate_final_answer, optional)

    The LLM is sandwiched between two deterministic steps.
    It cannot hallucinate numbers because it only sees real data.
    """

    def __init__(self, client: LLMClient):
        self._client = client

    async def parse_question(
        self,
        question: str,
        categories: Sequence[str],
        accounts: Sequence[str],
        now: Optional[datetime] = None,
    ) -> QueryIntent:
        """
        Parse a natural language question into a QueryIntent.

        This is the first LLM call. Errors propagate: the caller decides
        whether to fall back or to show the failure.

        Raises:
            LLMServiceError: the call failed
            IntentParseError: the reply was not a usable intent
        """
        now = now or datetime.now()
        system_prompt = build_intent_system_prompt(now, categories, accounts)

        text = await self._client.complete(
            system_prompt=system_prompt,
            user_prompt=question,
            temperature=INTENT_TEMPERATURE,
            max_tokens=INTENT_MAX_TOKENS,
        )
        intent = QueryIntent.from_llm_text(text, now=now)

        logger.info(
            "intent_parsed",
            operation=intent.operation.value,
            category=intent.category_name,
            account=intent.account_name,
        )
        return intent

    async def generate_final_answer(
        self,
        user_query: str,
        data_result: str,
        fallback_text: Optional[str] = None,
    ) -> str:
        """
        Generate a natural language answer from query results.

        CRITICAL: The LLM can ONLY use the data provided.

        If the call fails, the formatted data text is returned instead so
        the user still gets an answer.
        """
        system_prompt = build_final_answer_prompt(user_query, data_result)

        try:
            answer = await self._client.complete(
                system_prompt=system_prompt,
                user_prompt=user_query,
                temperature=ANSWER_TEMPERATURE,
                max_tokens=ANSWER_MAX_TOKENS,
            )
        except LLMServiceError as e:
            logger.warning("final_answer_failed", error=str(e))
            return fallback_text if fallback_text is not None else data_result

        if not answer:
            return fallback_text if fallback_text is not None else data_result
        return answer


class TransactionAgent:
    """
    AI agent for recording a transaction from a sentence.

    BOUNDARIES:
    - NEVER persists data
    - Only picks categories/accounts from the lists it is given
    - Missing fields stay None; nothing is guessed after the fact
    """

    def __init__(self, client: LLMClient):
        self._client = client

    async def parse_transaction(
        self,
        text: str,
        categories: Sequence[str],
        accounts: Sequence[str],
        today: Optional[datetime] = None,
    ) -> TransactionDraft:
        """
        Extract a TransactionDraft from free text.

        Names the model returns that are not in the provided lists are
        dropped, since the model was told to choose from them.

        Raises:
            LLMServiceError: the call failed
            IntentParseError: the reply was not a JSON object
        """
        today = today or datetime.now()
        system_prompt = build_transaction_prompt(today.date(), categories, accounts)

        reply = await self._client.complete(
            system_prompt=system_prompt,
            user_prompt=text,
            temperature=TRANSACTION_TEMPERATURE,
            json_mode=True,
        )
        draft = TransactionDraft.from_llm_text(reply)

        if draft.category_name and draft.category_name not in categories:
            logger.info("transaction_unknown_category", category=draft.category_name)
            draft.category_name = None
        if draft.account_name and draft.account_name not in accounts:
            logger.info("transaction_unknown_account", account=draft.account_name)
            draft.account_name = None

        return draft
