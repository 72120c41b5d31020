"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC.
The LLM converts natural language to a QueryIntent.
This engine executes that intent on actual stored records.
The LLM may then phrase the response.

At no point does the LLM have direct access to answer questions.
It can only see what this engine returns from storage.

This is the critical boundary that prevents hallucination.
"""

from datetime import datetime
from typing import Iterable, Optional

import structlog

from pixelledger.models.intent import Operation, QueryIntent, QueryResult
from pixelledger.models.ledger import ExpenseItem
from pixelledger.queries.formatting import (
    DEFAULT_GREETING,
    describe_query,
    format_count,
    format_list,
    format_list_context,
    format_sum,
    format_sum_context,
    total_amount,
)
from pixelledger.services.storage.interface import (
    ExpenseStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class QueryExecutionError(Exception):
    """Error during query execution."""
    pass


def filter_expenses(
    expenses: Iterable[ExpenseItem],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    category: Optional[str] = None,
    account: Optional[str] = None,
) -> list[ExpenseItem]:
    """
    Apply intent filters to a collection of records.

    Date bounds are inclusive. Category and account compare by exact
    name. A None filter is not applied. Result is newest first.
    """
    matched = [
        e for e in expenses
        if (start is None or e.date >= start)
        and (end is None or e.date <= end)
        and (category is None or e.category == category)
        and (account is None or e.account_name == account)
    ]
    matched.sort(key=lambda e: e.date, reverse=True)
    return matched


class QueryExecutor:
    """
    Executes query intents against expense storage.

    GUARANTEES:
    - Only returns real data from storage
    - Never invents or estimates
    - Clear "Found 0 records." if nothing matches
    - chat/unknown intents never touch storage
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        currency_symbol: str = "¥",
        display_limit: int = 10,
        context_limit: int = 20,
    ):
        self._storage = storage
        self._currency = currency_symbol
        self._display_limit = display_limit
        self._context_limit = context_limit

    async def execute(self, intent: QueryIntent) -> QueryResult:
        """
        Execute an intent and return the formatted result.

        Storage failures come back as a result with success=False rather
        than an exception, so the chat can show what went wrong.
        """
        if intent.operation == Operation.CHAT:
            reply = intent.chat_response or DEFAULT_GREETING
            return QueryResult(
                operation=Operation.CHAT,
                text=reply,
                context_text=reply,
                query_description="Conversation",
            )

        if intent.operation == Operation.UNKNOWN:
            return QueryResult(
                operation=Operation.UNKNOWN,
                text=DEFAULT_GREETING,
                context_text="",
                needs_chat=True,
                query_description="Unrecognised request",
            )

        try:
            expenses = await self.fetch(intent)
        except StorageError as e:
            logger.error("query_storage_failed", error=str(e))
            return QueryResult(
                operation=intent.operation,
                success=False,
                error_message=str(e),
                text=f"Query failed: {e}",
                query_description=f"Query failed: {e}",
            )

        if intent.operation == Operation.SUM:
            text = format_sum(expenses, self._currency)
            context_text = format_sum_context(expenses, intent)
        elif intent.operation == Operation.LIST:
            text = format_list(expenses, self._currency, self._display_limit)
            context_text = format_list_context(expenses, self._context_limit)
        else:
            text = format_count(expenses)
            context_text = text

        return QueryResult(
            operation=intent.operation,
            record_count=len(expenses),
            total=total_amount(expenses),
            records=[self._expense_to_dict(e) for e in expenses[:self._context_limit]],
            text=text,
            context_text=context_text,
            query_description=describe_query(intent),
        )

    async def fetch(self, intent: QueryIntent) -> list[ExpenseItem]:
        """Load the records matching an intent's filters, newest first."""
        candidates = await self._storage.list_expenses(
            date_from=intent.start_date,
            date_to=intent.end_date,
        )
        return filter_expenses(
            candidates,
            start=intent.start_date,
            end=intent.end_date,
            category=intent.category_name,
            account=intent.account_name,
        )

    def _expense_to_dict(self, expense: ExpenseItem) -> dict:
        """Convert an expense to a dictionary for results."""
        return {
            "id": str(expense.id),
            "date": expense.date.isoformat(),
            "title": expense.title,
            "amount": f"{expense.amount:.2f}",
            "category": expense.category,
            "account_name": expense.account_name,
        }
