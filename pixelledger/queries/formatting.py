"""
Result Formatting

Two renderings of the same matched records:

- user text: what the chat shows when no second LLM call happens
  (short, currency symbol, first 10 rows)
- context text: what the second LLM call sees
  (plain numbers, CSV rows, first 20 rows, the active filters)

Both are pure functions of (records, intent) so they can be tested
without storage.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from pixelledger.models.intent import QueryIntent
from pixelledger.models.ledger import ExpenseItem


DEFAULT_GREETING = (
    "Hello! I'm your bookkeeping assistant. "
    "I can help you look up and analyse your spending."
)
UNTITLED = "Untitled"


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def total_amount(expenses: Sequence[ExpenseItem]) -> Decimal:
    return sum((e.amount for e in expenses), Decimal("0"))


# =============================================================================
# USER-FACING TEXT
# =============================================================================

def format_sum(expenses: Sequence[ExpenseItem], currency: str = "¥") -> str:
    count = len(expenses)
    if count == 0:
        return f"Total: {currency}0.00\nFound 0 records."
    return f"Total: {currency}{total_amount(expenses):.2f}\nFound {count} record{_plural(count)}."


def format_list(
    expenses: Sequence[ExpenseItem],
    currency: str = "¥",
    limit: int = 10,
) -> str:
    """
    Numbered lines, newest first:

        1. [餐饮] -¥35.00 (Lunch) - 01-15
        ...
        ... and 3 more records.
    """
    if not expenses:
        return "Found 0 records."

    lines = []
    for index, expense in enumerate(expenses[:limit], start=1):
        title = expense.title or UNTITLED
        lines.append(
            f"{index}. [{expense.category}] -{currency}{expense.amount:.2f} "
            f"({title}) - {expense.date.strftime('%m-%d')}"
        )

    remaining = len(expenses) - limit
    if remaining > 0:
        lines.append(f"... and {remaining} more record{_plural(remaining)}.")

    return "\n".join(lines)


def format_count(expenses: Sequence[ExpenseItem]) -> str:
    count = len(expenses)
    return f"Found {count} record{_plural(count)}."


# =============================================================================
# MODEL-FACING CONTEXT
# =============================================================================

def describe_filters(intent: QueryIntent) -> list[str]:
    filters = []
    start, end = intent.start_date, intent.end_date
    if start and end:
        filters.append(f"Date: {start:%Y-%m-%d} to {end:%Y-%m-%d}")
    elif start:
        filters.append(f"Date: from {start:%Y-%m-%d}")
    elif end:
        filters.append(f"Date: to {end:%Y-%m-%d}")
    if intent.category_name:
        filters.append(f"Category: {intent.category_name}")
    if intent.account_name:
        filters.append(f"Account: {intent.account_name}")
    return filters


def format_sum_context(expenses: Sequence[ExpenseItem], intent: QueryIntent) -> str:
    result = f"Total: {total_amount(expenses):.2f}\nRecords: {len(expenses)}"
    filters = describe_filters(intent)
    if filters:
        result += "\nFilters: " + ", ".join(filters)
    return result


def format_list_context(expenses: Sequence[ExpenseItem], limit: int = 20) -> str:
    """CSV-style rows; commas inside titles become semicolons."""
    if not expenses:
        return "No records found.\nTotal: 0"

    rows = ["Date,Name,Amount,Category,Account"]
    for expense in expenses[:limit]:
        rows.append(",".join([
            expense.date.strftime("%Y-%m-%d %H:%M"),
            expense.title.replace(",", ";"),
            f"{expense.amount:.2f}",
            expense.category,
            expense.account_name or "",
        ]))

    result = "\n".join(rows) + "\n"
    if len(expenses) > limit:
        result += f"\n... (showing {limit} of {len(expenses)} records)"
    return result


# =============================================================================
# DESCRIPTIONS
# =============================================================================

def date_range_str(
    date_from: Optional[datetime],
    date_to: Optional[datetime],
) -> str:
    """Format date range for description."""
    if date_from and date_to:
        if date_from.date() == date_to.date():
            return f"on {date_from.strftime('%d %b %Y')}"
        elif date_from.month == date_to.month and date_from.year == date_to.year:
            return f"in {date_from.strftime('%B %Y')}"
        elif date_from.year == date_to.year:
            return f"from {date_from.strftime('%d %b')} to {date_to.strftime('%d %b %Y')}"
        else:
            return f"from {date_from.strftime('%b %Y')} to {date_to.strftime('%b %Y')}"
    elif date_from:
        return f"from {date_from.strftime('%d %b %Y')}"
    elif date_to:
        return f"until {date_to.strftime('%d %b %Y')}"
    return ""


def describe_query(intent: QueryIntent) -> str:
    """One-line summary of what was looked up, for logs and audit."""
    parts = [f"{intent.operation.value.capitalize()} of records"]
    if intent.category_name:
        parts.append(f"category: {intent.category_name}")
    if intent.account_name:
        parts.append(f"account: {intent.account_name}")
    date_str = date_range_str(intent.start_date, intent.end_date)
    if date_str:
        parts.append(date_str)
    return " | ".join(parts)
