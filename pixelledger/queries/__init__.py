"""Query execution package."""

from pixelledger.queries.executor import (
    QueryExecutionError,
    QueryExecutor,
    filter_expenses,
)
from pixelledger.queries.formatting import DEFAULT_GREETING

__all__ = [
    "DEFAULT_GREETING",
    "QueryExecutionError",
    "QueryExecutor",
    "filter_expenses",
]
