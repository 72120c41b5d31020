"""
Query Intent Models

The LLM never answers a data question directly. It returns a QueryIntent:
an operation plus optional filters. The intent is then executed against
the local ledger and the result is formatted back into text.

Date handling is the fiddly part. Models return dates in several shapes:
    "2024-01-15T08:30:00"         exact local instant
    "2024-01-15T08:30:00.000Z"    zoned, converted to local time
    "2024-01-15"                  whole day
    "-7d" / "+1d"                 relative day offset
    "today" / "今天"
Anything else decodes to None rather than failing the whole intent.
"""

import json
import re
from datetime import datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)


_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RELATIVE_DAYS = re.compile(r"^([+-])(\d+)d$")
# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"(?<=:\d{2})\.(\d+)")
_TODAY_WORDS = {"today", "今天", "now"}
_NULL_WORDS = {"", "null", "none", "nil"}


def _start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def _end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)


def parse_intent_date(
    value: Any,
    now: Optional[datetime] = None,
    end_of_range: bool = False,
    keep_time: bool = False,
) -> Optional[datetime]:
    """
    Parse a date the LLM produced into a naive local datetime.

    Whole-day inputs (plain dates, "today", relative offsets) resolve to
    the start of the day, or the end of the day when end_of_range is set,
    so that an end bound of "2024-01-15" still includes an 18:00 expense.
    keep_time makes relative offsets keep the current time of day instead.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    lowered = text.lower()
    if lowered in _NULL_WORDS:
        return None

    now = now or datetime.now()
    snap = _end_of_day if end_of_range else _start_of_day

    if lowered in _TODAY_WORDS:
        return now if keep_time else snap(now)

    match = _RELATIVE_DAYS.match(lowered)
    if match:
        days = int(match.group(2))
        offset = timedelta(days=-days if match.group(1) == "-" else days)
        shifted = now + offset
        return shifted if keep_time else snap(shifted)

    if _DATE_ONLY.match(text):
        try:
            return snap(datetime.strptime(text, "%Y-%m-%d"))
        except ValueError:
            return None

    try:
        iso = _FRACTION.sub(_six_digit_fraction, text.replace("Z", "+00:00"), count=1)
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _six_digit_fraction(match: re.Match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def format_intent_date(value: Optional[datetime]) -> Optional[str]:
    """Render a date the way the intent prompt asks the model to write it."""
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper that models like to add."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


class IntentParseError(ValueError):
    """The model reply could not be decoded into an intent."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class Operation(str, Enum):
    """What the user wants done with the matching records."""
    SUM = "sum"          # "How much did I spend..."
    LIST = "list"        # "Show me my transactions..."
    COUNT = "count"      # "How many times..."
    CHAT = "chat"        # Small talk, answered by chat_response
    UNKNOWN = "unknown"  # Could not be classified


class QueryIntent(BaseModel):
    """
    Parsed intent from a natural language question.

    JSON keys follow the prompt contract (startDate, endDate, category,
    account, chatResponse). Snake-case field names are accepted as well.
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    operation: Operation
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    category_name: Optional[str] = Field(default=None, alias="category")
    account_name: Optional[str] = Field(default=None, alias="account")
    chat_response: Optional[str] = Field(default=None, alias="chatResponse")

    @field_validator('operation', mode='before')
    @classmethod
    def coerce_operation(cls, v: Any) -> Any:
        """Unrecognised operations become UNKNOWN instead of failing."""
        if isinstance(v, Operation):
            return v
        if isinstance(v, str):
            lowered = v.strip().lower()
            if lowered in Operation._value2member_map_:
                return lowered
        return Operation.UNKNOWN

    @field_validator('start_date', mode='before')
    @classmethod
    def parse_start(cls, v: Any, info: ValidationInfo) -> Optional[datetime]:
        now = (info.context or {}).get("now")
        return parse_intent_date(v, now=now)

    @field_validator('end_date', mode='before')
    @classmethod
    def parse_end(cls, v: Any, info: ValidationInfo) -> Optional[datetime]:
        now = (info.context or {}).get("now")
        return parse_intent_date(v, now=now, end_of_range=True)

    @field_validator('category_name', 'account_name', 'chat_response', mode='before')
    @classmethod
    def null_strings(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in _NULL_WORDS:
            return None
        return v

    @classmethod
    def from_llm_text(
        cls,
        text: str,
        now: Optional[datetime] = None,
    ) -> "QueryIntent":
        """
        Decode a raw model reply.

        Tolerates code fences and prose around the JSON object.
        Raises IntentParseError when no usable object is present.
        """
        cleaned = strip_code_fences(text)
        start = cleaned.find("{")
        end = cleaned.rfind("}") + 1
        if start < 0 or end <= start:
            raise IntentParseError("No JSON object in model reply", raw_text=text)

        try:
            data = json.loads(cleaned[start:end])
        except json.JSONDecodeError as e:
            raise IntentParseError(f"Invalid JSON in model reply: {e}", raw_text=text)

        if not isinstance(data, dict) or "operation" not in data:
            raise IntentParseError("Model reply has no 'operation'", raw_text=text)

        return cls.model_validate(data, context={"now": now})

    def to_json_dict(self) -> dict:
        """Encode using the prompt's key names."""
        data: dict[str, Any] = {
            "operation": self.operation.value,
            "startDate": format_intent_date(self.start_date),
            "endDate": format_intent_date(self.end_date),
        }
        if self.category_name is not None:
            data["category"] = self.category_name
        if self.account_name is not None:
            data["account"] = self.account_name
        if self.chat_response is not None:
            data["chatResponse"] = self.chat_response
        return data

    @property
    def is_data_query(self) -> bool:
        return self.operation in (Operation.SUM, Operation.LIST, Operation.COUNT)


class TransactionDraft(BaseModel):
    """
    A transaction the LLM extracted from free text ("lunch 50 with WeChat").

    CRITICAL: This is PROPOSED data. It goes through TransactionValidator
    before it becomes an ExpenseItem.
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    draft_id: UUID = Field(default_factory=uuid4)
    amount: Optional[Decimal] = None
    category_name: Optional[str] = None
    account_name: Optional[str] = None
    note: Optional[str] = None
    date: Optional[str] = Field(
        default=None,
        description="ISO8601 date or relative offset such as '-1d'"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v: Any) -> Optional[Decimal]:
        if v is None or v == "":
            return None
        try:
            return Decimal(str(v)).quantize(Decimal("0.01"))
        except (InvalidOperation, TypeError, ValueError):
            return None

    @field_validator('category_name', 'account_name', 'note', mode='before')
    @classmethod
    def null_strings(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in _NULL_WORDS:
            return None
        return v

    def resolve_date(self, now: Optional[datetime] = None) -> datetime:
        """Transaction time; relative offsets keep the current time of day."""
        now = now or datetime.now()
        return parse_intent_date(self.date, now=now, keep_time=True) or now

    @classmethod
    def from_llm_text(cls, text: str) -> "TransactionDraft":
        cleaned = strip_code_fences(text)
        start = cleaned.find("{")
        end = cleaned.rfind("}") + 1
        if start < 0 or end <= start:
            raise IntentParseError("No JSON object in model reply", raw_text=text)
        try:
            data = json.loads(cleaned[start:end])
        except json.JSONDecodeError as e:
            raise IntentParseError(f"Invalid JSON in model reply: {e}", raw_text=text)
        if not isinstance(data, dict):
            raise IntentParseError("Model reply is not an object", raw_text=text)
        return cls.model_validate(data)


class QueryResult(BaseModel):
    """
    Result of executing an intent against the ledger.

    `text` is what the user sees when no summarization happens.
    `context_text` is the richer rendering handed to the second LLM call.
    """

    query_id: UUID = Field(default_factory=uuid4)
    executed_at: datetime = Field(default_factory=datetime.now)
    operation: Operation

    success: bool = True
    error_message: Optional[str] = None

    record_count: int = Field(default=0, ge=0)
    total: Optional[Decimal] = None
    records: list[dict] = Field(default_factory=list)

    text: str
    context_text: str = ""
    needs_chat: bool = Field(
        default=False,
        description="The intent was not a data query and no reply was supplied"
    )
    query_description: str = ""

    @property
    def data_found(self) -> bool:
        return self.record_count > 0


class ChatMessage(BaseModel):
    """One line in the assistant conversation."""

    id: UUID = Field(default_factory=uuid4)
    content: str
    is_user: bool
    timestamp: datetime = Field(default_factory=datetime.now)
