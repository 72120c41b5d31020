"""
Prompt Builders

All prompt text the assistant sends lives here, so the agents stay about
control flow and the wording can be reviewed in one place.

Every prompt that involves time gets concrete instants computed here.
Models are unreliable at calendar arithmetic; they are good at copying
a timestamp they were given.
"""

from datetime import date, datetime, time, timedelta
from typing import Sequence

from pixelledger.models.intent import format_intent_date


def _month_start(value: datetime) -> datetime:
    return datetime.combine(value.date().replace(day=1), time.min)


def date_anchors(current_date: datetime) -> dict[str, str]:
    """
    Pre-computed range bounds for the common time phrases.

    Weeks start on Monday. Open ranges ("this month") end at the current time.
    """
    today_start = datetime.combine(current_date.date(), time.min)
    yesterday_start = today_start - timedelta(days=1)
    yesterday_end = today_start - timedelta(seconds=1)

    month_start = _month_start(current_date)
    last_month_end = month_start - timedelta(seconds=1)
    last_month_start = _month_start(last_month_end)

    week_start = today_start - timedelta(days=current_date.weekday())

    return {
        "now": format_intent_date(current_date),
        "today_start": format_intent_date(today_start),
        "yesterday_start": format_intent_date(yesterday_start),
        "yesterday_end": format_intent_date(yesterday_end),
        "month_start": format_intent_date(month_start),
        "last_month_start": format_intent_date(last_month_start),
        "last_month_end": format_intent_date(last_month_end),
        "week_start": format_intent_date(week_start),
    }


def build_intent_system_prompt(
    current_date: datetime,
    categories: Sequence[str],
    accounts: Sequence[str],
) -> str:
    """System prompt for the first call: question -> QueryIntent JSON."""
    d = date_anchors(current_date)
    categories_list = ", ".join(categories)
    accounts_list = ", ".join(accounts)

    return f"""Role: You are the query parser for a bookkeeping app called "PixelLedger".
Your goal is to translate the user's natural language query into a structured JSON command that the app can execute.

### 1. Context Information (Dynamic)
- **Current Time:** {d["now"]} (User's local time).
- **Available Categories:** {categories_list}
- **Available Accounts:** {accounts_list}

### 2. Output Format (Strict JSON)
You must return ONLY a JSON object. No markdown, no conversational filler, no code blocks, no backticks.
The JSON must adhere to this schema:
{{
  "operation": "sum" | "list" | "count" | "chat",
  "startDate": "YYYY-MM-DDTHH:mm:ss", // Calculate exact start time based on user input.
  "endDate": "YYYY-MM-DDTHH:mm:ss",   // Calculate exact end time.
  "category": "String", // Match closely to Available Categories. Null if not specified.
  "account": "String",  // Match closely to Available Accounts. Null if not specified.
  "chatResponse": "String" // Only used if operation is 'chat'. Provide a friendly reply.
}}

### 3. Logic Rules

**Date Handling:**
- If user says "today" or "今天", set startDate to "{d["today_start"]}" and endDate to "{d["now"]}".
- If user says "yesterday" or "昨天", set startDate to "{d["yesterday_start"]}" and endDate to "{d["yesterday_end"]}".
- If user says "this month" or "这个月" or "本月", set startDate to "{d["month_start"]}" and endDate to "{d["now"]}".
- If user says "last month" or "上个月", set startDate to "{d["last_month_start"]}" and endDate to "{d["last_month_end"]}".
- If user says "this week" or "这周", set startDate to "{d["week_start"]}" and endDate to "{d["now"]}".
- If user says "last 7 days" or "最近7天", calculate 7 days ago from current time to now.
- If user says "last 30 days" or "最近30天", calculate 30 days ago from current time to now.
- If no time is specified, default to "Current Month" (startDate: "{d["month_start"]}", endDate: "{d["now"]}").

**Fuzzy Matching:**
- If user says "food" or "eating" or "餐" or "吃", map it to the closest match in [Available Categories] (e.g., if "餐饮" exists, use "餐饮").
- If user says "WeChat" or "微信", map to the closest match in [Available Accounts] (e.g., "微信支付").
- Always match to the exact string from the provided lists. If unsure, use null.

**Operations:**
- "How much..." or "总共" or "多少" (asking for totals) -> "sum"
- "Show me..." or "显示" or "列出" or "What are..." (asking for records) -> "list"
- "How many times..." or "多少次" or "几条" (asking for count) -> "count"
- "Hello" or "Hi" or "你好" or "Recommendation" or "建议" (general conversation) -> "chat" (Provide a friendly reply in 'chatResponse' field).

### 4. Examples

User: "How much did I spend on food yesterday?"
JSON: {{"operation": "sum", "startDate": "{d["yesterday_start"]}", "endDate": "{d["yesterday_end"]}", "category": "餐饮", "account": null, "chatResponse": null}}

User: "List my transactions this month."
JSON: {{"operation": "list", "startDate": "{d["month_start"]}", "endDate": "{d["now"]}", "category": null, "account": null, "chatResponse": null}}

User: "How many times did I spend on dining this month?"
JSON: {{"operation": "count", "startDate": "{d["month_start"]}", "endDate": "{d["now"]}", "category": "餐饮", "account": null, "chatResponse": null}}

User: "Hi, who are you?"
JSON: {{"operation": "chat", "startDate": null, "endDate": null, "category": null, "account": null, "chatResponse": "I am your PixelLedger AI assistant. Ask me about your finances!"}}

User: "我这个月在餐饮上花了多少钱？"
JSON: {{"operation": "sum", "startDate": "{d["month_start"]}", "endDate": "{d["now"]}", "category": "餐饮", "account": null, "chatResponse": null}}

### 5. Important Rules
1. operation is REQUIRED and must be one of: "sum", "list", "count", "chat"
2. startDate and endDate must be in the format YYYY-MM-DDTHH:mm:ss or null
3. category must be from the provided Available Categories list or null
4. account must be from the provided Available Accounts list or null
5. chatResponse is only used when operation is "chat", otherwise set to null
6. Return ONLY the JSON object, nothing else. No markdown, no explanations."""


def build_final_answer_prompt(user_query: str, data_result: str) -> str:
    """
    System prompt for the second call: data -> friendly answer.

    CRITICAL: The model may only restate what is in data_result.
    """
    return f"""You are a helpful bookkeeping assistant. Your role is to answer the user's question based on the provided database query results.

**User Question:** {user_query}

**Database Result:**
{data_result}

**Instructions:**
1. Answer the user's question based STRICTLY on the provided database result.
2. If the result is empty or shows "No records found", politely inform the user that no matching records were found.
3. Be concise and friendly in your response.
4. Use natural language to explain the data (e.g., "You spent ¥150.00 on food this month" instead of just "Total: 150.00").
5. If the result contains a list of transactions, summarize the key information rather than listing every single item.
6. Respond in the same language as the user's question (Chinese if the question is in Chinese, English if in English).

**Important:**
- Do NOT make up data that is not in the database result.
- Do NOT provide financial advice beyond what the data shows.
- Keep your response brief and to the point."""


def _default_account(accounts: Sequence[str]) -> str:
    for name in accounts:
        if "现金" in name or "cash" in name.lower():
            return name
    return accounts[0] if accounts else "Cash"


def build_transaction_prompt(
    today: date,
    categories: Sequence[str],
    accounts: Sequence[str],
) -> str:
    """
    System prompt for recording a transaction from free text.

    Falls back to an "Others" category and a cash account when the
    user does not name one, but only if such entries exist.
    """
    today_str = today.strftime("%Y-%m-%d")
    yesterday_str = (today - timedelta(days=1)).strftime("%Y-%m-%d")

    has_others = any("其他" in c or "other" in c.lower() for c in categories)
    category_fallback = "use the 'Others' category" if has_others else "return null"
    default_account = _default_account(accounts)

    return f"""You are a bookkeeping assistant. Extract transaction details from the user's input.

**Category Matching:**
Map the input to the closest match in this list: [{", ".join(categories)}]
If unsure or no match found, {category_fallback}.
You must select from the provided list only. Do not create new categories.

**Account Matching:**
Map to this list: [{", ".join(accounts)}]
If the user does not specify an account, default to "{default_account}".
You must select from the provided list only. Do not create new accounts.

**Time Handling:**
Today is {today_str}.
- If user says "yesterday" or "昨天", the date is {yesterday_str}
- If user says "today" or "今天", use {today_str}
- If user says "7 days ago" or "一周前", calculate accordingly
- Return date in ISO8601 format (YYYY-MM-DD) or relative offset like "-1d" for yesterday, "-7d" for 7 days ago
- If no date is mentioned, return null

**Output Format:**
Return ONLY raw JSON. No markdown, no explanations, no code blocks, no backticks.

**Required JSON Structure:**
{{
    "amount": <number>,
    "category_name": "<string or null>",
    "account_name": "<string or null>",
    "note": "<string or null>",
    "date": "<ISO8601 date string or relative offset like '-1d' or null>"
}}

**Example Input:** "Yesterday I spent 50 yuan on lunch"
**Example Output:** {{"amount": 50.0, "category_name": "餐饮", "account_name": "{default_account}", "note": "Lunch", "date": "-1d"}}

**Example Input:** "今天打车花了30块，用微信支付"
**Example Output:** {{"amount": 30.0, "category_name": "出租车", "account_name": "微信支付", "note": "打车", "date": "{today_str}"}}

**Important Rules:**
1. amount is REQUIRED and must be a number
2. category_name must be from the provided list or null
3. account_name must be from the provided list or "{default_account}" if unspecified
4. note is optional, extract meaningful description from input
5. date must be ISO8601 format (YYYY-MM-DD) or relative offset (-Nd for N days ago)
6. Return ONLY the JSON object, nothing else"""
