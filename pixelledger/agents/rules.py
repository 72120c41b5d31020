"""
Rule-Based Intent Parser

Deterministic fallback used when no LLM is configured (or the user
opted out of sending data to one). It understands the same question
shapes the LLM prompt describes, in English and Chinese, using keyword
rules only.

This is DETERMINISTIC - no LLM involvement. Same text, same clock,
same intent.
"""

import re
from datetime import datetime, time, timedelta
from typing import Optional, Sequence

from pixelledger.models.intent import Operation, QueryIntent


DEFAULT_CHAT_REPLY = (
    "Hi! I'm your PixelLedger assistant. Ask me things like "
    "\"How much did I spend on food this month?\" or \"Show my transactions yesterday.\""
)

# Checked in this order: "多少次" must win over "多少", "how many" over "how much"
_COUNT_PATTERNS = [
    r"\bhow many\b", r"\bcount\b", r"\bnumber of\b",
    r"多少次", r"几次", r"几条", r"多少笔", r"几笔",
]
_LIST_PATTERNS = [
    r"\bshow\b", r"\blist\b", r"\bdisplay\b", r"\bwhat are\b",
    r"\btransactions\b", r"\brecords\b", r"\bdetails\b",
    r"显示", r"列出", r"明细", r"记录", r"看看", r"账单",
]
_SUM_PATTERNS = [
    r"\bhow much\b", r"\btotal\b", r"\bspent\b", r"\bspend\b", r"\bsum\b",
    r"总共", r"一共", r"多少钱", r"花了", r"多少", r"总额", r"合计",
]
_CHAT_PATTERNS = [
    r"\bhi\b", r"\bhello\b", r"\bhey\b", r"\bthanks?\b", r"\bthank you\b",
    r"\bwho are you\b", r"\bhelp\b", r"\brecommend", r"\badvice\b",
    r"你好", r"您好", r"谢谢", r"你是谁", r"建议", r"帮助",
]

# keyword -> canonical default category name
CATEGORY_ALIASES: dict[str, str] = {
    "food": "餐饮", "eat": "餐饮", "eating": "餐饮", "dining": "餐饮",
    "lunch": "餐饮", "dinner": "餐饮", "breakfast": "餐饮", "restaurant": "餐饮",
    "餐": "餐饮", "吃": "餐饮", "饭": "餐饮",
    "snack": "零食", "snacks": "零食",
    "grocery": "杂货", "groceries": "杂货", "supermarket": "杂货", "超市": "杂货",
    "alcohol": "酒精", "beer": "酒精", "wine": "酒精", "酒": "酒精",
    "bus": "公共交通", "subway": "公共交通", "metro": "公共交通", "train": "公共交通",
    "地铁": "公共交通", "公交": "公共交通",
    "taxi": "出租车", "uber": "出租车", "cab": "出租车", "打车": "出租车", "滴滴": "出租车",
    "travel": "旅行", "trip": "旅行", "hotel": "旅行", "旅游": "旅行",
    "clothes": "衣服", "clothing": "衣服", "服装": "衣服",
    "electronics": "电子产品", "phone": "电子产品", "数码": "电子产品",
    "furniture": "家具",
    "rent": "房租/房贷", "mortgage": "房租/房贷", "房租": "房租/房贷", "房贷": "房租/房贷",
    "utilities": "水电费", "electricity": "水电费", "water bill": "水电费", "水电": "水电费",
    "internet": "网络", "wifi": "网络", "broadband": "网络", "网费": "网络",
    "movie": "电影", "movies": "电影", "cinema": "电影",
    "game": "游戏", "games": "游戏", "gaming": "游戏",
    "sport": "运动", "sports": "运动", "gym": "运动", "健身": "运动",
    "pet": "宠物", "pets": "宠物",
    "medical": "医疗", "doctor": "医疗", "hospital": "医疗", "medicine": "医疗",
    "医院": "医疗", "药": "医疗",
    "education": "教育", "course": "教育", "books": "教育", "学费": "教育",
    "social": "社交", "gift": "社交", "gifts": "社交", "礼物": "社交",
    "salary": "工资", "薪水": "工资",
    "bonus": "奖金",
    "investment": "投资", "理财": "投资",
}

ACCOUNT_ALIASES: dict[str, str] = {
    "wechat": "微信支付", "weixin": "微信支付", "微信": "微信支付",
    "alipay": "支付宝",
    "bank card": "银行卡", "debit card": "银行卡", "debit": "银行卡", "银行": "银行卡",
    "cash": "现金",
    "credit card": "信用卡/花呗", "credit": "信用卡/花呗", "huabei": "信用卡/花呗",
    "花呗": "信用卡/花呗", "信用卡": "信用卡/花呗",
}

_MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4,
    "may": 5, "june": 6, "july": 7, "august": 8,
    "september": 9, "october": 10, "november": 11, "december": 12,
}

# Also English words; only read as months next to a preposition, day or year
_CONTEXT_ONLY_MONTHS = {"may"}
_MONTH_CONTEXT = (
    r"\b(?:in|during|for|of|on|since|from|until|till|through|before|after)\s+{name}\b"
    r"|\b{name}\s+(?:\d{{1,2}}(?:st|nd|rd|th)?|20\d{{2}})\b"
)


def _matches_any(text: str, patterns: list[str]) -> bool:
    return any(re.search(p, text) for p in patterns)


def _day_start(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def _day_end(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)


def _month_range(year: int, month: int) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1)
    if month == 12:
        next_start = datetime(year + 1, 1, 1)
    else:
        next_start = datetime(year, month + 1, 1)
    return start, _day_end(next_start - timedelta(days=1))


def _contains_keyword(text: str, keyword: str) -> bool:
    """ASCII keywords match whole words; CJK keywords match anywhere."""
    if keyword.isascii():
        return re.search(rf"\b{re.escape(keyword)}\b", text) is not None
    return keyword in text


class RuleBasedIntentParser:
    """
    Keyword classifier producing the same QueryIntent the LLM would.

    Time phrases with no explicit mention default to the current month,
    matching the LLM prompt's rule.
    """

    def parse(
        self,
        text: str,
        categories: Sequence[str] = (),
        accounts: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> QueryIntent:
        now = now or datetime.now()
        lowered = text.strip().lower()

        category = self.match_name(lowered, categories, CATEGORY_ALIASES)
        account = self.match_name(lowered, accounts, ACCOUNT_ALIASES)
        operation = self.classify_operation(lowered)

        if operation == Operation.UNKNOWN and (category or account):
            # "餐饮 this month?" - a bare filter reads as a total
            operation = Operation.SUM

        if operation == Operation.CHAT:
            return QueryIntent(operation=Operation.CHAT, chat_response=DEFAULT_CHAT_REPLY)
        if operation == Operation.UNKNOWN:
            return QueryIntent(operation=Operation.UNKNOWN)

        start, end = self.resolve_time_reference(lowered, now)
        return QueryIntent(
            operation=operation,
            start_date=start,
            end_date=end,
            category_name=category,
            account_name=account,
        )

    def classify_operation(self, text: str) -> Operation:
        if _matches_any(text, _COUNT_PATTERNS):
            return Operation.COUNT
        if _matches_any(text, _LIST_PATTERNS):
            return Operation.LIST
        if _matches_any(text, _SUM_PATTERNS):
            return Operation.SUM
        if _matches_any(text, _CHAT_PATTERNS):
            return Operation.CHAT
        return Operation.UNKNOWN

    def match_name(
        self,
        text: str,
        names: Sequence[str],
        aliases: dict[str, str],
    ) -> Optional[str]:
        """
        Find which of `names` the text refers to.

        Tries, in order: the full name appearing in the text (longest
        first, so "其他收入" beats "其他"), then alias keywords whose
        target is one of the names.
        """
        for name in sorted(names, key=len, reverse=True):
            if name and _contains_keyword(text, name.lower()):
                return name

        available = set(names)
        for keyword in sorted(aliases, key=len, reverse=True):
            target = aliases[keyword]
            if target in available and _contains_keyword(text, keyword):
                return target

        return None

    def resolve_time_reference(
        self,
        text: str,
        now: datetime,
    ) -> tuple[datetime, datetime]:
        """
        Convert a natural language time reference to an inclusive range.

        Open-ended periods (today, this week, this month, this year) end now.
        """
        today_start = _day_start(now)

        if re.search(r"\btoday\b|今天|今日", text):
            return today_start, now

        if re.search(r"\byesterday\b|昨天|昨日", text):
            yesterday = now - timedelta(days=1)
            return _day_start(yesterday), _day_end(yesterday)

        match = re.search(r"\b(?:last|past)\s+(\d+)\s+days?\b|(?:最近|过去|近)\s*(\d+)\s*天", text)
        if match:
            days = int(match.group(1) or match.group(2))
            return now - timedelta(days=days), now

        if re.search(r"\blast week\b|上周|上个星期|上星期", text):
            this_monday = today_start - timedelta(days=now.weekday())
            last_monday = this_monday - timedelta(days=7)
            return last_monday, this_monday - timedelta(microseconds=1)

        if re.search(r"\bthis week\b|本周|这周|这个星期|这星期", text):
            return today_start - timedelta(days=now.weekday()), now

        if re.search(r"\b(?:last|previous) month\b|上个月|上月", text):
            first_of_this_month = today_start.replace(day=1)
            last_month_end = first_of_this_month - timedelta(days=1)
            return _month_range(last_month_end.year, last_month_end.month)

        if re.search(r"\b(?:last|previous) year\b|去年", text):
            year = now.year - 1
            return datetime(year, 1, 1), _day_end(datetime(year, 12, 31))

        if re.search(r"\b(?:this|current) year\b|今年", text):
            return datetime(now.year, 1, 1), now

        year_match = re.search(r"\b(20\d{2})\b|(20\d{2})年", text)
        year = int(year_match.group(1) or year_match.group(2)) if year_match else None

        month = None
        cn_month = re.search(r"(?<!\d)(1[0-2]|[1-9])月", text)
        if cn_month:
            month = int(cn_month.group(1))
        else:
            for month_name, month_num in _MONTHS.items():
                if month_name in _CONTEXT_ONLY_MONTHS:
                    pattern = _MONTH_CONTEXT.format(name=month_name)
                else:
                    pattern = rf"\b{month_name}\b"
                if re.search(pattern, text):
                    month = month_num
                    break

        if month is not None:
            if year is None:
                # Assume current year unless that month is still ahead
                year = now.year if month <= now.month else now.year - 1
            return _month_range(year, month)

        if year is not None:
            return datetime(year, 1, 1), _day_end(datetime(year, 12, 31))

        # this month, or nothing said
        return today_start.replace(day=1), now
