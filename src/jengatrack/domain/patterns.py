"""Ordered matching rules per intent family (English and Luganda).

Each family is a tuple of rules evaluated first-match-wins. Families are
tried in the order of INTENT_FAMILIES; there is no scoring across families.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from jengatrack.domain.intents import IntentKind

# Amount with optional thousands separators and up to 2 decimals
AMOUNT = r"(\d+(?:,\d{3})*(?:\.\d{2})?)"

MAX_DESCRIPTION_LENGTH = 255

SUPPORTED_CURRENCIES = ("UGX", "USH", "KSH", "TZS", "USD", "EUR", "GBP")
DEFAULT_CURRENCY = "UGX"

_CURRENCY_PATTERN = re.compile(rf"\b({'|'.join(SUPPORTED_CURRENCIES)})\b", re.IGNORECASE)
_AMOUNT_PATTERN = re.compile(AMOUNT)


def parse_amount(raw: str) -> Decimal:
    """Parse '1,000.50' style amounts. Negative or non-numeric yields 0."""
    try:
        amount = Decimal(raw.replace(",", ""))
    except (InvalidOperation, AttributeError):
        return Decimal("0")
    if not amount.is_finite() or amount < 0:
        return Decimal("0")
    return amount


def clean_description(text: str) -> str:
    """Collapse whitespace, drop one trailing ',' or '.', cap length."""
    cleaned = re.sub(r"\s+", " ", text.strip())
    cleaned = re.sub(r"[,.]$", "", cleaned)
    return cleaned[:MAX_DESCRIPTION_LENGTH].strip()


def extract_currency(text: str) -> str | None:
    match = _CURRENCY_PATTERN.search(text)
    return match.group(1).upper() if match else None


def has_numeric_amount(text: str) -> bool:
    return _AMOUNT_PATTERN.search(text) is not None


def find_amount(text: str) -> re.Match[str] | None:
    """First amount-looking token in text."""
    return _AMOUNT_PATTERN.search(text)


Extractor = Callable[[re.Match[str]], dict[str, Any]]


@dataclass(frozen=True)
class Rule:
    """One (matcher, extractor) pair with a fixed confidence."""

    name: str
    pattern: re.Pattern[str]
    extract: Extractor
    confidence: float

    def apply(self, text: str) -> dict[str, Any] | None:
        match = self.pattern.search(text)
        if match is None:
            return None
        return self.extract(match)


def _rule(name: str, pattern: str, extract: Extractor, confidence: float) -> Rule:
    return Rule(name, re.compile(pattern, re.IGNORECASE), extract, confidence)


def _amount_then_description(match: re.Match[str]) -> dict[str, Any]:
    return {
        "amount": parse_amount(match.group(1)),
        "description": clean_description(match.group(2)),
    }


def _description_then_amount(match: re.Match[str]) -> dict[str, Any]:
    return {
        "amount": parse_amount(match.group(2)),
        "description": clean_description(match.group(1)),
    }


def _amount_optional_description(match: re.Match[str]) -> dict[str, Any]:
    description = match.group(2)
    return {
        "amount": parse_amount(match.group(1)),
        "description": clean_description(description) if description else "Expense",
    }


def _title(match: re.Match[str]) -> dict[str, Any]:
    return {"title": clean_description(match.group(1))}


def _urgent_title(match: re.Match[str]) -> dict[str, Any]:
    return {"title": clean_description(match.group(1)), "priority": "high"}


def _budget_amount(match: re.Match[str]) -> dict[str, Any]:
    return {"amount": parse_amount(match.group(1))}


def _no_fields(match: re.Match[str]) -> dict[str, Any]:
    return {}


# Keyword rules first; the generic leading-number/leading-word shapes would
# otherwise swallow "nimaze 300 ku sand" and friends.
EXPENSE_RULES: tuple[Rule, ...] = (
    # "spent 500 on cement", "paid 200 for bricks"
    _rule(
        "spent_on",
        rf"(?:spent|paid|used)\s+{AMOUNT}\s+(?:on|for)\s+(.+)",
        _amount_then_description,
        0.95,
    ),
    # "bought sand 150", "purchased cement for 500"
    _rule(
        "bought_for",
        rf"(?:bought|purchased)\s+(.+?)\s+(?:for\s+)?{AMOUNT}",
        _description_then_amount,
        0.95,
    ),
    # Luganda: "nimaze 300 ku sand" (I spent 300 on sand)
    _rule(
        "lg_spent_on",
        rf"(?:nimaze|nasasudde)\s+{AMOUNT}\s+(?:ku|pa)\s+(.+)",
        _amount_then_description,
        0.95,
    ),
    # Luganda: "naguze cement 500" (I bought cement 500)
    _rule(
        "lg_bought",
        rf"(?:naguze|natundidde)\s+(.+?)\s+{AMOUNT}",
        _description_then_amount,
        0.95,
    ),
    # Luganda: "omaze 500" (you spent 500)
    _rule(
        "lg_you_spent",
        rf"(?:omaze|wasasudde)\s+{AMOUNT}\s*(?:ku\s+)?(.+)?",
        _amount_optional_description,
        0.90,
    ),
    # "500 for cement", "200 bricks"
    _rule("leading_number", rf"^{AMOUNT}\s+(?:for\s+)?(.+)", _amount_then_description, 0.85),
    # "cement 500 bags", "sand 200"; budget phrasing belongs to BUDGET_RULES
    _rule(
        "leading_word",
        rf"^(?!.*\bbudget\b)([a-z\s]+?)\s+{AMOUNT}",
        _description_then_amount,
        0.80,
    ),
)

TASK_RULES: tuple[Rule, ...] = (
    _rule("task_prefix", r"(?:add\s+)?task\s*:\s*(.+)", _title, 0.95),
    _rule("todo_prefix", r"(?:todo|to\s+do)\s*:\s*(.+)", _title, 0.95),
    _rule("remind_me", r"(?:remind\s+me\s+to|need\s+to|have\s+to)\s+(.+)", _title, 0.90),
    _rule("urgent_prefix", r"(?:urgent|important|priority)\s*:\s*(.+)", _urgent_title, 0.95),
)

BUDGET_RULES: tuple[Rule, ...] = (
    _rule("set_budget", rf"(?:set\s+)?budget(?:\s+is)?\s+{AMOUNT}", _budget_amount, 0.95),
    _rule("my_budget", rf"(?:my|project)\s+budget\s+(?:is\s+)?{AMOUNT}", _budget_amount, 0.95),
    # Luganda: "budget yange 5000000"
    _rule("lg_budget", rf"budget\s+(?:yange|yaffe)\s+{AMOUNT}", _budget_amount, 0.90),
)

QUERY_CONFIDENCE = 0.90

QUERY_RULES: tuple[Rule, ...] = tuple(
    _rule(name, pattern, _no_fields, QUERY_CONFIDENCE)
    for name, pattern in (
        ("how_much", r"(?:how\s+much|total|what.*spent|show.*expenses|list.*expenses)"),
        ("report", r"(?:report|summary|balance|remaining)"),
        ("spent_period", r"(?:spent\s+today|spent\s+this\s+week|spent\s+this\s+month)"),
        ("money_left", r"(?:where.*money|how.*much.*left|budget\s+status)"),
        # Luganda: "how much money"
        ("lg_how_much", r"(?:ssente\s+zmeka|omaze\s+meka|ensimbi\s+zmeka)"),
        # Luganda: "report, check"
        ("lg_report", r"(?:lipoota|okebera|balance)"),
    )
)

# Literal family order. Do not reorder: it is the tie-break.
INTENT_FAMILIES: tuple[tuple[IntentKind, tuple[Rule, ...]], ...] = (
    (IntentKind.LOG_EXPENSE, EXPENSE_RULES),
    (IntentKind.CREATE_TASK, TASK_RULES),
    (IntentKind.SET_BUDGET, BUDGET_RULES),
    (IntentKind.QUERY_EXPENSES, QUERY_RULES),
)


def first_match(rules: tuple[Rule, ...], text: str) -> tuple[Rule, dict[str, Any]] | None:
    """Return the first rule that matches text with its extracted fields."""
    for rule in rules:
        fields = rule.apply(text)
        if fields is not None:
            return rule, fields
    return None
