"""Intent parsing result models."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Literal

TaskPriority = Literal["low", "medium", "high"]


class IntentKind(str, Enum):
    """Closed set of message intents."""

    LOG_EXPENSE = "log_expense"
    CREATE_TASK = "create_task"
    SET_BUDGET = "set_budget"
    QUERY_EXPENSES = "query_expenses"
    LOG_IMAGE = "log_image"
    UNKNOWN = "unknown"


@dataclass
class ParsedIntent:
    """Result of classifying one inbound message.

    `intent` is the variant tag; only the fields of that variant are set:
    amount/description/currency (expense), title/priority (task),
    amount (budget), caption/media_url (image). An expense parsed from an
    image caption also keeps media_url.
    """

    intent: IntentKind
    confidence: float
    original_message: str
    amount: Decimal | None = None
    description: str | None = None
    currency: str | None = None
    title: str | None = None
    priority: TaskPriority | None = None
    caption: str | None = None
    media_url: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")
        if self.amount is not None and self.amount < 0:
            raise ValueError("amount must be non-negative")

    @classmethod
    def unknown(cls, original_message: str) -> "ParsedIntent":
        return cls(intent=IntentKind.UNKNOWN, confidence=0.0, original_message=original_message)
