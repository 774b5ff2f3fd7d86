"""Records exchanged with the project store.

Projects, profiles and categories are owned by the dashboard; the pipeline
only reads them and writes expense/task/image/audit rows.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

MessageDirection = Literal["inbound", "outbound"]


@dataclass
class Profile:
    id: str
    whatsapp_number: str
    full_name: str
    default_currency: str = "UGX"


@dataclass
class Project:
    id: str
    user_id: str
    name: str
    budget_amount: Decimal = Decimal("0")
    status: str = "active"


@dataclass
class ExpenseCategory:
    id: str
    user_id: str
    name: str


@dataclass
class Expense:
    user_id: str
    project_id: str
    description: str
    amount: Decimal
    currency: str = "UGX"
    category_id: str | None = None
    source: str = "whatsapp"
    expense_date: date | None = None
    id: str | None = None


@dataclass
class Task:
    user_id: str
    project_id: str
    title: str
    priority: str = "medium"
    status: str = "pending"
    description: str | None = None
    id: str | None = None


@dataclass
class Image:
    user_id: str
    project_id: str | None
    storage_path: str
    file_name: str
    mime_type: str | None = None
    caption: str | None = None
    expense_id: str | None = None
    source: str = "whatsapp"
    id: str | None = None


@dataclass
class AuditMessage:
    """One row of the WhatsApp message audit trail.

    Written once per inbound message and once per outbound reply.
    """

    direction: MessageDirection
    user_id: str | None = None
    whatsapp_message_id: str | None = None
    message_body: str | None = None
    media_url: str | None = None
    intent: str | None = None
    processed: bool = False
    ai_used: bool = False
    error_message: str | None = None
    received_at: datetime | None = None
    processed_at: datetime | None = None
    id: str | None = None


@dataclass
class CategoryTotal:
    name: str
    total: Decimal

