"""Project store interface consumed by the message pipeline.

The dashboard owns the schema; the pipeline only needs these operations.
`PostgresProjectStore` (infra.postgres_store) is the production implementation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol

from jengatrack.domain.onboarding import OnboardingData, OnboardingRecord, OnboardingState
from jengatrack.domain.records import (
    AuditMessage,
    CategoryTotal,
    Expense,
    Image,
    Profile,
    Project,
    Task,
)


class ProjectStore(Protocol):
    # Profiles
    def get_user_by_phone_number(self, phone: str) -> Profile | None: ...

    def create_user_profile(self, phone: str) -> Profile: ...

    # Projects
    def get_user_default_project(self, user_id: str) -> Project | None: ...

    def update_project_budget(self, project_id: str, amount: Decimal) -> None: ...

    def create_project_from_onboarding(self, user_id: str, data: OnboardingData) -> str: ...

    # Ledger writes
    def insert_expense(self, expense: Expense) -> Expense: ...

    def insert_task(self, task: Task) -> Task: ...

    def insert_image(self, image: Image) -> Image: ...

    def find_category_by_keyword(self, user_id: str, text: str) -> str | None: ...

    # Ledger reads
    def list_expense_amounts(
        self, project_id: str, since: date | None = None
    ) -> list[Decimal]: ...

    def count_expenses(self, project_id: str) -> int: ...

    def count_pending_tasks(self, user_id: str, project_id: str) -> int: ...

    def top_categories(self, project_id: str, limit: int = 3) -> list[CategoryTotal]: ...

    # Audit trail
    def log_audit_message(self, message: AuditMessage) -> AuditMessage: ...

    def update_audit_message(self, message_id: str, **fields: Any) -> None: ...

    def list_audit_messages(
        self, limit: int = 50, user_id: str | None = None
    ) -> list[AuditMessage]: ...

    # Onboarding
    def read_onboarding_state(self, user_id: str) -> OnboardingRecord: ...

    def write_onboarding_state(
        self,
        user_id: str,
        state: OnboardingState | None,
        data: OnboardingData,
        completed_at: datetime | None = None,
    ) -> None: ...


def normalize_phone(phone: str) -> str:
    """Strip the channel prefix and ensure a leading '+'."""
    number = phone.strip()
    if ":" in number:
        number = number.split(":", 1)[1]
    number = number.strip()
    return number if number.startswith("+") else f"+{number}"
