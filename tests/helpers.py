"""Shared test helpers for JengaTrack tests.

Plain classes and functions (NOT fixtures) importable by conftest.py and the
test modules: an in-memory ProjectStore, a recording MessageSender and a log
recorder.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from jengatrack.domain.categories import DEFAULT_CATEGORY_NAMES, match_category
from jengatrack.domain.onboarding import (
    OnboardingData,
    OnboardingRecord,
    OnboardingState,
    project_name_from,
)
from jengatrack.domain.records import (
    AuditMessage,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    Image,
    Profile,
    Project,
    Task,
)
from jengatrack.infra.store import normalize_phone
from jengatrack.infra.time import utc_today
from jengatrack.whatsapp.outbound import SendResult

TEST_PHONE = "whatsapp:+256700000001"


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryProjectStore:
    """ProjectStore double. `fail_on` names methods that raise RuntimeError."""

    def __init__(self):
        self.profiles: dict[str, Profile] = {}
        self.projects: dict[str, Project] = {}
        self.categories: list[ExpenseCategory] = []
        self.expenses: list[Expense] = []
        self.tasks: list[Task] = []
        self.images: list[Image] = []
        self.audit: list[AuditMessage] = []
        self.onboarding: dict[str, OnboardingRecord] = {}
        self.fail_on: set[str] = set()

    def _check(self, name: str) -> None:
        if name in self.fail_on:
            raise RuntimeError(f"{name} unavailable")

    # Seeding -----------------------------------------------------------------

    def add_profile(self, phone: str = TEST_PHONE, onboarded: bool = True) -> Profile:
        profile = Profile(id=_new_id(), whatsapp_number=normalize_phone(phone), full_name="Test User")
        self.profiles[profile.id] = profile
        for name in DEFAULT_CATEGORY_NAMES:
            self.categories.append(ExpenseCategory(id=_new_id(), user_id=profile.id, name=name))
        if onboarded:
            self.onboarding[profile.id] = OnboardingRecord(
                state=OnboardingState.COMPLETED,
                completed_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            )
        return profile

    def add_project(self, user_id: str, name: str = "Kira House", budget: str = "0") -> Project:
        project = Project(id=_new_id(), user_id=user_id, name=name, budget_amount=Decimal(budget))
        self.projects[project.id] = project
        return project

    def add_expense(self, user_id: str, project_id: str, amount: str, description: str = "cement") -> None:
        self.expenses.append(
            Expense(
                id=_new_id(),
                user_id=user_id,
                project_id=project_id,
                description=description,
                amount=Decimal(amount),
                expense_date=utc_today(),
            )
        )

    def category_name(self, category_id: str | None) -> str | None:
        for category in self.categories:
            if category.id == category_id:
                return category.name
        return None

    def inbound_rows(self) -> list[AuditMessage]:
        return [row for row in self.audit if row.direction == "inbound"]

    def outbound_rows(self) -> list[AuditMessage]:
        return [row for row in self.audit if row.direction == "outbound"]

    # ProjectStore --------------------------------------------------------------

    def get_user_by_phone_number(self, phone: str) -> Profile | None:
        self._check("get_user_by_phone_number")
        number = normalize_phone(phone)
        for profile in self.profiles.values():
            if profile.whatsapp_number == number:
                return profile
        return None

    def create_user_profile(self, phone: str) -> Profile:
        self._check("create_user_profile")
        profile = self.add_profile(phone, onboarded=False)
        profile.full_name = f"User {profile.whatsapp_number[-4:]}"
        return profile

    def get_user_default_project(self, user_id: str) -> Project | None:
        self._check("get_user_default_project")
        active = [p for p in self.projects.values() if p.user_id == user_id and p.status == "active"]
        return active[-1] if active else None

    def update_project_budget(self, project_id: str, amount: Decimal) -> None:
        self._check("update_project_budget")
        self.projects[project_id].budget_amount = amount

    def create_project_from_onboarding(self, user_id: str, data: OnboardingData) -> str:
        self._check("create_project_from_onboarding")
        project = self.add_project(user_id, name=project_name_from(data), budget=str(data.budget or 0))
        return project.id

    def insert_expense(self, expense: Expense) -> Expense:
        self._check("insert_expense")
        expense.id = _new_id()
        self.expenses.append(expense)
        return expense

    def insert_task(self, task: Task) -> Task:
        self._check("insert_task")
        task.id = _new_id()
        self.tasks.append(task)
        return task

    def insert_image(self, image: Image) -> Image:
        self._check("insert_image")
        image.id = _new_id()
        self.images.append(image)
        return image

    def find_category_by_keyword(self, user_id: str, text: str) -> str | None:
        self._check("find_category_by_keyword")
        return match_category([c for c in self.categories if c.user_id == user_id], text)

    def list_expense_amounts(self, project_id: str, since: date | None = None) -> list[Decimal]:
        self._check("list_expense_amounts")
        return [
            e.amount
            for e in self.expenses
            if e.project_id == project_id and (since is None or (e.expense_date and e.expense_date >= since))
        ]

    def count_expenses(self, project_id: str) -> int:
        return len([e for e in self.expenses if e.project_id == project_id])

    def count_pending_tasks(self, user_id: str, project_id: str) -> int:
        return len(
            [t for t in self.tasks if t.user_id == user_id and t.project_id == project_id and t.status == "pending"]
        )

    def top_categories(self, project_id: str, limit: int = 3) -> list[CategoryTotal]:
        totals: dict[str, Decimal] = {}
        for expense in self.expenses:
            if expense.project_id != project_id:
                continue
            name = self.category_name(expense.category_id) or "Uncategorized"
            totals[name] = totals.get(name, Decimal("0")) + expense.amount
        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        return [CategoryTotal(name=name, total=total) for name, total in ranked[:limit]]

    def log_audit_message(self, message: AuditMessage) -> AuditMessage:
        self._check("log_audit_message")
        message.id = _new_id()
        message.received_at = message.received_at or datetime.now(timezone.utc)
        self.audit.append(message)
        return message

    def update_audit_message(self, message_id: str, **fields: Any) -> None:
        self._check("update_audit_message")
        for index, row in enumerate(self.audit):
            if row.id == message_id:
                self.audit[index] = replace(row, **fields)
                return
        raise KeyError(message_id)

    def list_audit_messages(self, limit: int = 50, user_id: str | None = None) -> list[AuditMessage]:
        rows = [r for r in self.audit if user_id is None or r.user_id == user_id]
        return list(reversed(rows))[:limit]

    def read_onboarding_state(self, user_id: str) -> OnboardingRecord:
        self._check("read_onboarding_state")
        return self.onboarding.get(user_id, OnboardingRecord())

    def write_onboarding_state(
        self,
        user_id: str,
        state: OnboardingState | None,
        data: OnboardingData,
        completed_at: datetime | None = None,
    ) -> None:
        self._check("write_onboarding_state")
        previous = self.onboarding.get(user_id, OnboardingRecord())
        self.onboarding[user_id] = OnboardingRecord(
            state=state,
            data=data,
            completed_at=previous.completed_at or completed_at,
        )


class FakeSender:
    """MessageSender double that records every send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    def send(self, to: str, text: str) -> SendResult:
        self.sent.append((to, text))
        if self.fail:
            return SendResult(success=False, error="twilio unavailable")
        return SendResult(success=True, provider_message_id=f"SM{len(self.sent):04d}")

    @property
    def last_text(self) -> str:
        return self.sent[-1][1]


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        parts = []
        for _, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)

    def messages(self) -> list[str]:
        return [args[0] for _, args, _ in self.calls if args]
