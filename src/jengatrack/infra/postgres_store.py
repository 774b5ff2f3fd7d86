"""PostgreSQL implementation of ProjectStore.

Uses raw SQL with psycopg2 (no ORM). Every operation runs in its own short
transaction; nothing spans several mutations.
"""

from datetime import date, datetime
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
from jengatrack.infra.db import as_json, fetchall, fetchone, txn
from jengatrack.infra.store import normalize_phone
from jengatrack.infra.time import utc_now

# Columns of whatsapp_messages that update_audit_message may touch
_AUDIT_UPDATABLE = frozenset(
    {"intent", "processed", "ai_used", "error_message", "processed_at"}
)

_AUDIT_COLUMNS = (
    "id, user_id, whatsapp_message_id, direction, message_body, media_url, intent, "
    "processed, ai_used, error_message, received_at, processed_at"
)


def _audit_from_row(row: tuple[Any, ...]) -> AuditMessage:
    return AuditMessage(
        id=str(row[0]),
        user_id=str(row[1]) if row[1] is not None else None,
        whatsapp_message_id=row[2],
        direction=row[3],
        message_body=row[4],
        media_url=row[5],
        intent=row[6],
        processed=bool(row[7]),
        ai_used=bool(row[8]),
        error_message=row[9],
        received_at=row[10],
        processed_at=row[11],
    )


class PostgresProjectStore:
    """ProjectStore over the dashboard's Postgres schema."""

    # ── Profiles ─────────────────────────────────────────────────────────────

    def get_user_by_phone_number(self, phone: str) -> Profile | None:
        number = normalize_phone(phone)
        with txn() as cur:
            row = fetchone(
                cur,
                """
                SELECT id, whatsapp_number, full_name, default_currency
                FROM profiles
                WHERE whatsapp_number = %s AND deleted_at IS NULL
                """,
                (number,),
            )
        if row is None:
            return None
        return Profile(
            id=str(row[0]),
            whatsapp_number=row[1],
            full_name=row[2],
            default_currency=row[3] or "UGX",
        )

    def create_user_profile(self, phone: str) -> Profile:
        """Auto-provision a profile and seed its default expense categories."""
        number = normalize_phone(phone)
        full_name = f"User {number[-4:]}"
        now = utc_now()
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO profiles (whatsapp_number, full_name, default_currency,
                                      preferred_language, created_at, updated_at)
                VALUES (%s, %s, 'UGX', 'en', %s, %s)
                RETURNING id
                """,
                (number, full_name, now, now),
            )
            user_id = str(cur.fetchone()[0])
            for name in DEFAULT_CATEGORY_NAMES:
                cur.execute(
                    """
                    INSERT INTO expense_categories (user_id, name, created_at)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (user_id, name) DO NOTHING
                    """,
                    (user_id, name, now),
                )
        return Profile(id=user_id, whatsapp_number=number, full_name=full_name)

    # ── Projects ─────────────────────────────────────────────────────────────

    def get_user_default_project(self, user_id: str) -> Project | None:
        """Most recently updated active project of the user."""
        with txn() as cur:
            row = fetchone(
                cur,
                """
                SELECT id, user_id, name, budget_amount, status
                FROM projects
                WHERE user_id = %s AND status = 'active' AND deleted_at IS NULL
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (user_id,),
            )
        if row is None:
            return None
        return Project(
            id=str(row[0]),
            user_id=str(row[1]),
            name=row[2],
            budget_amount=row[3] if row[3] is not None else Decimal("0"),
            status=row[4],
        )

    def update_project_budget(self, project_id: str, amount: Decimal) -> None:
        with txn() as cur:
            cur.execute(
                "UPDATE projects SET budget_amount = %s, updated_at = %s WHERE id = %s",
                (amount, utc_now(), project_id),
            )

    def create_project_from_onboarding(self, user_id: str, data: OnboardingData) -> str:
        now = utc_now()
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO projects (user_id, name, description, budget_amount, status,
                                      created_at, updated_at)
                VALUES (%s, %s, %s, %s, 'active', %s, %s)
                RETURNING id
                """,
                (
                    user_id,
                    project_name_from(data),
                    "Project created via WhatsApp onboarding",
                    data.budget or Decimal("0"),
                    now,
                    now,
                ),
            )
            return str(cur.fetchone()[0])

    # ── Ledger writes ────────────────────────────────────────────────────────

    def insert_expense(self, expense: Expense) -> Expense:
        now = utc_now()
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO expenses (user_id, project_id, category_id, description, amount,
                                      currency, source, expense_date, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    expense.user_id,
                    expense.project_id,
                    expense.category_id,
                    expense.description,
                    expense.amount,
                    expense.currency,
                    expense.source,
                    expense.expense_date or now.date(),
                    now,
                    now,
                ),
            )
            expense.id = str(cur.fetchone()[0])
        return expense

    def insert_task(self, task: Task) -> Task:
        now = utc_now()
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO tasks (user_id, project_id, title, description, status, priority,
                                   created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    task.user_id,
                    task.project_id,
                    task.title,
                    task.description,
                    task.status,
                    task.priority,
                    now,
                    now,
                ),
            )
            task.id = str(cur.fetchone()[0])
        return task

    def insert_image(self, image: Image) -> Image:
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO images (user_id, project_id, expense_id, storage_path, file_name,
                                    mime_type, caption, source, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    image.user_id,
                    image.project_id,
                    image.expense_id,
                    image.storage_path,
                    image.file_name,
                    image.mime_type,
                    image.caption,
                    image.source,
                    utc_now(),
                ),
            )
            image.id = str(cur.fetchone()[0])
        return image

    def find_category_by_keyword(self, user_id: str, text: str) -> str | None:
        with txn() as cur:
            rows = fetchall(
                cur,
                """
                SELECT id, user_id, name FROM expense_categories
                WHERE user_id = %s AND deleted_at IS NULL
                ORDER BY created_at, name
                """,
                (user_id,),
            )
        categories = [ExpenseCategory(id=str(r[0]), user_id=str(r[1]), name=r[2]) for r in rows]
        return match_category(categories, text)

    # ── Ledger reads ─────────────────────────────────────────────────────────

    def list_expense_amounts(self, project_id: str, since: date | None = None) -> list[Decimal]:
        query = """
            SELECT amount FROM expenses
            WHERE project_id = %s AND deleted_at IS NULL
        """
        params: list[Any] = [project_id]
        if since is not None:
            query += " AND expense_date >= %s"
            params.append(since)
        with txn() as cur:
            rows = fetchall(cur, query, params)
        return [Decimal(row[0]) for row in rows]

    def count_expenses(self, project_id: str) -> int:
        with txn() as cur:
            row = fetchone(
                cur,
                "SELECT COUNT(*) FROM expenses WHERE project_id = %s AND deleted_at IS NULL",
                (project_id,),
            )
        return int(row[0]) if row else 0

    def count_pending_tasks(self, user_id: str, project_id: str) -> int:
        with txn() as cur:
            row = fetchone(
                cur,
                """
                SELECT COUNT(*) FROM tasks
                WHERE user_id = %s AND project_id = %s AND status = 'pending'
                  AND deleted_at IS NULL
                """,
                (user_id, project_id),
            )
        return int(row[0]) if row else 0

    def top_categories(self, project_id: str, limit: int = 3) -> list[CategoryTotal]:
        with txn() as cur:
            rows = fetchall(
                cur,
                """
                SELECT COALESCE(c.name, 'Uncategorized') AS name, SUM(e.amount) AS total
                FROM expenses e
                LEFT JOIN expense_categories c ON c.id = e.category_id
                WHERE e.project_id = %s AND e.deleted_at IS NULL
                GROUP BY COALESCE(c.name, 'Uncategorized')
                ORDER BY total DESC
                LIMIT %s
                """,
                (project_id, limit),
            )
        return [CategoryTotal(name=row[0], total=Decimal(row[1])) for row in rows]

    # ── Audit trail ──────────────────────────────────────────────────────────

    def log_audit_message(self, message: AuditMessage) -> AuditMessage:
        received_at = message.received_at or utc_now()
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO whatsapp_messages (user_id, whatsapp_message_id, direction,
                                               message_body, media_url, intent, processed,
                                               ai_used, error_message, received_at,
                                               processed_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    message.user_id,
                    message.whatsapp_message_id,
                    message.direction,
                    message.message_body,
                    message.media_url,
                    message.intent,
                    message.processed,
                    message.ai_used,
                    message.error_message,
                    received_at,
                    message.processed_at,
                ),
            )
            message.id = str(cur.fetchone()[0])
        message.received_at = received_at
        return message

    def update_audit_message(self, message_id: str, **fields: Any) -> None:
        unknown = set(fields) - _AUDIT_UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update audit columns: {sorted(unknown)}")
        if not fields:
            return
        columns = sorted(fields)
        assignments = ", ".join(f"{column} = %s" for column in columns)
        with txn() as cur:
            cur.execute(
                f"UPDATE whatsapp_messages SET {assignments} WHERE id = %s",
                [fields[column] for column in columns] + [message_id],
            )

    def list_audit_messages(self, limit: int = 50, user_id: str | None = None) -> list[AuditMessage]:
        query = f"SELECT {_AUDIT_COLUMNS} FROM whatsapp_messages"
        params: list[Any] = []
        if user_id is not None:
            query += " WHERE user_id = %s"
            params.append(user_id)
        query += " ORDER BY received_at DESC LIMIT %s"
        params.append(limit)
        with txn() as cur:
            rows = fetchall(cur, query, params)
        return [_audit_from_row(row) for row in rows]

    # ── Onboarding ───────────────────────────────────────────────────────────

    def read_onboarding_state(self, user_id: str) -> OnboardingRecord:
        with txn() as cur:
            row = fetchone(
                cur,
                """
                SELECT onboarding_state, onboarding_data, onboarding_completed_at
                FROM profiles WHERE id = %s
                """,
                (user_id,),
            )
        if row is None:
            return OnboardingRecord()
        return OnboardingRecord(
            state=OnboardingState.parse(row[0]),
            data=OnboardingData.from_dict(row[1]),
            completed_at=row[2],
        )

    def write_onboarding_state(
        self,
        user_id: str,
        state: OnboardingState | None,
        data: OnboardingData,
        completed_at: datetime | None = None,
    ) -> None:
        # completed_at is never cleared once set
        with txn() as cur:
            cur.execute(
                """
                UPDATE profiles
                SET onboarding_state = %s,
                    onboarding_data = %s,
                    onboarding_completed_at = COALESCE(onboarding_completed_at, %s),
                    updated_at = %s
                WHERE id = %s
                """,
                (
                    state.value if state is not None else None,
                    as_json(data.to_dict()),
                    completed_at,
                    utc_now(),
                    user_id,
                ),
            )
