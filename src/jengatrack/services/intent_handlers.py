"""Intent dispatch and per-intent handlers.

Every handler receives the user's default active project, resolved once by
`dispatch`. Without one, the user gets the fixed no-active-project reply and
nothing is written.

Handler exceptions never escape `dispatch`: the user gets a generic apology
and the error text is returned for the audit trail.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from jengatrack.domain.budget import compute_budget_snapshot
from jengatrack.domain.confidence import is_valid_intent, meets_threshold
from jengatrack.domain.intents import IntentKind, ParsedIntent
from jengatrack.domain.records import Expense, Image, Project, Task
from jengatrack.infra.store import ProjectStore
from jengatrack.infra.time import utc_today
from jengatrack.observability.logging import get_logger
from jengatrack.observability.redaction import safe_log_context
from jengatrack.whatsapp.templates import (
    format_amount,
    format_percent,
    get_dashboard_url,
    help_text,
    render,
)

logger = get_logger(__name__)

DEFAULT_IMAGE_FILE_NAME = "whatsapp-image.jpg"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"
TOP_CATEGORY_COUNT = 3


@dataclass(frozen=True)
class DispatchOutcome:
    reply: str
    error: str | None = None


@dataclass(frozen=True)
class HandlerContext:
    user_id: str
    project: Project
    store: ProjectStore
    media_content_type: str | None = None


def _image_file_name(media_url: str) -> str:
    return media_url.rstrip("/").rsplit("/", 1)[-1] or DEFAULT_IMAGE_FILE_NAME


def _store_image(
    ctx: HandlerContext,
    media_url: str,
    caption: str | None,
    expense_id: str | None = None,
) -> Image:
    return ctx.store.insert_image(
        Image(
            user_id=ctx.user_id,
            project_id=ctx.project.id,
            storage_path=media_url,
            file_name=_image_file_name(media_url),
            mime_type=ctx.media_content_type or DEFAULT_IMAGE_MIME_TYPE,
            caption=caption or None,
            expense_id=expense_id,
        )
    )


def _category_for(ctx: HandlerContext, description: str) -> str | None:
    """Best effort: a failing lookup logs and leaves the expense uncategorised."""
    try:
        return ctx.store.find_category_by_keyword(ctx.user_id, description)
    except Exception as exc:
        logger.warning(
            "category lookup failed",
            extra={"extra_fields": safe_log_context(error_type=type(exc).__name__)},
        )
        return None


def handle_log_expense(parsed: ParsedIntent, ctx: HandlerContext) -> str:
    description = parsed.description or "Expense"
    currency = parsed.currency or "UGX"
    today = utc_today()

    expense = ctx.store.insert_expense(
        Expense(
            user_id=ctx.user_id,
            project_id=ctx.project.id,
            description=description,
            amount=parsed.amount,
            currency=currency,
            category_id=_category_for(ctx, description),
            expense_date=today,
        )
    )

    if parsed.media_url:
        _store_image(ctx, parsed.media_url, parsed.original_message, expense_id=expense.id)

    today_total = sum(ctx.store.list_expense_amounts(ctx.project.id, since=today), Decimal("0"))
    snapshot = compute_budget_snapshot(ctx.project, ctx.store.list_expense_amounts(ctx.project.id))

    return render(
        "expense_logged",
        {
            "description": description,
            "amount": format_amount(parsed.amount, currency),
            "project_name": ctx.project.name,
            "today_total": format_amount(today_total),
            "remaining": format_amount(snapshot.remaining),
            "percent_used": format_percent(snapshot.percent_used),
        },
    )


def handle_create_task(parsed: ParsedIntent, ctx: HandlerContext) -> str:
    priority = parsed.priority or "medium"
    task = ctx.store.insert_task(
        Task(
            user_id=ctx.user_id,
            project_id=ctx.project.id,
            title=parsed.title,
            priority=priority,
        )
    )
    pending = ctx.store.count_pending_tasks(ctx.user_id, ctx.project.id)

    return render(
        "task_added",
        {
            "title": task.title,
            "project_name": ctx.project.name,
            "priority": priority.upper(),
            "pending_count": pending,
        },
    )


def handle_set_budget(parsed: ParsedIntent, ctx: HandlerContext) -> str:
    ctx.store.update_project_budget(ctx.project.id, parsed.amount)
    snapshot = compute_budget_snapshot(
        ctx.project,
        ctx.store.list_expense_amounts(ctx.project.id),
        budget=parsed.amount,
    )

    return render(
        "budget_updated",
        {
            "project_name": ctx.project.name,
            "budget": format_amount(snapshot.budget),
            "spent": format_amount(snapshot.spent),
            "remaining": format_amount(snapshot.remaining),
            "percent_used": format_percent(snapshot.percent_used),
        },
    )


def handle_query_expenses(parsed: ParsedIntent, ctx: HandlerContext) -> str:
    snapshot = compute_budget_snapshot(ctx.project, ctx.store.list_expense_amounts(ctx.project.id))
    expense_count = ctx.store.count_expenses(ctx.project.id)

    reply = render(
        "expense_report",
        {
            "project_name": ctx.project.name,
            "budget": format_amount(snapshot.budget),
            "spent": format_amount(snapshot.spent),
            "percent_used": format_percent(snapshot.percent_used),
            "remaining": format_amount(snapshot.remaining),
            "expense_count": expense_count,
        },
    )

    top = ctx.store.top_categories(ctx.project.id, limit=TOP_CATEGORY_COUNT)
    if top:
        lines = [f"{index}. {row.name}: {format_amount(row.total)}" for index, row in enumerate(top, start=1)]
        reply += "\n\n🏆 *Top Categories:*\n" + "\n".join(lines)

    if snapshot.over_budget:
        reply += "\n\n" + render("over_budget_warning", {"overrun": format_amount(-snapshot.remaining)})
    elif snapshot.near_limit:
        reply += "\n\n" + render(
            "near_limit_warning", {"percent_used": format_percent(snapshot.percent_used)}
        )

    return reply


def handle_log_image(parsed: ParsedIntent, ctx: HandlerContext) -> str:
    _store_image(ctx, parsed.media_url, parsed.caption)
    return render(
        "image_received",
        {"caption": parsed.caption or "Site photo", "project_name": ctx.project.name},
    )


def handle_unknown(parsed: ParsedIntent | None = None) -> str:
    return help_text()


HANDLERS: dict[IntentKind, Callable[[ParsedIntent, HandlerContext], str]] = {
    IntentKind.LOG_EXPENSE: handle_log_expense,
    IntentKind.CREATE_TASK: handle_create_task,
    IntentKind.SET_BUDGET: handle_set_budget,
    IntentKind.QUERY_EXPENSES: handle_query_expenses,
    IntentKind.LOG_IMAGE: handle_log_image,
}


def should_dispatch(parsed: ParsedIntent) -> bool:
    """Valid and confident enough; otherwise the message gets the help reply."""
    return is_valid_intent(parsed) and meets_threshold(parsed)


def dispatch(
    parsed: ParsedIntent,
    user_id: str,
    store: ProjectStore,
    media_content_type: str | None = None,
) -> DispatchOutcome:
    """Route a gated intent to its handler.

    Unknown or ungated intents get the help text without touching the store.

    Returns:
        DispatchOutcome with the reply, and the error text if a handler failed.
    """
    handler = HANDLERS.get(parsed.intent)
    if handler is None or not should_dispatch(parsed):
        return DispatchOutcome(reply=handle_unknown(parsed))

    try:
        project = store.get_user_default_project(user_id)
        if project is None:
            logger.info(
                "no active project",
                extra={"extra_fields": safe_log_context(intent=parsed.intent.value)},
            )
            return DispatchOutcome(
                reply=render("no_active_project", {"dashboard_url": get_dashboard_url()})
            )

        ctx = HandlerContext(
            user_id=user_id,
            project=project,
            store=store,
            media_content_type=media_content_type,
        )
        reply = handler(parsed, ctx)
    except Exception as exc:
        logger.exception(
            "intent handler failed",
            extra={
                "extra_fields": safe_log_context(
                    intent=parsed.intent.value,
                    error_type=type(exc).__name__,
                )
            },
        )
        return DispatchOutcome(
            reply=render("handler_error", {"dashboard_url": get_dashboard_url()}),
            error=str(exc) or type(exc).__name__,
        )

    logger.info(
        "intent handled",
        extra={"extra_fields": safe_log_context(intent=parsed.intent.value)},
    )
    return DispatchOutcome(reply=reply)
