"""WhatsApp reply templates and formatting.

Templates contain static text with named placeholders. Only the params listed
in `allowed_params` may be interpolated.
"""

import os
from decimal import Decimal
from typing import Any, Iterable

DEFAULT_DASHBOARD_URL = "https://jengatrack.app"

TEMPLATES: dict[str, dict[str, Any]] = {
    "welcome": {
        "text": (
            "Hey! 👋 Welcome to JengaTrack 🚀\n\n"
            "Ready to create your first project?\n\n"
            "What kind of project is this?\n\n"
            "{options}"
        ),
        "allowed_params": ["options"],
    },
    "prompt_location": {
        "text": (
            "Cool! Where's the site? (e.g., Kampala Road, Entebbe, or even plot number)\n\n"
            "Just type it, or reply Skip"
        ),
        "allowed_params": [],
    },
    "prompt_start_date": {
        "text": "Nice! Rough start date?\n\n(Type like: Today, 15 Feb 2026, or skip for now)",
        "allowed_params": [],
    },
    "prompt_budget": {
        "text": (
            "Almost done! Any rough total budget? (UGX, e.g. 150,000,000 or skip)\n\n"
            "This helps us set up your budget tracker right away."
        ),
        "allowed_params": [],
    },
    "onboarding_confirmation": {
        "text": (
            "Perfect! Here's what we have:\n\n"
            "• Project: {project_label} in {location}\n"
            "• Started around: {start_date}\n"
            "• Budget: {budget}\n\n"
            "Looks good?\n\n"
            "{options}"
        ),
        "allowed_params": ["project_label", "location", "start_date", "budget", "options"],
    },
    "project_created": {
        "text": (
            "Project created! 🎉 Your dashboard is ready on the web "
            "(link: {dashboard_url}/dashboard?project={project_id}).\n\n"
            "Now the fun part: just chat updates here anytime "
            "(e.g., 'spent 50000 on cement', 'task: inspect foundation', or send site photos). "
            "I'll organize everything automatically.\n\n"
            "Quick tips:\n"
            "• Text 'help' anytime\n"
            "• Invite team: share this number"
        ),
        "allowed_params": ["dashboard_url", "project_id"],
    },
    "onboarding_deferred": {
        "text": (
            "No problem! You can add more details later from your dashboard: "
            "{dashboard_url}/dashboard\n\n"
            'For now, just send me updates anytime (e.g., "Used 50 bags cement" '
            'or "Paid workers 2000000 today").'
        ),
        "allowed_params": ["dashboard_url"],
    },
    "no_active_project": {
        "text": (
            "❌ No active project found.\n\n"
            "Please create a project in the dashboard first:\n{dashboard_url}"
        ),
        "allowed_params": ["dashboard_url"],
    },
    "expense_logged": {
        "text": (
            "✅ *Expense Logged*\n\n"
            "📝 *{description}*\n"
            "💰 *{amount}*\n"
            "📊 Project: {project_name}\n\n"
            "📈 *Today's Total:* {today_total}\n"
            "💵 *Remaining Budget:* {remaining}\n"
            "📊 *Budget Used:* {percent_used}"
        ),
        "allowed_params": [
            "description",
            "amount",
            "project_name",
            "today_total",
            "remaining",
            "percent_used",
        ],
    },
    "task_added": {
        "text": (
            "✅ *Task Added*\n\n"
            "📋 *{title}*\n"
            "📊 Project: {project_name}\n"
            "⚡ Priority: {priority}\n"
            "📝 Status: Pending\n\n"
            "📌 You have *{pending_count}* pending tasks"
        ),
        "allowed_params": ["title", "project_name", "priority", "pending_count"],
    },
    "budget_updated": {
        "text": (
            "✅ *Budget Updated*\n\n"
            "📊 Project: {project_name}\n"
            "💰 *New Budget:* {budget}\n"
            "💵 *Already Spent:* {spent}\n"
            "💸 *Remaining:* {remaining}\n"
            "📊 *Used:* {percent_used}"
        ),
        "allowed_params": ["project_name", "budget", "spent", "remaining", "percent_used"],
    },
    "expense_report": {
        "text": (
            "📊 *{project_name} - Expense Report*\n\n"
            "💰 *Budget:* {budget}\n"
            "💵 *Spent:* {spent} ({percent_used})\n"
            "💸 *Remaining:* {remaining}\n"
            "📝 *Total Expenses:* {expense_count}"
        ),
        "allowed_params": [
            "project_name",
            "budget",
            "spent",
            "percent_used",
            "remaining",
            "expense_count",
        ],
    },
    "over_budget_warning": {
        "text": "⚠️ *Warning:* You're over budget by {overrun}!",
        "allowed_params": ["overrun"],
    },
    "near_limit_warning": {
        "text": "⚠️ *Warning:* You've used {percent_used} of your budget.",
        "allowed_params": ["percent_used"],
    },
    "image_received": {
        "text": (
            "✅ *Image Received*\n\n"
            "📸 {caption}\n"
            "📊 Project: {project_name}\n\n"
            "💡 *Tip:* Send an expense amount to link this image to an expense.\n"
            'Example: "spent 50000 on cement"'
        ),
        "allowed_params": ["caption", "project_name"],
    },
    "help": {
        "text": (
            "🤖 *I didn't quite understand that.*\n\n"
            "Here's what I can help with:\n\n"
            "💰 *Log Expenses:*\n"
            '"spent 500000 on cement"\n'
            '"paid 200000 for bricks"\n'
            '"nimaze 300 ku sand" (Luganda)\n\n'
            "📋 *Create Tasks:*\n"
            '"task: inspect foundation"\n'
            '"todo: buy materials"\n\n'
            "💵 *Set Budget:*\n"
            '"set budget 5000000"\n'
            '"budget yange 5000000" (Luganda)\n\n'
            "📊 *Check Expenses:*\n"
            '"how much did I spend?"\n'
            '"show expenses"\n'
            '"ssente zmeka" (Luganda)\n\n'
            "📸 *Site Photos:*\n"
            "Send a photo, with a caption like \"cement 50000\" to log it as an expense\n\n"
            "Need help? Visit {dashboard_url}"
        ),
        "allowed_params": ["dashboard_url"],
    },
    "handler_error": {
        "text": (
            "❌ Sorry, something went wrong processing your request. "
            "Please try again or contact support at {dashboard_url}"
        ),
        "allowed_params": ["dashboard_url"],
    },
}


def get_dashboard_url() -> str:
    return os.environ.get("DASHBOARD_URL", DEFAULT_DASHBOARD_URL).rstrip("/")


def render(template_key: str, params: dict[str, Any]) -> str:
    """Render template with params. Validates allowed_params.

    Args:
        template_key: Template identifier.
        params: Parameters to interpolate (must be in allowed_params).

    Returns:
        Rendered text string.

    Raises:
        ValueError: If template_key unknown or params contains disallowed keys.
    """
    if template_key not in TEMPLATES:
        raise ValueError(f"Unknown template: {template_key}")

    template = TEMPLATES[template_key]
    allowed = set(template["allowed_params"])
    provided = set(params.keys())

    extras = provided - allowed
    if extras:
        raise ValueError(f"Disallowed params for {template_key}: {extras}")

    return template["text"].format(**params)


def help_text() -> str:
    """The fixed bilingual help message."""
    return render("help", {"dashboard_url": get_dashboard_url()})


def render_options(titles: Iterable[str]) -> str:
    """Numbered reply options, e.g. '1. Residential home'."""
    return "\n".join(f"{index}. {title}" for index, title in enumerate(titles, start=1))


def format_amount(amount: Decimal, currency: str = "UGX") -> str:
    """'UGX 50,000' style: thousands separators, at most 2 decimals."""
    formatted = f"{Decimal(amount).quantize(Decimal('0.01')):,.2f}"
    formatted = formatted.rstrip("0").rstrip(".")
    return f"{currency} {formatted}"


def format_percent(percent: float) -> str:
    return f"{percent:.1f}%"
