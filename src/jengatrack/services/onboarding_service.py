"""Onboarding side effects: load the record, apply one transition, persist it.

Transitions themselves are pure (domain.onboarding). This module is the only
place that creates a project from onboarding and stamps completed_at.
"""

from dataclasses import dataclass

from jengatrack.domain.onboarding import is_onboarding_complete, next_transition
from jengatrack.infra.store import ProjectStore
from jengatrack.infra.time import utc_now
from jengatrack.observability.logging import get_logger
from jengatrack.observability.redaction import safe_log_context
from jengatrack.whatsapp.templates import get_dashboard_url, render

logger = get_logger(__name__)


@dataclass(frozen=True)
class OnboardingOutcome:
    reply: str
    state: str
    completed: bool = False
    project_id: str | None = None


def advance_onboarding(
    store: ProjectStore,
    user_id: str,
    text: str,
    button_payload: str | None = None,
) -> OnboardingOutcome | None:
    """Run one onboarding step for the user.

    Returns:
        The outcome to reply with, or None when onboarding is already
        complete and the message belongs to the intent pipeline.
    """
    record = store.read_onboarding_state(user_id)
    if is_onboarding_complete(record):
        return None

    transition = next_transition(record, text, button_payload)

    project_id = None
    reply = transition.reply
    if transition.create_project:
        project_id = store.create_project_from_onboarding(user_id, transition.data)
        reply = render(
            "project_created",
            {"dashboard_url": get_dashboard_url(), "project_id": project_id},
        )

    store.write_onboarding_state(
        user_id,
        transition.state,
        transition.data,
        completed_at=utc_now() if transition.completes else None,
    )

    logger.info(
        "onboarding step",
        extra={
            "extra_fields": safe_log_context(
                from_state=record.state.value if record.state else None,
                to_state=transition.state.value,
                project_created=project_id is not None,
            )
        },
    )

    return OnboardingOutcome(
        reply=reply,
        state=transition.state.value,
        completed=transition.completes,
        project_id=project_id,
    )
