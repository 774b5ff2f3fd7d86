"""Onboarding finite-state machine (pure transitions, no I/O).

States are linear:
    None -> awaiting_project_type -> awaiting_location -> awaiting_start_date
         -> awaiting_budget -> confirmation -> completed

`is_onboarding_complete` is the only authority on whether a user still needs
onboarding. It looks at `completed_at`, never at `state`.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from jengatrack.domain.patterns import clean_description, find_amount, parse_amount
from jengatrack.whatsapp.templates import (
    format_amount,
    get_dashboard_url,
    render,
    render_options,
)


class OnboardingState(str, Enum):
    AWAITING_PROJECT_TYPE = "awaiting_project_type"
    AWAITING_LOCATION = "awaiting_location"
    AWAITING_START_DATE = "awaiting_start_date"
    AWAITING_BUDGET = "awaiting_budget"
    CONFIRMATION = "confirmation"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: str | None) -> "OnboardingState | None":
        """Map a persisted value to a state. NULL and unknown values mean not started."""
        if value is None:
            return None
        if value == "welcome_sent":
            # Legacy value written before the welcome step advanced immediately
            return cls.AWAITING_PROJECT_TYPE
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class OnboardingData:
    project_type: str | None = None
    location: str | None = None
    start_date: str | None = None
    budget: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_type": self.project_type,
            "location": self.location,
            "start_date": self.start_date,
            "budget": str(self.budget) if self.budget is not None else None,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "OnboardingData":
        raw = raw or {}
        budget = raw.get("budget")
        return cls(
            project_type=raw.get("project_type"),
            location=raw.get("location"),
            start_date=raw.get("start_date"),
            budget=Decimal(str(budget)) if budget not in (None, "") else None,
        )


@dataclass
class OnboardingRecord:
    state: OnboardingState | None = None
    data: OnboardingData = field(default_factory=OnboardingData)
    completed_at: datetime | None = None


def is_onboarding_complete(record: OnboardingRecord) -> bool:
    """True once onboarding finished. Terminal: never reactivates."""
    return record.completed_at is not None


@dataclass(frozen=True)
class Button:
    id: str
    title: str
    keywords: tuple[str, ...] = ()


PROJECT_TYPE_BUTTONS: tuple[Button, ...] = (
    Button("btn_residential", "Residential home", ("residential", "home", "house")),
    Button("btn_commercial", "Commercial building", ("commercial", "office", "shop")),
    Button("btn_other", "Other / Skip for now", ("other", "skip")),
)

CONFIRMATION_BUTTONS: tuple[Button, ...] = (
    Button("btn_confirm", "Yes, create project! 🎉", ("yes", "confirm")),
    Button("btn_edit", "Edit something", ("edit",)),
    Button("btn_later", "Add more details later", ("later",)),
)

SKIP_BUTTON_ID = "btn_skip"

PROJECT_TYPE_LABELS: dict[str, str] = {
    "btn_residential": "Residential home",
    "btn_commercial": "Commercial building",
    "btn_other": "Other",
}


def parse_button_response(
    text: str,
    buttons: tuple[Button, ...],
    payload: str | None = None,
) -> str | None:
    """Resolve a reply to one of the offered buttons.

    Matches, in order: the provider button payload, the button id or title,
    the 1-based option number, then whole-word keywords.

    Returns:
        The button id, or None if the reply is not a recognised button.
    """
    ids = {button.id for button in buttons}
    if payload and payload in ids:
        return payload

    normalized = text.strip().lower()
    if not normalized:
        return None

    for index, button in enumerate(buttons, start=1):
        if normalized in (button.id, button.title.lower(), str(index)):
            return button.id

    for button in buttons:
        for keyword in button.keywords:
            if re.search(rf"\b{re.escape(keyword)}\b", normalized):
                return button.id

    return None


def _is_skip(text: str, payload: str | None) -> bool:
    return payload == SKIP_BUTTON_ID or "skip" in text.lower()


def _confirmation_from_text(text: str) -> str | None:
    """Loose reading of a typed confirmation: substrings, not whole words."""
    lowered = text.strip().lower()
    if "yes" in lowered or "confirm" in lowered or lowered == "1":
        return "btn_confirm"
    if "edit" in lowered:
        return "btn_edit"
    if "later" in lowered:
        return "btn_later"
    return None


def project_type_label(project_type: str | None) -> str:
    if project_type is None:
        return "Not specified"
    return PROJECT_TYPE_LABELS.get(project_type, "Other")


def project_name_from(data: OnboardingData) -> str:
    """Name for the project created at the end of onboarding."""
    label = PROJECT_TYPE_LABELS.get(data.project_type or "", "")
    if not label or data.project_type == "btn_other":
        label = "Construction Project"
    return f"{label} - {data.location}" if data.location else label


@dataclass(frozen=True)
class Transition:
    """Outcome of one onboarding message.

    `reply` is None only when `create_project` is set: the reply then needs
    the id of the created project.
    """

    state: OnboardingState
    data: OnboardingData
    reply: str | None
    create_project: bool = False

    @property
    def completes(self) -> bool:
        return self.state is OnboardingState.COMPLETED


def welcome_message() -> str:
    return render("welcome", {"options": render_options(b.title for b in PROJECT_TYPE_BUTTONS)})


def confirmation_message(data: OnboardingData) -> str:
    return render(
        "onboarding_confirmation",
        {
            "project_label": project_type_label(data.project_type),
            "location": data.location or "TBD",
            "start_date": data.start_date or "TBD",
            "budget": format_amount(data.budget) if data.budget else "TBD",
            "options": render_options(b.title for b in CONFIRMATION_BUTTONS),
        },
    )


def _stay(record: OnboardingRecord, reply: str) -> Transition:
    state = record.state or OnboardingState.AWAITING_PROJECT_TYPE
    return Transition(state=state, data=record.data, reply=reply)


def next_transition(
    record: OnboardingRecord,
    text: str,
    button_payload: str | None = None,
) -> Transition:
    """Compute the transition for one inbound message.

    Unrecognised replies re-prompt the current question without advancing.
    Must not be called for a completed record.
    """
    state = record.state
    data = record.data
    answer = text.strip()

    if state is None:
        return Transition(OnboardingState.AWAITING_PROJECT_TYPE, data, welcome_message())

    if state is OnboardingState.AWAITING_PROJECT_TYPE:
        button_id = parse_button_response(answer, PROJECT_TYPE_BUTTONS, button_payload)
        if button_id is None:
            return _stay(record, welcome_message())
        return Transition(
            OnboardingState.AWAITING_LOCATION,
            replace(data, project_type=button_id),
            render("prompt_location", {}),
        )

    if state is OnboardingState.AWAITING_LOCATION:
        if not answer and button_payload is None:
            return _stay(record, render("prompt_location", {}))
        location = None if _is_skip(answer, button_payload) else clean_description(answer) or None
        return Transition(
            OnboardingState.AWAITING_START_DATE,
            replace(data, location=location),
            render("prompt_start_date", {}),
        )

    if state is OnboardingState.AWAITING_START_DATE:
        if not answer and button_payload is None:
            return _stay(record, render("prompt_start_date", {}))
        start_date = None if _is_skip(answer, button_payload) else clean_description(answer) or None
        return Transition(
            OnboardingState.AWAITING_BUDGET,
            replace(data, start_date=start_date),
            render("prompt_budget", {}),
        )

    if state is OnboardingState.AWAITING_BUDGET:
        if _is_skip(answer, button_payload):
            budget = None
        else:
            match = find_amount(answer)
            if match is None:
                return _stay(record, render("prompt_budget", {}))
            budget = parse_amount(match.group(1)) or None
        new_data = replace(data, budget=budget)
        return Transition(OnboardingState.CONFIRMATION, new_data, confirmation_message(new_data))

    if state is OnboardingState.CONFIRMATION:
        button_id = parse_button_response(answer, CONFIRMATION_BUTTONS, button_payload)
        if button_id is None:
            button_id = _confirmation_from_text(answer)
        if button_id == "btn_confirm":
            return Transition(OnboardingState.COMPLETED, data, None, create_project=True)
        if button_id in ("btn_edit", "btn_later"):
            return Transition(
                OnboardingState.COMPLETED,
                data,
                render("onboarding_deferred", {"dashboard_url": get_dashboard_url()}),
            )
        return _stay(record, confirmation_message(data))

    # COMPLETED state without completed_at: finish the record without a project
    return Transition(
        OnboardingState.COMPLETED,
        data,
        render("onboarding_deferred", {"dashboard_url": get_dashboard_url()}),
    )
