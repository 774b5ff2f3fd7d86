"""Validity and confidence gating for parsed intents.

A parsed intent is dispatched only if it is valid AND meets its
intent-specific threshold; otherwise the message gets the help reply.
"""

from jengatrack.domain.intents import IntentKind, ParsedIntent

CONFIDENCE_THRESHOLDS: dict[IntentKind, float] = {
    IntentKind.LOG_EXPENSE: 0.70,
    IntentKind.CREATE_TASK: 0.85,
    IntentKind.SET_BUDGET: 0.90,
    IntentKind.QUERY_EXPENSES: 0.80,
    IntentKind.LOG_IMAGE: 0.85,
}
DEFAULT_THRESHOLD = 0.50


def is_valid_intent(parsed: ParsedIntent) -> bool:
    """Check the required fields of the intent's variant are present."""
    if parsed.intent is IntentKind.LOG_EXPENSE:
        return bool(parsed.amount and parsed.amount > 0 and parsed.description)
    if parsed.intent is IntentKind.CREATE_TASK:
        return bool(parsed.title)
    if parsed.intent is IntentKind.SET_BUDGET:
        return bool(parsed.amount and parsed.amount > 0)
    if parsed.intent is IntentKind.QUERY_EXPENSES:
        return True
    if parsed.intent is IntentKind.LOG_IMAGE:
        return bool(parsed.media_url)
    return False


def get_confidence_threshold(intent: IntentKind) -> float:
    return CONFIDENCE_THRESHOLDS.get(intent, DEFAULT_THRESHOLD)


def meets_threshold(parsed: ParsedIntent) -> bool:
    """Inclusive comparison: a score equal to the threshold passes."""
    return parsed.confidence >= get_confidence_threshold(parsed.intent)
