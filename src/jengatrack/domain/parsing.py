"""Deterministic intent parsing from WhatsApp messages.

NO LLM. Uses the ordered rule families in `patterns`.
Security: NEVER log raw text (PII).
"""

import re
from dataclasses import replace

from jengatrack.domain.intents import IntentKind, ParsedIntent
from jengatrack.domain.patterns import (
    DEFAULT_CURRENCY,
    EXPENSE_RULES,
    INTENT_FAMILIES,
    clean_description,
    extract_currency,
    find_amount,
    first_match,
    has_numeric_amount,
    parse_amount,
)

EMPTY_IMAGE_CONFIDENCE = 0.95
CAPTIONED_IMAGE_CONFIDENCE = 0.90
# Expenses read from an image caption are slightly less certain
CAPTION_EXPENSE_FACTOR = 0.95
FALLBACK_EXPENSE_CONFIDENCE = 0.60

_LEADING_PREPOSITION = re.compile(r"^(?:for|on|ku|pa)\s+", re.IGNORECASE)


def _parse_caption(text: str, media_url: str) -> ParsedIntent:
    """Image with caption: an expense if the caption reads like one."""
    if has_numeric_amount(text):
        matched = first_match(EXPENSE_RULES, text)
        if matched is not None:
            rule, fields = matched
            return ParsedIntent(
                intent=IntentKind.LOG_EXPENSE,
                confidence=round(rule.confidence * CAPTION_EXPENSE_FACTOR, 4),
                original_message=text,
                currency=extract_currency(text) or DEFAULT_CURRENCY,
                media_url=media_url,
                **fields,
            )

    return ParsedIntent(
        intent=IntentKind.LOG_IMAGE,
        confidence=CAPTIONED_IMAGE_CONFIDENCE,
        original_message=text,
        caption=text,
        media_url=media_url,
    )


def _numeric_fallback(text: str) -> ParsedIntent | None:
    """Bare number anywhere: a low-confidence expense."""
    match = find_amount(text)
    if match is None:
        return None

    rest = text.replace(match.group(0), "", 1).strip()
    description = _LEADING_PREPOSITION.sub("", rest)
    if not description:
        return None

    return ParsedIntent(
        intent=IntentKind.LOG_EXPENSE,
        confidence=FALLBACK_EXPENSE_CONFIDENCE,
        original_message=text,
        amount=parse_amount(match.group(1)),
        description=clean_description(description) or "Expense",
        currency=extract_currency(text) or DEFAULT_CURRENCY,
    )


def parse_intent(text: str, media_url: str | None = None) -> ParsedIntent:
    """Classify a message into exactly one intent.

    Families are tried in the order expense, task, budget, query, then the
    numeric fallback; the first matching rule wins.

    Args:
        text: Message body. NEVER logged.
        media_url: URL of the first attached media item, if any.

    Returns:
        ParsedIntent; `unknown` with confidence 0 when nothing matches.
    """
    trimmed = (text or "").strip()

    if not trimmed:
        if media_url:
            return ParsedIntent(
                intent=IntentKind.LOG_IMAGE,
                confidence=EMPTY_IMAGE_CONFIDENCE,
                original_message="",
                caption="",
                media_url=media_url,
            )
        return ParsedIntent.unknown("")

    if media_url:
        return _parse_caption(trimmed, media_url)

    for intent, rules in INTENT_FAMILIES:
        matched = first_match(rules, trimmed)
        if matched is None:
            continue
        rule, fields = matched
        parsed = ParsedIntent(
            intent=intent,
            confidence=rule.confidence,
            original_message=trimmed,
            **fields,
        )
        if intent is IntentKind.LOG_EXPENSE:
            parsed = replace(parsed, currency=extract_currency(trimmed) or DEFAULT_CURRENCY)
        return parsed

    fallback = _numeric_fallback(trimmed)
    if fallback is not None:
        return fallback

    return ParsedIntent.unknown(trimmed)
