"""Keyword-based expense category matching."""

from typing import Iterable

from jengatrack.domain.records import ExpenseCategory

_CATCH_ALL_KEYWORDS: tuple[str, ...] = ("misc", "other", "sundry")

# Category name -> keywords (substring match against the description)
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Materials": (
        "cement", "sand", "bricks", "steel", "iron", "timber",
        "wood", "stone", "gravel", "aggregate",
    ),
    "Labor": (
        "worker", "labour", "labor", "mason", "carpenter", "plumber",
        "electrician", "painter", "wages", "salary",
    ),
    "Equipment": (
        "equipment", "tools", "machine", "excavator", "mixer",
        "generator", "scaffolding",
    ),
    "Transport": (
        "transport", "delivery", "fuel", "petrol", "diesel",
        "lorry", "truck", "vehicle",
    ),
    "Miscellaneous": _CATCH_ALL_KEYWORDS,
    "Other": _CATCH_ALL_KEYWORDS,
}

# Seeded for auto-provisioned profiles
DEFAULT_CATEGORY_NAMES: tuple[str, ...] = ("Materials", "Labor", "Equipment", "Transport", "Other")


def match_category(categories: Iterable[ExpenseCategory], description: str) -> str | None:
    """Return the id of the first category whose keywords appear in description.

    Categories are checked in the given order; within a category, keywords in
    table order. No match returns None.
    """
    lowered = description.lower()
    for category in categories:
        for keyword in CATEGORY_KEYWORDS.get(category.name, ()):
            if keyword in lowered:
                return category.id
    return None
