"""Keyword rules mapping outbound M-Pesa payments to spending categories.

Rules are evaluated top to bottom against the case-folded message text; the
first rule with any keyword contained in the text decides the category.
Order is significant: a "Shell Garage" payment is fuel, not maintenance.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

FALLBACK_CATEGORY = "Other"


class CategoryRule(NamedTuple):
    category: str
    keywords: tuple[str, ...]


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule("Fuel", ("fuel", "petrol", "shell", "total")),
    CategoryRule("Parking", ("parking",)),
    CategoryRule("Maintenance", ("garage", "service", "repair")),
)


def match_category(
    lowered: str,
    rules: Sequence[CategoryRule] = CATEGORY_RULES,
    *,
    fallback: str = FALLBACK_CATEGORY,
) -> str:
    """Return the first matching rule's category for already case-folded text."""

    for rule in rules:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule.category
    return fallback


__all__ = ["CATEGORY_RULES", "FALLBACK_CATEGORY", "CategoryRule", "match_category"]
