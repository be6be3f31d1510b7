"""Heuristic text-to-expense parser.

``parse_expense`` is total: whatever the OCR engine returns, it produces an
``ExpenseData`` by walking the rule tables in ``app.parsers.rules`` and falling
back to fixed defaults (amount 0, processing time, a literal description).
"""

import unicodedata
from datetime import datetime

from app.core.models import ExpenseCategory, ExpenseData
from app.core.utils import utcnow
from app.parsers.rules import (
    AMOUNT_RULES,
    CATEGORY_RULES,
    DATE_RULES,
    FALLBACK_DESCRIPTION,
    first_value,
)


def extract_amount(text: str) -> float:
    """Return the receipt total, or 0 when no amount can be recovered."""
    value = first_value(AMOUNT_RULES, text)
    return float(value) if value is not None else 0.0


def extract_spent_at(text: str, default: datetime) -> datetime:
    """Return the first receipt date, or ``default`` when none parses."""
    value = first_value(DATE_RULES, text)
    return value if value is not None else default


def extract_description(text: str) -> str:
    """Return the first non-blank line, trimmed."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return FALLBACK_DESCRIPTION


def detect_category(text: str) -> ExpenseCategory | None:
    """Return the first category whose keywords occur in the text."""
    lowered = text.lower()
    for rule in CATEGORY_RULES:
        if rule.matches(lowered):
            return rule.category
    return None


def parse_expense(text: str, confidence: float, now: datetime | None = None) -> ExpenseData:
    """Map raw OCR text and its confidence to structured expense data.

    ``now`` is the processing time used when no date is found; it defaults to
    the current UTC time.
    """
    normalized = unicodedata.normalize("NFC", text or "")
    return ExpenseData(
        amount=extract_amount(normalized),
        description=extract_description(normalized),
        spent_at=extract_spent_at(normalized, now or utcnow()),
        category=detect_category(normalized),
        confidence=confidence,
    )
