"""Rule tables for turning raw receipt text into expense fields.

Each field has an ordered tuple of rules; the first rule that yields a value
wins. Rules are plain data plus a small extractor so each one can be tested on
its own and new locales only need new rows.
"""

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from app.core.models import ExpenseCategory

FALLBACK_DESCRIPTION = "OCR Scanned Receipt"


def _parse_grouped_number(raw: str) -> float | None:
    """Parse a numeral after dropping its ',' and '.' separators; overflow counts as no match."""
    digits = raw.replace(",", "").replace(".", "")
    if not digits:
        return None
    try:
        value = float(digits)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_day_first_date(raw: str) -> datetime | None:
    """Parse D/M/YY or D/M/YYYY (either separator) as a UTC midnight."""
    day, month, year = (int(part) for part in re.split(r"[-/]", raw))
    if year < 100:
        year += 2000
    try:
        return datetime(year, month, day, tzinfo=UTC)
    except ValueError:
        return None


@dataclass(frozen=True)
class PatternRule:
    """A regex whose first group is converted into a field value."""

    name: str
    pattern: re.Pattern[str]
    convert: Callable[[str], object | None]

    def extract(self, text: str) -> object | None:
        """Return the converted value of the first match, or None."""
        match = self.pattern.search(text)
        if not match:
            return None
        return self.convert(match.group(1))


@dataclass(frozen=True)
class KeywordRule:
    """A category chosen when any of its keywords occurs in the text."""

    category: ExpenseCategory
    keywords: tuple[str, ...]

    def matches(self, lowered_text: str) -> bool:
        """Whether any keyword is a substring of the lower-cased text."""
        return any(keyword in lowered_text for keyword in self.keywords)


AMOUNT_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        name="labeled_total",
        pattern=re.compile(r"(?:total|amount|tổng|thanh toán)[:\s]*(\d[\d,.]*)", re.IGNORECASE),
        convert=_parse_grouped_number,
    ),
    PatternRule(
        name="currency_suffix",
        pattern=re.compile(r"(\d[\d,.]*)\s*(?:đ|vnd|₫|usd|\$)", re.IGNORECASE),
        convert=_parse_grouped_number,
    ),
)

DATE_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        name="day_month_year",
        pattern=re.compile(r"(?<!\d)(\d{1,2}[-/]\d{1,2}[-/](?:\d{4}|\d{2}))(?!\d)"),
        convert=_parse_day_first_date,
    ),
)

CATEGORY_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(
        ExpenseCategory.FOOD,
        ("food", "restaurant", "cafe", "coffee", "đồ ăn", "nhà hàng", "quán"),
    ),
    KeywordRule(ExpenseCategory.TRANSPORT, ("transport", "taxi", "grab", "uber", "xe")),
    KeywordRule(
        ExpenseCategory.SHOPPING,
        ("shopping", "store", "market", "mua sắm", "siêu thị"),
    ),
    KeywordRule(
        ExpenseCategory.HEALTH,
        ("health", "hospital", "pharmacy", "y tế", "bệnh viện"),
    ),
    KeywordRule(
        ExpenseCategory.ENTERTAINMENT,
        ("entertainment", "movie", "cinema", "giải trí"),
    ),
)


def first_value(rules: tuple[PatternRule, ...], text: str) -> object | None:
    """Apply rules in order and return the first non-None value."""
    for rule in rules:
        value = rule.extract(text)
        if value is not None:
            return value
    return None
