"""Parsers package: rule tables and the text-to-expense parser."""

from .expense_parser import parse_expense  # noqa: F401
