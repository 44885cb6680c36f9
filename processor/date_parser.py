"""Parsing of the loosely formatted dates found in MySideline titles."""
import logging
import re
from datetime import date
from typing import Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    'january', 'february', 'march', 'april', 'may', 'june',
    'july', 'august', 'september', 'october', 'november', 'december',
]

_ORDINAL_SUFFIX = re.compile(r'(\d+)(st|nd|rd|th)\b', re.IGNORECASE)
_NUMERIC_DATE = re.compile(r'^(\d{1,2})[\s/\-](\d{1,2})[\s/\-](\d{4})$')
_DAY_MONTH_YEAR = re.compile(r'^(\d{1,2})\s+([a-zA-Z]{3,})\s+(\d{4})$')
_MONTH_DAY_YEAR = re.compile(r'^([a-zA-Z]{3,})\s+(\d{1,2}),?\s+(\d{4})$')


def month_from_name(name: str) -> Optional[int]:
    """
    Resolve an English month name or abbreviation to its number.

    Args:
        name: Month token of at least three letters (e.g. "Sep", "July")

    Returns:
        Month number 1-12 or None if the token is not a month
    """
    token = name.strip().lower()
    if len(token) < 3:
        return None

    for index, month in enumerate(MONTH_NAMES, start=1):
        if month.startswith(token):
            return index

    return None


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    # date() rejects components that would roll over, e.g. 31/02
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(date_str) -> Optional[date]:
    """
    Parse a heterogeneous date string into a calendar date.

    Numeric dates are always read day-first (Australian convention).

    Args:
        date_str: Date text such as "19/07/2025", "27th July 2024"
            or "Sep 20, 2024"

    Returns:
        Parsed date or None if the text is not a valid date
    """
    if not date_str or not isinstance(date_str, str):
        return None

    clean = _ORDINAL_SUFFIX.sub(r'\1', date_str.strip())

    match = _NUMERIC_DATE.match(clean)
    if match:
        day, month, year = (int(part) for part in match.groups())
        # Day-first is authoritative, never fall back to a month-first read
        return _build_date(year, month, day)

    match = _DAY_MONTH_YEAR.match(clean)
    if match:
        month = month_from_name(match.group(2))
        if month:
            parsed = _build_date(int(match.group(3)), month, int(match.group(1)))
            if parsed:
                return parsed

    match = _MONTH_DAY_YEAR.match(clean)
    if match:
        month = month_from_name(match.group(1))
        if month:
            parsed = _build_date(int(match.group(3)), month, int(match.group(2)))
            if parsed:
                return parsed

    try:
        return date_parser.parse(clean, dayfirst=True).date()
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug(f"Unable to parse date '{date_str}': {e}")
        return None
