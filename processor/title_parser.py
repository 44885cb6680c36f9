"""Extraction of embedded dates from MySideline event titles."""
import logging
import re
from datetime import date
from typing import NamedTuple, Optional

from processor.date_parser import parse_date

logger = logging.getLogger(__name__)

_DATE_BODY = (
    r'(?:\d{1,2}[\s/\-]\d{1,2}[\s/\-]\d{4}'
    r'|\d{1,2}(?:st|nd|rd|th)?\s+[a-zA-Z]{3,}\s+\d{4}'
    r'|[a-zA-Z]{3,}\s+\d{1,2},?\s+\d{4})'
)

# Tried in order: "(19/07/2025)", "- 21/06/2025" / "| 20th Sep 2024",
# then a date as the final token
TITLE_DATE_PATTERNS = [
    re.compile(r'\s*\((' + _DATE_BODY + r')\)\s*', re.IGNORECASE),
    re.compile(r'\s*[\-|]\s*(' + _DATE_BODY + r')\s*', re.IGNORECASE),
    re.compile(r'\s+(' + _DATE_BODY + r')\s*$', re.IGNORECASE),
]

_LEADING_SEPARATOR = re.compile(r'^\s*[\-|]\s*')
_TRAILING_SEPARATOR = re.compile(r'\s*[\-|]\s*$')
_PARENTHESISED = re.compile(r'\([^)]*\)')
_NON_NUMERIC_PARENTHESISED = re.compile(r'\(([^\d()]+)\)')
_WHITESPACE = re.compile(r'\s+')


class TitleDate(NamedTuple):
    clean_title: Optional[str]
    extracted_date: Optional[date]


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(' ', text).strip()


def extract_date_from_title(title) -> TitleDate:
    """
    Locate and strip a date embedded in an event title.

    Args:
        title: Raw event title, e.g. "NSW Masters Carnival (19/07/2025)"

    Returns:
        TitleDate with the stripped title and the parsed date, or the
        trimmed original title and None when no date could be parsed
    """
    if not title or not isinstance(title, str):
        return TitleDate(title, None)

    original = title.strip()

    for pattern in TITLE_DATE_PATTERNS:
        match = pattern.search(original)
        if not match:
            continue

        extracted = parse_date(match.group(1).strip())
        if not extracted:
            logger.warning(
                f"Failed to parse date '{match.group(1)}' from title '{original}'"
            )
            continue

        clean_title = _collapse(pattern.sub(' ', original))
        clean_title = _TRAILING_SEPARATOR.sub('', clean_title)
        clean_title = _LEADING_SEPARATOR.sub('', clean_title)
        clean_title = _collapse(_PARENTHESISED.sub('', clean_title))

        if not clean_title:
            # A title made only of "(Event Name) (date)" keeps the name
            recovered = _NON_NUMERIC_PARENTHESISED.search(original)
            if recovered:
                clean_title = recovered.group(1).strip()

        logger.debug(
            f"Extracted date {extracted.isoformat()} from title. "
            f"Clean title: '{clean_title}'"
        )
        return TitleDate(clean_title, extracted)

    return TitleDate(original, None)
