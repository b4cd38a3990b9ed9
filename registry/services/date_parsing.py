"""
services/date_parsing.py
Best-effort parsing of free-text training dates such as "January 21-23, 2026".

These are heuristics, not a calendar parser: every function has an explicit
fallback and none of them raise on malformed input.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from registry.core.config import settings
from registry.utils.helpers import collapse_whitespace, get_logger

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1)
NOT_AVAILABLE = "N/A"

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_MONTH_RE = re.compile(r"(" + "|".join(MONTHS) + r")", re.IGNORECASE)
_YEAR_RE = re.compile(r"\d{4}")
_NUMBER_RE = re.compile(r"\d+")
_LEADING_WORD_RE = re.compile(r"^[a-zA-Z]+")

_DATE_FORMATS = (
    "%B %d, %Y",
    "%B %d,%Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d,%Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%m/%d/%Y",
    "%Y-%m-%d",
)

_SMALL_WORDS_RE = re.compile(
    r"^(a|an|and|as|at|but|by|en|for|if|in|of|on|or|the|to|v\.?|via)$", re.IGNORECASE
)
_TITLE_WORD_RE = re.compile(r"[A-Za-z0-9À-ÿ]+[^\s-]*")


@dataclass(frozen=True)
class DateComponents:
    year: str
    month: str
    day: int


@dataclass(frozen=True)
class IDCardDates:
    registered: str
    renewal: str
    short_year: str


def parse_date(text: Optional[str]) -> Optional[datetime]:
    """Parse a single calendar date in one of the accepted layouts, or return None."""
    if not text:
        return None
    candidate = collapse_whitespace(text)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    return None


def format_long_date(value: datetime) -> str:
    """datetime(2026, 1, 23) -> 'January 23, 2026'."""
    return f"{MONTHS[value.month - 1]} {value.day}, {value.year}"


def title_case(text: Optional[str]) -> str:
    """Title case that leaves small connecting words lowercase mid-phrase."""
    if not text:
        return ""

    def _word(match: re.Match) -> str:
        word = match.group(0)
        start, end = match.span()
        if start > 0 and end != len(text) and _SMALL_WORDS_RE.search(word):
            return word.lower()
        return word[:1].upper() + word[1:].lower()

    return _TITLE_WORD_RE.sub(_word, text)


def parse_final_date_components(text: Optional[str]) -> DateComponents:
    """
    Pull the issue date out of a training date range.

    "January 14-18, 2026" -> DateComponents("2026", "January", 18). The year
    is the first four-digit run, the month the last month name, and the day
    the last number in 1..31 that is not the year itself.
    """
    if not text:
        return DateComponents(year=settings.DEFAULT_YEAR, month="", day=1)

    year_match = _YEAR_RE.search(text)
    year = year_match.group(0) if year_match else settings.DEFAULT_YEAR

    months = _MONTH_RE.findall(text)
    month = title_case(months[-1]) if months else ""

    days = [
        n for n in (int(raw) for raw in _NUMBER_RE.findall(text))
        if 0 < n <= 31 and n != int(year)
    ]
    day = days[-1] if days else 1
    return DateComponents(year=year, month=month, day=day)


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def add_years(value: datetime, years: int) -> datetime:
    """Shift by whole years; Feb 29 rolls over to Mar 1 in non-leap targets."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, month=3, day=1)


def end_of_range(text: str) -> str:
    """
    The last date of a range: "January 21-23, 2026" -> "January 23, 2026".

    When the text after the dash carries no month name, the leading month
    of the whole string is prepended.
    """
    target = text.split("-")[1].strip() if "-" in text else text
    if not re.search(r"[a-zA-Z]", target):
        month_match = _LEADING_WORD_RE.match(text.strip())
        month = month_match.group(0) if month_match else ""
        target = f"{month} {target}"
    return target


def process_dates(text: Optional[str]) -> IDCardDates:
    """
    Registration and renewal dates printed on the back of an ID card.

    Renewal is exactly two years and two days after registration. Missing
    or unparsable input yields "N/A" for both dates.
    """
    fallback = IDCardDates(NOT_AVAILABLE, NOT_AVAILABLE, settings.DEFAULT_YEAR[-2:])
    if not text:
        logger.warning("ID card requested for a record without training_date")
        return fallback

    registered = parse_date(end_of_range(text))
    if registered is None:
        logger.warning(f"Unparsable training_date for ID card: {text!r}")
        return fallback

    renewal = add_years(registered, 2) + timedelta(days=2)
    return IDCardDates(
        registered=format_long_date(registered),
        renewal=format_long_date(renewal),
        short_year=f"{registered.year:04d}"[-2:],
    )


def sortable_date(display_date: Optional[str]) -> datetime:
    """
    Sort key for a batch's display date.

    "JANUARY 23-27, 2026" sorts as January 23, 2026. Anything unparsable
    sorts as the epoch, i.e. first.
    """
    if not display_date:
        return EPOCH

    parts = display_date.split("-")
    if len(parts) > 1:
        month_day = parts[0].strip()
        after_comma = display_date.split(",")
        year_part = after_comma[1] if len(after_comma) > 1 else f" {settings.DEFAULT_YEAR}"
        parsed = parse_date(f"{month_day},{year_part}")
    else:
        parsed = parse_date(display_date)
    return parsed or EPOCH
