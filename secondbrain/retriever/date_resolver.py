"""
Date Expression Resolver

Resolves natural-language date phrases ("last week", "next tuesday",
"Q1 2026", "overdue") into a concrete inclusive range on one of the three
semantic date fields.

The pattern bank is ordered data. Specific patterns (named weekday, quarter,
"in N days") sit before generic ones (plain "today"), and the same order is
used both to find a phrase inside a query and to resolve it, so a phrase is
always claimed by exactly one rule.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from ..common.date_utils import EPOCH, add_days, add_months, end_of_day, start_of_day
from ..common.errors import DateParseError
from ..common.schemas import DateField
from .predicates import DateRange

logger = logging.getLogger("secondbrain.retriever.date_resolver")

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

Span = Tuple[datetime, datetime]


@dataclass(frozen=True)
class DatePattern:
    """One rule of the bank: a regex and the function that turns a match into a span"""
    name: str
    regex: "re.Pattern[str]"
    resolve: Callable[["re.Match[str]", datetime], Span]
    forced_field: Optional[DateField] = None


def _p(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.IGNORECASE)


def _single_day(day: datetime) -> Span:
    return start_of_day(day), end_of_day(day)


def _until_today(start: datetime, now: datetime) -> Span:
    return start_of_day(start), end_of_day(now)


def _from_today(end: datetime, now: datetime) -> Span:
    return start_of_day(now), end_of_day(end)


def _weekday(match, now: datetime) -> Span:
    modifier, weekday = match.group(1).lower(), match.group(2).lower()
    target = WEEKDAYS.index(weekday)
    current = now.weekday()

    if modifier == "this":
        # next occurrence, today included
        offset = (target - current) % 7
    elif modifier == "next":
        offset = (target - current) % 7 or 7
    else:
        offset = -((current - target) % 7 or 7)
    return _single_day(add_days(now, offset))


def _quarter_of_year(match, now: datetime) -> Span:
    quarter, year = int(match.group(1)), int(match.group(2))
    first_month = 3 * (quarter - 1) + 1
    start = datetime(year, first_month, 1)
    last_day = add_days(add_months(start, 3), -1)
    return start, end_of_day(last_day)


def _this_quarter(match, now: datetime) -> Span:
    first_month = 3 * ((now.month - 1) // 3) + 1
    return datetime(now.year, first_month, 1), end_of_day(now)


def _in_n_units(match, now: datetime) -> Span:
    amount, unit = int(match.group(1)), match.group(2).lower()
    if unit.startswith("day"):
        future = add_days(now, amount)
    elif unit.startswith("week"):
        future = add_days(now, amount * 7)
    else:
        future = add_months(now, amount)
    return _from_today(future, now)


def _last_n_days(match, now: datetime) -> Span:
    return _until_today(add_days(now, -int(match.group(1))), now)


def _next_n_days(match, now: datetime) -> Span:
    return _from_today(add_days(now, int(match.group(1))), now)


def _this_week(match, now: datetime) -> Span:
    # weeks start on Sunday
    days_since_sunday = (now.weekday() + 1) % 7
    return _until_today(add_days(now, -days_since_sunday), now)


DATE_PATTERNS: Tuple[DatePattern, ...] = (
    DatePattern(
        "weekday",
        _p(r"\b(this|next|last)\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b"),
        _weekday,
    ),
    DatePattern("quarter_of_year", _p(r"\bq([1-4])\s+(\d{4})\b"), _quarter_of_year),
    DatePattern("this_quarter", _p(r"\bthis\s+quarter\b"), _this_quarter),
    DatePattern(
        "in_n_units",
        _p(r"\bin\s+(\d+)\s+(days?|weeks?|months?)\b"),
        _in_n_units,
        forced_field=DateField.DUE,
    ),
    DatePattern("last_n_days", _p(r"\b(?:last|past)\s+(\d+)\s+days?\b"), _last_n_days),
    DatePattern("next_n_days", _p(r"\bnext\s+(\d+)\s+days?\b"), _next_n_days),
    DatePattern("yesterday", _p(r"\byesterday\b"), lambda m, now: _single_day(add_days(now, -1))),
    DatePattern("today", _p(r"\btoday\b"), lambda m, now: _single_day(now)),
    DatePattern("tomorrow", _p(r"\btomorrow\b"), lambda m, now: _single_day(add_days(now, 1))),
    DatePattern("last_week", _p(r"\b(?:last|past)\s+week\b"), lambda m, now: _until_today(add_days(now, -7), now)),
    DatePattern("next_week", _p(r"\bnext\s+week\b"), lambda m, now: _from_today(add_days(now, 7), now)),
    DatePattern("this_week", _p(r"\bthis\s+week\b"), _this_week),
    DatePattern("last_month", _p(r"\b(?:last|past)\s+month\b"), lambda m, now: _until_today(add_months(now, -1), now)),
    DatePattern("this_month", _p(r"\bthis\s+month\b"), lambda m, now: _until_today(now.replace(day=1), now)),
    DatePattern("next_month", _p(r"\bnext\s+month\b"), lambda m, now: _from_today(add_months(now, 1), now)),
    DatePattern("last_year", _p(r"\b(?:last|past)\s+year\b"), lambda m, now: _until_today(add_months(now, -12), now)),
    DatePattern("this_year", _p(r"\bthis\s+year\b"), lambda m, now: _until_today(now.replace(month=1, day=1), now)),
    DatePattern("next_year", _p(r"\bnext\s+year\b"), lambda m, now: _from_today(add_months(now, 12), now)),
    DatePattern("overdue", _p(r"\boverdue\b"), lambda m, now: (EPOCH, now), forced_field=DateField.DUE),
)

# Field hints are looked up in the whole query, not only the date phrase.
FIELD_HINTS: Tuple[Tuple["re.Pattern[str]", DateField], ...] = (
    (_p(r"\b(?:due|deadlines?)\b"), DateField.DUE),
    (_p(r"\b(?:received|sent|emails?|got)\b"), DateField.RECEIVED),
)


class DateExpressionResolver:
    """
    Resolves date phrases against a clock.

    Usage:
        resolver = DateExpressionResolver()
        phrase = resolver.find_phrase("tasks due in 3 days")   # "in 3 days"
        date_range = resolver.resolve(phrase, context="tasks due in 3 days")
    """

    def __init__(
        self,
        patterns: Sequence[DatePattern] = DATE_PATTERNS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            patterns: Ordered pattern bank; first match wins
            clock: Returns the current local time (defaults to datetime.now)
        """
        self._patterns = tuple(patterns)
        self._clock = clock or datetime.now

    @property
    def patterns(self) -> Tuple[DatePattern, ...]:
        return self._patterns

    def match(self, text: str) -> Optional[Tuple[DatePattern, "re.Match[str]"]]:
        """First rule in bank order that matches anywhere in text."""
        if not text:
            return None
        for pattern in self._patterns:
            found = pattern.regex.search(text)
            if found:
                return pattern, found
        return None

    def find_phrase(self, text: str) -> Optional[str]:
        """Return the date phrase embedded in text, or None."""
        matched = self.match(text)
        return matched[1].group(0) if matched else None

    def detect_field(self, text: Optional[str]) -> DateField:
        """Pick the target date field from keyword hints (default: occurrence)."""
        if text:
            for regex, date_field in FIELD_HINTS:
                if regex.search(text):
                    return date_field
        return DateField.MEMORY

    def resolve_strict(self, phrase: str, context: Optional[str] = None) -> Optional[DateRange]:
        """
        Resolve a phrase into a DateRange.

        Returns:
            DateRange, or None when no rule matches

        Raises:
            DateParseError: a rule matched but its values do not form a date
        """
        matched = self.match(phrase)
        if matched is None:
            return None

        pattern, found = matched
        now = self._clock()
        try:
            start, end = pattern.resolve(found, now)
        except (ValueError, OverflowError) as e:
            raise DateParseError(f"Could not resolve date phrase '{phrase}': {e}", phrase=phrase) from e

        date_field = pattern.forced_field or self.detect_field(context if context is not None else phrase)
        return DateRange(field=date_field, start=start, end=end)

    def resolve(self, phrase: Optional[str], context: Optional[str] = None) -> Optional[DateRange]:
        """Like resolve_strict, but a parse failure means "no date filter"."""
        if not phrase:
            return None
        try:
            return self.resolve_strict(phrase, context=context)
        except DateParseError as e:
            logger.warning("Could not parse date phrase %r: %s", phrase, e)
            return None
