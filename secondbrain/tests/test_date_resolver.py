"""
Tests for the date expression resolver

All cases run against a fixed clock: Wednesday 2026-10-14 15:30.
"""

import logging
from datetime import datetime

import pytest

from .conftest import NOW


def day_span(year, month, day):
    return (
        datetime(year, month, day, 0, 0, 0),
        datetime(year, month, day, 23, 59, 59, 999000),
    )


class TestSingleDayPhrases:
    """yesterday / today / tomorrow and named weekdays"""

    @pytest.fixture
    def resolver(self, fixed_clock):
        from secondbrain.retriever.date_resolver import DateExpressionResolver
        return DateExpressionResolver(clock=fixed_clock)

    @pytest.mark.parametrize("phrase,expected", [
        ("yesterday", (2026, 10, 13)),
        ("today", (2026, 10, 14)),
        ("tomorrow", (2026, 10, 15)),
    ])
    def test_relative_days(self, resolver, phrase, expected):
        result = resolver.resolve(phrase)

        assert (result.start, result.end) == day_span(*expected)

    @pytest.mark.parametrize("phrase,expected", [
        ("this wednesday", (2026, 10, 14)),  # today counts for "this"
        ("this friday", (2026, 10, 16)),
        ("next wednesday", (2026, 10, 21)),  # strictly after today
        ("next tuesday", (2026, 10, 20)),
        ("last wednesday", (2026, 10, 7)),  # strictly before today
        ("last friday", (2026, 10, 9)),
        ("last Monday", (2026, 10, 12)),
    ])
    def test_named_weekdays(self, resolver, phrase, expected):
        result = resolver.resolve(phrase)

        assert (result.start, result.end) == day_span(*expected)

    def test_last_weekday_is_not_claimed_by_last_week(self, resolver):
        matched = resolver.match("what happened last monday")

        assert matched[0].name == "weekday"


class TestRangePhrases:

    @pytest.fixture
    def resolver(self, fixed_clock):
        from secondbrain.retriever.date_resolver import DateExpressionResolver
        return DateExpressionResolver(clock=fixed_clock)

    @pytest.mark.parametrize("phrase,start,end", [
        ("last week", (2026, 10, 7), (2026, 10, 14)),
        ("past week", (2026, 10, 7), (2026, 10, 14)),
        ("next week", (2026, 10, 14), (2026, 10, 21)),
        ("this week", (2026, 10, 11), (2026, 10, 14)),  # weeks start Sunday
        ("last month", (2026, 9, 14), (2026, 10, 14)),
        ("this month", (2026, 10, 1), (2026, 10, 14)),
        ("next month", (2026, 10, 14), (2026, 11, 14)),
        ("last 5 days", (2026, 10, 9), (2026, 10, 14)),
        ("past 30 days", (2026, 9, 14), (2026, 10, 14)),
        ("next 10 days", (2026, 10, 14), (2026, 10, 24)),
        ("this quarter", (2026, 10, 1), (2026, 10, 14)),
        ("last year", (2025, 10, 14), (2026, 10, 14)),
        ("this year", (2026, 1, 1), (2026, 10, 14)),
        ("next year", (2026, 10, 14), (2027, 10, 14)),
    ])
    def test_ranges(self, resolver, phrase, start, end):
        result = resolver.resolve(phrase)

        assert result.start == day_span(*start)[0]
        assert result.end == day_span(*end)[1]

    @pytest.mark.parametrize("phrase,start,end", [
        ("Q1 2026", (2026, 1, 1), (2026, 3, 31)),
        ("q2 2025", (2025, 4, 1), (2025, 6, 30)),
        ("Q4 2025", (2025, 10, 1), (2025, 12, 31)),
    ])
    def test_calendar_quarters(self, resolver, phrase, start, end):
        result = resolver.resolve(phrase)

        assert result.start == day_span(*start)[0]
        assert result.end == day_span(*end)[1]

    def test_last_month_clamps_day(self):
        from secondbrain.retriever.date_resolver import DateExpressionResolver
        resolver = DateExpressionResolver(clock=lambda: datetime(2026, 3, 31, 9, 0))

        result = resolver.resolve("last month")

        assert result.start == datetime(2026, 2, 28)

    @pytest.mark.parametrize("phrase", [
        "yesterday", "today", "tomorrow", "this friday", "next monday", "last sunday",
        "Q3 2024", "this quarter", "in 3 days", "in 2 weeks", "in 1 month",
        "last 7 days", "next 3 days", "last week", "next week", "this week",
        "last month", "this month", "next month", "last year", "this year",
        "next year", "overdue",
    ])
    def test_start_never_after_end(self, resolver, phrase):
        result = resolver.resolve(phrase)

        assert result is not None
        assert result.start <= result.end


class TestFieldSelection:

    @pytest.fixture
    def resolver(self, fixed_clock):
        from secondbrain.retriever.date_resolver import DateExpressionResolver
        return DateExpressionResolver(clock=fixed_clock)

    def test_in_n_days_forces_due(self, resolver):
        from secondbrain.common.schemas import DateField

        result = resolver.resolve("in 3 days", context="tasks due in 3 days")

        assert result.field == DateField.DUE
        assert result.start == datetime(2026, 10, 14)
        assert result.end == datetime(2026, 10, 17, 23, 59, 59, 999000)

    @pytest.mark.parametrize("phrase,end", [
        ("in 2 weeks", datetime(2026, 10, 28, 23, 59, 59, 999000)),
        ("in 1 month", datetime(2026, 11, 14, 23, 59, 59, 999000)),
    ])
    def test_in_n_units(self, resolver, phrase, end):
        from secondbrain.common.schemas import DateField

        result = resolver.resolve(phrase)

        assert result.field == DateField.DUE
        assert result.end == end

    def test_overdue_runs_from_epoch_to_now(self, resolver):
        from secondbrain.common.date_utils import EPOCH
        from secondbrain.common.schemas import DateField

        result = resolver.resolve("overdue", context="what is overdue")

        assert result.field == DateField.DUE
        assert result.start == EPOCH
        assert result.end == NOW

    def test_overdue_ignores_received_hint(self, resolver):
        from secondbrain.common.schemas import DateField

        result = resolver.resolve("overdue", context="overdue emails")

        assert result.field == DateField.DUE

    @pytest.mark.parametrize("context,expected", [
        ("meetings last week", "memory_date"),
        ("deadlines last week", "due_date"),
        ("what was due last week", "due_date"),
        ("emails received last week", "received_date"),
        ("what I got last week", "received_date"),
        ("stuff I sent last week", "received_date"),
    ])
    def test_hints_come_from_full_query(self, resolver, context, expected):
        result = resolver.resolve("last week", context=context)

        assert result.field.value == expected

    def test_default_field_is_occurrence(self, resolver):
        from secondbrain.common.schemas import DateField

        assert resolver.resolve("yesterday").field == DateField.MEMORY


class TestPhraseDiscovery:

    @pytest.fixture
    def resolver(self, fixed_clock):
        from secondbrain.retriever.date_resolver import DateExpressionResolver
        return DateExpressionResolver(clock=fixed_clock)

    def test_finds_phrase_inside_query(self, resolver):
        assert resolver.find_phrase("tasks due in 3 days") == "in 3 days"
        assert resolver.find_phrase("Notes from LAST WEEK") == "LAST WEEK"

    def test_bank_order_decides_between_phrases(self, resolver):
        # "yesterday" sits before "last week" in the bank
        assert resolver.find_phrase("last week and yesterday") == "yesterday"

    def test_today_does_not_match_inside_yesterday(self, resolver):
        matched = resolver.match("yesterday")

        assert matched[0].name == "yesterday"

    def test_no_phrase(self, resolver):
        assert resolver.find_phrase("pasta recipes") is None
        assert resolver.resolve("pasta recipes") is None
        assert resolver.resolve(None) is None
        assert resolver.resolve("") is None


class TestParseFailures:

    @pytest.fixture
    def resolver(self, fixed_clock):
        from secondbrain.retriever.date_resolver import DateExpressionResolver
        return DateExpressionResolver(clock=fixed_clock)

    def test_strict_raises_for_impossible_year(self, resolver):
        from secondbrain.common.errors import DateParseError

        with pytest.raises(DateParseError) as exc_info:
            resolver.resolve_strict("Q1 0000")

        assert exc_info.value.phrase == "Q1 0000"

    def test_strict_raises_on_overflow(self, resolver):
        from secondbrain.common.errors import DateParseError

        with pytest.raises(DateParseError):
            resolver.resolve_strict("in 99999999999 days")

    def test_lenient_resolve_logs_and_returns_none(self, resolver, caplog):
        with caplog.at_level(logging.WARNING, logger="secondbrain.retriever.date_resolver"):
            result = resolver.resolve("Q1 0000")

        assert result is None
        assert "Q1 0000" in caplog.text

    def test_custom_bank(self, fixed_clock):
        import re
        from secondbrain.retriever.date_resolver import DateExpressionResolver, DatePattern

        christmas = DatePattern(
            "christmas",
            re.compile(r"\bchristmas\b", re.IGNORECASE),
            lambda m, now: (datetime(now.year, 12, 25), datetime(now.year, 12, 25, 23, 59, 59, 999000)),
        )
        resolver = DateExpressionResolver(patterns=[christmas], clock=fixed_clock)

        result = resolver.resolve("christmas")

        assert result.start == datetime(2026, 12, 25)
        assert resolver.resolve("yesterday") is None
