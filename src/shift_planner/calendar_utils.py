"""
Calendar Utilities for Shift Planning System

Monday-aligned week boundaries, ISO-8601 week numbers and the decomposition
of a date range into consecutive planning weeks.
"""

import math
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
SHIFT_TYPES = ("AM", "PM", "Night")
TEAMS = ("A", "B", "C")

DateLike = Union[date, datetime, str]


def parse_date(value: DateLike) -> date:
    """Convert a date, datetime or 'YYYY-MM-DD' string to a date.

    Raises ValueError for strings that are not ISO dates.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    # ISO timestamps carry a time part after a "T" or a space
    if len(text) > 10 and text[10] in "T ":
        text = text[:10]
    return datetime.strptime(text, "%Y-%m-%d").date()


def format_iso(value: DateLike) -> str:
    """Format as YYYY-MM-DD"""
    return parse_date(value).strftime("%Y-%m-%d")


def format_display(value: DateLike) -> str:
    """Format as DD/MM/YYYY"""
    return parse_date(value).strftime("%d/%m/%Y")


def monday_of(value: DateLike) -> date:
    """Return the Monday of the week containing the given date.

    Sunday belongs to the end of its week, so it moves back six days.
    """
    d = parse_date(value)
    return d - timedelta(days=d.isoweekday() - 1)


def week_number(value: DateLike) -> int:
    """
    ISO-8601 week number.

    The date is moved to the Thursday of its week (Sunday counts as day 7);
    week 1 is the week holding the first Thursday of that Thursday's year.
    """
    d = parse_date(value)
    thursday = d + timedelta(days=4 - d.isoweekday())
    days = (thursday - date(thursday.year, 1, 1)).days
    return math.ceil((days + 1) / 7)


def week_from_monday(monday: date) -> List[str]:
    """The seven ISO date strings of the week starting on `monday`"""
    return [format_iso(monday + timedelta(days=offset)) for offset in range(7)]


def weeks_in_range(start_date: DateLike, end_date: DateLike) -> List[List[str]]:
    """
    Split a date range into Monday-aligned weeks.

    The start is moved back to its Monday and 7-day blocks are emitted until
    a block would start after the end date. The blocks are contiguous and
    never overlap. An end date before the aligned start yields no weeks.
    """
    current = monday_of(start_date)
    end = parse_date(end_date)

    weeks = []
    while current <= end:
        weeks.append(week_from_monday(current))
        current += timedelta(days=7)
    return weeks


def next_n_weeks(n: int, from_date: Optional[DateLike] = None) -> List[List[str]]:
    """`n` consecutive weeks starting with the week of `from_date` (default today)"""
    start = monday_of(from_date if from_date is not None else date.today())
    return [week_from_monday(start + timedelta(days=7 * i)) for i in range(n)]


def week_span(week_dates: List[str]) -> Tuple[date, date]:
    """First and last date of a week"""
    return parse_date(week_dates[0]), parse_date(week_dates[-1])


def weeks_overlap(first: List[str], second: List[str]) -> bool:
    """Inclusive interval intersection of two weeks"""
    if not first or not second:
        return False
    first_start, first_end = week_span(first)
    second_start, second_end = week_span(second)
    return first_start <= second_end and first_end >= second_start


def week_label(week_dates: List[str]) -> str:
    """Human readable label, e.g. 'Week 10: 04/03/2024 - 10/03/2024'"""
    if not week_dates:
        return "Week -"
    start, end = week_span(week_dates)
    return f"Week {week_number(start)}: {format_display(start)} - {format_display(end)}"
