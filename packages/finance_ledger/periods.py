"""Relative period resolution.

:func:`resolve_period` turns a free-text phrase ("how much last week?",
"траты в этом месяце") plus a reference instant into an absolute, inclusive
calendar-day range. It is pure: no clock reads, no I/O, so any answer can be
replayed from the same ``(phrase, now)`` pair.

Calendar: UTC days, ISO weeks starting on Monday.

Rules are evaluated in order and the first match wins:

1. today / yesterday / day before yesterday (skipped when the phrase mentions
   a month)
2. last week, optionally narrowed to a named weekday
3. this week, optionally narrowed to a named weekday
4. last month
5. this month
6. last year
7. this year
8. fallback: first day of the current month through today

Signals are recognized in English, Russian and Ukrainian.
"""

from __future__ import annotations

import calendar
import re
from datetime import UTC, date, datetime, timedelta

from .models import Period

_FLAGS = re.IGNORECASE | re.UNICODE

_DAY_BEFORE_YESTERDAY = re.compile(r"\bday before yesterday\b|позавчера|позавчора", _FLAGS)
_YESTERDAY = re.compile(r"\byesterday\b|вчера|вчора", _FLAGS)
_TODAY = re.compile(r"\btoday\b|сегодня|сьогодні", _FLAGS)

_MONTH_WORD = re.compile(r"\bmonths?\b|месяц|місяц", _FLAGS)

_LAST = r"(?:last|previous|past|прошл\w*|предыдущ\w*|последн\w*|минул\w*|попередн\w*|останн\w*)"
_THIS = r"(?:this|current|эт\w*|текущ\w*|ц(?:ей|ього|ьому)|поточн\w*)"
_WEEK = r"(?:week|недел\w*|тиж\w*)"
_MONTH = r"(?:month|месяц\w*|місяц\w*)"
_YEAR = r"(?:year|год(?:а|у|ом|е)?|році|року|рік)"

_LAST_WEEK = re.compile(rf"\b{_LAST}\s+{_WEEK}", _FLAGS)
_THIS_WEEK = re.compile(rf"\b{_THIS}\s+{_WEEK}", _FLAGS)
_LAST_MONTH = re.compile(rf"\b{_LAST}\s+{_MONTH}", _FLAGS)
_THIS_MONTH = re.compile(rf"\b{_THIS}\s+{_MONTH}", _FLAGS)
_LAST_YEAR = re.compile(rf"\b{_LAST}\s+{_YEAR}\b", _FLAGS)
_THIS_YEAR = re.compile(rf"\b{_THIS}\s+{_YEAR}\b", _FLAGS)

# ISO weekday numbers (Monday=1 ... Sunday=7). Checked in this order, so
# Ukrainian "понеділок" resolves to Monday before "неділ" (Sunday) is tried.
_WEEKDAYS: tuple[tuple[int, re.Pattern[str]], ...] = (
    (1, re.compile(r"\bmonday\b|понедельник\w*|понеділ\w*", _FLAGS)),
    (2, re.compile(r"\btuesday\b|вторник\w*|вівтор\w*", _FLAGS)),
    (3, re.compile(r"\bwednesday\b|сред[ауые]\b|серед[ауі]\b", _FLAGS)),
    (4, re.compile(r"\bthursday\b|четверг\w*|четвер\w*", _FLAGS)),
    (5, re.compile(r"\bfriday\b|пятниц\w*|п['ʼ’]?ятниц\w*", _FLAGS)),
    (6, re.compile(r"\bsaturday\b|суббот\w*|субот\w*", _FLAGS)),
    (7, re.compile(r"\bsunday\b|воскресень\w*|(?<!по)неділ\w*", _FLAGS)),
)


def _reference_day(now: datetime | date) -> date:
    if isinstance(now, datetime):
        if now.tzinfo is not None:
            now = now.astimezone(UTC)
        return now.date()
    return now


def detect_weekday(phrase: str) -> int | None:
    """Return the ISO weekday (1-7) named in ``phrase``, if any."""

    for number, pattern in _WEEKDAYS:
        if pattern.search(phrase):
            return number
    return None


def _week_start(day: date) -> date:
    return day - timedelta(days=day.isoweekday() - 1)


def _week_period(monday: date, weekday: int | None) -> Period:
    if weekday is not None:
        target = monday + timedelta(days=weekday - 1)
        return Period(target, target)
    return Period(monday, monday + timedelta(days=6))


def _month_period(year: int, month: int) -> Period:
    last_day = calendar.monthrange(year, month)[1]
    return Period(date(year, month, 1), date(year, month, last_day))


def resolve_period(phrase: str | None, now: datetime | date) -> Period:
    """Resolve ``phrase`` relative to ``now`` into an inclusive day range.

    Parameters
    ----------
    phrase:
        Free text; ``None`` or empty behaves like "no signal".
    now:
        Reference instant. Aware datetimes are converted to UTC, naive ones
        are taken as UTC, plain dates are used as-is.
    """

    today = _reference_day(now)
    text = " ".join((phrase or "").split())
    mentions_month = bool(_MONTH_WORD.search(text))

    if not mentions_month:
        if _DAY_BEFORE_YESTERDAY.search(text):
            day = today - timedelta(days=2)
            return Period(day, day)
        if _YESTERDAY.search(text):
            day = today - timedelta(days=1)
            return Period(day, day)
        if _TODAY.search(text):
            return Period(today, today)

    if _LAST_WEEK.search(text):
        return _week_period(_week_start(today) - timedelta(days=7), detect_weekday(text))

    if _THIS_WEEK.search(text):
        return _week_period(_week_start(today), detect_weekday(text))

    if _LAST_MONTH.search(text):
        first_of_month = today.replace(day=1)
        prev = first_of_month - timedelta(days=1)
        return _month_period(prev.year, prev.month)

    if mentions_month and _THIS_MONTH.search(text):
        return _month_period(today.year, today.month)

    if _LAST_YEAR.search(text):
        return Period(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))

    if _THIS_YEAR.search(text):
        return Period(date(today.year, 1, 1), date(today.year, 12, 31))

    return Period(today.replace(day=1), today)


__all__ = [
    "detect_weekday",
    "resolve_period",
]
