"""
Date resolution rules for Braindump.

Pure functions mapping a relative-date phrase and an anchor date to a concrete
calendar date, time and recurrence. The same functions generate the worked
examples in the oracle contract and back the rule-based classifier, so the
instructions and the resolver cannot drift apart.

Weekday indexing is Sunday=0 .. Saturday=6.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any

WEEKDAYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

RECURRENCES = ("daily", "weekly", "monthly", "yearly")

RECURRENCE_ALIASES = {
    "daily": "daily",
    "every day": "daily",
    "everyday": "daily",
    "each day": "daily",
    "weekly": "weekly",
    "every week": "weekly",
    "each week": "weekly",
    "monthly": "monthly",
    "every month": "monthly",
    "each month": "monthly",
    "yearly": "yearly",
    "annually": "yearly",
    "annual": "yearly",
    "every year": "yearly",
    "each year": "yearly",
}

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

_MERIDIEM_TIME = re.compile(
    r"\b(1[0-2]|0?[1-9])(?:[:.]([0-5]\d))?\s*([ap])\.?\s?m\b\.?",
    re.IGNORECASE,
)
_CLOCK_TIME = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b")
_NAMED_TIMES = {"noon": "12:00", "midday": "12:00", "midnight": "00:00"}

_WEEKDAY_RE = "|".join(WEEKDAYS)
_ORDINAL_RE = r"(\d{1,2})(?:st|nd|rd|th)?"


class PhraseKind(str, Enum):
    """Recognised relative-date phrases."""

    TODAY = "today"
    TOMORROW = "tomorrow"
    DAY_AFTER_TOMORROW = "day_after_tomorrow"
    THIS_WEEKDAY = "this_weekday"
    NEXT_WEEKDAY = "next_weekday"
    NEXT_WEEK = "next_week"
    NEXT_MONTH = "next_month"


@dataclass(frozen=True)
class Resolution:
    """Concrete outcome of resolving one phrase."""

    date: date | None
    time: str | None = None
    recurrence: str | None = None


# Most specific first: "day after tomorrow" must win over "tomorrow".
_PHRASES: list[tuple[re.Pattern[str], PhraseKind]] = [
    (re.compile(r"\bday after tomorrow\b", re.I), PhraseKind.DAY_AFTER_TOMORROW),
    (re.compile(rf"\b(?:next|following) month(?: on)?(?: the)? {_ORDINAL_RE}\b", re.I), PhraseKind.NEXT_MONTH),
    (re.compile(r"\b(?:next|following) month\b", re.I), PhraseKind.NEXT_MONTH),
    (re.compile(rf"\b(?:next|following) ({_WEEKDAY_RE})\b", re.I), PhraseKind.NEXT_WEEKDAY),
    (re.compile(r"\b(?:next|following) week\b", re.I), PhraseKind.NEXT_WEEK),
    (re.compile(rf"\b(?:this|coming|on) ({_WEEKDAY_RE})\b", re.I), PhraseKind.THIS_WEEKDAY),
    (re.compile(r"\b(?:today|tonight|this (?:morning|afternoon|evening))\b", re.I), PhraseKind.TODAY),
    (re.compile(r"\b(?:tomorrow|day after|next day)\b", re.I), PhraseKind.TOMORROW),
    (re.compile(rf"\b({_WEEKDAY_RE})\b", re.I), PhraseKind.THIS_WEEKDAY),
]


def weekday_index(value: date) -> int:
    """Weekday of ``value`` with Sunday=0 .. Saturday=6."""
    return (value.weekday() + 1) % 7


def day_of_week(value: date) -> str:
    """Long-form weekday name, e.g. 'Tuesday'."""
    return calendar.day_name[value.weekday()]


def _weekday_number(name: str) -> int:
    try:
        return WEEKDAYS.index(name.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown weekday: {name}") from None


def this_weekday(anchor: date, weekday: str) -> date:
    """
    "this/coming <weekday>".

    A weekday later in the current week resolves within it; a weekday that
    already occurred, including the anchor's own weekday, moves to the
    following week (7-13 days ahead).
    """
    target = _weekday_number(weekday)
    current = weekday_index(anchor)
    delta = (target - current) % 7
    if target <= current:
        delta += 7
    return anchor + timedelta(days=delta)


def next_weekday(anchor: date, weekday: str) -> date:
    """"next/following <weekday>": always within [anchor+7, anchor+13]."""
    target = _weekday_number(weekday)
    return anchor + timedelta(days=7 + (target - weekday_index(anchor)) % 7)


def next_week(anchor: date) -> date:
    """"next/following week": Monday of the week containing anchor+7."""
    later = anchor + timedelta(days=7)
    return later + timedelta(days=1 - weekday_index(later))


def next_month(anchor: date, day: int | None = None) -> date:
    """Given day of the following month (clamped), or its 1st."""
    year, month = (anchor.year + 1, 1) if anchor.month == 12 else (anchor.year, anchor.month + 1)
    if day is None:
        return date(year, month, 1)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(int(day), last_day)))


def resolve(kind: PhraseKind | str, params: dict[str, Any] | None, anchor: date) -> Resolution:
    """
    Resolve a phrase to a concrete date, time and recurrence.

    ``params`` may hold ``weekday``, ``day``, ``time`` and ``recurrence``.
    """
    kind = PhraseKind(kind)
    params = params or {}

    if kind is PhraseKind.TODAY:
        resolved = anchor
    elif kind is PhraseKind.TOMORROW:
        resolved = anchor + timedelta(days=1)
    elif kind is PhraseKind.DAY_AFTER_TOMORROW:
        resolved = anchor + timedelta(days=2)
    elif kind is PhraseKind.THIS_WEEKDAY:
        resolved = this_weekday(anchor, params["weekday"])
    elif kind is PhraseKind.NEXT_WEEKDAY:
        resolved = next_weekday(anchor, params["weekday"])
    elif kind is PhraseKind.NEXT_WEEK:
        resolved = next_week(anchor)
    else:
        resolved = next_month(anchor, params.get("day"))

    time_text = params.get("time")
    recurrence_text = params.get("recurrence")
    return Resolution(
        date=resolved,
        time=parse_time(time_text) if time_text else None,
        recurrence=normalize_recurrence(recurrence_text) if recurrence_text else None,
    )


def parse_time(text: str) -> str | None:
    """
    Convert a spoken clock time to zero-padded 24-hour ``HH:MM``.

    Handles "3pm", "3:30 p.m.", "12am" and "noon"; a valid 24-hour "15:00"
    passes through. Returns None when no time is present.
    """
    if not text:
        return None
    lowered = text.lower()

    if match := _MERIDIEM_TIME.search(lowered):
        hour = int(match.group(1)) % 12
        minute = int(match.group(2) or 0)
        if match.group(3) == "p":
            hour += 12
        return f"{hour:02d}:{minute:02d}"

    if match := _CLOCK_TIME.search(lowered):
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    for word, value in _NAMED_TIMES.items():
        if re.search(rf"\b{word}\b", lowered):
            return value
    return None


def normalize_recurrence(text: str | None) -> str | None:
    """Map text onto the closed vocabulary; anything else is one-time (None)."""
    if not text:
        return None
    return RECURRENCE_ALIASES.get(" ".join(text.lower().split()))


def find_recurrence(text: str) -> str | None:
    """First recurrence phrase mentioned anywhere in ``text``."""
    lowered = " ".join(text.lower().split())
    for phrase in sorted(RECURRENCE_ALIASES, key=len, reverse=True):
        if re.search(rf"\b{phrase}\b", lowered):
            return RECURRENCE_ALIASES[phrase]
    return None


def find_date_phrase(text: str) -> tuple[PhraseKind, dict[str, Any]] | None:
    """Locate the most specific relative-date phrase in free text."""
    for pattern, kind in _PHRASES:
        match = pattern.search(text)
        if not match:
            continue
        params: dict[str, Any] = {}
        if kind in (PhraseKind.THIS_WEEKDAY, PhraseKind.NEXT_WEEKDAY):
            params["weekday"] = match.group(1).lower()
        elif kind is PhraseKind.NEXT_MONTH and match.groups():
            params["day"] = int(match.group(1))
        return kind, params
    return None


def is_concrete_date(value: str, anchor: date) -> bool:
    """True for a real ``YYYY-MM-DD`` calendar date on or after ``anchor``."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        return False
    try:
        parsed = date.fromisoformat(value.strip())
    except ValueError:
        return False
    return parsed >= anchor


def is_valid_time(value: str) -> bool:
    """True for zero-padded 24-hour ``HH:MM``."""
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))
