"""
Time resolution for reminders and task due dates.

Turns natural-language expressions ("in 5 minutes", "tomorrow at 8am",
"next Monday") and ISO-8601 strings into timezone-aware datetimes in the local
timezone. Relative and day-word expressions are handled with regular
expressions; free-form absolute dates fall back to ``dateutil``.
"""
from __future__ import annotations

import logging
import re
import typing as t
from datetime import datetime, time, timedelta, timezone

from dateutil import parser as date_parser
from dateutil import tz
from dateutil.relativedelta import relativedelta

from .errors import InvalidTimeExpression, PastTimeRejected

logger = logging.getLogger(__name__)

Clock = t.Callable[[], datetime]
MomentParser = t.Callable[[str, datetime], t.Optional[datetime]]


def now_local() -> datetime:
    """Current time in the system timezone.

    The tzinfo is the zone itself (with its DST rules), not the UTC offset in
    effect right now, so wall-clock arithmetic across a DST change stays local.
    """
    return datetime.now(tz.tzlocal())


def _elapsed(start: datetime, delta: timedelta) -> datetime:
    """``start + delta`` in real elapsed time, expressed in start's zone."""
    return (start.astimezone(timezone.utc) + delta).astimezone(start.tzinfo)


_NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

_UNIT_DELTAS = {
    "second": timedelta(seconds=1),
    "sec": timedelta(seconds=1),
    "minute": timedelta(minutes=1),
    "min": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "hr": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
}

# Default clock hour for day periods ("tomorrow morning")
_PERIOD_HOURS = {"morning": 8, "afternoon": 14, "evening": 19, "night": 21}

_WEEKDAYS = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1, "tues": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3, "thur": 3, "thurs": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}

_AMOUNT = r"(?P<amount>\d+|" + "|".join(_NUMBER_WORDS) + r")"
_UNIT = r"(?P<unit>second|sec|minute|min|hour|hr|day|week)s?"
_PERIOD = r"(?P<period>" + "|".join(_PERIOD_HOURS) + r")"

_RELATIVE_RE = re.compile(rf"^(?P<prefix>in\s+)?{_AMOUNT}\s+{_UNIT}(?P<suffix>\s+from\s+now)?$")
_DAY_WORD_RE = re.compile(
    rf"^(?P<day>today|tonight|tomorrow)(?:\s+{_PERIOD})?(?:\s+(?:at\s+)?(?P<time>.+))?$"
)
_WEEKDAY_RE = re.compile(
    r"^(?:on\s+)?(?:(?:next|this)\s+)?(?P<weekday>" + "|".join(_WEEKDAYS) + r")"
    rf"(?:\s+{_PERIOD})?(?:\s+(?:at\s+)?(?P<time>.+))?$"
)
_CLOCK_RE = re.compile(r"^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<ampm>am|pm|a\.m\.|p\.m\.)?$")
_BARE_CLOCK_RE = re.compile(r"^(?P<at>at\s+)?(?P<time>noon|midnight|\d{1,2}(?::\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.)?)$")
_DATE_ONLY_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$")
_YEAR_RE = re.compile(r"\b\d{4}\b")


def _parse_clock(text: str) -> t.Optional[tuple[int, int, bool]]:
    """Parse "8", "8am", "6:30 pm", "18:00", "noon" into (hour, minute, has_meridiem)."""
    text = text.strip()
    if text == "noon":
        return 12, 0, True
    if text == "midnight":
        return 0, 0, True

    m = _CLOCK_RE.match(text)
    if not m:
        return None

    hour = int(m.group("hour"))
    minute = int(m.group("minute") or 0)
    ampm = (m.group("ampm") or "").replace(".", "")
    if minute > 59:
        return None

    if ampm:
        if not 1 <= hour <= 12:
            return None
        if ampm == "pm" and hour < 12:
            hour += 12
        elif ampm == "am" and hour == 12:
            hour = 0
    elif hour > 23:
        return None

    return hour, minute, bool(ampm)


def _at(reference: datetime, hour: int, minute: int, days: int = 0) -> datetime:
    # Aware + timedelta moves the wall clock, so "tomorrow at 8" stays 8:00 across DST
    return reference.replace(hour=hour, minute=minute, second=0, microsecond=0) + timedelta(days=days)


def _clock_for(
        time_text: t.Optional[str],
        period: t.Optional[str],
        evening_bias: bool,
) -> t.Union[tuple[int, int], bool, None]:
    """Work out the clock time of a day-word or weekday expression.

    Returns (hour, minute), True when no time was given at all, or None when a
    time was given but does not parse.
    """
    if time_text:
        clock = _parse_clock(time_text)
        if clock is None:
            return None
        hour, minute, has_meridiem = clock
        # "tonight at 8" / "tomorrow evening at 7" mean PM
        if not has_meridiem and hour < 12 and (evening_bias or period in ("afternoon", "evening", "night")):
            hour += 12
        return hour, minute
    if period:
        return _PERIOD_HOURS[period], 0
    return True


def _parse_relative(text: str, reference: datetime) -> t.Optional[datetime]:
    m = _RELATIVE_RE.match(text)
    if not m or not (m.group("prefix") or m.group("suffix")):
        return None
    raw_amount = m.group("amount")
    amount = int(raw_amount) if raw_amount.isdigit() else _NUMBER_WORDS[raw_amount]
    delta = _UNIT_DELTAS[m.group("unit")]
    try:
        # "in 2 days" keeps the clock time; "in 3 hours" is elapsed time
        if delta.days:
            return reference + delta * amount
        return _elapsed(reference, delta * amount)
    except (OverflowError, ValueError):
        return None


def _parse_day_word(text: str, reference: datetime) -> t.Optional[datetime]:
    m = _DAY_WORD_RE.match(text)
    if not m:
        return None

    day = m.group("day")
    days = 1 if day == "tomorrow" else 0
    clock = _clock_for(m.group("time"), m.group("period"), evening_bias=(day == "tonight"))
    if clock is None:
        return None
    if clock is True:
        if day == "tonight":
            return _at(reference, 21, 0)
        return reference + timedelta(days=days)

    hour, minute = clock
    return _at(reference, hour, minute, days)


def _parse_weekday(text: str, reference: datetime) -> t.Optional[datetime]:
    m = _WEEKDAY_RE.match(text)
    if not m:
        return None

    # Always the next occurrence strictly after the reference day
    days = (_WEEKDAYS[m.group("weekday")] - reference.weekday()) % 7 or 7
    clock = _clock_for(m.group("time"), m.group("period"), evening_bias=False)
    if clock is None:
        return None
    if clock is True:
        return reference + timedelta(days=days)

    hour, minute = clock
    return _at(reference, hour, minute, days)


def _parse_bare_clock(text: str, reference: datetime) -> t.Optional[datetime]:
    m = _BARE_CLOCK_RE.match(text)
    if not m:
        return None

    time_text = m.group("time")
    clock = _parse_clock(time_text)
    if clock is None:
        return None
    hour, minute, has_meridiem = clock
    # A lone number is a day of month, not a clock time, unless written "at 5"
    if not (has_meridiem or ":" in time_text or m.group("at")):
        return None

    result = _at(reference, hour, minute)
    if result <= reference:
        result += timedelta(days=1)
    return result


def _parse_iso(text: str, reference: datetime) -> t.Optional[datetime]:
    m = _DATE_ONLY_RE.match(text)
    if m:
        try:
            return datetime(
                int(m.group("year")), int(m.group("month")), int(m.group("day")),
                tzinfo=reference.tzinfo,
            )
        except ValueError:
            return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=reference.tzinfo)
    return parsed.astimezone(reference.tzinfo)


def _parse_absolute(text: str, reference: datetime) -> t.Optional[datetime]:
    default = reference.replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        parsed = date_parser.parse(text, default=default)
    except (ValueError, OverflowError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=reference.tzinfo)
    else:
        parsed = parsed.astimezone(reference.tzinfo)

    # "December 25" said in late December means next year
    if parsed < default and not _YEAR_RE.search(text):
        parsed += relativedelta(years=1)
    return parsed


def parse_moment(text: str, reference: datetime) -> t.Optional[datetime]:
    """
    Parse a natural-language or ISO-8601 time expression.

    Natural-language forms are tried first, then strict ISO-8601 (full
    timestamp or ``YYYY-MM-DD`` as local midnight), then free-form absolute
    dates through dateutil.

    :param text: The expression, e.g. "in 5 minutes" or "2025-12-25T09:00".
    :param reference: Aware datetime that relative expressions count from.
    :return: An aware datetime, or None when nothing matches.
    """
    raw = " ".join(text.split())
    if not raw:
        return None
    lowered = raw.lower()

    if lowered in ("now", "right now"):
        return reference

    for natural in (_parse_relative, _parse_day_word, _parse_weekday, _parse_bare_clock):
        result = natural(lowered, reference)
        if result is not None:
            return result

    result = _parse_iso(raw, reference)
    if result is not None:
        return result

    return _parse_absolute(raw, reference)


class TimeResolver:
    """Resolves time expressions to absolute datetimes and enforces domain rules."""

    def __init__(
            self,
            clock: Clock = now_local,
            *,
            past_grace: timedelta = timedelta(seconds=60),
            parser: MomentParser = parse_moment,
    ) -> None:
        self._clock = clock
        self._past_grace = past_grace
        self._parser = parser

    def now(self) -> datetime:
        return self._clock()

    def resolve(
            self,
            text: t.Optional[str],
            *,
            future_only: bool = False,
            reference: t.Optional[datetime] = None,
    ) -> datetime:
        """Resolve an expression to an absolute datetime.

        Args:
            text: The time expression.
            future_only: Reject instants at or before ``reference - past_grace``.
            reference: Time to resolve against; defaults to the resolver's clock.

        Returns:
            Aware datetime in the reference's timezone.

        Raises:
            InvalidTimeExpression: If the expression is blank or does not parse.
            PastTimeRejected: If ``future_only`` is set and the instant is in the past.
        """
        if text is None or not str(text).strip():
            raise InvalidTimeExpression("A time expression is required.")

        if reference is None:
            reference = self._clock()
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=tz.tzlocal())

        parsed = self._parser(str(text), reference)
        if parsed is None:
            raise InvalidTimeExpression(
                f'Invalid time: {text}. Please use formats like "in 5 minutes", '
                f'"tomorrow at 8am", or ISO 8601.'
            )

        # Compared as instants: same-zone comparison would use wall-clock fields
        if future_only and parsed.astimezone(timezone.utc) <= reference.astimezone(timezone.utc) - self._past_grace:
            logger.debug("Rejected past time %r -> %s (reference %s)", text, parsed.isoformat(), reference.isoformat())
            raise PastTimeRejected(f"Reminder time must be in the future: {text}")

        return parsed

    def resolve_date(self, text: t.Optional[str], *, reference: t.Optional[datetime] = None) -> datetime:
        """Resolve an expression and normalise it to local midnight of that day.

        Midnight is built from the calendar date in the reference zone, so its
        UTC offset is the one in effect on that day.
        """
        try:
            resolved = self.resolve(text, reference=reference)
        except InvalidTimeExpression:
            raise InvalidTimeExpression(
                f'Invalid task date: {text}. Please use formats like "December 25" or "2025-12-25".'
            ) from None
        return datetime.combine(resolved.date(), time(), tzinfo=resolved.tzinfo)
