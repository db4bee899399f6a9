# Natural language and formatted date parsing for calendar input
#
# Copyright (C) 2013-2026  Jochen Sprickerhof
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.
"""Resolve free-form date strings to absolute instants.

Supported inputs, tried in this order:
  - standard formats: RFC 3339, 2026-03-15 14:00, 03/15/2026, Jan 2, 2026, ...
  - keywords: today, tomorrow, yesterday, now
  - period ends: eod/end of day (today 17:00), eow/end of week (Friday
    17:00), this week (Sunday 23:59), next week (Monday), next month (1st)
  - relative: in 3 hours, in 2 weeks, 5 days ago
  - weekdays: next friday, next monday at 2pm, friday 3:30pm, monday
  - month-day: mar 15, december 31 11:59pm
  - time only: 5pm, 17:00, 3:30pm
  - ISO date followed by a time: 2026-03-15 2pm
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone, tzinfo
from logging import getLogger
from re import compile as re_compile
from types import MappingProxyType

from dateutil import tz
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta
from tzlocal import get_localzone

from calevent import (
    DateParseFailure,
    InvalidTimeComponent,
    InvalidTimezone,
    Weekday,
)

logger = getLogger(__name__)

WEEKDAYS = MappingProxyType(
    {
        "monday": Weekday.MONDAY,
        "mon": Weekday.MONDAY,
        "tuesday": Weekday.TUESDAY,
        "tue": Weekday.TUESDAY,
        "wednesday": Weekday.WEDNESDAY,
        "wed": Weekday.WEDNESDAY,
        "thursday": Weekday.THURSDAY,
        "thu": Weekday.THURSDAY,
        "friday": Weekday.FRIDAY,
        "fri": Weekday.FRIDAY,
        "saturday": Weekday.SATURDAY,
        "sat": Weekday.SATURDAY,
        "sunday": Weekday.SUNDAY,
        "sun": Weekday.SUNDAY,
    }
)

MONTHS = MappingProxyType(
    {
        "jan": 1,
        "january": 1,
        "feb": 2,
        "february": 2,
        "mar": 3,
        "march": 3,
        "apr": 4,
        "april": 4,
        "may": 5,
        "jun": 6,
        "june": 6,
        "jul": 7,
        "july": 7,
        "aug": 8,
        "august": 8,
        "sep": 9,
        "september": 9,
        "oct": 10,
        "october": 10,
        "nov": 11,
        "november": 11,
        "dec": 12,
        "december": 12,
    }
)

# strptime formats after RFC 3339, most specific first
STANDARD_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %I:%M%p",
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M%p",
    "%b %d, %Y",
    "%b %d, %Y %I:%M%p",
    "%b %d, %Y %H:%M",
    "%B %d, %Y",
    "%B %d, %Y %I:%M%p",
    "%B %d, %Y %H:%M",
    "%d %b %Y",
)

_RFC3339 = re_compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)
_UNITS = r"(minutes?|mins?|hours?|hrs?|days?|weeks?|months?)"
_RELATIVE = re_compile(rf"^in\s+(\d+)\s+{_UNITS}$")
_AGO = re_compile(rf"^(\d+)\s+{_UNITS}\s+ago$")
_MONTH_DAY = re_compile(r"^([a-z]+)\s+(\d{1,2})(?:\s+(.+))?$")
_TIME_12H = re_compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)$")
_TIME_24H = re_compile(r"^(\d{1,2}):(\d{2})$")

_EXAMPLES = (
    "'today', 'tomorrow 2pm', 'this week', 'eow', 'next friday', "
    "'in 3 hours', or '2026-03-15 14:00'"
)


def resolve_zone(name: str = "") -> tzinfo:
    """Return the tzinfo for an IANA zone name, the local zone for ''."""
    if not name:
        return get_localzone()
    zone = tz.gettz(name)
    if zone is None:
        raise InvalidTimezone(f"unknown timezone: {name!r}", name)
    return zone


def parse_time(text: str) -> tuple[int, int]:
    """Parse a time of day (5pm, 3:30pm, 17:00) into (hour, minute)."""
    value = text.strip().lower()

    groups = _TIME_12H.match(value)
    if groups:
        hour = int(groups[1])
        minute = int(groups[2] or 0)
        if not 1 <= hour <= 12:
            raise InvalidTimeComponent(f"invalid hour {hour} in {text!r}", text)
        if minute > 59:
            raise InvalidTimeComponent(f"invalid minute {minute} in {text!r}", text)
        if groups[3] == "am":
            return (0 if hour == 12 else hour), minute
        return (hour if hour == 12 else hour + 12), minute

    groups = _TIME_24H.match(value)
    if groups:
        hour, minute = int(groups[1]), int(groups[2])
        if hour > 23 or minute > 59:
            raise InvalidTimeComponent(f"invalid time {text!r}", text)
        return hour, minute

    raise DateParseFailure(f"unable to parse time: {text!r}", text)


def _resolve(moment: datetime) -> datetime:
    """Move wall clock times skipped by a DST gap forward."""
    if moment.tzinfo is None:
        return moment
    return tz.resolve_imaginary(moment)


def _at(base: datetime, hour: int, minute: int) -> datetime:
    """Same calendar day as base at the given wall clock time."""
    return _resolve(base.replace(hour=hour, minute=minute, second=0, microsecond=0))


def _add_elapsed(now: datetime, delta: timedelta) -> datetime:
    """Add elapsed time, so DST changes shift the wall clock."""
    if now.tzinfo is None:
        return now + delta
    return (now.astimezone(timezone.utc) + delta).astimezone(now.tzinfo)


def _add_months(now: datetime, months: int) -> datetime:
    """Add calendar months, overflowing into the next month (Jan 31 + 1 = Mar 3)."""
    first = now.replace(day=1) + relativedelta(months=months)
    return first + timedelta(days=now.day - 1)


def _shift(now: datetime, amount: int, unit: str) -> datetime:
    if unit.startswith("min"):
        return _add_elapsed(now, timedelta(minutes=amount))
    if unit.startswith("h"):
        return _add_elapsed(now, timedelta(hours=amount))
    if unit.startswith("day"):
        return _resolve(now + timedelta(days=amount))
    if unit.startswith("week"):
        return _resolve(now + timedelta(weeks=amount))
    return _resolve(_add_months(now, amount))


def _checked_shift(text: str, now: datetime, amount: int, unit: str) -> datetime:
    """_shift, with results outside the supported years as DateParseFailure."""
    try:
        return _shift(now, amount, unit)
    except (OverflowError, ValueError) as exc:
        raise DateParseFailure(f"date out of range: {text!r}", text) from exc


def _next_weekday(now: datetime, target: Weekday, hour: int = 0, minute: int = 0) -> datetime:
    """Next occurrence of target strictly after today."""
    days_ahead = target - now.weekday()
    if days_ahead <= 0:
        days_ahead += 7
    return _at(now + timedelta(days=days_ahead), hour, minute)


def _split_time(words: list[str]) -> str:
    """Time expression from the remaining words, dropping a leading 'at'."""
    if words and words[0] == "at":
        words = words[1:]
    return " ".join(words)


def _parse_standard(text: str, now: datetime) -> datetime | None:
    if _RFC3339.match(text):
        return isoparse(text)
    for fmt in STANDARD_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return _resolve(parsed.replace(tzinfo=now.tzinfo))
    return None


def _parse_keyword(text: str, now: datetime) -> datetime | None:
    if text == "today":
        return _at(now, 0, 0)
    if text == "tomorrow":
        return _at(now + timedelta(days=1), 0, 0)
    if text == "yesterday":
        return _at(now - timedelta(days=1), 0, 0)
    if text == "now":
        return now
    return None


def _parse_period_end(text: str, now: datetime) -> datetime | None:
    if text in ("eod", "end of day"):
        return _at(now, 17, 0)
    if text in ("eow", "end of week"):
        # work week, today if it is already Friday
        days = (Weekday.FRIDAY - now.weekday()) % 7
        return _at(now + timedelta(days=days), 17, 0)
    if text == "this week":
        # calendar week, today if it is already Sunday
        days = (Weekday.SUNDAY - now.weekday()) % 7
        return _at(now + timedelta(days=days), 23, 59)
    if text == "next week":
        return _next_weekday(now, Weekday.MONDAY)
    if text == "next month":
        return _at(now.replace(day=1) + relativedelta(months=1), 0, 0)
    return None


def _parse_relative(text: str, now: datetime) -> datetime | None:
    groups = _RELATIVE.match(text)
    if not groups:
        return None
    return _checked_shift(text, now, int(groups[1]), groups[2])


def _parse_ago(text: str, now: datetime) -> datetime | None:
    groups = _AGO.match(text)
    if not groups:
        return None
    return _checked_shift(text, now, -int(groups[1]), groups[2])


def _parse_next_weekday(text: str, now: datetime) -> datetime | None:
    words = text.split()
    if len(words) < 2 or words[0] != "next" or words[1] not in WEEKDAYS:
        return None
    result = _next_weekday(now, WEEKDAYS[words[1]])
    time = _split_time(words[2:])
    if time:
        hour, minute = parse_time(time)
        result = _at(result, hour, minute)
    return result


def _base_day(word: str, now: datetime) -> datetime | None:
    offsets = {"today": 0, "tomorrow": 1, "yesterday": -1}
    if word not in offsets:
        return None
    return now + timedelta(days=offsets[word])


def _parse_day_with_time(text: str, now: datetime) -> datetime | None:
    words = text.split()
    if len(words) < 2:
        return None
    base = _base_day(words[0], now)
    if base is None:
        return None
    hour, minute = parse_time(_split_time(words[1:]))
    return _at(base, hour, minute)


def _parse_weekday_with_time(text: str, now: datetime) -> datetime | None:
    words = text.split()
    if len(words) < 2 or words[0] not in WEEKDAYS:
        return None
    hour, minute = parse_time(_split_time(words[1:]))
    target = WEEKDAYS[words[0]]
    today = _at(now, hour, minute)
    if target == now.weekday() and today >= now:
        return today
    return _next_weekday(now, target, hour, minute)


def _parse_month_day(text: str, now: datetime) -> datetime | None:
    groups = _MONTH_DAY.match(text)
    if not groups or groups[1] not in MONTHS:
        return None

    hour = minute = 0
    time = _split_time((groups[3] or "").split())
    if time:
        hour, minute = parse_time(time)

    try:
        moment = now.replace(
            month=MONTHS[groups[1]],
            day=int(groups[2]),
            hour=hour,
            minute=minute,
            second=0,
            microsecond=0,
        )
    except ValueError as exc:
        raise DateParseFailure(f"invalid date: {text!r}", text) from exc
    return _resolve(moment)


def _parse_weekday(text: str, now: datetime) -> datetime | None:
    if text not in WEEKDAYS:
        return None
    return _next_weekday(now, WEEKDAYS[text])


def _parse_time_only(text: str, now: datetime) -> datetime | None:
    hour, minute = parse_time(text)
    return _at(now, hour, minute)


def _parse_date_time_parts(text: str, now: datetime) -> datetime | None:
    words = text.split()
    if len(words) != 2:
        return None
    day = _parse_standard(words[0], now)
    if day is None:
        return None
    hour, minute = parse_time(words[1])
    return _at(day, hour, minute)


_STRATEGIES: tuple[Callable[[str, datetime], datetime | None], ...] = (
    _parse_keyword,
    _parse_period_end,
    _parse_relative,
    _parse_ago,
    _parse_next_weekday,
    _parse_day_with_time,
    _parse_weekday_with_time,
    _parse_month_day,
    _parse_weekday,
    _parse_time_only,
    _parse_date_time_parts,
)


def parse_date(text: str, now: datetime = None) -> datetime:
    """Parse a natural language or formatted date string.

    text -- the date expression, case insensitive
    now -- reference time, its tzinfo is used for the result (default: now
           in the local timezone)
    """
    if now is None:
        now = datetime.now(get_localzone())

    value = text.strip()
    if not value:
        raise DateParseFailure("empty date string", text)

    result = _parse_standard(value, now)
    if result is not None:
        return result

    lower = value.lower()
    invalid_time = None
    for strategy in _STRATEGIES:
        try:
            result = strategy(lower, now)
        except InvalidTimeComponent as exc:
            invalid_time = invalid_time or exc
            continue
        except DateParseFailure:
            continue
        if result is not None:
            logger.debug("%r parsed by %s as %s", text, strategy.__name__, result)
            return result

    if invalid_time is not None:
        raise invalid_time
    raise DateParseFailure(f"could not parse date: {text!r}. Try: {_EXAMPLES}", text)


def format_duration(start: datetime, end: datetime, all_day: bool) -> str:
    """Human readable length like '1h 30m', 'All Day' or '3 days'."""
    span = end - start
    if all_day:
        days = int(span.total_seconds() / 3600 / 24 + 0.5)
        if days <= 1:
            return "All Day"
        return f"{days} days"

    if span < timedelta(minutes=1):
        return "0m"
    hours, minutes = divmod(int(span.total_seconds() // 60), 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def format_time_range(start: datetime, end: datetime, all_day: bool) -> str:
    """Human readable range like '10:00 - 11:30' or 'Jan 15 - Jan 18'."""
    same_day = start.date() == end.date()
    if all_day:
        if same_day or end - start <= timedelta(days=1):
            return "All Day"
        return f"{start:%b %d} - {end:%b %d}"
    if same_day:
        return f"{start:%H:%M} - {end:%H:%M}"
    return f"{start:%b %d %H:%M} - {end:%b %d %H:%M}"
