# Codec for iCalendar RRULE values
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
"""Encode and decode RRULE values (FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,FR)."""

from datetime import datetime, timezone
from itertools import islice
from logging import getLogger
from types import MappingProxyType

from dateutil import rrule

from calevent import (
    Count,
    DayOfWeek,
    Frequency,
    MalformedRecurrenceRule,
    RecurrenceRule,
    Until,
    Weekday,
)

logger = getLogger(__name__)

_DATEUTIL_FREQ = MappingProxyType(
    {
        Frequency.DAILY: rrule.DAILY,
        Frequency.WEEKLY: rrule.WEEKLY,
        Frequency.MONTHLY: rrule.MONTHLY,
        Frequency.YEARLY: rrule.YEARLY,
    }
)

_UNITS = MappingProxyType(
    {
        Frequency.DAILY: ("day", "days"),
        Frequency.WEEKLY: ("week", "weeks"),
        Frequency.MONTHLY: ("month", "months"),
        Frequency.YEARLY: ("year", "years"),
    }
)


def parse_ics_datetime(value: str, date_only: bool = False) -> datetime:
    """Parse an iCalendar DATE or DATE-TIME value.

    date_only -- the value is YYYYMMDD, returned as midnight UTC
    A trailing Z yields an UTC datetime, otherwise a floating (naive) one.
    """
    if date_only:
        return datetime.strptime(value, "%Y%m%d").replace(tzinfo=timezone.utc)
    if value.endswith("Z"):
        return datetime.strptime(value, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
    return datetime.strptime(value, "%Y%m%dT%H%M%S")


def format_ics_datetime(moment: datetime) -> str:
    """Render a DATE-TIME value, UTC for aware and floating for naive datetimes."""
    if moment.tzinfo is None:
        return moment.strftime("%Y%m%dT%H%M%S")
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise MalformedRecurrenceRule(f"invalid {key} {value!r}", value) from exc


def _parse_byday(token: str) -> DayOfWeek:
    """Parse a BYDAY entry like MO, 2TU or -1FR."""
    token = token.strip()
    if len(token) < 2:
        raise MalformedRecurrenceRule(f"invalid BYDAY {token!r}", token)

    try:
        weekday = Weekday.from_code(token[-2:])
    except KeyError as exc:
        raise MalformedRecurrenceRule(
            f"unknown day {token[-2:]!r} in BYDAY", token
        ) from exc

    week_number = 0
    if len(token) > 2:
        try:
            week_number = int(token[:-2])
        except ValueError as exc:
            raise MalformedRecurrenceRule(
                f"invalid week number in BYDAY {token!r}", token
            ) from exc

    return DayOfWeek(weekday, week_number)


def parse_rrule(value: str) -> RecurrenceRule:
    """Decode an RRULE value into a RecurrenceRule.

    FREQ is required. If both UNTIL and COUNT are given, the last one wins.
    """
    frequency = None
    interval = 1
    days_of_week: list[DayOfWeek] = []
    days_of_month: list[int] = []
    end: None | Until | Count = None

    for part in value.strip().split(";"):
        key, sep, val = part.partition("=")
        if not sep:
            continue
        key = key.strip().upper()
        val = val.strip()

        if key == "FREQ":
            try:
                frequency = Frequency(val.upper())
            except ValueError as exc:
                raise MalformedRecurrenceRule(f"unknown FREQ {val!r}", val) from exc
        elif key == "INTERVAL":
            interval = _parse_int(key, val)
        elif key == "BYDAY":
            days_of_week.extend(_parse_byday(token) for token in val.split(","))
        elif key == "BYMONTHDAY":
            days_of_month.extend(_parse_int(key, day) for day in val.split(","))
        elif key == "UNTIL":
            try:
                moment = parse_ics_datetime(val, len(val) == 8)
            except ValueError as exc:
                raise MalformedRecurrenceRule(f"invalid UNTIL {val!r}", val) from exc
            if end is not None:
                logger.debug("UNTIL=%s replaces %r in %r", val, end, value)
            end = Until(moment)
        elif key == "COUNT":
            count = _parse_int(key, val)
            if count < 1:
                raise MalformedRecurrenceRule(f"invalid COUNT {val!r}", val)
            if end is not None:
                logger.debug("COUNT=%s replaces %r in %r", val, end, value)
            end = Count(count)
        else:
            logger.debug("ignoring unknown RRULE key %s in %r", key, value)

    if frequency is None:
        raise MalformedRecurrenceRule(f"RRULE missing FREQ: {value!r}", value)

    return RecurrenceRule(frequency, interval, tuple(days_of_week), tuple(days_of_month), end)


def format_rrule(rule: RecurrenceRule) -> str:
    """Encode a RecurrenceRule as RRULE value."""
    parts = [f"FREQ={rule.frequency.value}"]

    if rule.interval > 1:
        parts.append(f"INTERVAL={rule.interval}")

    if rule.days_of_week:
        days = [
            f"{day.week_number}{day.weekday.code}" if day.week_number else day.weekday.code
            for day in rule.days_of_week
        ]
        parts.append(f"BYDAY={','.join(days)}")

    if rule.days_of_month:
        parts.append(f"BYMONTHDAY={','.join(str(day) for day in rule.days_of_month)}")

    if isinstance(rule.end, Until):
        parts.append(f"UNTIL={format_ics_datetime(rule.end.moment)}")
    elif isinstance(rule.end, Count):
        parts.append(f"COUNT={rule.end.count}")

    return ";".join(parts)


def describe_rrule(rule: RecurrenceRule) -> str:
    """Human readable summary like 'Every 2 weeks until 2026-12-31'."""
    singular, plural = _UNITS[rule.frequency]
    if rule.interval == 1:
        text = f"Every {singular}"
    else:
        text = f"Every {rule.interval} {plural}"

    if isinstance(rule.end, Until):
        text += f" until {rule.end.moment:%Y-%m-%d}"
    elif isinstance(rule.end, Count):
        text += f" for {rule.end.count} occurrences"

    return text


def to_dateutil(rule: RecurrenceRule, dtstart: datetime) -> rrule.rrule:
    """Build a dateutil rrule starting at dtstart for occurrence expansion."""
    byweekday = None
    if rule.days_of_week:
        byweekday = [
            rrule.weekdays[day.weekday](day.week_number)
            if day.week_number
            else rrule.weekdays[day.weekday]
            for day in rule.days_of_week
        ]

    until = None
    count = None
    if isinstance(rule.end, Until):
        until = rule.end.moment
        # dateutil refuses to mix naive and aware datetimes
        if dtstart.tzinfo is None and until.tzinfo is not None:
            until = until.astimezone(timezone.utc).replace(tzinfo=None)
        elif dtstart.tzinfo is not None and until.tzinfo is None:
            until = until.replace(tzinfo=dtstart.tzinfo)
    elif isinstance(rule.end, Count):
        count = rule.end.count

    return rrule.rrule(
        freq=_DATEUTIL_FREQ[rule.frequency],
        dtstart=dtstart,
        interval=rule.interval,
        byweekday=byweekday,
        bymonthday=rule.days_of_month or None,
        until=until,
        count=count,
    )


def occurrences(rule: RecurrenceRule, dtstart: datetime, limit: int = 100) -> list[datetime]:
    """First occurrences (at most limit) of rule starting at dtstart."""
    return list(islice(to_dateutil(rule, dtstart), limit))
