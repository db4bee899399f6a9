# Duration grammars for alert offsets and iCalendar TRIGGER values
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
"""Parse alert shorthands (15m, 1h, 2days) and TRIGGER durations (-PT15M)."""

from datetime import timedelta
from re import IGNORECASE, compile as re_compile

from calevent import MalformedDuration

_ALERT = re_compile(r"^(\d+)(m|mins?|minutes?|h|hours?|d|days?)$", IGNORECASE)

# [+-]P then either nW or [nD][T[nH][nM][nS]]
_TRIGGER = re_compile(
    r"^([+-])?P(?:(\d+)W|(?:(\d+)D)?(T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?)$"
)


def parse_alert_duration(text: str) -> timedelta:
    """Parse an alert offset like 15m, 1h or 2days into an unsigned span.

    The caller decides the direction, alerts are usually stored as
    Alert.before(span).
    """
    value = text.strip().lower()
    if not value:
        raise MalformedDuration("empty alert duration", text)

    groups = _ALERT.match(value)
    if not groups:
        raise MalformedDuration(
            f"invalid alert duration: {text!r} (use e.g. 15m, 1h, 1d)", text
        )

    amount = int(groups[1])
    unit = groups[2]
    try:
        if unit.startswith("m"):
            return timedelta(minutes=amount)
        if unit.startswith("h"):
            return timedelta(hours=amount)
        return timedelta(days=amount)
    except OverflowError as exc:
        raise MalformedDuration(f"alert duration too large: {text!r}", text) from exc


def format_alert_duration(span: timedelta) -> str:
    """Shortest alert shorthand for span (sign is ignored)."""
    minutes = int(abs(span).total_seconds() // 60)
    if minutes and minutes % (24 * 60) == 0:
        return f"{minutes // (24 * 60)}d"
    if minutes and minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes}m"


def parse_trigger(text: str) -> timedelta:
    """Parse a TRIGGER duration like -PT15M, -P1DT2H or -P1W.

    The result is negative for triggers before the event.
    """
    value = text.strip()
    if "P" not in value:
        raise MalformedDuration(f"invalid trigger {text!r}: missing P", text)

    groups = _TRIGGER.match(value)
    if not groups:
        raise MalformedDuration(f"invalid trigger {text!r}", text)

    sign, weeks, days, time_part, hours, minutes, seconds = groups.groups()
    if weeks is None:
        if days is None and time_part is None:
            raise MalformedDuration(f"invalid trigger {text!r}: empty duration", text)
        if time_part is not None and hours is minutes is seconds is None:
            raise MalformedDuration(f"invalid trigger {text!r}: empty time part", text)

    try:
        if weeks is not None:
            total = timedelta(weeks=int(weeks))
        else:
            total = timedelta(
                days=int(days or 0),
                hours=int(hours or 0),
                minutes=int(minutes or 0),
                seconds=int(seconds or 0),
            )
    except OverflowError as exc:
        raise MalformedDuration(f"trigger too large: {text!r}", text) from exc

    return -total if sign == "-" else total


def format_trigger(offset: timedelta) -> str:
    """Render an alert offset as a TRIGGER value in whole minutes before."""
    minutes = int(abs(offset).total_seconds() // 60)
    return f"-PT{minutes}M"
