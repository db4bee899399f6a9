# Calendar event value objects shared by the caltext codecs
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
"""Calendar event value objects and errors shared by the caltext codecs."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum


class CalTextError(ValueError):
    """Base class of all parse and decode failures.

    text -- the offending input (or substring of it)
    """

    def __init__(self, message: str, text: str = "") -> None:
        super().__init__(message)
        self.text = text


class DateParseFailure(CalTextError):
    """No date grammar rule matched the input."""


class InvalidTimeComponent(DateParseFailure):
    """Hour or minute of a time of day is out of range."""


class InvalidTimezone(CalTextError):
    """A timezone name could not be resolved."""


class MalformedRecurrenceRule(CalTextError):
    """An RRULE value could not be decoded."""


class MalformedDuration(CalTextError):
    """An alert shorthand or TRIGGER value could not be decoded."""


class MalformedDocument(CalTextError):
    """An iCalendar, CSV or JSON document could not be decoded.

    row -- the row number for tabular documents (0 if not row related)
    """

    def __init__(self, message: str, text: str = "", row: int = 0) -> None:
        super().__init__(message, text)
        self.row = row


class Frequency(Enum):
    """Repeat frequency of a recurrence rule."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class Weekday(IntEnum):
    """Day of the week, numbered like date.weekday()."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def code(self) -> str:
        """Two letter RRULE abbreviation (MO, TU, ...)."""
        return self.name[:2]

    @classmethod
    def from_code(cls, code: str) -> "Weekday":
        """Weekday for a two letter RRULE abbreviation."""
        for day in cls:
            if day.code == code.upper():
                return day
        raise KeyError(code)


@dataclass(frozen=True)
class DayOfWeek:
    """A BYDAY entry, week_number 0 means every such weekday in the period."""

    weekday: Weekday
    week_number: int = 0


@dataclass(frozen=True)
class Until:
    """Recurrence ends at (and includes) the given instant."""

    moment: datetime


@dataclass(frozen=True)
class Count:
    """Recurrence ends after the given number of occurrences."""

    count: int

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"occurrence count must be positive, got {self.count}")


@dataclass(frozen=True)
class RecurrenceRule:
    """Structured form of an RRULE value."""

    frequency: Frequency
    interval: int = 1
    days_of_week: tuple[DayOfWeek, ...] = ()
    days_of_month: tuple[int, ...] = ()
    end: None | Until | Count = None

    def __post_init__(self) -> None:
        if self.interval < 1:
            object.__setattr__(self, "interval", 1)
        object.__setattr__(self, "days_of_week", tuple(self.days_of_week))
        object.__setattr__(self, "days_of_month", tuple(self.days_of_month))


@dataclass(frozen=True)
class Alert:
    """Reminder relative to the event start, negative means before."""

    relative_offset: timedelta

    @classmethod
    def before(cls, span: timedelta) -> "Alert":
        """Alert the given (unsigned) span before the start."""
        return cls(-abs(span))


@dataclass(frozen=True)
class EventRecord:
    """A calendar event as exchanged by the import/export codecs.

    All-day events use midnight instants and an exclusive end date.
    A naive start_date is a floating time.
    """

    title: str
    start_date: datetime
    end_date: datetime | None = None
    all_day: bool = False
    id: str = ""
    calendar: str = ""
    location: str = ""
    notes: str = ""
    url: str = ""
    timezone: str = ""
    status: str = ""
    recurring: bool = False
    alerts: tuple[Alert, ...] = ()
    recurrence_rules: tuple[RecurrenceRule, ...] = ()
    created: datetime | None = field(default=None, compare=False)
    modified: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("event title must not be empty")
        if self.end_date is None:
            span = timedelta(days=1) if self.all_day else timedelta(hours=1)
            object.__setattr__(self, "end_date", self.start_date + span)
        object.__setattr__(self, "alerts", tuple(self.alerts))
        object.__setattr__(self, "recurrence_rules", tuple(self.recurrence_rules))

    @property
    def is_recurring(self) -> bool:
        """True if the event repeats."""
        return self.recurring or bool(self.recurrence_rules)
