# iCalendar (RFC 5545 subset) encoder and decoder for calendar events
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
"""Convert between EventRecords and iCalendar text."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from hashlib import md5
from logging import getLogger
from re import compile as re_compile
from typing import TextIO

from dateutil import tz
from vobject import iCalendar
from vobject.base import Component

from calduration import format_trigger, parse_trigger
from calevent import Alert, EventRecord, MalformedDocument, RecurrenceRule
from calrrule import format_ics_datetime, format_rrule, parse_ics_datetime, parse_rrule

logger = getLogger(__name__)

PRODID = "-//caltext//EN"
CRLF = "\r\n"

_UNESCAPE = re_compile(r"\\([\\;,nN])")


def escape_text(text: str) -> str:
    """Escape a TEXT value, backslashes first so they are not escaped twice."""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def unescape_text(text: str) -> str:
    """Invert escape_text, \\N is accepted as line break as well."""
    return _UNESCAPE.sub(
        lambda groups: "\n" if groups[1] in "nN" else groups[1], text
    )


def unfold_lines(text: str) -> list[str]:
    """Split text into logical lines, joining folded continuation lines."""
    lines: list[str] = []
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if line[:1] in (" ", "\t"):
            if lines:
                lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def split_line(line: str) -> tuple[str, str] | None:
    """Split 'KEY;PARAM=x:VALUE' at the first colon into key segment and value."""
    key, sep, value = line.partition(":")
    if not sep:
        return None
    return key, value


def event_uid(event: EventRecord) -> str:
    """Stable UID of an event, the record id if it has one."""
    if event.id:
        return event.id
    digest = md5(f"{event.title}\n{event.start_date.isoformat()}".encode("utf-8"))
    return f"{digest.hexdigest()}@caltext"


def _date_line(name: str, moment: datetime, all_day: bool, localtz: tzinfo = None) -> str:
    if all_day:
        return f"{name};VALUE=DATE:{moment:%Y%m%d}"
    if localtz and moment.tzinfo is None:
        moment = moment.replace(tzinfo=localtz)
    return f"{name}:{format_ics_datetime(moment)}"


def _vevent_lines(event: EventRecord, now: datetime, localtz: tzinfo = None) -> list[str]:
    """iCalendar lines of one VEVENT."""
    stamp = format_ics_datetime(now)
    lines = [
        "BEGIN:VEVENT",
        f"UID:{event_uid(event)}",
        f"DTSTAMP:{stamp}",
        _date_line("DTSTART", event.start_date, event.all_day, localtz),
        _date_line("DTEND", event.end_date, event.all_day, localtz),
        f"SUMMARY:{escape_text(event.title)}",
    ]

    if event.location:
        lines.append(f"LOCATION:{escape_text(event.location)}")
    if event.notes:
        lines.append(f"DESCRIPTION:{escape_text(event.notes)}")
    if event.url:
        lines.append(f"URL:{event.url}")

    for rule in event.recurrence_rules:
        lines.append(f"RRULE:{format_rrule(rule)}")

    for alert in event.alerts:
        lines.extend(
            [
                "BEGIN:VALARM",
                "ACTION:DISPLAY",
                f"DESCRIPTION:{escape_text(event.title)}",
                f"TRIGGER:{format_trigger(alert.relative_offset)}",
                "END:VALARM",
            ]
        )

    created = format_ics_datetime(event.created) if event.created else stamp
    modified = format_ics_datetime(event.modified) if event.modified else stamp
    lines.extend([f"CREATED:{created}", f"LAST-MODIFIED:{modified}", "END:VEVENT"])
    return lines


def to_ics(
    events: Iterable[EventRecord], now: datetime = None, localtz: tzinfo = None
) -> str:
    """Encode events as an iCalendar document.

    events -- the events to export
    now -- timestamp for DTSTAMP and missing CREATED/LAST-MODIFIED values
           (default: current time)
    localtz -- anchor floating times to this zone and write them in UTC
               (default: write floating times without Z)
    """
    if now is None:
        now = datetime.now(timezone.utc)

    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", f"PRODID:{PRODID}", "CALSCALE:GREGORIAN"]
    for event in events:
        lines.extend(_vevent_lines(event, now, localtz))
    lines.append("END:VCALENDAR")
    return CRLF.join(lines) + CRLF


def to_vobject(events: Iterable[EventRecord]) -> Component:
    """Return a vobject iCalendar component holding the events."""
    cal = iCalendar()
    for event in events:
        vevent = cal.add("vevent")
        vevent.add("uid").value = event_uid(event)
        if event.all_day:
            vevent.add("dtstart").value = event.start_date.date()
            vevent.add("dtend").value = event.end_date.date()
        else:
            vevent.add("dtstart").value = event.start_date
            vevent.add("dtend").value = event.end_date
        vevent.add("summary").value = event.title

        if event.location:
            vevent.add("location").value = event.location
        if event.notes:
            vevent.add("description").value = event.notes
        if event.url:
            vevent.add("url").value = event.url

        for rule in event.recurrence_rules:
            vevent.add("rrule").value = format_rrule(rule)

        for alert in event.alerts:
            valarm = vevent.add("valarm")
            valarm.add("action").value = "DISPLAY"
            valarm.add("description").value = event.title
            valarm.add("trigger").value = -abs(alert.relative_offset)
    return cal


def _is_date(params: str) -> bool:
    """True if the parameters of a DTSTART/DTEND mark a date-only value."""
    values = {param.strip().upper() for param in params.split(";")}
    return "VALUE=DATE" in values


class State(Enum):
    """Position of the decoder in the component tree."""

    OUTSIDE = "outside"
    IN_EVENT = "in_event"
    IN_ALARM = "in_alarm"


@dataclass
class _EventAccumulator:
    """Properties collected for the VEVENT being decoded."""

    title: str = ""
    dtstart: str = ""
    dtstart_params: str = ""
    dtend: str = ""
    dtend_params: str = ""
    location: str = ""
    notes: str = ""
    url: str = ""
    rules: list[RecurrenceRule] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)

    @staticmethod
    def _parse_moment(name: str, value: str, params: str) -> tuple[datetime, str]:
        """Decode a DTSTART/DTEND value, returns the instant and its zone name."""
        date_only = _is_date(params)
        try:
            moment = parse_ics_datetime(value, date_only)
        except ValueError as exc:
            raise MalformedDocument(f"invalid {name} {value!r}", value) from exc

        zone_name = ""
        for param in params.split(";"):
            key, _, tzid = param.partition("=")
            if key.upper() == "TZID" and moment.tzinfo is None and not date_only:
                zone = tz.gettz(tzid.strip('"'))
                if zone is None:
                    logger.debug("unknown TZID %s, treating %s as floating", tzid, value)
                else:
                    moment = moment.replace(tzinfo=zone)
                    zone_name = tzid.strip('"')
        return moment, zone_name

    def finalize(self) -> EventRecord:
        """Build the EventRecord, raises MalformedDocument if incomplete."""
        if not self.title:
            raise MalformedDocument("VEVENT missing SUMMARY")
        if not self.dtstart:
            raise MalformedDocument(f"VEVENT {self.title!r} missing DTSTART", self.title)

        all_day = _is_date(self.dtstart_params)
        start, zone_name = self._parse_moment("DTSTART", self.dtstart, self.dtstart_params)

        if self.dtend:
            end, _ = self._parse_moment("DTEND", self.dtend, self.dtend_params)
        else:
            try:
                end = start + (timedelta(days=1) if all_day else timedelta(hours=1))
            except OverflowError as exc:
                raise MalformedDocument(
                    f"invalid DTSTART {self.dtstart!r}", self.dtstart
                ) from exc

        return EventRecord(
            title=self.title,
            start_date=start,
            end_date=end,
            all_day=all_day,
            location=self.location,
            notes=self.notes,
            url=self.url,
            timezone=zone_name,
            alerts=tuple(self.alerts),
            recurrence_rules=tuple(self.rules),
        )


class ICSDecoder:
    """Line driven state machine turning iCalendar lines into EventRecords.

    Transitions only happen on BEGIN:/END: markers of VEVENT and VALARM,
    any error aborts decoding of the whole document.
    """

    def __init__(self) -> None:
        self.state = State.OUTSIDE
        self.events: list[EventRecord] = []
        self._current: _EventAccumulator | None = None

    def feed(self, line: str) -> None:
        """Process one unfolded line."""
        marker = line.strip().upper()

        if marker == "BEGIN:VEVENT":
            self._current = _EventAccumulator()
            self.state = State.IN_EVENT
        elif marker == "END:VEVENT":
            if self.state is not State.OUTSIDE:
                self.events.append(self._current.finalize())
            self._current = None
            self.state = State.OUTSIDE
        elif marker == "BEGIN:VALARM":
            if self.state is State.IN_EVENT:
                self.state = State.IN_ALARM
        elif marker == "END:VALARM":
            if self.state is State.IN_ALARM:
                self.state = State.IN_EVENT
        elif self.state is State.IN_ALARM:
            self._alarm_property(line)
        elif self.state is State.IN_EVENT:
            self._event_property(line)
        elif line.strip():
            logger.debug("ignoring line outside of VEVENT: %s", line)

    def _alarm_property(self, line: str) -> None:
        parts = split_line(line)
        if parts is None:
            return
        key, value = parts
        name, _, params = key.partition(";")
        if name.upper() != "TRIGGER":
            return
        if "VALUE=DATE-TIME" in params.upper():
            logger.debug("ignoring absolute TRIGGER %s", value)
            return
        self._current.alerts.append(Alert(parse_trigger(value)))

    def _event_property(self, line: str) -> None:
        parts = split_line(line)
        if parts is None:
            return
        key, value = parts
        name, _, params = key.partition(";")
        name = name.upper()
        current = self._current

        if name == "SUMMARY":
            current.title = unescape_text(value)
        elif name == "LOCATION":
            current.location = unescape_text(value)
        elif name == "DESCRIPTION":
            current.notes = unescape_text(value)
        elif name == "URL":
            current.url = value
        elif name == "RRULE":
            current.rules.append(parse_rrule(value))
        elif name == "DTSTART":
            current.dtstart = value.strip()
            current.dtstart_params = params
        elif name == "DTEND":
            current.dtend = value.strip()
            current.dtend_params = params


def parse_ics(text: str) -> list[EventRecord]:
    """Decode all VEVENTs of an iCalendar document in order of appearance.

    Raises MalformedDocument, MalformedDuration or MalformedRecurrenceRule
    on the first invalid event, no partial result is returned.
    """
    decoder = ICSDecoder()
    for line in unfold_lines(text):
        decoder.feed(line)
    return decoder.events


def read_ics(stream: TextIO) -> list[EventRecord]:
    """Read a whole iCalendar stream and decode it."""
    return parse_ics(stream.read())
