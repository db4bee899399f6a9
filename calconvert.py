# Python library to convert calendar events between iCalendar, CSV and JSON
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
"""Python library to convert calendar events between iCalendar, CSV and JSON."""

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta, tzinfo
from logging import DEBUG, WARNING, basicConfig, getLogger
from os.path import splitext

from caldate import parse_date, resolve_zone
from calevent import Alert, EventRecord, MalformedDocument
from calics import parse_ics, to_ics
from caltable import parse_csv, parse_json, to_csv, to_json

logger = getLogger(__name__)

FORMATS = ("ics", "csv", "json")


def guess_format(filename: str, default: str = "ics") -> str:
    """Interchange format for a filename based on its extension."""
    ext = splitext(filename)[1].lower().lstrip(".")
    if ext in ("ics", "ical", "ifb", "icalendar"):
        return "ics"
    if ext in FORMATS:
        return ext
    return default


class Converter:
    """Reads and writes lists of EventRecords in the supported formats."""

    def __init__(
        self,
        localtz: None | tzinfo = None,
        alarm: timedelta = None,
        calendar: str = "",
        skip_invalid: bool = False,
    ) -> None:
        """Constructor.

        localtz -- timezone for floating times and relative dates
        alarm -- default alert before timed events that have none
        calendar -- calendar name for events that have none
        skip_invalid -- skip invalid CSV/JSON rows instead of aborting
        """
        self._localtz = localtz if localtz else resolve_zone()
        self._alarm = alarm
        self._calendar = calendar
        self._skip_invalid = skip_invalid
        self.skipped: list[MalformedDocument] = []

    def _apply_defaults(self, event: EventRecord) -> EventRecord:
        """Fill in the configured calendar and alarm."""
        changes: dict = {}
        if self._calendar and not event.calendar:
            changes["calendar"] = self._calendar
        if self._alarm and not event.all_day and not event.alerts:
            changes["alerts"] = (Alert.before(self._alarm),)
        return replace(event, **changes) if changes else event

    def read(self, text: str, fmt: str) -> list[EventRecord]:
        """Decode a document in the given format."""
        on_error = self.skipped.append if self._skip_invalid else None
        if fmt == "ics":
            events = parse_ics(text)
        elif fmt == "csv":
            events = parse_csv(text, on_error)
        elif fmt == "json":
            events = parse_json(text, on_error)
        else:
            raise ValueError(f"unknown format {fmt!r}, use one of {', '.join(FORMATS)}")
        return [self._apply_defaults(event) for event in events]

    def write(self, events: Iterable[EventRecord], fmt: str) -> str:
        """Encode events in the given format."""
        if fmt == "ics":
            return to_ics(events)
        if fmt == "csv":
            return to_csv(events, self._localtz)
        if fmt == "json":
            return to_json(events, self._localtz)
        raise ValueError(f"unknown format {fmt!r}, use one of {', '.join(FORMATS)}")

    def convert(self, text: str, source: str, target: str) -> str:
        """Decode text in the source format and encode it in the target format."""
        events = self.read(text, source)
        logger.info("converting %d events from %s to %s", len(events), source, target)
        return self.write(events, target)

    def parse_date(self, text: str, now: datetime = None) -> datetime:
        """Parse a date expression relative to now in the local timezone."""
        if now is None:
            now = datetime.now(self._localtz)
        return parse_date(text, now)


def calconvert() -> None:
    """Command line tool to convert between iCalendar, CSV and JSON."""
    from argparse import ArgumentParser, FileType
    from sys import stdin, stdout

    from calduration import parse_alert_duration

    parser = ArgumentParser(description="Converter between iCalendar, CSV and JSON.")
    parser.add_argument(
        "-f", "--from", dest="source", choices=FORMATS, help="Input format (default: by extension, ics)"
    )
    parser.add_argument(
        "-t", "--to", dest="target", choices=FORMATS, help="Output format (default: by extension, ics)"
    )
    parser.add_argument(
        "-z", "--zone", default="", help="Timezone for floating times (default: local timezone)"
    )
    parser.add_argument(
        "-a",
        "--alarm",
        type=parse_alert_duration,
        help="Alert before timed events without one, e.g. 10m, 1h (default: none)",
    )
    parser.add_argument("-c", "--calendar", default="", help="Calendar name for events without one")
    parser.add_argument(
        "--skip-invalid",
        action="store_true",
        help="Skip invalid CSV/JSON rows instead of aborting (iCalendar always aborts)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument(
        "infile",
        nargs="?",
        type=FileType("r"),
        default=stdin,
        help="Input file (default: stdin)",
    )
    parser.add_argument(
        "outfile",
        nargs="?",
        type=FileType("w"),
        default=stdout,
        help="Output file (default: stdout)",
    )
    args = parser.parse_args()

    basicConfig(level=DEBUG if args.verbose else WARNING)

    source = args.source or guess_format(args.infile.name)
    target = args.target or guess_format(args.outfile.name)

    converter = Converter(
        resolve_zone(args.zone), args.alarm, args.calendar, args.skip_invalid
    )
    args.outfile.write(converter.convert(args.infile.read(), source, target))


def calparse() -> None:
    """Command line tool to resolve date expressions to timestamps."""
    from argparse import ArgumentParser

    from dateutil.parser import isoparse

    parser = ArgumentParser(description="Resolve date expressions like 'next friday 2pm'.")
    parser.add_argument(
        "-z", "--zone", default="", help="Timezone of the result (default: local timezone)"
    )
    parser.add_argument(
        "--now",
        type=isoparse,
        help="Reference time in ISO 8601 (default: current time)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("expression", nargs="+", help="Date expression(s) to parse")
    args = parser.parse_args()

    basicConfig(level=DEBUG if args.verbose else WARNING)

    zone = resolve_zone(args.zone)
    now = args.now.astimezone(zone) if args.now else None
    converter = Converter(localtz=zone)
    for expression in args.expression:
        print(converter.parse_date(expression, now).isoformat())
