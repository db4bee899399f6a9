# CSV and JSON interchange of calendar events
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
"""Fixed schema CSV and JSON import/export of EventRecords.

Unlike iCalendar documents, tabular documents are decoded row by row: a
caller may pass on_error to skip invalid rows instead of aborting.
"""

from collections.abc import Callable, Iterable
from csv import Error as CSVError, reader, writer
from datetime import datetime, timedelta, tzinfo
from io import StringIO
from json import JSONDecodeError, dumps, loads
from logging import getLogger
from typing import Any

from dateutil.parser import isoparse

from caldate import resolve_zone
from calevent import Alert, CalTextError, EventRecord, MalformedDocument
from calrrule import format_rrule, parse_rrule

logger = getLogger(__name__)

HEADER = (
    "ID",
    "Title",
    "Start",
    "End",
    "AllDay",
    "Calendar",
    "Location",
    "Notes",
    "URL",
    "Status",
    "Recurring",
    "Timezone",
)

_TRUE = ("1", "t", "true")
_FALSE = ("", "0", "f", "false")

ErrorHandler = Callable[[MalformedDocument], None]


def format_timestamp(moment: datetime, localtz: tzinfo = None) -> str:
    """RFC 3339 timestamp, floating times are anchored to localtz."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=localtz if localtz else resolve_zone())
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp, an offset is required."""
    moment = isoparse(text)
    if moment.tzinfo is None:
        raise ValueError(f"timestamp without offset: {text!r}")
    return moment


def parse_bool(text: str) -> bool:
    """Parse true/false cells (1, t, true, 0, f, false, empty), any case."""
    value = text.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean {text!r}")


def _record(row: int, fields: dict[str, Any]) -> EventRecord:
    """Build an EventRecord from decoded fields of one row."""
    title = fields["title"]
    if not title:
        raise MalformedDocument(f"row {row}: missing Title", row=row)

    moments = {}
    for name in ("start_date", "end_date"):
        value = fields[name]
        if not value:
            raise MalformedDocument(f"row {row}: missing {name}", row=row)
        try:
            moments[name] = parse_timestamp(value)
        except ValueError as exc:
            raise MalformedDocument(
                f"row {row}: invalid {name} {value!r}", value, row
            ) from exc

    try:
        all_day = parse_bool(fields["all_day"])
        recurring = parse_bool(fields["recurring"])
    except ValueError as exc:
        raise MalformedDocument(f"row {row}: {exc}", row=row) from exc

    if fields["timezone"]:
        try:
            resolve_zone(fields["timezone"])
        except CalTextError as exc:
            raise MalformedDocument(f"row {row}: {exc}", fields["timezone"], row) from exc

    try:
        rules = tuple(parse_rrule(rule) for rule in fields["recurrence_rules"])
        alerts = tuple(
            Alert(timedelta(minutes=int(minutes))) for minutes in fields["alerts"]
        )
    except (CalTextError, OverflowError, TypeError, ValueError) as exc:
        raise MalformedDocument(f"row {row}: {exc}", row=row) from exc

    return EventRecord(
        title=title,
        start_date=moments["start_date"],
        end_date=moments["end_date"],
        all_day=all_day,
        id=fields["id"],
        calendar=fields["calendar"],
        location=fields["location"],
        notes=fields["notes"],
        url=fields["url"],
        timezone=fields["timezone"],
        status=fields["status"],
        recurring=recurring,
        alerts=alerts,
        recurrence_rules=rules,
    )


def _collect(
    rows: Iterable[tuple[int, dict[str, Any]]], on_error: ErrorHandler = None
) -> list[EventRecord]:
    """Decode rows, aborting on the first error unless on_error is given."""
    events = []
    for row, fields in rows:
        try:
            events.append(_record(row, fields))
        except MalformedDocument as exc:
            if on_error is None:
                raise
            logger.warning("skipping %s", exc)
            on_error(exc)
    return events


def to_csv(events: Iterable[EventRecord], localtz: tzinfo = None) -> str:
    """Encode events as CSV with the fixed HEADER."""
    out = StringIO()
    csv = writer(out)
    csv.writerow(HEADER)
    for event in events:
        csv.writerow(
            [
                event.id,
                event.title,
                format_timestamp(event.start_date, localtz),
                format_timestamp(event.end_date, localtz),
                str(event.all_day).lower(),
                event.calendar,
                event.location,
                event.notes,
                event.url,
                event.status,
                str(event.is_recurring).lower(),
                event.timezone,
            ]
        )
    return out.getvalue()


def parse_csv(text: str, on_error: ErrorHandler = None) -> list[EventRecord]:
    """Decode a CSV document, columns are located by their header name.

    on_error -- called with the error of each invalid row, which is then
                skipped (default: abort on the first invalid row)
    """
    try:
        records = list(reader(StringIO(text)))
    except CSVError as exc:
        raise MalformedDocument(f"failed to parse CSV: {exc}") from exc

    # row numbers count the header line
    data = [(row, record) for (row, record) in enumerate(records[1:], start=2) if any(record)]
    if not data:
        raise MalformedDocument("CSV file has no data rows")

    columns = {name.strip(): index for (index, name) in enumerate(records[0])}

    def cell(record: list[str], name: str) -> str:
        index = columns.get(name)
        if index is None or index >= len(record):
            return ""
        return record[index]

    rows = (
        (
            row,
            {
                "id": cell(record, "ID"),
                "title": cell(record, "Title"),
                "start_date": cell(record, "Start"),
                "end_date": cell(record, "End"),
                "all_day": cell(record, "AllDay"),
                "calendar": cell(record, "Calendar"),
                "location": cell(record, "Location"),
                "notes": cell(record, "Notes"),
                "url": cell(record, "URL"),
                "status": cell(record, "Status"),
                "recurring": cell(record, "Recurring"),
                "timezone": cell(record, "Timezone"),
                "alerts": (),
                "recurrence_rules": (),
            },
        )
        for (row, record) in data
    )
    return _collect(rows, on_error)


def to_json(events: Iterable[EventRecord], localtz: tzinfo = None) -> str:
    """Encode events as a JSON array."""
    out = [
        {
            "id": event.id,
            "title": event.title,
            "start_date": format_timestamp(event.start_date, localtz),
            "end_date": format_timestamp(event.end_date, localtz),
            "all_day": event.all_day,
            "calendar": event.calendar,
            "location": event.location,
            "notes": event.notes,
            "url": event.url,
            "status": event.status,
            "recurring": event.is_recurring,
            "timezone": event.timezone,
            "alerts": [
                int(alert.relative_offset.total_seconds() // 60) for alert in event.alerts
            ],
            "recurrence_rules": [format_rrule(rule) for rule in event.recurrence_rules],
        }
        for event in events
    ]
    return dumps(out, indent=2, ensure_ascii=False) + "\n"


def _json_bool(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return "" if value is None else str(value)


def parse_json(text: str, on_error: ErrorHandler = None) -> list[EventRecord]:
    """Decode a JSON array of events.

    on_error -- called with the error of each invalid entry, which is then
                skipped (default: abort on the first invalid entry)
    """
    try:
        entries = loads(text)
    except JSONDecodeError as exc:
        raise MalformedDocument(f"failed to parse JSON: {exc}") from exc

    if not isinstance(entries, list):
        raise MalformedDocument("JSON document is not an array of events")

    rows = ((row, _json_fields(entry)) for (row, entry) in enumerate(entries, start=1))
    return _collect(rows, on_error)


def _json_fields(entry: Any) -> dict[str, Any]:
    """Row fields of one JSON entry, absent values become empty."""
    if not isinstance(entry, dict):
        entry = {}
    fields: dict[str, Any] = {
        name: "" if entry.get(name) is None else str(entry[name])
        for name in (
            "id",
            "title",
            "start_date",
            "end_date",
            "calendar",
            "location",
            "notes",
            "url",
            "status",
            "timezone",
        )
    }
    fields["all_day"] = _json_bool(entry.get("all_day"))
    fields["recurring"] = _json_bool(entry.get("recurring"))
    fields["alerts"] = entry.get("alerts") or ()
    fields["recurrence_rules"] = [str(rule) for rule in entry.get("recurrence_rules") or ()]
    return fields
