# Unit tests for calics.py
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

from datetime import datetime, timedelta, timezone
from io import StringIO

import pytest
from dateutil import tz
from vobject import readOne

from calevent import (
    Alert,
    Count,
    DayOfWeek,
    EventRecord,
    Frequency,
    MalformedDocument,
    MalformedDuration,
    MalformedRecurrenceRule,
    RecurrenceRule,
    Weekday,
)
from calics import (
    ICSDecoder,
    State,
    escape_text,
    event_uid,
    parse_ics,
    read_ics,
    to_ics,
    to_vobject,
    unescape_text,
    unfold_lines,
)

UTC = timezone.utc
NOW = datetime(2026, 2, 11, 5, 0, tzinfo=UTC)


def _calendar(*lines: str) -> str:
    return "\r\n".join(["BEGIN:VCALENDAR", "VERSION:2.0", *lines, "END:VCALENDAR"]) + "\r\n"


def test_export_basic() -> None:
    event = EventRecord(
        title="Team Standup",
        start_date=datetime(2026, 3, 15, 14, 0, tzinfo=UTC),
        end_date=datetime(2026, 3, 15, 15, 0, tzinfo=UTC),
        location="Room 42",
        notes="Daily sync",
        url="https://example.com/meet?id=1,2",
    )
    text = to_ics([event], NOW)
    lines = text.split("\r\n")

    assert lines[:4] == ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//caltext//EN", "CALSCALE:GREGORIAN"]
    assert text.endswith("END:VCALENDAR\r\n")
    assert "\n" not in text.replace("\r\n", "")
    assert "DTSTART:20260315T140000Z" in lines
    assert "DTEND:20260315T150000Z" in lines
    assert "SUMMARY:Team Standup" in lines
    assert "LOCATION:Room 42" in lines
    assert "DESCRIPTION:Daily sync" in lines
    assert "URL:https://example.com/meet?id=1,2" in lines
    assert "DTSTAMP:20260211T050000Z" in lines
    assert "CREATED:20260211T050000Z" in lines
    assert "LAST-MODIFIED:20260211T050000Z" in lines
    assert f"UID:{event_uid(event)}" in lines
    assert lines.count("BEGIN:VEVENT") == 1


def test_export_empty() -> None:
    text = to_ics([], NOW)
    assert "BEGIN:VEVENT" not in text
    assert text.startswith("BEGIN:VCALENDAR\r\n")


def test_export_all_day() -> None:
    event = EventRecord("Holiday", datetime(2026, 12, 25, tzinfo=UTC), all_day=True)
    lines = to_ics([event], NOW).split("\r\n")
    assert "DTSTART;VALUE=DATE:20261225" in lines
    assert "DTEND;VALUE=DATE:20261226" in lines


def test_export_floating() -> None:
    event = EventRecord("Lunch", datetime(2026, 3, 15, 12, 0))
    lines = to_ics([event], NOW).split("\r\n")
    assert "DTSTART:20260315T120000" in lines
    assert "DTEND:20260315T130000" in lines


def test_export_converts_to_utc() -> None:
    event = EventRecord("Call", datetime(2026, 3, 15, 20, 0, tzinfo=tz.gettz("Asia/Kolkata")))
    assert "DTSTART:20260315T143000Z" in to_ics([event], NOW).split("\r\n")


def test_export_alerts_and_rules() -> None:
    event = EventRecord(
        "Review",
        datetime(2026, 3, 2, 9, 0, tzinfo=UTC),
        alerts=(Alert.before(timedelta(minutes=15)), Alert.before(timedelta(days=1))),
        recurrence_rules=(
            RecurrenceRule(Frequency.WEEKLY, 2, (DayOfWeek(Weekday.MONDAY),), end=Count(4)),
        ),
    )
    text = to_ics([event], NOW)
    lines = text.split("\r\n")
    assert "RRULE:FREQ=WEEKLY;INTERVAL=2;BYDAY=MO;COUNT=4" in lines
    assert lines.count("BEGIN:VALARM") == 2
    assert "TRIGGER:-PT15M" in lines
    assert "TRIGGER:-PT1440M" in lines
    assert "ACTION:DISPLAY" in lines
    assert lines.index("BEGIN:VALARM") < lines.index("TRIGGER:-PT15M") < lines.index("END:VALARM")


def test_uid() -> None:
    start = datetime(2026, 3, 15, 14, 0, tzinfo=UTC)
    assert event_uid(EventRecord("A", start, id="abc-123")) == "abc-123"
    uid = event_uid(EventRecord("A", start))
    assert uid.endswith("@caltext")
    assert uid == event_uid(EventRecord("A", start, location="elsewhere"))
    assert uid != event_uid(EventRecord("B", start))


@pytest.mark.parametrize(
    "text, escaped",
    [
        ("plain", "plain"),
        ("a;b", "a\\;b"),
        ("a,b", "a\\,b"),
        ("line1\nline2", "line1\\nline2"),
        ("back\\slash", "back\\\\slash"),
        ("\\n", "\\\\n"),
    ],
)
def test_escape(text: str, escaped: str) -> None:
    assert escape_text(text) == escaped
    assert unescape_text(escaped) == text


def test_unescape_uppercase_n() -> None:
    assert unescape_text("a\\Nb") == "a\nb"
    assert unescape_text("a\\:b") == "a\\:b"


def test_special_characters_round_trip() -> None:
    event = EventRecord(
        title="Meeting; with, special\\chars",
        start_date=datetime(2026, 3, 15, 14, 0, tzinfo=UTC),
        location="Room 1, Building A; Floor 2",
        notes="Line one\nLine two\n\\n literal",
    )
    (decoded,) = parse_ics(to_ics([event], NOW))
    assert decoded.title == event.title
    assert decoded.location == event.location
    assert decoded.notes == event.notes


def test_round_trip() -> None:
    events = [
        EventRecord(
            "Standup",
            datetime(2026, 3, 2, 9, 0, tzinfo=UTC),
            datetime(2026, 3, 2, 9, 15, tzinfo=UTC),
            location="Room 1",
            url="https://example.com",
            alerts=(Alert.before(timedelta(minutes=10)),),
            recurrence_rules=(RecurrenceRule(Frequency.DAILY, end=Count(5)),),
        ),
        EventRecord("Holiday", datetime(2026, 12, 25, tzinfo=UTC), all_day=True),
        EventRecord("Floating", datetime(2026, 3, 3, 12, 0)),
    ]
    assert parse_ics(to_ics(events, NOW)) == events


def test_unfold_lines() -> None:
    text = "SUMMARY:This is a long\r\n  summary\r\n\tcontinued\r\nLOCATION:x\n"
    assert unfold_lines(text) == ["SUMMARY:This is a long summarycontinued", "LOCATION:x", ""]


def test_parse_folded() -> None:
    text = _calendar(
        "BEGIN:VEVENT",
        "SUMMARY:Quarterly planning with",
        "  the whole team",
        "DTSTART:20260315T140000Z",
        "DESCRIPTION:first\\, ",
        " second",
        "END:VEVENT",
    )
    (event,) = parse_ics(text)
    assert event.title == "Quarterly planning with the whole team"
    assert event.notes == "first, second"


def test_parse_defaults() -> None:
    text = _calendar(
        "BEGIN:VEVENT",
        "SUMMARY:Timed",
        "DTSTART:20260315T140000Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "SUMMARY:Day",
        "DTSTART;VALUE=DATE:20260316",
        "END:VEVENT",
    )
    timed, day = parse_ics(text)
    assert timed.end_date == datetime(2026, 3, 15, 15, 0, tzinfo=UTC)
    assert not timed.all_day
    assert day.all_day
    assert day.start_date == datetime(2026, 3, 16, tzinfo=UTC)
    assert day.end_date == datetime(2026, 3, 17, tzinfo=UTC)


def test_parse_lenient_line_endings_and_case() -> None:
    text = (
        "begin:vcalendar\n"
        "begin:vevent\n"
        "summary:Lower case\n"
        "dtstart:20260315T140000Z\n"
        "dtend:20260315T143000Z\n"
        "X-UNKNOWN;FOO=bar:ignored\n"
        "end:vevent\n"
        "end:vcalendar\n"
    )
    (event,) = parse_ics(text)
    assert event.title == "Lower case"
    assert event.end_date == datetime(2026, 3, 15, 14, 30, tzinfo=UTC)


def test_parse_alarms() -> None:
    text = _calendar(
        "BEGIN:VEVENT",
        "SUMMARY:With alarms",
        "DTSTART:20260315T140000Z",
        "BEGIN:VALARM",
        "ACTION:DISPLAY",
        "DESCRIPTION:Reminder",
        "TRIGGER:-PT15M",
        "END:VALARM",
        "BEGIN:VALARM",
        "TRIGGER;RELATED=START:-P1D",
        "END:VALARM",
        "BEGIN:VALARM",
        "TRIGGER;VALUE=DATE-TIME:20260315T130000Z",
        "END:VALARM",
        "END:VEVENT",
    )
    (event,) = parse_ics(text)
    assert event.alerts == (Alert(-timedelta(minutes=15)), Alert(-timedelta(days=1)))
    # alarm DESCRIPTION does not overwrite the event notes
    assert event.notes == ""


def test_parse_rrule() -> None:
    text = _calendar(
        "BEGIN:VEVENT",
        "SUMMARY:Repeating",
        "DTSTART:20260302T090000Z",
        "RRULE:FREQ=WEEKLY;BYDAY=MO,FR;COUNT=10",
        "END:VEVENT",
    )
    (event,) = parse_ics(text)
    assert event.is_recurring
    assert event.recurrence_rules == (
        RecurrenceRule(
            Frequency.WEEKLY,
            days_of_week=(DayOfWeek(Weekday.MONDAY), DayOfWeek(Weekday.FRIDAY)),
            end=Count(10),
        ),
    )


def test_parse_tzid() -> None:
    text = _calendar(
        "BEGIN:VEVENT",
        "SUMMARY:Zoned",
        "DTSTART;TZID=America/New_York:20260315T090000",
        "DTEND;TZID=America/New_York:20260315T100000",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "SUMMARY:Unknown zone",
        "DTSTART;TZID=Nowhere/Special:20260315T090000",
        "END:VEVENT",
    )
    zoned, unknown = parse_ics(text)
    assert zoned.timezone == "America/New_York"
    assert zoned.start_date == datetime(2026, 3, 15, 13, 0, tzinfo=UTC)
    assert zoned.end_date - zoned.start_date == timedelta(hours=1)
    assert unknown.timezone == ""
    assert unknown.start_date == datetime(2026, 3, 15, 9, 0)


def test_parse_multiple_in_order() -> None:
    text = _calendar(
        *(
            line
            for i in range(5)
            for line in (
                "BEGIN:VEVENT",
                f"SUMMARY:Event {i}",
                f"DTSTART:2026031{i}T090000Z",
                "END:VEVENT",
            )
        )
    )
    assert [event.title for event in parse_ics(text)] == [f"Event {i}" for i in range(5)]


def test_parse_empty() -> None:
    assert parse_ics("") == []
    assert parse_ics(_calendar()) == []


@pytest.mark.parametrize(
    "lines, error",
    [
        (("BEGIN:VEVENT", "DTSTART:20260315T140000Z", "END:VEVENT"), MalformedDocument),
        (("BEGIN:VEVENT", "SUMMARY:No start", "END:VEVENT"), MalformedDocument),
        (("BEGIN:VEVENT", "SUMMARY:Bad", "DTSTART:yesterday", "END:VEVENT"), MalformedDocument),
        (
            ("BEGIN:VEVENT", "SUMMARY:Bad", "DTSTART:20260315T140000Z", "RRULE:INTERVAL=2", "END:VEVENT"),
            MalformedRecurrenceRule,
        ),
        (
            (
                "BEGIN:VEVENT",
                "SUMMARY:Bad",
                "DTSTART:20260315T140000Z",
                "BEGIN:VALARM",
                "TRIGGER:15 minutes",
                "END:VALARM",
                "END:VEVENT",
            ),
            MalformedDuration,
        ),
    ],
)
def test_parse_aborts(lines: tuple[str, ...], error: type) -> None:
    good = ("BEGIN:VEVENT", "SUMMARY:Good", "DTSTART:20260315T140000Z", "END:VEVENT")
    with pytest.raises(error):
        parse_ics(_calendar(*good, *lines))


def test_decoder_states() -> None:
    decoder = ICSDecoder()
    assert decoder.state is State.OUTSIDE
    decoder.feed("BEGIN:VEVENT")
    assert decoder.state is State.IN_EVENT
    decoder.feed("BEGIN:VALARM")
    assert decoder.state is State.IN_ALARM
    decoder.feed("SUMMARY:Not the event title")
    decoder.feed("END:VALARM")
    assert decoder.state is State.IN_EVENT
    decoder.feed("SUMMARY:Title")
    decoder.feed("DTSTART:20260315T140000Z")
    decoder.feed("END:VEVENT")
    assert decoder.state is State.OUTSIDE
    assert [event.title for event in decoder.events] == ["Title"]
    decoder.feed("END:VEVENT")
    assert len(decoder.events) == 1


def test_read_ics() -> None:
    text = _calendar("BEGIN:VEVENT", "SUMMARY:Stream", "DTSTART:20260315T140000Z", "END:VEVENT")
    assert [event.title for event in read_ics(StringIO(text))] == ["Stream"]


def test_vobject_reads_export() -> None:
    event = EventRecord(
        "Interop; test",
        datetime(2026, 3, 15, 14, 0, tzinfo=UTC),
        notes="two\nlines",
        alerts=(Alert.before(timedelta(minutes=30)),),
        recurrence_rules=(RecurrenceRule(Frequency.DAILY, end=Count(3)),),
    )
    cal = readOne(to_ics([event], NOW))
    vevent = cal.vevent
    assert vevent.summary.value == "Interop; test"
    assert vevent.description.value == "two\nlines"
    assert vevent.dtstart.value == datetime(2026, 3, 15, 14, 0, tzinfo=UTC)
    assert vevent.valarm.trigger.value == -timedelta(minutes=30)
    assert len(list(vevent.getrruleset())) == 3


def test_parse_vobject_serialization() -> None:
    event = EventRecord(
        "From vobject, with comma",
        datetime(2026, 3, 15, 14, 0, tzinfo=UTC),
        datetime(2026, 3, 15, 16, 0, tzinfo=UTC),
        location="Room; 7",
        alerts=(Alert.before(timedelta(hours=1)),),
        recurrence_rules=(RecurrenceRule(Frequency.WEEKLY, 2),),
    )
    (decoded,) = parse_ics(to_vobject([event]).serialize())
    assert decoded.title == event.title
    assert decoded.location == event.location
    assert decoded.start_date == event.start_date
    assert decoded.end_date == event.end_date
    assert decoded.alerts == event.alerts
    assert decoded.recurrence_rules == event.recurrence_rules


def test_to_vobject_all_day() -> None:
    event = EventRecord("Holiday", datetime(2026, 12, 25, tzinfo=UTC), all_day=True)
    (decoded,) = parse_ics(to_vobject([event]).serialize())
    assert decoded.all_day
    assert decoded.start_date == datetime(2026, 12, 25, tzinfo=UTC)
    assert decoded.end_date == datetime(2026, 12, 26, tzinfo=UTC)


@pytest.mark.parametrize(
    "dtstart", ["DTSTART;VALUE=DATE:99991231", "DTSTART:99991231T233000Z"]
)
def test_parse_default_end_out_of_range(dtstart: str) -> None:
    text = _calendar("BEGIN:VEVENT", "SUMMARY:Last day", dtstart, "END:VEVENT")
    with pytest.raises(MalformedDocument):
        parse_ics(text)


def test_parse_trigger_out_of_range() -> None:
    text = _calendar(
        "BEGIN:VEVENT",
        "SUMMARY:Far alarm",
        "DTSTART:20260315T140000Z",
        "BEGIN:VALARM",
        "TRIGGER:-P99999999999W",
        "END:VALARM",
        "END:VEVENT",
    )
    with pytest.raises(MalformedDuration):
        parse_ics(text)


def test_export_floating_anchored_to_zone() -> None:
    event = EventRecord("Lunch", datetime(2026, 3, 15, 12, 0))
    lines = to_ics([event], NOW, tz.gettz("Asia/Kolkata")).split("\r\n")
    assert "DTSTART:20260315T063000Z" in lines
    assert "DTEND:20260315T073000Z" in lines
    (decoded,) = parse_ics("\r\n".join(lines))
    assert decoded.start_date == datetime(2026, 3, 15, 6, 30, tzinfo=UTC)


def test_export_anchor_keeps_aware_and_all_day() -> None:
    events = [
        EventRecord("Call", datetime(2026, 3, 15, 14, 0, tzinfo=UTC)),
        EventRecord("Holiday", datetime(2026, 12, 25, tzinfo=UTC), all_day=True),
    ]
    lines = to_ics(events, NOW, tz.gettz("Asia/Kolkata")).split("\r\n")
    assert "DTSTART:20260315T140000Z" in lines
    assert "DTSTART;VALUE=DATE:20261225" in lines
