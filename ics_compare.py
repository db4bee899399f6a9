#!/usr/bin/env python3
#
# Python tool to compare two iCalendar files (specifically for caltext)
#
# Copyright (C) 2014-2026  Jochen Sprickerhof
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

from argparse import ArgumentParser
from datetime import datetime

from calevent import EventRecord, RecurrenceRule, Until
from calics import parse_ics, to_ics


def same_instant(first: datetime, second: datetime) -> bool:
    """Compare two instants, floating times only match floating times."""
    if (first.tzinfo is None) != (second.tzinfo is None):
        return False
    return first == second


def same_rule(first: RecurrenceRule, second: RecurrenceRule) -> bool:
    """Compare two rules, UNTIL values by instant."""
    if isinstance(first.end, Until) and isinstance(second.end, Until):
        if not same_instant(first.end.moment, second.end.moment):
            return False
    elif first.end != second.end:
        return False
    return (
        first.frequency == second.frequency
        and first.interval == second.interval
        and first.days_of_week == second.days_of_week
        and first.days_of_month == second.days_of_month
    )


def same_event(first: EventRecord, second: EventRecord) -> bool:
    for attr in ("title", "location", "notes", "url", "all_day"):
        if getattr(first, attr) != getattr(second, attr):
            return False

    if not same_instant(first.start_date, second.start_date):
        return False
    if not same_instant(first.end_date, second.end_date):
        return False

    if len(first.recurrence_rules) != len(second.recurrence_rules):
        return False
    return all(
        same_rule(rule, other)
        for (rule, other) in zip(first.recurrence_rules, second.recurrence_rules)
    )


def compare(
    first_in: list[EventRecord], second_in: list[EventRecord]
) -> tuple[list[EventRecord], list[EventRecord]]:
    """Match events of both lists, returns the unmatched events of each."""
    first_out = list(first_in)
    second_out = []
    for (j, second) in enumerate(second_in):
        for (i, first) in enumerate(first_out):
            if same_event(first, second):
                del first_out[i]
                print(f"matching {i} to {j}")
                break
        else:
            second_out.append(second)
    return first_out, second_out


def main() -> None:
    parser = ArgumentParser(description="Compare two iCalendar files semantically")
    parser.add_argument("first_input", help="First iCalendar file input")
    parser.add_argument("second_input", help="Second iCalendar file input")
    parser.add_argument("first_output", help="First iCalendar file output")
    parser.add_argument("second_output", help="Second iCalendar file output")
    args = parser.parse_args()
    with open(args.first_input, encoding="utf-8") as infile:
        first_cal = parse_ics(infile.read())
    with open(args.second_input, encoding="utf-8") as infile:
        second_cal = parse_ics(infile.read())

    first_out, second_out = compare(first_cal, second_cal)

    with open(args.first_output, "w", encoding="utf-8") as outfile:
        outfile.write(to_ics(first_out))
    with open(args.second_output, "w", encoding="utf-8") as outfile:
        outfile.write(to_ics(second_out))


if __name__ == "__main__":
    main()
