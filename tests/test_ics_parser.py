from datetime import datetime

from dateutil import tz

from lernkompass.ics_parser import (
    parse_ics_content, parse_ics_datetime, parse_rrule, unescape_ics_value, validate_ics_upload,
)

BERLIN = tz.gettz('Europe/Berlin')

SAMPLE = """BEGIN:VCALENDAR
VERSION:2.0
SUMMARY:außerhalb eines Events
BEGIN:VEVENT
UID:piano-1
SUMMARY:Klavierunterricht\\, Raum 2
DTSTART;TZID=Europe/Berlin:20240101T090000
DTEND;TZID=Europe/Berlin:20240101T093000
LOCATION:Musikschule
DESCRIPTION:Noten mitbringen\\nund Heft
RRULE:FREQ=WEEKLY;COUNT=3
diese Zeile hat keinen Doppelpunkt
END:VEVENT
BEGIN:VEVENT
SUMMARY:Kaputt
DTSTART:nicht-ein-datum
END:VEVENT
END:VCALENDAR
"""


def test_parse_sample_events():
    events = parse_ics_content(SAMPLE, BERLIN)
    assert len(events) == 2
    piano = events[0]
    assert piano.uid == 'piano-1'
    assert piano.summary == 'Klavierunterricht, Raum 2'
    assert piano.description == 'Noten mitbringen\nund Heft'
    assert piano.location == 'Musikschule'
    assert piano.start == datetime(2024, 1, 1, 9, 0, tzinfo=BERLIN)
    assert piano.end == datetime(2024, 1, 1, 9, 30, tzinfo=BERLIN)
    assert piano.rrule.frequency == 'WEEKLY'
    assert piano.rrule.count == 3

    # unlesbarer Start wird nicht beim Parsen verworfen
    broken = events[1]
    assert broken.summary == 'Kaputt'
    assert broken.start is None


def test_crlf_and_no_events():
    assert parse_ics_content("BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n") == []
    assert parse_ics_content("") == []
    events = parse_ics_content("BEGIN:VEVENT\r\nSUMMARY:A\r\nEND:VEVENT\r\n")
    assert [e.summary for e in events] == ['A']


def test_unterminated_event_is_ignored():
    assert parse_ics_content("BEGIN:VEVENT\nSUMMARY:offen\n") == []


def test_datetime_shapes():
    assert parse_ics_datetime('20240315', BERLIN) == datetime(2024, 3, 15, 0, 0, tzinfo=BERLIN)
    utc = parse_ics_datetime('20240315T080000Z', BERLIN)
    assert utc == datetime(2024, 3, 15, 8, 0, tzinfo=tz.UTC)
    assert utc.astimezone(BERLIN).hour == 9
    assert parse_ics_datetime('20240315T080000', BERLIN) == datetime(2024, 3, 15, 8, 0, tzinfo=BERLIN)
    # generischer Fallback
    assert parse_ics_datetime('2024-03-15 10:30', BERLIN) == datetime(2024, 3, 15, 10, 30, tzinfo=BERLIN)
    assert parse_ics_datetime('garbage') is None
    assert parse_ics_datetime('') is None


def test_parse_rrule_ignores_bad_parts():
    rule = parse_rrule('FREQ=weekly;COUNT=abc;INTERVAL=2;FOO;BYDAY=MO')
    assert rule.frequency == 'WEEKLY'
    assert rule.count is None
    assert rule.interval == 2

    rule = parse_rrule('FREQ=DAILY;UNTIL=20240110')
    assert rule.until == datetime(2024, 1, 10, tzinfo=tz.UTC)

    assert parse_rrule('nonsense') is None
    assert parse_rrule('COUNT=0').count == 0
    assert parse_rrule('FREQ=DAILY;COUNT=-3').count == -3


def test_unescape():
    assert unescape_ics_value(r'a\;b\,c\\d') == 'a;b,c\\d'
    assert unescape_ics_value('plain') == 'plain'


def test_validate_upload():
    ok = "BEGIN:VCALENDAR\nEND:VCALENDAR\n"
    assert validate_ics_upload('kalender.ICS', ok) == []
    assert validate_ics_upload('kalender.ical', ok) == []

    errors = validate_ics_upload('kalender.txt', ok)
    assert len(errors) == 1 and 'Invalid file type' in errors[0]

    errors = validate_ics_upload('kalender.ics', ok, max_bytes=5)
    assert any('too large' in e for e in errors)

    errors = validate_ics_upload('kalender.ics', 'hello world')
    assert errors == ['Invalid ICS file format. Must contain VCALENDAR data.']
