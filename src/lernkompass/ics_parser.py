# src/lernkompass/ics_parser.py
"""Zeilenbasierter ICS-Parser.

Liest VEVENT-Blöcke aus bereits dekodiertem Kalendertext. Fehlerhafte
Zeilen werden übersprungen, nie eine Exception nach außen gegeben.
"""
import os
from datetime import datetime, tzinfo
from typing import List, Optional

from dateutil import parser as date_parser
from dateutil import tz

from lernkompass.models import CalendarEvent, RecurrenceRule

SUPPORTED_EXTENSIONS = ('ics', 'ical', 'ifb', 'icalendar')
MAX_IMPORT_BYTES = 5 * 1024 * 1024

_UNESCAPES = (('\\n', '\n'), ('\\N', '\n'), ('\\,', ','), ('\\;', ';'), ('\\\\', '\\'))


def unescape_ics_value(value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        for esc, repl in _UNESCAPES:
            if value.startswith(esc, i):
                out.append(repl)
                i += len(esc)
                break
        else:
            out.append(value[i])
            i += 1
    return ''.join(out)


def parse_ics_datetime(value: str, default_tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Wandelt einen ICS-Zeitstempel in ein zeitzonenbehaftetes datetime:
      YYYYMMDD          -> Mitternacht lokal
      YYYYMMDDTHHMMSSZ  -> UTC
      YYYYMMDDTHHMMSS   -> lokal
    Alles andere wird generisch versucht; None bei Misserfolg.
    """
    local = default_tz or tz.UTC
    value = (value or '').strip()
    try:
        if len(value) == 8:
            return datetime.strptime(value, '%Y%m%d').replace(tzinfo=local)
        if len(value) == 16 and value.endswith('Z'):
            return datetime.strptime(value, '%Y%m%dT%H%M%SZ').replace(tzinfo=tz.UTC)
        if len(value) == 15:
            return datetime.strptime(value, '%Y%m%dT%H%M%S').replace(tzinfo=local)
    except ValueError:
        pass

    if not value:
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=local)
    return parsed


def parse_rrule(value: str, default_tz: Optional[tzinfo] = None) -> Optional[RecurrenceRule]:
    """Liest FREQ/COUNT/UNTIL/INTERVAL; unbekannte oder kaputte Teile werden ignoriert."""
    rule = RecurrenceRule()
    found = False
    for part in (value or '').split(';'):
        if '=' not in part:
            continue
        key, val = part.split('=', 1)
        key = key.strip().upper()
        val = val.strip()
        if key == 'FREQ' and val:
            rule.frequency = val.upper()
            found = True
        elif key == 'COUNT':
            try:
                count = int(val)
            except ValueError:
                continue
            # COUNT<=0 endet nach dem ersten Termin
            rule.count = count
            found = True
        elif key == 'UNTIL':
            until = parse_ics_datetime(val, default_tz)
            if until is not None:
                rule.until = until
                found = True
        elif key == 'INTERVAL':
            try:
                interval = int(val)
            except ValueError:
                continue
            if interval > 0:
                rule.interval = interval
                found = True
    return rule if found else None


def parse_ics_content(content: str, default_tz: Optional[tzinfo] = None) -> List[CalendarEvent]:
    """Alle VEVENT-Blöcke als flache CalendarEvents (ohne RRULE-Expansion)."""
    events: List[CalendarEvent] = []
    current: Optional[CalendarEvent] = None

    for raw in (content or '').replace('\r', '').split('\n'):
        line = raw.strip()

        if line == 'BEGIN:VEVENT':
            current = CalendarEvent()
            continue
        if line == 'END:VEVENT':
            if current is not None:
                events.append(current)
            current = None
            continue
        if current is None or not line or ':' not in line:
            continue

        prop, value = line.split(':', 1)
        # DTSTART;TZID=Europe/Berlin -> DTSTART
        prop = prop.split(';', 1)[0].upper()

        if prop == 'SUMMARY':
            current.summary = unescape_ics_value(value)
        elif prop == 'DTSTART':
            current.start = parse_ics_datetime(value, default_tz)
        elif prop == 'DTEND':
            current.end = parse_ics_datetime(value, default_tz)
        elif prop == 'DESCRIPTION':
            current.description = unescape_ics_value(value)
        elif prop == 'LOCATION':
            current.location = unescape_ics_value(value)
        elif prop == 'RRULE':
            current.rrule = parse_rrule(value, default_tz)
        elif prop == 'UID':
            current.uid = value

    return events


def looks_like_calendar(content: str) -> bool:
    return 'BEGIN:VCALENDAR' in (content or '')


def validate_ics_upload(filename: str, content: str, max_bytes: int = MAX_IMPORT_BYTES) -> List[str]:
    """Prüft Endung, Größe und Inhalt eines hochgeladenen Kalenders. Leere Liste = ok."""
    errors = []
    ext = os.path.splitext(filename or '')[1].lstrip('.').lower()
    if ext not in SUPPORTED_EXTENSIONS:
        errors.append('Invalid file type. Supported formats: ' + ', '.join(SUPPORTED_EXTENSIONS))
    size = len((content or '').encode('utf-8'))
    if size > max_bytes:
        errors.append(f'File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.')
    if not errors and not looks_like_calendar(content):
        errors.append('Invalid ICS file format. Must contain VCALENDAR data.')
    return errors
