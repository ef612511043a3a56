# src/lernkompass/recurrence.py
from datetime import datetime, timedelta
from typing import Iterable, List

from dateutil.relativedelta import relativedelta

from lernkompass.models import CalendarEvent, Frequency, Occurrence

MAX_OCCURRENCES = 100
HORIZON = relativedelta(months=6)
DEFAULT_DURATION = timedelta(minutes=60)

_STEPS = {
    Frequency.DAILY: lambda n: relativedelta(days=n),
    Frequency.WEEKLY: lambda n: relativedelta(weeks=n),
    Frequency.MONTHLY: lambda n: relativedelta(months=n),
}


def _occurrence(event: CalendarEvent, start: datetime, duration: timedelta) -> Occurrence:
    return Occurrence(
        start=start,
        end=start + duration,
        summary=event.summary,
        description=event.description,
        location=event.location,
        uid=event.uid,
    )


def _align(value: datetime, reference: datetime) -> datetime:
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.replace(tzinfo=reference.tzinfo)
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.replace(tzinfo=None)
    return value


def event_duration(event: CalendarEvent) -> timedelta:
    if event.start is None or event.end is None:
        return DEFAULT_DURATION
    return abs(event.end - event.start)


def expand_event(event: CalendarEvent, now: datetime) -> List[Occurrence]:
    """
    Erzeuge die konkreten Termine eines Events.

    Ohne RRULE genau ein Termin, ohne Startzeit keiner. Mit RRULE wird ab
    DTSTART jeweils um genau eine Einheit (Tag/Woche/Monat) weitergezählt,
    INTERVAL wird nicht berücksichtigt. Abbruch bei COUNT, UNTIL,
    MAX_OCCURRENCES oder wenn now + 6 Monate überschritten sind.
    Unbekannte FREQ liefert nur den ersten Termin.
    """
    if event.start is None:
        return []
    duration = event_duration(event)
    if event.rrule is None:
        return [_occurrence(event, event.start, duration)]

    rule = event.rrule
    freq = rule.known_frequency
    # naive Werte gelten in der Zone des jeweils anderen
    anchor = event.start
    if anchor.tzinfo is None and now.tzinfo is not None:
        anchor = anchor.replace(tzinfo=now.tzinfo)
    now = _align(now, anchor)
    until = _align(rule.until, anchor) if rule.until is not None else None
    max_date = now + HORIZON
    out: List[Occurrence] = []
    current = anchor
    count = 0

    while current <= max_date and count < MAX_OCCURRENCES:
        out.append(_occurrence(event, current, duration))
        if freq is None:
            break
        count += 1
        if rule.count is not None and count >= rule.count:
            break
        # immer vom Anker aus rechnen, damit Monatsenden nicht wandern (31. -> 28. -> 28.)
        current = anchor + _STEPS[freq](count)
        if until is not None and current > until:
            break

    return out


def expand_recurring_events(events: Iterable[CalendarEvent], now: datetime) -> List[Occurrence]:
    """Alle Events expandieren; Reihenfolge bleibt erhalten."""
    expanded: List[Occurrence] = []
    for event in events:
        expanded.extend(expand_event(event, now))
    return expanded
