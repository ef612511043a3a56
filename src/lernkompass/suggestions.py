# src/lernkompass/suggestions.py
from datetime import date, datetime, time, timedelta
from typing import List

from lernkompass.capacity import DAILY_CAPACITY_MINUTES, utilization
from lernkompass.models import CommitmentKind, RescheduleSuggestion, Session
from lernkompass.ports import SchedulingStore

WINDOW_DAYS = 14
MAX_SUGGESTIONS = 10
RECOMMENDED_BELOW_PERCENT = 80

# Standard-Slots, je 30 Minuten breit
CANONICAL_SLOTS = [
    (time(9, 0), time(9, 30)),
    (time(10, 0), time(10, 30)),
    (time(11, 0), time(11, 30)),
    (time(13, 0), time(13, 30)),
    (time(14, 0), time(14, 30)),
    (time(15, 0), time(15, 30)),
]

COMMITMENT_PENALTY = {
    CommitmentKind.FIXED: 10,
    CommitmentKind.PREFERRED: 3,
    CommitmentKind.FLEXIBLE: 1,
}


def _minutes_between(start: time, end: time) -> int:
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def _add_minutes(t: time, minutes: int) -> time:
    return (datetime.combine(date.min, t) + timedelta(minutes=minutes)).time()


def available_slots(duration_minutes: int, existing_minutes: int) -> List[tuple]:
    """Passende Standard-Slots (start, ende) für einen Tag mit bereits belegten Minuten."""
    if DAILY_CAPACITY_MINUTES - existing_minutes < duration_minutes:
        return []
    slots = []
    for start, end in CANONICAL_SLOTS:
        if _minutes_between(start, end) >= duration_minutes:
            slots.append((start, _add_minutes(start, duration_minutes)))
    return slots


def reschedule_difficulty(commitment: CommitmentKind, candidate: date, today: date,
                          capacity_used: float) -> int:
    """Heuristik, kleiner = leichter: Tage Abstand + Verbindlichkeit + Tagesfülle."""
    difficulty = abs((candidate - today).days)
    difficulty += COMMITMENT_PENALTY[commitment]
    if capacity_used > 90:
        difficulty += 5
    elif capacity_used > 70:
        difficulty += 2
    return difficulty


def generate_reschedule_suggestions(store: SchedulingStore, session: Session, reference_date: date,
                                    now: datetime, limit: int = MAX_SUGGESTIONS) -> List[RescheduleSuggestion]:
    """
    Kandidaten für die 14 Tage nach reference_date, sortiert nach Schwierigkeit
    (bei Gleichstand Tag- und Slot-Reihenfolge), höchstens `limit` Einträge.
    """
    today = now.date()
    suggestions: List[RescheduleSuggestion] = []

    for offset in range(1, WINDOW_DAYS + 1):
        candidate = reference_date + timedelta(days=offset)
        weekday = candidate.isoweekday()
        existing = store.sessions_for_child_and_day(session.child_id, weekday)
        existing_minutes = sum(s.estimated_minutes for s in existing)

        for start, end in available_slots(session.estimated_minutes, existing_minutes):
            used = utilization(existing_minutes + session.estimated_minutes)
            suggestions.append(RescheduleSuggestion(
                date=candidate,
                day_of_week=weekday,
                start_time=start,
                end_time=end,
                capacity_used=used,
                difficulty=reschedule_difficulty(session.commitment_kind, candidate, today, used),
                recommended=used < RECOMMENDED_BELOW_PERCENT,
            ))

    suggestions.sort(key=lambda s: s.difficulty)
    return suggestions[:limit]
