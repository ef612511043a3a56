# src/lernkompass/models.py
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional, Tuple

DAY_NAMES = {
    1: 'Monday', 2: 'Tuesday', 3: 'Wednesday', 4: 'Thursday',
    5: 'Friday', 6: 'Saturday', 7: 'Sunday',
}


def day_name(weekday: int) -> str:
    return DAY_NAMES.get(weekday, 'Unknown')


class CommitmentKind(str, Enum):
    """Wie verschiebbar ein Termin ist."""
    FIXED = 'fixed'
    PREFERRED = 'preferred'
    FLEXIBLE = 'flexible'


class SessionStatus(str, Enum):
    BACKLOG = 'backlog'
    PLANNED = 'planned'
    SCHEDULED = 'scheduled'
    DONE = 'done'


class CatchUpStatus(str, Enum):
    PENDING = 'pending'
    REASSIGNED = 'reassigned'


class Frequency(str, Enum):
    DAILY = 'DAILY'
    WEEKLY = 'WEEKLY'
    MONTHLY = 'MONTHLY'


class CapacityStatus(str, Enum):
    LIGHT = 'light'
    MODERATE = 'moderate'
    BUSY = 'busy'
    OVERLOADED = 'overloaded'


@dataclass
class RecurrenceRule:
    """Vereinfachte RRULE (nur FREQ/COUNT/UNTIL/INTERVAL)."""
    # None = fehlt; ein unbekannter Wert bleibt als Text erhalten
    frequency: Optional[str] = None
    interval: int = 1              # wird gelesen, aber nicht angewendet
    count: Optional[int] = None
    until: Optional[datetime] = None

    @property
    def known_frequency(self) -> Optional[Frequency]:
        try:
            return Frequency(self.frequency)
        except ValueError:
            return None


@dataclass
class CalendarEvent:
    """Ein VEVENT-Block, so wie er im Text stand (noch nicht expandiert)."""
    summary: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    rrule: Optional[RecurrenceRule] = None
    uid: Optional[str] = None


@dataclass
class Occurrence:
    """Konkreter Termin eines (evtl. wiederkehrenden) Events."""
    start: datetime
    end: datetime
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    uid: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass
class TimeBlock:
    id: Optional[int] = field(default=None, init=False)    # db-Primärschlüssel
    child_id: int
    day_of_week: int               # 1=Montag … 7=Sonntag
    start_time: time
    end_time: time
    label: str = 'Imported Event'
    is_imported: bool = False
    commitment_kind: CommitmentKind = CommitmentKind.FIXED
    source_uid: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        start = timedelta(hours=self.start_time.hour, minutes=self.start_time.minute)
        end = timedelta(hours=self.end_time.hour, minutes=self.end_time.minute)
        return int((end - start).total_seconds() // 60)


@dataclass
class Session:
    """Eine Lerneinheit eines Kindes."""
    id: Optional[int] = field(default=None, init=False)    # db-Primärschlüssel
    topic_id: int
    child_id: int
    estimated_minutes: int
    status: SessionStatus = SessionStatus.BACKLOG
    commitment_kind: CommitmentKind = CommitmentKind.PREFERRED
    scheduled_day_of_week: Optional[int] = None
    scheduled_start_time: Optional[time] = None
    scheduled_end_time: Optional[time] = None
    scheduled_date: Optional[date] = None

    def can_be_rescheduled(self) -> bool:
        return self.commitment_kind is not CommitmentKind.FIXED

    def catch_up_priority(self) -> int:
        """Priorität für Nachholtermine (1 = dringend)."""
        if self.commitment_kind is CommitmentKind.FIXED:
            return 1
        if self.commitment_kind is CommitmentKind.PREFERRED:
            return 2
        return 3


PRIORITY_LABELS = {1: 'Critical', 2: 'High', 3: 'Medium', 4: 'Low', 5: 'Later'}


@dataclass
class CatchUpSession:
    """Verpasste Einheit, die noch einen neuen Platz braucht."""
    id: Optional[int] = field(default=None, init=False)    # db-Primärschlüssel
    original_session_id: int
    child_id: int
    topic_id: int
    estimated_minutes: int
    missed_date: date
    priority: int = 3              # 1 = höchste, 5 = niedrigste
    reason: Optional[str] = None
    reassigned_to_session_id: Optional[int] = None
    status: CatchUpStatus = CatchUpStatus.PENDING

    def days_since_missed(self, today: date) -> int:
        return (today - self.missed_date).days

    def is_overdue(self, today: date) -> bool:
        return self.days_since_missed(today) > 7

    @property
    def priority_label(self) -> str:
        return PRIORITY_LABELS.get(self.priority, 'Unknown')


@dataclass
class CapacitySnapshot:
    day_of_week: int
    session_count: int
    total_minutes: int
    utilization_percent: float
    status: CapacityStatus
    can_add_session: bool
    available_minutes: int = 0

    @property
    def day_name(self) -> str:
        return day_name(self.day_of_week)

    @property
    def total_hours(self) -> float:
        return round(self.total_minutes / 60, 1)


@dataclass
class RescheduleSuggestion:
    date: date
    day_of_week: int
    start_time: time
    end_time: time
    capacity_used: float
    difficulty: int
    recommended: bool

    @property
    def day_name(self) -> str:
        return day_name(self.day_of_week)

    @property
    def time_range(self) -> str:
        return f"{self.start_time.strftime('%H:%M:%S')} - {self.end_time.strftime('%H:%M:%S')}"


@dataclass
class SchedulingHint:
    kind: str                      # 'balance_load' | 'utilize_more_days'
    message: str
    days: List[int] = field(default_factory=list)
    available_days: List[int] = field(default_factory=list)


# Ergebnis-Typen der Workflows

@dataclass
class SkipResult:
    catch_up: CatchUpSession
    suggestions: List[RescheduleSuggestion]
    auto_reschedule_applied: bool = False


@dataclass
class RescheduledSession:
    session: Session
    new_date: date
    start_time: time
    end_time: time

    @property
    def new_time(self) -> str:
        return f"{self.start_time.strftime('%H:%M:%S')} - {self.end_time.strftime('%H:%M:%S')}"


@dataclass
class Redistribution:
    catch_up: CatchUpSession
    new_session: Session
    scheduled_date: date
    start_time: time
    end_time: time


@dataclass
class RescheduleReport:
    rescheduled: List[RescheduledSession] = field(default_factory=list)
    # (Session-ID, Grund)
    skipped: List[Tuple[int, str]] = field(default_factory=list)


@dataclass
class RedistributionReport:
    redistributed: List[Redistribution] = field(default_factory=list)
    # (CatchUp-ID, Grund)
    skipped: List[Tuple[int, str]] = field(default_factory=list)


@dataclass
class ImportReport:
    imported: List[TimeBlock] = field(default_factory=list)
    duplicates: int = 0
    # (Summary, Fehler)
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def error_count(self) -> int:
        return len(self.errors)
