# src/lernkompass/ports.py
"""Schmale Schnittstelle zwischen Planungs-Engine und Datenhaltung.

Die Engine kennt nur diese Methoden; ``lernkompass.data.Database`` ist die
SQLite-Implementierung, Tests können beliebige andere Objekte übergeben.
"""
from datetime import date, time
from typing import List, Optional, Protocol

from lernkompass.models import CatchUpSession, Session, TimeBlock


class SchedulingStore(Protocol):

    # Sessions
    def find_session(self, session_id: int) -> Optional[Session]: ...

    def sessions_for_child(self, child_id: int) -> List[Session]: ...

    def sessions_for_child_and_day(self, child_id: int, day_of_week: int) -> List[Session]: ...

    def save_session(self, session: Session) -> Session: ...

    def schedule_session(self, session: Session, day_of_week: int, start: time, end: time,
                         on_date: Optional[date] = None) -> Session: ...

    # Nachholtermine
    def pending_catch_ups(self, child_id: int) -> List[CatchUpSession]: ...

    def create_catch_up(self, session: Session, missed_date: date,
                        reason: Optional[str] = None) -> CatchUpSession: ...

    def reassign_catch_up(self, catch_up: CatchUpSession, session_id: int) -> CatchUpSession: ...

    # Zeitblöcke
    def time_blocks_for_child(self, child_id: int) -> List[TimeBlock]: ...

    def save_time_block(self, block: TimeBlock) -> TimeBlock: ...
