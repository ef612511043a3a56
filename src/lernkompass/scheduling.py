# src/lernkompass/scheduling.py
"""Planungs-Engine: Auslassen, automatisches Umplanen, Nachholtermine verteilen,
Kalenderimport in Zeitblöcke.

Jeder Aufruf läuft synchron durch und liest den aktuellen Stand aus dem Store
bei jedem Element neu. Es gibt keine Sperren; parallele Aufrufe für dasselbe
Kind müssen vom Aufrufer serialisiert werden.
"""
import logging
import sqlite3
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional

from lernkompass.capacity import analyze_day, analyze_week, suggest_optimal_scheduling
from lernkompass.ics_parser import parse_ics_content
from lernkompass.models import (
    CapacitySnapshot, CommitmentKind, ImportReport, Occurrence, Redistribution,
    RedistributionReport, RescheduledSession, RescheduleReport, RescheduleSuggestion,
    SchedulingHint, Session, SessionStatus, SkipResult, TimeBlock,
)
from lernkompass.ports import SchedulingStore
from lernkompass.recurrence import expand_recurring_events
from lernkompass.suggestions import generate_reschedule_suggestions

AUTO_APPLY_MAX_DIFFICULTY = 5
PREVIEW_DAYS = 30
PREVIEW_LIMIT = 50


class SchedulingEngine:
    def __init__(self, store: SchedulingStore, timezone: tzinfo):
        self.store = store
        self.tz = timezone

    def _local(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    # Vorschläge & Kapazität
    def suggestions_for(self, session: Session, reference_date: date, now: datetime) -> List[RescheduleSuggestion]:
        return generate_reschedule_suggestions(self.store, session, reference_date, self._local(now))

    def analyze_capacity(self, child_id: int, day_of_week: int) -> CapacitySnapshot:
        return analyze_day(self.store, child_id, day_of_week)

    def analyze_week(self, child_id: int) -> Dict[int, CapacitySnapshot]:
        return analyze_week(self.store, child_id)

    def suggest_optimal_scheduling(self, child_id: int) -> List[SchedulingHint]:
        return suggest_optimal_scheduling(analyze_week(self.store, child_id))

    # Workflows
    def skip_session_day(self, session: Session, original_date: date, now: datetime,
                         reason: Optional[str] = None) -> SkipResult:
        """Legt einen Nachholtermin an und liefert Vorschläge, ohne etwas umzuplanen."""
        catch_up = self.store.create_catch_up(session, original_date, reason)
        logging.info(f"[LernKompass] Session {session.id} am {original_date.isoformat()} ausgelassen "
                     f"(CatchUp {catch_up.id}, Priorität {catch_up.priority})")
        return SkipResult(
            catch_up=catch_up,
            suggestions=self.suggestions_for(session, original_date, now),
        )

    def _sessions_to_reschedule(self, child_id: int, session_ids: Optional[Iterable[int]],
                                report: RescheduleReport) -> List[Session]:
        if not session_ids:
            return [
                s for s in self.store.sessions_for_child(child_id)
                if s.commitment_kind is CommitmentKind.FLEXIBLE and s.status is SessionStatus.SCHEDULED
            ]
        sessions = []
        for sid in session_ids:
            session = self.store.find_session(sid)
            if session is None:
                logging.warning(f"[LernKompass] Session {sid} nicht gefunden, wird übersprungen.")
                report.skipped.append((sid, 'not found'))
                continue
            if session.child_id != child_id:
                logging.warning(f"[LernKompass] Session {sid} gehört nicht zu Kind {child_id}, wird übersprungen.")
                report.skipped.append((sid, 'wrong child'))
                continue
            sessions.append(session)
        return sessions

    def auto_reschedule_flexible_sessions(self, child_id: int, from_date: date, now: datetime,
                                          session_ids: Optional[Iterable[int]] = None) -> RescheduleReport:
        """
        Verschiebt Sessions automatisch auf den besten Vorschlag, aber nur wenn
        dieser empfohlen ist und höchstens Schwierigkeit 5 hat.
        """
        report = RescheduleReport()
        for session in self._sessions_to_reschedule(child_id, session_ids, report):
            if not session.can_be_rescheduled():
                report.skipped.append((session.id, 'not reschedulable'))
                continue

            suggestions = self.suggestions_for(session, from_date, now)
            best = suggestions[0] if suggestions else None
            if best is None:
                report.skipped.append((session.id, 'no slot'))
                continue
            if best.difficulty > AUTO_APPLY_MAX_DIFFICULTY or not best.recommended:
                report.skipped.append((session.id, 'best slot too difficult'))
                continue

            self.store.schedule_session(session, best.day_of_week, best.start_time, best.end_time, best.date)
            logging.info(f"[LernKompass] Session {session.id} verschoben auf {best.date.isoformat()} "
                         f"{best.time_range}")
            report.rescheduled.append(RescheduledSession(
                session=session,
                new_date=best.date,
                start_time=best.start_time,
                end_time=best.end_time,
            ))
        return report

    def redistribute_catch_up_sessions(self, child_id: int, now: datetime,
                                       max_sessions: int = 5) -> RedistributionReport:
        """
        Verteilt offene Nachholtermine nach Priorität (1 zuerst) auf neue,
        immer flexible Sessions. Ohne empfohlenen Slot bleibt der Eintrag offen.
        """
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be positive, got {max_sessions}")
        report = RedistributionReport()
        pending = sorted(self.store.pending_catch_ups(child_id), key=lambda cu: cu.priority)

        for catch_up in pending[:max_sessions]:
            original = self.store.find_session(catch_up.original_session_id)
            if original is None:
                logging.warning(f"[LernKompass] Original-Session {catch_up.original_session_id} "
                                f"für CatchUp {catch_up.id} fehlt.")
                report.skipped.append((catch_up.id, 'original session not found'))
                continue

            suggestions = self.suggestions_for(original, catch_up.missed_date, now)
            best = suggestions[0] if suggestions else None
            if best is None or not best.recommended:
                report.skipped.append((catch_up.id, 'no recommended slot'))
                continue

            new_session = Session(
                topic_id=catch_up.topic_id,
                child_id=catch_up.child_id,
                estimated_minutes=catch_up.estimated_minutes,
                status=SessionStatus.SCHEDULED,
                commitment_kind=CommitmentKind.FLEXIBLE,
            )
            self.store.schedule_session(new_session, best.day_of_week, best.start_time, best.end_time, best.date)
            self.store.reassign_catch_up(catch_up, new_session.id)
            logging.info(f"[LernKompass] CatchUp {catch_up.id} -> Session {new_session.id} "
                         f"am {best.date.isoformat()} {best.time_range}")
            report.redistributed.append(Redistribution(
                catch_up=catch_up,
                new_session=new_session,
                scheduled_date=best.date,
                start_time=best.start_time,
                end_time=best.end_time,
            ))
        return report

    # Kalenderimport
    def expand_calendar(self, content: str, now: datetime) -> List[Occurrence]:
        events = parse_ics_content(content, self.tz)
        return expand_recurring_events(events, self._local(now))

    def time_block_from_occurrence(self, occurrence: Occurrence, child_id: int) -> TimeBlock:
        start = occurrence.start.astimezone(self.tz)
        end = occurrence.end.astimezone(self.tz)
        return TimeBlock(
            child_id=child_id,
            day_of_week=start.isoweekday(),
            start_time=start.time().replace(second=0, microsecond=0),
            end_time=end.time().replace(second=0, microsecond=0),
            label=occurrence.summary or 'Imported Event',
            is_imported=True,
            commitment_kind=CommitmentKind.FIXED,
            source_uid=occurrence.uid,
        )

    def import_calendar(self, content: str, child_id: int, now: datetime) -> ImportReport:
        """Importiert alle Termine als feste Zeitblöcke; identische Blöcke derselben UID werden übersprungen."""
        report = ImportReport()
        seen = {
            (tb.source_uid, tb.day_of_week, tb.start_time, tb.end_time)
            for tb in self.store.time_blocks_for_child(child_id) if tb.source_uid
        }
        for occurrence in self.expand_calendar(content, now):
            try:
                block = self.time_block_from_occurrence(occurrence, child_id)
                key = (block.source_uid, block.day_of_week, block.start_time, block.end_time)
                if block.source_uid and key in seen:
                    report.duplicates += 1
                    continue
                self.store.save_time_block(block)
            except (ValueError, sqlite3.Error) as e:
                logging.warning(f"[LernKompass] Termin '{occurrence.summary}' nicht importiert: {e}")
                report.errors.append((occurrence.summary or 'Unknown event', str(e)))
                continue
            seen.add(key)
            report.imported.append(block)
        logging.info(f"[LernKompass] Kalenderimport für Kind {child_id}: {report.imported_count} importiert, "
                     f"{report.duplicates} doppelt, {report.error_count} Fehler")
        return report

    def preview_calendar(self, content: str, now: datetime) -> List[Occurrence]:
        """Die nächsten Termine (30 Tage, max. 50) ohne zu speichern."""
        local_now = self._local(now)
        cutoff = local_now + timedelta(days=PREVIEW_DAYS)
        preview = []
        for occurrence in self.expand_calendar(content, local_now):
            if len(preview) >= PREVIEW_LIMIT:
                break
            if local_now <= occurrence.start <= cutoff:
                preview.append(occurrence)
        return preview
