import os
import sqlite3
from datetime import date, time
from typing import List, Optional
from lernkompass.models import (
    CatchUpSession, CatchUpStatus, CommitmentKind, Session, SessionStatus, TimeBlock,
)
import logging


def _time_to_text(t: Optional[time]) -> Optional[str]:
    return t.strftime('%H:%M:%S') if t else None


def _text_to_time(s: Optional[str]) -> Optional[time]:
    return time.fromisoformat(s) if s else None


class Database:
    def __init__(self, db_path: str = None):
        try:
            self.db_path = db_path or os.path.join(os.path.expanduser("~"), ".lernkompass", "lernkompass.db")
            if self.db_path != ':memory:':
                os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON;")
            self._ensure_tables()
        except Exception as e:
            logging.error(f"[LernKompass] Database connection error: {e}")
            raise

    def _ensure_tables(self):
        cur = self.conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS sessions (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          topic_id INTEGER NOT NULL,
          child_id INTEGER NOT NULL,
          estimated_minutes INTEGER NOT NULL,
          status TEXT NOT NULL DEFAULT 'backlog',
          commitment_type TEXT NOT NULL DEFAULT 'preferred',
          scheduled_day_of_week INTEGER,
          scheduled_start_time TEXT,
          scheduled_end_time TEXT,
          scheduled_date TEXT
        )""")

        cur.execute("""
        CREATE TABLE IF NOT EXISTS catch_up_sessions (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          original_session_id INTEGER NOT NULL,
          child_id INTEGER NOT NULL,
          topic_id INTEGER NOT NULL,
          estimated_minutes INTEGER NOT NULL,
          priority INTEGER NOT NULL DEFAULT 3,
          missed_date TEXT NOT NULL,
          reason TEXT,
          reassigned_to_session_id INTEGER,
          status TEXT NOT NULL DEFAULT 'pending',
          FOREIGN KEY(original_session_id) REFERENCES sessions(id) ON DELETE CASCADE,
          FOREIGN KEY(reassigned_to_session_id) REFERENCES sessions(id) ON DELETE SET NULL
        )""")

        cur.execute("""
        CREATE TABLE IF NOT EXISTS time_blocks (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          child_id INTEGER NOT NULL,
          day_of_week INTEGER NOT NULL,
          start_time TEXT NOT NULL,
          end_time TEXT NOT NULL,
          label TEXT NOT NULL,
          is_imported INTEGER NOT NULL DEFAULT 0,
          commitment_type TEXT NOT NULL DEFAULT 'fixed',
          source_uid TEXT
        )""")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_child_day ON sessions(child_id, scheduled_day_of_week)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_catch_up_child_status ON catch_up_sessions(child_id, status)")

        self.conn.commit()

    # Session-Methoden
    def _row_to_session(self, row) -> Session:
        s = Session(
            topic_id=row['topic_id'],
            child_id=row['child_id'],
            estimated_minutes=row['estimated_minutes'],
            status=SessionStatus(row['status']),
            commitment_kind=CommitmentKind(row['commitment_type']),
            scheduled_day_of_week=row['scheduled_day_of_week'],
            scheduled_start_time=_text_to_time(row['scheduled_start_time']),
            scheduled_end_time=_text_to_time(row['scheduled_end_time']),
            scheduled_date=date.fromisoformat(row['scheduled_date']) if row['scheduled_date'] else None,
        )
        s.id = row['id']
        return s

    def find_session(self, session_id: int) -> Optional[Session]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM sessions WHERE id=?", (session_id,))
        row = cur.fetchone()
        return self._row_to_session(row) if row else None

    def sessions_for_child(self, child_id: int) -> List[Session]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM sessions WHERE child_id=? ORDER BY id", (child_id,))
        return [self._row_to_session(row) for row in cur.fetchall()]

    def sessions_for_child_and_day(self, child_id: int, day_of_week: int) -> List[Session]:
        """Nur eingeplante Sessions (status 'scheduled') des Wochentags, nach Startzeit."""
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM sessions WHERE child_id=? AND scheduled_day_of_week=? AND status=? "
            "ORDER BY scheduled_start_time",
            (child_id, day_of_week, SessionStatus.SCHEDULED.value)
        )
        return [self._row_to_session(row) for row in cur.fetchall()]

    def save_session(self, session: Session) -> Session:
        values = (
            session.topic_id, session.child_id, session.estimated_minutes,
            session.status.value, session.commitment_kind.value,
            session.scheduled_day_of_week,
            _time_to_text(session.scheduled_start_time),
            _time_to_text(session.scheduled_end_time),
            session.scheduled_date.isoformat() if session.scheduled_date else None,
        )
        cur = self.conn.cursor()
        if session.id is not None:
            cur.execute(
                "UPDATE sessions SET topic_id=?, child_id=?, estimated_minutes=?, status=?, commitment_type=?, "
                "scheduled_day_of_week=?, scheduled_start_time=?, scheduled_end_time=?, scheduled_date=? WHERE id=?",
                values + (session.id,)
            )
        else:
            cur.execute(
                "INSERT INTO sessions (topic_id, child_id, estimated_minutes, status, commitment_type, "
                "scheduled_day_of_week, scheduled_start_time, scheduled_end_time, scheduled_date) "
                "VALUES (?,?,?,?,?,?,?,?,?)",
                values
            )
            session.id = cur.lastrowid
        self.conn.commit()
        return session

    def schedule_session(self, session: Session, day_of_week: int, start: time, end: time,
                         on_date: Optional[date] = None) -> Session:
        session.status = SessionStatus.SCHEDULED
        session.scheduled_day_of_week = day_of_week
        session.scheduled_start_time = start
        session.scheduled_end_time = end
        session.scheduled_date = on_date
        return self.save_session(session)

    # CatchUp-Methoden
    def _row_to_catch_up(self, row) -> CatchUpSession:
        cu = CatchUpSession(
            original_session_id=row['original_session_id'],
            child_id=row['child_id'],
            topic_id=row['topic_id'],
            estimated_minutes=row['estimated_minutes'],
            missed_date=date.fromisoformat(row['missed_date']),
            priority=row['priority'],
            reason=row['reason'],
            reassigned_to_session_id=row['reassigned_to_session_id'],
            status=CatchUpStatus(row['status']),
        )
        cu.id = row['id']
        return cu

    def find_catch_up(self, catch_up_id: int) -> Optional[CatchUpSession]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM catch_up_sessions WHERE id=?", (catch_up_id,))
        row = cur.fetchone()
        return self._row_to_catch_up(row) if row else None

    def pending_catch_ups(self, child_id: int) -> List[CatchUpSession]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM catch_up_sessions WHERE child_id=? AND status=? ORDER BY id",
            (child_id, CatchUpStatus.PENDING.value)
        )
        return [self._row_to_catch_up(row) for row in cur.fetchall()]

    def save_catch_up(self, cu: CatchUpSession) -> CatchUpSession:
        if not 1 <= cu.priority <= 5:
            raise ValueError(f"Priority must be between 1 and 5, got {cu.priority}")
        values = (
            cu.original_session_id, cu.child_id, cu.topic_id, cu.estimated_minutes,
            cu.priority, cu.missed_date.isoformat(), cu.reason,
            cu.reassigned_to_session_id, cu.status.value,
        )
        cur = self.conn.cursor()
        if cu.id is not None:
            cur.execute(
                "UPDATE catch_up_sessions SET original_session_id=?, child_id=?, topic_id=?, estimated_minutes=?, "
                "priority=?, missed_date=?, reason=?, reassigned_to_session_id=?, status=? WHERE id=?",
                values + (cu.id,)
            )
        else:
            cur.execute(
                "INSERT INTO catch_up_sessions (original_session_id, child_id, topic_id, estimated_minutes, "
                "priority, missed_date, reason, reassigned_to_session_id, status) VALUES (?,?,?,?,?,?,?,?,?)",
                values
            )
            cu.id = cur.lastrowid
        self.conn.commit()
        return cu

    def create_catch_up(self, session: Session, missed_date: date,
                        reason: Optional[str] = None) -> CatchUpSession:
        cu = CatchUpSession(
            original_session_id=session.id,
            child_id=session.child_id,
            topic_id=session.topic_id,
            estimated_minutes=session.estimated_minutes,
            missed_date=missed_date,
            priority=session.catch_up_priority(),
            reason=reason,
        )
        return self.save_catch_up(cu)

    def reassign_catch_up(self, catch_up: CatchUpSession, session_id: int) -> CatchUpSession:
        catch_up.reassigned_to_session_id = session_id
        catch_up.status = CatchUpStatus.REASSIGNED
        return self.save_catch_up(catch_up)

    # TimeBlock-Methoden
    def time_blocks_for_child(self, child_id: int) -> List[TimeBlock]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM time_blocks WHERE child_id=? ORDER BY day_of_week, start_time",
            (child_id,)
        )
        out = []
        for row in cur.fetchall():
            tb = TimeBlock(
                child_id=row['child_id'],
                day_of_week=row['day_of_week'],
                start_time=_text_to_time(row['start_time']),
                end_time=_text_to_time(row['end_time']),
                label=row['label'],
                is_imported=bool(row['is_imported']),
                commitment_kind=CommitmentKind(row['commitment_type']),
                source_uid=row['source_uid'],
            )
            tb.id = row['id']
            out.append(tb)
        return out

    def save_time_block(self, block: TimeBlock) -> TimeBlock:
        if not 1 <= block.day_of_week <= 7:
            raise ValueError(f"day_of_week must be 1..7, got {block.day_of_week}")
        values = (
            block.child_id, block.day_of_week,
            _time_to_text(block.start_time), _time_to_text(block.end_time),
            block.label, int(block.is_imported), block.commitment_kind.value, block.source_uid,
        )
        cur = self.conn.cursor()
        if block.id is not None:
            cur.execute(
                "UPDATE time_blocks SET child_id=?, day_of_week=?, start_time=?, end_time=?, label=?, "
                "is_imported=?, commitment_type=?, source_uid=? WHERE id=?",
                values + (block.id,)
            )
        else:
            cur.execute(
                "INSERT INTO time_blocks (child_id, day_of_week, start_time, end_time, label, is_imported, "
                "commitment_type, source_uid) VALUES (?,?,?,?,?,?,?,?)",
                values
            )
            block.id = cur.lastrowid
        self.conn.commit()
        return block

    def close(self):
        """Schließe die Datenbankverbindung sauber"""
        if self.conn:
            self.conn.close()
            self.conn = None
