import sqlite3
from datetime import datetime, time

import pytest
from dateutil import tz

from lernkompass.data import Database
from lernkompass.models import CommitmentKind
from lernkompass.scheduling import SchedulingEngine

BERLIN = tz.gettz('Europe/Berlin')
NOW = datetime(2024, 1, 1, 8, 0, tzinfo=BERLIN)


def ics(*events):
    body = ''.join(f'BEGIN:VEVENT\n{e}END:VEVENT\n' for e in events)
    return f'BEGIN:VCALENDAR\nVERSION:2.0\n{body}END:VCALENDAR\n'


@pytest.fixture
def db(tmp_path):
    db = Database(str(tmp_path / 'import.db'))
    yield db
    db.close()


@pytest.fixture
def engine(db):
    return SchedulingEngine(db, BERLIN)


def test_weekly_event_becomes_one_fixed_block(db, engine):
    content = ics('UID:violin\nSUMMARY:Geige\nDTSTART:20240101T150000\nDTEND:20240101T160000\n'
                  'RRULE:FREQ=WEEKLY;COUNT=3\n')
    report = engine.import_calendar(content, 1, NOW)
    assert report.imported_count == 1
    assert report.duplicates == 2
    assert report.error_count == 0

    blocks = db.time_blocks_for_child(1)
    assert len(blocks) == 1
    block = blocks[0]
    assert block.day_of_week == 1
    assert (block.start_time, block.end_time) == (time(15, 0), time(16, 0))
    assert block.label == 'Geige'
    assert block.is_imported
    assert block.commitment_kind is CommitmentKind.FIXED
    assert block.source_uid == 'violin'

    # zweiter Import legt nichts doppelt an
    again = engine.import_calendar(content, 1, NOW)
    assert again.imported_count == 0
    assert again.duplicates == 3
    assert len(db.time_blocks_for_child(1)) == 1


def test_daily_event_without_uid_and_defaults(db, engine):
    content = ics('DTSTART:20240101T100000\nRRULE:FREQ=DAILY;COUNT=2\n')
    report = engine.import_calendar(content, 1, NOW)
    assert report.imported_count == 2
    blocks = db.time_blocks_for_child(1)
    assert [b.day_of_week for b in blocks] == [1, 2]
    assert all(b.label == 'Imported Event' for b in blocks)
    assert all((b.start_time, b.end_time) == (time(10, 0), time(11, 0)) for b in blocks)


def test_utc_times_are_converted_to_local(db, engine):
    content = ics('UID:u1\nSUMMARY:Online-Kurs\nDTSTART:20240102T080000Z\nDTEND:20240102T090000Z\n')
    engine.import_calendar(content, 1, NOW)
    block = db.time_blocks_for_child(1)[0]
    assert block.day_of_week == 2
    assert (block.start_time, block.end_time) == (time(9, 0), time(10, 0))


def test_events_without_start_are_dropped(db, engine):
    content = ics('SUMMARY:ohne Start\n', 'SUMMARY:kaputt\nDTSTART:xyz\n',
                  'SUMMARY:ok\nDTSTART:20240105T090000\n')
    report = engine.import_calendar(content, 1, NOW)
    assert [b.label for b in report.imported] == ['ok']


def test_garbage_input_imports_nothing(engine):
    report = engine.import_calendar('das ist kein Kalender', 1, NOW)
    assert report.imported_count == 0
    assert report.errors == []


def test_preview_lists_next_thirty_days(db, engine):
    content = ics(
        'SUMMARY:vergangen\nDTSTART:20231220T090000\n',
        'SUMMARY:bald\nDTSTART:20240105T090000\n',
        'SUMMARY:spaeter\nDTSTART:20240220T090000\n',
    )
    preview = engine.preview_calendar(content, NOW)
    assert [o.summary for o in preview] == ['bald']
    # Vorschau schreibt nichts
    assert db.time_blocks_for_child(1) == []


def test_preview_is_capped(engine):
    content = ics('SUMMARY:taeglich\nDTSTART:20240101T090000\nRRULE:FREQ=DAILY\n')
    preview = engine.preview_calendar(content, NOW)
    # 1.1. 09:00 bis 31.1. 08:00 -> 30 Termine
    assert len(preview) == 30
    assert all(o.summary == 'taeglich' for o in preview)


def test_preview_stops_at_fifty_entries(engine):
    content = ics('SUMMARY:frueh\nDTSTART:20240101T090000\nRRULE:FREQ=DAILY\n',
                  'SUMMARY:spaet\nDTSTART:20240101T100000\nRRULE:FREQ=DAILY\n')
    preview = engine.preview_calendar(content, NOW)
    # je 30 Termine im Fenster, Liste endet nach 50
    assert len(preview) == 50
    assert [o.summary for o in preview].count('frueh') == 30
    assert [o.summary for o in preview].count('spaet') == 20


class FlakyBlockDatabase(Database):
    def save_time_block(self, tb):
        if tb.label == 'kaputt':
            raise sqlite3.OperationalError('database is locked')
        return super().save_time_block(tb)


def test_storage_error_skips_only_that_block(tmp_path):
    db = FlakyBlockDatabase(str(tmp_path / 'flaky.db'))
    content = ics('UID:a\nSUMMARY:kaputt\nDTSTART:20240102T090000\n',
                  'UID:b\nSUMMARY:Turnen\nDTSTART:20240103T090000\n')
    report = SchedulingEngine(db, BERLIN).import_calendar(content, 1, NOW)
    assert [b.label for b in report.imported] == ['Turnen']
    assert report.errors == [('kaputt', 'database is locked')]
    assert [b.label for b in db.time_blocks_for_child(1)] == ['Turnen']
    db.close()
