from datetime import date

from lernkompass.capacity import snapshot_from_minutes
from lernkompass.charts import create_capacity_chart
from lernkompass.export_utils import export_capacity_report, format_capacity_line, format_duration
from lernkompass.models import CatchUpSession, SchedulingHint


def week():
    return {wd: snapshot_from_minutes(wd, [60 * wd]) for wd in range(1, 8)}


def test_format_duration():
    assert format_duration(45) == '45m'
    assert format_duration(60) == '1h'
    assert format_duration(90) == '1h 30m'


def test_format_capacity_line():
    line = format_capacity_line(snapshot_from_minutes(3, [120, 180]))
    assert line == 'Wednesday: 2 Sessions, 5h (83.3% - busy)'


def test_capacity_chart_png(tmp_path):
    fn = tmp_path / 'cap.png'
    create_capacity_chart(week(), str(fn), subtitle='KW 1')
    assert fn.exists()
    assert fn.read_bytes()[:4] == b'\x89PNG'

    empty = tmp_path / 'empty.png'
    create_capacity_chart({}, str(empty))
    assert empty.exists()


def test_export_pdf_report(tmp_path):
    pending = [
        CatchUpSession(original_session_id=1, child_id=1, topic_id=4, estimated_minutes=30,
                       missed_date=date(2024, 1, 1), priority=1),
    ]
    hints = [SchedulingHint(kind='balance_load', message='Sessions verschieben', days=[7])]
    fn = tmp_path / 'report.pdf'
    export_capacity_report(week(), str(fn), hints=hints, pending=pending, today=date(2024, 1, 20))
    assert fn.read_bytes()[:4] == b'%PDF'
