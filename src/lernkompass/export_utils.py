import logging
import os
import tempfile
from datetime import date
from typing import Dict, List, Optional

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from lernkompass.charts import create_capacity_chart
from lernkompass.models import CapacitySnapshot, CatchUpSession, SchedulingHint


def format_duration(minutes: int) -> str:
    """45 -> '45m', 60 -> '1h', 90 -> '1h 30m'"""
    if minutes < 60:
        return f"{minutes}m"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours}h"
    return f"{hours}h {rest}m"


def format_capacity_line(snap: CapacitySnapshot) -> str:
    return (f"{snap.day_name}: {snap.session_count} Sessions, {format_duration(snap.total_minutes)} "
            f"({snap.utilization_percent}% - {snap.status.value})")


def export_capacity_report(week: Dict[int, CapacitySnapshot], filename: str,
                           hints: Optional[List[SchedulingHint]] = None,
                           pending: Optional[List[CatchUpSession]] = None,
                           today: Optional[date] = None) -> str:
    """Schreibt einen PDF-Bericht mit Wochenauslastung, Hinweisen und offenen Nachholterminen."""
    today = today or date.today()
    c = canvas.Canvas(filename, pagesize=letter)
    w, h = letter
    y = h - 50
    c.setFont('Helvetica-Bold', 14)
    c.drawString(50, y, 'LernKompass Wochenauslastung')
    y -= 20
    c.setFont('Helvetica', 10)
    c.drawString(50, y, f"Stand: {today.isoformat()}")
    y -= 25

    for wd in sorted(week):
        c.drawString(60, y, format_capacity_line(week[wd]))
        y -= 15

    if hints:
        y -= 10
        c.setFont('Helvetica-Bold', 12)
        c.drawString(50, y, 'Hinweise')
        y -= 18
        c.setFont('Helvetica', 10)
        for hint in hints:
            c.drawString(60, y, hint.message)
            y -= 15

    if pending:
        y -= 10
        c.setFont('Helvetica-Bold', 12)
        c.drawString(50, y, f'Offene Nachholtermine ({len(pending)})')
        y -= 18
        c.setFont('Helvetica', 10)
        for cu in pending:
            if y < 100:
                c.showPage()
                y = h - 50
                c.setFont('Helvetica', 10)
            overdue = ' - überfällig' if cu.is_overdue(today) else ''
            c.drawString(60, y, f"{cu.missed_date.isoformat()}: Thema {cu.topic_id}, "
                                f"{format_duration(cu.estimated_minutes)}, {cu.priority_label}{overdue}")
            y -= 15

    fd, png = tempfile.mkstemp(suffix='.png')
    os.close(fd)
    try:
        create_capacity_chart(week, png)
        c.showPage()
        size = 300
        c.drawImage(png, (w - size) / 2, h - 50 - size, width=size, height=size)
        c.save()
    except Exception as e:
        logging.error(f"[LernKompass] Fehler beim PDF-Export: {e}")
        raise
    finally:
        os.remove(png)
    return filename
