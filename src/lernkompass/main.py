# src/lernkompass/main.py

import logging
from datetime import datetime

from .config import load_config, resolve_timezone
from .data import Database
from .export_utils import export_capacity_report, format_capacity_line
from .ics_parser import validate_ics_upload
from .scheduling import SchedulingEngine


def run_wizard():
    cfg = load_config()
    logging.basicConfig(level=cfg.get('log_level', 'INFO'))
    tz = resolve_timezone(cfg)
    db = Database(cfg['db_path'])
    engine = SchedulingEngine(db, tz)
    now = datetime.now(tz)

    print("🎯 Willkommen beim LernKompass Planer 🎯")
    child_id = int(input("Für welches Kind (ID)? "))

    # 1) Kalender importieren
    path = input("ICS-Datei importieren (Pfad) [leer=überspringen]: ").strip()
    if path:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            content = f.read()
        errors = validate_ics_upload(path, content, cfg['max_import_bytes'])
        if errors:
            for err in errors:
                print(f"  ⚠️  {err}")
        else:
            report = engine.import_calendar(content, child_id, now)
            print(f"✅ {report.imported_count} Zeitblöcke importiert "
                  f"({report.duplicates} doppelt, {report.error_count} Fehler).")

    # 2) Wochenauslastung
    week = engine.analyze_week(child_id)
    print("\n📅 Wochenauslastung:")
    for wd in sorted(week):
        print(" ", format_capacity_line(week[wd]))
    hints = engine.suggest_optimal_scheduling(child_id)
    for hint in hints:
        print(f"  💡 {hint.message}")

    # 3) Nachholtermine verteilen
    if input("\nOffene Nachholtermine verteilen? (j/n) ").lower() == "j":
        result = engine.redistribute_catch_up_sessions(child_id, now)
        for item in result.redistributed:
            print(f"  ✅ Thema {item.catch_up.topic_id}: {item.scheduled_date.isoformat()} "
                  f"{item.start_time.strftime('%H:%M')}-{item.end_time.strftime('%H:%M')}")
        if result.skipped:
            print(f"  {len(result.skipped)} Nachholtermin(e) bleiben offen.")

    # 4) Bericht
    if input("\nPDF-Bericht speichern? (j/n) ").lower() == "j":
        week = engine.analyze_week(child_id)
        hints = engine.suggest_optimal_scheduling(child_id)
        fn = export_capacity_report(week, "lernkompass_report.pdf", hints=hints,
                                     pending=db.pending_catch_ups(child_id), today=now.date())
        print(f"Bericht in {fn} gespeichert.")
    db.close()


if __name__ == "__main__":
    run_wizard()
