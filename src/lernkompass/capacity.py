from typing import Dict, List

from lernkompass.models import CapacitySnapshot, CapacityStatus, SchedulingHint
from lernkompass.ports import SchedulingStore

# 6 Stunden nominaler Schultag (9-15 Uhr)
DAILY_CAPACITY_MINUTES = 360


def capacity_status(utilization_percent: float) -> CapacityStatus:
    if utilization_percent >= 90:
        return CapacityStatus.OVERLOADED
    if utilization_percent >= 70:
        return CapacityStatus.BUSY
    if utilization_percent >= 40:
        return CapacityStatus.MODERATE
    return CapacityStatus.LIGHT


def utilization(total_minutes: int) -> float:
    return total_minutes / DAILY_CAPACITY_MINUTES * 100


def snapshot_from_minutes(day_of_week: int, minutes: List[int]) -> CapacitySnapshot:
    total = sum(minutes)
    pct = utilization(total)
    return CapacitySnapshot(
        day_of_week=day_of_week,
        session_count=len(minutes),
        total_minutes=total,
        utilization_percent=round(pct, 1),
        status=capacity_status(pct),
        can_add_session=pct < 90,
        available_minutes=max(0, DAILY_CAPACITY_MINUTES - total),
    )


def analyze_day(store: SchedulingStore, child_id: int, day_of_week: int) -> CapacitySnapshot:
    """Auslastung eines Wochentags (1=Mo … 7=So). Liest nur, schreibt nichts."""
    if not 1 <= day_of_week <= 7:
        raise ValueError(f"day_of_week must be 1..7, got {day_of_week}")
    sessions = store.sessions_for_child_and_day(child_id, day_of_week)
    return snapshot_from_minutes(day_of_week, [s.estimated_minutes for s in sessions])


def analyze_week(store: SchedulingStore, child_id: int) -> Dict[int, CapacitySnapshot]:
    return {wd: analyze_day(store, child_id, wd) for wd in range(1, 8)}


def suggest_optimal_scheduling(week: Dict[int, CapacitySnapshot]) -> List[SchedulingHint]:
    """
    Einfache Hinweise zur Wochenverteilung:
      balance_load      : es gibt überlastete und leichte Tage gleichzeitig
      utilize_more_days : weniger als 5 Tage haben überhaupt Sessions
    """
    hints = []
    overloaded = [wd for wd, snap in week.items() if snap.status is CapacityStatus.OVERLOADED]
    light = [wd for wd, snap in week.items() if snap.status is CapacityStatus.LIGHT]
    if overloaded and light:
        hints.append(SchedulingHint(
            kind='balance_load',
            message='Consider moving some sessions from busy days to lighter days',
            days=overloaded,
            available_days=light,
        ))

    active = [wd for wd, snap in week.items() if snap.session_count > 0]
    if len(active) < 5:
        hints.append(SchedulingHint(
            kind='utilize_more_days',
            message='Consider spreading sessions across more days for better balance',
            days=[wd for wd, snap in week.items() if snap.session_count == 0],
        ))
    return hints
