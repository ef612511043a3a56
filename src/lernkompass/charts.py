# src/lernkompass/charts.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from lernkompass.models import CapacityStatus

STATUS_COLORS = {
    CapacityStatus.LIGHT: '#A0FFA0',
    CapacityStatus.MODERATE: '#A0C4FF',
    CapacityStatus.BUSY: '#FFD97D',
    CapacityStatus.OVERLOADED: '#FFADAD',
}


def create_capacity_chart(week: dict, filename: str, subtitle: str = None):
    """
    Erstellt ein Balkendiagramm der Tagesauslastung und speichert es als PNG.
    :param week: Mapping Wochentag (1-7) -> CapacitySnapshot.
    :param filename: Pfad zur Ausgabedatei, z.B. "capacity.png".
    :param subtitle: (Optional) Text unter dem Diagramm.
    """
    days = sorted(week)
    fig, ax = plt.subplots()
    if not days:
        ax.text(0.5, 0.5, "Keine Daten", ha="center", va="center", fontsize=14)
        ax.axis("off")
    else:
        values = [week[d].utilization_percent for d in days]
        colors = [STATUS_COLORS[week[d].status] for d in days]
        ax.bar([week[d].day_name[:2] for d in days], values, color=colors)
        ax.axhline(90, color='#FF0000', linestyle='--', linewidth=1)
        ax.set_ylabel("Auslastung (%)")
        ax.set_ylim(0, max(100, max(values) + 10))
    if subtitle:
        fig.text(0.5, 0.02, subtitle, ha="center", va="bottom", fontsize=12, fontweight='bold')
    fig.savefig(filename, bbox_inches="tight")
    plt.close(fig)
    return filename
