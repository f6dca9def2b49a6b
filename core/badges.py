"""
Engagement categories. Each category counts a user's qualifying reports; the
count is the category leaderboard score, and categories with a threshold award
a badge once the count reaches it.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from core.domain import Report, Severity, Status

# UTC hours; a report created at 20:00-06:59 counts as nocturnal
NIGHT_START_HOUR = 20
NIGHT_END_HOUR = 6
DETAILED_DESCRIPTION_CHARS = 100


@dataclass(frozen=True)
class Category:
    name: str
    description: str
    icon: str
    counts: Callable[[Report], bool]
    badge_threshold: Optional[int] = None

    def info(self):
        return {"name": self.name, "description": self.description, "icon": self.icon}


def is_night_report(report: Report) -> bool:
    hour = datetime.fromtimestamp(report.created_at / 1000, tz=timezone.utc).hour
    return hour >= NIGHT_START_HOUR or hour <= NIGHT_END_HOUR


CATEGORIES: Dict[str, Category] = {
    "CAZADOR_DE_CRATERES": Category(
        "Cazador de Cráteres", "Reporta baches de gravedad alta", "🕳️",
        lambda r: r.severity == Severity.HIGH, badge_threshold=5,
    ),
    "GUARDIAN_DEL_ASFALTO": Category(
        "Guardián del Asfalto", "Sus reportes terminan resueltos", "🛡️",
        lambda r: r.status == Status.RESOLVED, badge_threshold=3,
    ),
    "DETECTIVE_NOCTURNO": Category(
        "Detective Nocturno", "Reporta baches durante la noche", "🌙",
        is_night_report, badge_threshold=3,
    ),
    "MAESTRO_DEL_DETALLE": Category(
        "Maestro del Detalle", "Escribe descripciones detalladas", "🔍",
        lambda r: len(r.description or "") > DETAILED_DESCRIPTION_CHARS, badge_threshold=3,
    ),
    "HEROE_DEL_BARRIO": Category(
        "Héroe del Barrio", "Cuida las calles de su colonia", "🦸",
        lambda r: True, badge_threshold=3,
    ),
    "CARTOGRAFO_URBANO": Category(
        "Cartógrafo Urbano", "Mapea baches por toda la ciudad", "🗺️",
        lambda r: True, badge_threshold=5,
    ),
    "REPORTERO_VELOZ": Category(
        "Reportero Veloz", "Siempre entre los primeros en reportar", "⚡",
        lambda r: True, badge_threshold=10,
    ),
    "REPORTERO_TOP": Category(
        "Reportero Top", "Más reportes enviados", "🏆",
        lambda r: True,
    ),
}


def category_scores(reports: Sequence[Report]) -> Dict[str, int]:
    return {key: sum(1 for r in reports if cat.counts(r)) for key, cat in CATEGORIES.items()}


def earned_badges(reports: Sequence[Report]) -> List[str]:
    """Badge categories whose threshold the given reports reach, in category order."""
    scores = category_scores(reports)
    return [
        key
        for key, cat in CATEGORIES.items()
        if cat.badge_threshold is not None and scores[key] >= cat.badge_threshold
    ]
