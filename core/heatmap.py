import math
from collections import Counter
from typing import Dict, List, Sequence, Tuple

from core.domain import Cluster, Report, Severity, SizeTier

DEFAULT_GRID_RESOLUTION = 0.1  # degrees

SEVERITY_COLORS = {
    Severity.HIGH: "#ef4444",    # red
    Severity.MEDIUM: "#f97316",  # orange
    Severity.LOW: "#eab308",     # yellow
}

# tie-break order when two severities have the same count
_SEVERITY_PRECEDENCE = {Severity.HIGH: 2, Severity.MEDIUM: 1, Severity.LOW: 0}

# Shown when there is nothing to plot; positions are screen percentages.
PLACEHOLDER_CLUSTERS = (
    ((25.0, 25.0), SizeTier.LARGE, Severity.HIGH),
    ((50.0, 33.0), SizeTier.EXTRA_LARGE, Severity.MEDIUM),
    ((66.0, 50.0), SizeTier.MEDIUM, Severity.LOW),
)


def size_tier(count: int) -> SizeTier:
    if count < 3:
        return SizeTier.SMALL
    if count < 6:
        return SizeTier.MEDIUM
    if count < 10:
        return SizeTier.LARGE
    return SizeTier.EXTRA_LARGE


def dominant_severity(reports: Sequence[Report]) -> Severity:
    counts = Counter(r.severity for r in reports if r.severity is not None)
    if not counts:
        return Severity.LOW
    return max(counts, key=lambda sev: (counts[sev], _SEVERITY_PRECEDENCE[sev]))


def grid_key(lat: float, lon: float, grid_resolution: float = DEFAULT_GRID_RESOLUTION) -> Tuple[int, int]:
    scale = 1.0 / grid_resolution
    return math.floor(lat * scale), math.floor(lon * scale)


def placeholder_clusters() -> List[Cluster]:
    return [
        Cluster(position=pos, member_count=0, size_tier=tier, dominant_severity=sev, placeholder=True)
        for pos, tier, sev in PLACEHOLDER_CLUSTERS
    ]


def _plottable(report: Report) -> bool:
    return report.has_coordinates and math.isfinite(report.latitude) and math.isfinite(report.longitude)


def cluster_reports(reports: Sequence[Report], grid_resolution: float = DEFAULT_GRID_RESOLUTION) -> List[Cluster]:
    """
    Bucket reports on a lat/lon grid and describe each non-empty cell.

    A cluster is positioned at its first member's coordinates rather than the
    mean of all members. Reports without finite coordinates are skipped. An empty
    input gives the placeholder set so the map is never blank.
    """
    if grid_resolution <= 0:
        raise ValueError("grid_resolution must be positive")
    if not reports:
        return placeholder_clusters()

    buckets: Dict[Tuple[int, int], List[Report]] = {}
    for report in reports:
        if not _plottable(report):
            continue
        buckets.setdefault(grid_key(report.latitude, report.longitude, grid_resolution), []).append(report)

    clusters = []
    for members in buckets.values():
        first = members[0]
        clusters.append(
            Cluster(
                position=(first.latitude, first.longitude),
                member_count=len(members),
                size_tier=size_tier(len(members)),
                dominant_severity=dominant_severity(members),
                report_ids=[m.id for m in members],
            )
        )
    return clusters


def cluster_to_dict(cluster: Cluster):
    return {
        "position": list(cluster.position),
        "sizeTier": cluster.size_tier.value,
        "dominantSeverity": cluster.dominant_severity.value,
        "dominantSeverityColor": SEVERITY_COLORS[cluster.dominant_severity],
        "memberCount": cluster.member_count,
        "placeholder": cluster.placeholder,
    }


def build_heatmap(reports: Sequence[Report], grid_resolution: float = DEFAULT_GRID_RESOLUTION):
    clusters = cluster_reports(reports, grid_resolution)
    return {
        "clusters": [cluster_to_dict(c) for c in clusters],
        "totalCount": sum(1 for r in reports if _plottable(r)),
    }
