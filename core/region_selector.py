import logging
from typing import List, Protocol, Sequence, Tuple

from core.domain import RegionSelection, Report, Status
from core.geo import bounding_box, close_ring
from core.region_validation import ensure_point, ensure_region

logger = logging.getLogger(__name__)

# SUBMITTED and REJECTED reports never appear in geographic exports
EXPORT_STATUSES = (Status.PENDING, Status.IN_PROGRESS, Status.RESOLVED)

PRECISE = "precise"
BOUNDING_BOX = "bounding-box"


class ReportStore(Protocol):
    def find_in_polygon(self, ring: List[Tuple[float, float]], statuses: Sequence[Status]) -> List[Report]:
        ...

    def find_in_bounds(self, bounds: Tuple[float, float, float, float], statuses: Sequence[Status]) -> List[Report]:
        ...

    def find_near(self, lat: float, lon: float, radius_m: float, statuses: Sequence[Status]) -> List[Tuple[Report, float]]:
        ...


def select_reports_in_region(
    store: ReportStore,
    region: Sequence[Sequence[float]],
    statuses: Sequence[Status] = EXPORT_STATUSES,
) -> RegionSelection:
    """
    Reports inside `region`, newest first.

    The stored point geometry is tested against the polygon first. When that
    matches nothing (typically rows saved before geometry was recorded) the raw
    latitude/longitude columns are matched against the polygon's bounding box
    instead. The box is a superset of the polygon, so the fallback may return
    reports just outside it.
    """
    ring = close_ring(ensure_region(region))

    reports = store.find_in_polygon(ring, statuses)
    if reports:
        logger.info("Region selection: %d report(s) via %s strategy", len(reports), PRECISE)
        return RegionSelection(strategy=PRECISE, reports=reports)

    bounds = bounding_box(ring)
    logger.info(
        "No reports matched point geometry, falling back to bounds lat[%.6f, %.6f] lon[%.6f, %.6f]",
        *bounds,
    )
    reports = store.find_in_bounds(bounds, statuses)
    logger.info("Region selection: %d report(s) via %s strategy", len(reports), BOUNDING_BOX)
    return RegionSelection(strategy=BOUNDING_BOX, reports=reports)


def select_reports_near(
    store: ReportStore,
    lat: float,
    lon: float,
    radius_m: float,
    statuses: Sequence[Status] = tuple(Status),
):
    """Reports within radius_m meters of (lat, lon), nearest first, as (report, distance_m) pairs."""
    lat, lon = ensure_point(lat, lon)
    if radius_m <= 0:
        return []
    return store.find_near(lat, lon, radius_m, statuses)
