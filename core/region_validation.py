import math
from typing import List, Sequence, Tuple

from core.domain import ValidationError
from core.geo import polygon_area_m2

# regions above this are refused by the postal export before any query runs
MAX_REGION_AREA_M2 = 300_000.0


def segments_intersect(p1, p2, p3, p4):
    def orient(a, b, c):
        return (b[1] - a[1]) * (c[0] - b[0]) - (b[0] - a[0]) * (c[1] - b[1])

    def on_segment(a, b, c):
        return min(a[0], c[0]) - 1e-12 <= b[0] <= max(a[0], c[0]) + 1e-12 and min(a[1], c[1]) - 1e-12 <= b[1] <= max(a[1], c[1]) + 1e-12

    o1 = orient(p1, p2, p3)
    o2 = orient(p1, p2, p4)
    o3 = orient(p3, p4, p1)
    o4 = orient(p3, p4, p2)

    if o1 == 0 and on_segment(p1, p3, p2):
        return True
    if o2 == 0 and on_segment(p1, p4, p2):
        return True
    if o3 == 0 and on_segment(p3, p1, p4):
        return True
    if o4 == 0 and on_segment(p3, p2, p4):
        return True

    return (o1 > 0) != (o2 > 0) and (o3 > 0) != (o4 > 0)


def ensure_point(lat, lon) -> Tuple[float, float]:
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        raise ValidationError("Point must be a [lat, lng] pair") from None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValidationError("Point has non-finite coordinates")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise ValidationError(f"Point is out of range ({lat}, {lon})")
    return lat, lon


def ensure_region(points: Sequence[Sequence[float]]) -> List[Tuple[float, float]]:
    """
    Check vertex count and coordinate ranges, returning the region as (lat, lon) tuples.

    A repeated closing vertex is dropped so the count reflects distinct corners.
    """
    if points is None or len(points) < 3:
        raise ValidationError("Region must contain at least 3 points")
    region: List[Tuple[float, float]] = []
    for idx, p in enumerate(points):
        if p is None or len(p) < 2:
            raise ValidationError(f"Point {idx} must be a [lat, lng] pair")
        try:
            region.append(ensure_point(p[0], p[1]))
        except ValidationError as exc:
            raise ValidationError(f"Point {idx}: {exc}") from None
    if len(region) > 1 and region[0] == region[-1]:
        region = region[:-1]
    if len(region) < 3:
        raise ValidationError("Region must contain at least 3 points")
    return region


def validate_region(points: Sequence[Sequence[float]], max_area_m2: float | None = MAX_REGION_AREA_M2):
    """Full check used by the export workflow. Returns (ok, reason, area_m2)."""
    try:
        region = ensure_region(points)
    except ValidationError as exc:
        return False, str(exc), 0.0
    area = polygon_area_m2(region)
    if max_area_m2 is not None and area > max_area_m2:
        return False, f"Region area too large ({area:.0f} m^2, max {max_area_m2:.0f} m^2)", area
    n = len(region)
    for i in range(n):
        a1 = region[i]
        a2 = region[(i + 1) % n]
        for j in range(i + 1, n):
            if abs(i - j) <= 1 or (i == 0 and j == n - 1):
                continue
            b1 = region[j]
            b2 = region[(j + 1) % n]
            if segments_intersect(a1, a2, b1, b2):
                return False, "Region edges intersect", area
    return True, None, area
