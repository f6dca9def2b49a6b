import math
from typing import Iterable, List, Tuple

EARTH_RADIUS_M = 6371000.0


def polygon_area_m2(polygon: Iterable[tuple[float, float]]) -> float:
    """
    Area in square meters of a (lat, lon) ring.

    Vertices are projected with x = R*cos(lat)*cos(lon), y = R*cos(lat)*sin(lon)
    and summed with the shoelace formula, wrapping the last vertex to the first.
    Only meant for small regions; NaN coordinates give NaN.
    """
    pts = list(polygon)
    if len(pts) < 3:
        return 0.0
    projected = [_project(lat, lon) for lat, lon in pts]
    area = 0.0
    for i in range(len(projected)):
        x1, y1 = projected[i]
        x2, y2 = projected[(i + 1) % len(projected)]
        area += x1 * y2 - x2 * y1
    return abs(area) / 2.0


def _project(lat: float, lon: float) -> tuple[float, float]:
    phi = math.radians(lat)
    lam = math.radians(lon)
    return EARTH_RADIUS_M * math.cos(phi) * math.cos(lam), EARTH_RADIUS_M * math.cos(phi) * math.sin(lam)


def close_ring(polygon: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    ring = [(float(p[0]), float(p[1])) for p in polygon]
    if ring and ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


def bounding_box(polygon: Iterable[tuple[float, float]]) -> tuple[float, float, float, float]:
    """Return (min_lat, max_lat, min_lon, max_lon)."""
    pts = list(polygon)
    lats = [p[0] for p in pts]
    lons = [p[1] for p in pts]
    return min(lats), max(lats), min(lons), max(lons)


def _on_segment(lat: float, lon: float, a, b, eps: float = 1e-12) -> bool:
    cross = (b[0] - a[0]) * (lon - a[1]) - (b[1] - a[1]) * (lat - a[0])
    if abs(cross) > eps:
        return False
    return (
        min(a[0], b[0]) - eps <= lat <= max(a[0], b[0]) + eps
        and min(a[1], b[1]) - eps <= lon <= max(a[1], b[1]) + eps
    )


def point_in_polygon(lat: float, lon: float, polygon: List[Tuple[float, float]]) -> bool:
    """Ray casting; polygon is list of (lat, lon). Points on an edge count as inside."""
    n = len(polygon)
    if n < 3:
        return False
    inside = False
    for i in range(n):
        lat1, lon1 = polygon[i]
        lat2, lon2 = polygon[(i + 1) % n]
        if _on_segment(lat, lon, (lat1, lon1), (lat2, lon2)):
            return True
        if (lon1 > lon) != (lon2 > lon):
            cross_lat = (lat2 - lat1) * (lon - lon1) / (lon2 - lon1) + lat1
            if lat < cross_lat:
                inside = not inside
    return inside


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    R = EARTH_RADIUS_M
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c


def degrees_for_radius(lat: float, radius_m: float) -> tuple[float, float]:
    """Latitude and longitude deltas that cover radius_m around a point at lat."""
    d_lat = math.degrees(radius_m / EARTH_RADIUS_M)
    cos_lat = max(math.cos(math.radians(lat)), 1e-6)
    d_lon = math.degrees(radius_m / (EARTH_RADIUS_M * cos_lat))
    return d_lat, min(d_lon, 180.0)


def longitude_ranges(min_lon: float, max_lon: float) -> List[Tuple[float, float]]:
    """
    Split a longitude window that runs past +/-180 into ranges inside
    [-180, 180]. A window of 360 degrees or more covers every longitude.
    """
    if max_lon - min_lon >= 360.0:
        return [(-180.0, 180.0)]
    if min_lon < -180.0:
        return [(min_lon + 360.0, 180.0), (-180.0, max_lon)]
    if max_lon > 180.0:
        return [(min_lon, 180.0), (-180.0, max_lon - 360.0)]
    return [(min_lon, max_lon)]
