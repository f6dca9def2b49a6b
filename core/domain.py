from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

Vertex = Tuple[float, float]  # (lat, lon) in decimal degrees


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Status(str, Enum):
    SUBMITTED = "SUBMITTED"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"


class SizeTier(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EXTRA_LARGE = "extra-large"


class ValidationError(ValueError):
    """Region input that cannot be used: too few vertices or bad coordinates."""


class StoreUnavailable(RuntimeError):
    """The report store could not be queried."""


@dataclass
class Report:
    """
    Read-only view of a stored report. Legacy rows may lack severity,
    coordinates or point geometry, so those fields are optional.
    """

    id: str
    description: str
    status: Status
    created_at: int
    author_id: str
    severity: Severity | None = None
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None
    picture: str | None = None
    location: Vertex | None = None  # point geometry as (lat, lon)
    updated_at: int | None = None
    author_name: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class Cluster:
    position: Tuple[float, float]
    member_count: int
    size_tier: SizeTier
    dominant_severity: Severity
    report_ids: List[str] = field(default_factory=list)
    placeholder: bool = False


@dataclass
class RegionSelection:
    strategy: str  # "precise" or "bounding-box"
    reports: List[Report] = field(default_factory=list)

    def __len__(self):
        return len(self.reports)
