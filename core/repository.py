import json
import time
import uuid
from collections import Counter
from typing import Iterable, List, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from core.analytics import report_time_metrics
from core.badges import CATEGORIES
from core.db_models import (
    NotificationModel,
    ReportModel,
    ReportTimelineModel,
    UserBadgeModel,
    UserModel,
)
from core.domain import Report, Severity, Status, StoreUnavailable
from core.geo import bounding_box, degrees_for_radius, haversine_m, longitude_ranges, point_in_polygon


def now_ms() -> int:
    return int(time.time() * 1000)


def _values(items: Iterable | None) -> List[str]:
    return [getattr(i, "value", i) for i in items or []]


def location_to_json(lat: float | None, lon: float | None) -> str | None:
    if lat is None or lon is None:
        return None
    return json.dumps({"type": "Point", "coordinates": [lon, lat]})


def _location_from_json(raw: str | None):
    if not raw:
        return None
    lon, lat = json.loads(raw)["coordinates"][:2]
    return float(lat), float(lon)


def report_to_domain(r: ReportModel) -> Report:
    return Report(
        id=r.id,
        description=r.description,
        status=Status(r.status),
        created_at=r.created_at,
        author_id=r.author_id,
        severity=Severity(r.severity) if r.severity else None,
        latitude=r.latitude,
        longitude=r.longitude,
        address=r.address,
        picture=r.picture,
        location=_location_from_json(r.location_json),
        updated_at=r.updated_at,
        author_name=r.author.name if r.author else None,
    )


def report_to_dict(r: Report):
    return {
        "id": r.id,
        "picture": r.picture,
        "description": r.description,
        "severity": r.severity.value if r.severity else None,
        "status": r.status.value,
        "latitude": r.latitude,
        "longitude": r.longitude,
        "address": r.address,
        "author_id": r.author_id,
        "author_name": r.author_name,
        "created_at": r.created_at,
        "updated_at": r.updated_at,
    }


# --- users -----------------------------------------------------------------


def create_user(session: Session, user_id: str, name: str, email: str, role: str = "USER"):
    user = UserModel(id=user_id, name=name, email=email, role=role, created_at=now_ms())
    session.add(user)
    return user


def get_user(session: Session, user_id: str):
    return session.get(UserModel, user_id)


def list_admin_ids(session: Session) -> List[str]:
    return list(session.scalars(select(UserModel.id).where(UserModel.role == "ADMIN")).all())


def get_leaderboard(session: Session, limit: int = 10):
    report_count = func.count(ReportModel.id)
    rows = session.execute(
        select(UserModel.id, UserModel.name, UserModel.role, report_count.label("report_count"))
        .outerjoin(ReportModel, ReportModel.author_id == UserModel.id)
        .group_by(UserModel.id, UserModel.name, UserModel.role)
        .order_by(report_count.desc(), UserModel.name)
        .limit(limit)
    ).all()
    return [
        {
            "id": row.id,
            "name": row.name,
            "role": row.role,
            "reportCount": row.report_count,
            "rank": idx + 1,
        }
        for idx, row in enumerate(rows)
    ]


# --- reports ---------------------------------------------------------------


def create_report(
    session: Session,
    report_id: str,
    author_id: str,
    description: str,
    severity: Severity | str | None,
    latitude: float | None,
    longitude: float | None,
    address: str | None = None,
    picture: str | None = None,
    status: Status | str = Status.SUBMITTED,
    created_at: int | None = None,
    with_location: bool = True,
):
    ts = created_at if created_at is not None else now_ms()
    report = ReportModel(
        id=report_id,
        author_id=author_id,
        description=description,
        severity=getattr(severity, "value", severity),
        status=getattr(status, "value", status),
        latitude=latitude,
        longitude=longitude,
        address=address,
        picture=picture,
        location_json=location_to_json(latitude, longitude) if with_location else None,
        created_at=ts,
        updated_at=ts,
    )
    session.add(report)
    return report


def get_report(session: Session, report_id: str):
    return session.get(ReportModel, report_id)


def list_reports(
    session: Session,
    statuses: Sequence | None = None,
    severities: Sequence | None = None,
    author_id: str | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> Tuple[List[Report], int]:
    query = select(ReportModel)
    if statuses:
        query = query.where(ReportModel.status.in_(_values(statuses)))
    if severities:
        query = query.where(ReportModel.severity.in_(_values(severities)))
    if author_id:
        query = query.where(ReportModel.author_id == author_id)
    total = session.scalar(select(func.count()).select_from(query.subquery()))
    query = query.order_by(ReportModel.created_at.desc(), ReportModel.id.desc()).offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return [report_to_domain(r) for r in session.scalars(query).all()], total


def list_reports_with_coordinates(session: Session, statuses: Sequence | None = None) -> List[Report]:
    query = select(ReportModel).where(ReportModel.latitude.is_not(None), ReportModel.longitude.is_not(None))
    if statuses:
        query = query.where(ReportModel.status.in_(_values(statuses)))
    return [report_to_domain(r) for r in session.scalars(query.order_by(ReportModel.created_at.desc())).all()]


def add_timeline_entry(
    session: Session,
    report_id: str,
    previous_status: str | None,
    new_status: str,
    notes: str | None = None,
):
    entry = ReportTimelineModel(
        report_id=report_id,
        previous_status=previous_status,
        new_status=new_status,
        notes=notes,
        created_at=now_ms(),
    )
    session.add(entry)
    return entry


def get_timeline(session: Session, report_id: str):
    entries = session.scalars(
        select(ReportTimelineModel)
        .where(ReportTimelineModel.report_id == report_id)
        .order_by(ReportTimelineModel.created_at, ReportTimelineModel.id)
    ).all()
    return [
        {
            "id": e.id,
            "previous_status": e.previous_status,
            "new_status": e.new_status,
            "notes": e.notes,
            "created_at": e.created_at,
        }
        for e in entries
    ]


# --- notifications ---------------------------------------------------------


def create_notification(
    session: Session,
    user_id: str,
    title: str,
    message: str,
    related_id: str | None = None,
    type: str = "REPORT_STATUS",
):
    notification = NotificationModel(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        related_id=related_id,
        read=False,
        created_at=now_ms(),
    )
    session.add(notification)
    return notification


def list_notifications(session: Session, user_id: str, unread_only: bool = False):
    query = select(NotificationModel).where(NotificationModel.user_id == user_id)
    if unread_only:
        query = query.where(NotificationModel.read.is_(False))
    rows = session.scalars(query.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())).all()
    return [
        {
            "id": n.id,
            "title": n.title,
            "message": n.message,
            "type": n.type,
            "related_id": n.related_id,
            "read": n.read,
            "created_at": n.created_at,
        }
        for n in rows
    ]


def mark_notification_read(session: Session, notification_id: int):
    notification = session.get(NotificationModel, notification_id)
    if notification:
        notification.read = True
    return notification


# --- badges and engagement -------------------------------------------------


def list_reports_by_author(session: Session, author_id: str) -> List[Report]:
    rows = session.scalars(select(ReportModel).where(ReportModel.author_id == author_id)).all()
    return [report_to_domain(r) for r in rows]


def has_badge(session: Session, user_id: str, badge_type: str) -> bool:
    found = session.scalar(
        select(UserBadgeModel.id).where(UserBadgeModel.user_id == user_id, UserBadgeModel.badge_type == badge_type)
    )
    return found is not None


def award_badge(session: Session, user_id: str, badge_type: str):
    """Add the badge unless the user already holds it; returns the new row or None."""
    if has_badge(session, user_id, badge_type):
        return None
    badge = UserBadgeModel(id=str(uuid.uuid4()), user_id=user_id, badge_type=badge_type, earned_at=now_ms())
    session.add(badge)
    return badge


def badge_to_dict(badge: UserBadgeModel):
    category = CATEGORIES[badge.badge_type]
    return {"id": badge.id, "badgeType": badge.badge_type, **category.info(), "earnedAt": badge.earned_at}


def list_user_badges(session: Session, user_id: str):
    rows = session.scalars(
        select(UserBadgeModel)
        .where(UserBadgeModel.user_id == user_id)
        .order_by(UserBadgeModel.earned_at.desc(), UserBadgeModel.id)
    ).all()
    return [badge_to_dict(b) for b in rows]


def get_category_leaderboard(session: Session, category: str, limit: int = 10):
    counts = CATEGORIES[category].counts
    scores: Counter = Counter()
    names = {}
    for row in session.scalars(select(ReportModel)).all():
        report = report_to_domain(row)
        if counts(report):
            scores[report.author_id] += 1
            names[report.author_id] = report.author_name
    ranked = sorted(scores, key=lambda uid: (-scores[uid], names[uid] or "", uid))[:limit]
    return [
        {"id": uid, "name": names[uid], "score": scores[uid], "rank": idx + 1}
        for idx, uid in enumerate(ranked)
    ]


def get_report_time_metrics(session: Session):
    reports = session.execute(select(ReportModel.id, ReportModel.status, ReportModel.created_at)).all()
    timeline = [
        {"id": e.id, "report_id": e.report_id, "new_status": e.new_status, "created_at": e.created_at}
        for e in session.scalars(select(ReportTimelineModel)).all()
    ]
    return report_time_metrics([tuple(r) for r in reports], timeline)


# --- spatial store ---------------------------------------------------------


class SqlReportStore:
    """
    Report queries used by the region selector.

    SQLite has no spatial predicates: the polygon test narrows rows to the
    ring's bounding box in SQL, then runs the exact test in Python over the rows
    that carry point geometry. Driver failures surface as StoreUnavailable.
    """

    def __init__(self, session: Session):
        self.session = session

    def _fetch(self, query) -> List[ReportModel]:
        try:
            return list(self.session.scalars(query).all())
        except DBAPIError as exc:
            raise StoreUnavailable(f"Report store query failed: {exc.orig}") from exc

    def _base(self, statuses: Sequence):
        return (
            select(ReportModel)
            .where(ReportModel.status.in_(_values(statuses)))
            .order_by(ReportModel.created_at.desc(), ReportModel.id.desc())
        )

    @staticmethod
    def _within(bounds: Tuple[float, float, float, float]):
        min_lat, max_lat, min_lon, max_lon = bounds
        lon_clauses = [ReportModel.longitude.between(lo, hi) for lo, hi in longitude_ranges(min_lon, max_lon)]
        return ReportModel.latitude.between(min_lat, max_lat), or_(*lon_clauses)

    def find_in_polygon(self, ring: List[Tuple[float, float]], statuses: Sequence) -> List[Report]:
        rows = self._fetch(
            self._base(statuses)
            .where(ReportModel.location_json.is_not(None))
            .where(*self._within(bounding_box(ring)))
        )
        found = []
        for row in rows:
            report = report_to_domain(row)
            if report.location and point_in_polygon(report.location[0], report.location[1], ring):
                found.append(report)
        return found

    def find_in_bounds(self, bounds: Tuple[float, float, float, float], statuses: Sequence) -> List[Report]:
        """Reports whose lat/lng columns fall in `bounds`; longitudes past +/-180 wrap around."""
        rows = self._fetch(self._base(statuses).where(*self._within(bounds)))
        return [report_to_domain(r) for r in rows]

    def find_near(self, lat: float, lon: float, radius_m: float, statuses: Sequence) -> List[Tuple[Report, float]]:
        d_lat, d_lon = degrees_for_radius(lat, radius_m)
        candidates = self.find_in_bounds((lat - d_lat, lat + d_lat, lon - d_lon, lon + d_lon), statuses)
        hits = []
        for report in candidates:
            dist = haversine_m(lat, lon, report.latitude, report.longitude)
            if dist <= radius_m:
                hits.append((report, dist))
        hits.sort(key=lambda item: item[1])
        return hits
