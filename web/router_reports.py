from typing import List

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field, validator

from core.database import SessionLocal
from core.domain import Severity, Status, StoreUnavailable, ValidationError
from core.exports import reports_to_csv
from core.region_selector import select_reports_near
from core.report_flow import change_report_status, submit_report
from core.repository import (
    SqlReportStore,
    get_report,
    get_report_time_metrics,
    get_timeline,
    list_reports,
    report_to_dict,
    report_to_domain,
)

router = APIRouter()

MAX_PAGE_SIZE = 50


class ReportCreateRequest(BaseModel):
    author_id: str
    description: str = Field(min_length=1, max_length=2000)
    severity: Severity
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = None
    picture: str | None = None


class StatusChangeRequest(BaseModel):
    status: Status
    notes: str | None = None

    @validator("notes")
    def strip_notes(cls, v):
        return v.strip() or None if v else None


def _parse_list(raw: str | None, enum_cls) -> List:
    if not raw:
        return []
    try:
        return [enum_cls(part.strip().upper()) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/reports", status_code=201)
def create_report_endpoint(body: ReportCreateRequest):
    try:
        return submit_report(
            SessionLocal,
            author_id=body.author_id,
            description=body.description,
            severity=body.severity,
            latitude=body.latitude,
            longitude=body.longitude,
            address=body.address,
            picture=body.picture,
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/reports")
def list_reports_endpoint(
    status: str | None = None,
    severity: str | None = None,
    author_id: str | None = None,
    page: int = 1,
    limit: int = 10,
):
    statuses = _parse_list(status, Status)
    severities = _parse_list(severity, Severity)
    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    with SessionLocal() as session:
        reports, total = list_reports(
            session,
            statuses=statuses,
            severities=severities,
            author_id=author_id,
            offset=(page - 1) * limit,
            limit=limit,
        )
    return {
        "reports": [report_to_dict(r) for r in reports],
        "pagination": {"total": total, "page": page, "limit": limit, "pages": -(-total // limit)},
    }


@router.get("/reports/near")
def reports_near_endpoint(lat: float, lng: float, radius_m: float = 500.0, status: str | None = None):
    statuses = _parse_list(status, Status) or list(Status)
    try:
        with SessionLocal() as session:
            hits = select_reports_near(SqlReportStore(session), lat, lng, radius_m, statuses)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [{**report_to_dict(r), "distance_m": round(dist, 2)} for r, dist in hits]


@router.get("/reports/export.csv")
def export_csv_endpoint(status: str | None = None, severity: str | None = None):
    with SessionLocal() as session:
        reports, _ = list_reports(
            session,
            statuses=_parse_list(status, Status),
            severities=_parse_list(severity, Severity),
        )
    return Response(
        content=reports_to_csv(reports),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="reportes.csv"'},
    )


@router.get("/reports/analytics")
def analytics_endpoint():
    with SessionLocal() as session:
        return get_report_time_metrics(session)


@router.get("/reports/{report_id}")
def get_report_endpoint(report_id: str):
    with SessionLocal() as session:
        report = get_report(session, report_id)
        if not report:
            raise HTTPException(status_code=404, detail="Report not found")
        return report_to_dict(report_to_domain(report))


@router.patch("/reports/{report_id}/status")
def change_status_endpoint(report_id: str, body: StatusChangeRequest):
    try:
        return change_report_status(SessionLocal, report_id, body.status, body.notes)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/reports/{report_id}/timeline")
def timeline_endpoint(report_id: str):
    with SessionLocal() as session:
        if not get_report(session, report_id):
            raise HTTPException(status_code=404, detail="Report not found")
        return get_timeline(session, report_id)
