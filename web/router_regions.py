from typing import List

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field, validator

from core.database import SessionLocal
from core.domain import Status, StoreUnavailable, ValidationError
from core.exports import content_disposition
from core.heatmap import DEFAULT_GRID_RESOLUTION
from core.report_flow import export_postal, heatmap
from core.region_validation import MAX_REGION_AREA_M2, validate_region

router = APIRouter()


class RegionRequest(BaseModel):
    points: List[List[float]]

    @validator("points")
    def ensure_pairs(cls, v):
        if any(len(p) < 2 for p in v):
            raise ValueError("each point must be a [lat, lng] pair")
        return v


class PostalRequest(RegionRequest):
    name: str = Field(min_length=1, max_length=120)

    @validator("name")
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


@router.post("/regions/area")
def region_area_endpoint(body: RegionRequest):
    ok, reason, area = validate_region(body.points, max_area_m2=None)
    if not ok:
        raise HTTPException(status_code=400, detail=reason)
    return {
        "area_m2": area,
        "max_area_m2": MAX_REGION_AREA_M2,
        "within_limit": area <= MAX_REGION_AREA_M2,
    }


@router.post("/postals")
def postal_endpoint(body: PostalRequest):
    try:
        result = export_postal(SessionLocal, body.name, body.points)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return Response(
        content=result["pdf"],
        media_type="application/pdf",
        headers={
            "Content-Disposition": content_disposition(result["filename"]),
            "X-Selection-Strategy": result["strategy"],
            "X-Report-Count": str(result["count"]),
        },
    )


@router.get("/heatmap")
def heatmap_endpoint(status: str | None = None, grid: float = Query(DEFAULT_GRID_RESOLUTION, gt=0)):
    statuses = None
    if status:
        try:
            statuses = [Status(s.strip().upper()) for s in status.split(",") if s.strip()]
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    return heatmap(SessionLocal, statuses=statuses, grid_resolution=grid)
