import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.database import init_db
from core.domain import StoreUnavailable
from web.router_regions import router as regions_router
from web.router_reports import router as reports_router
from web.router_users import router as users_router

app = FastAPI(title="Baches API")
logger = logging.getLogger("uvicorn.error")

app.include_router(reports_router, prefix="/api")
app.include_router(regions_router, prefix="/api")
app.include_router(users_router, prefix="/api")
init_db()


@app.exception_handler(StoreUnavailable)
def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Report store unavailable on %s: %s", request.url.path, exc)
    return JSONResponse({"detail": "Report store unavailable"}, status_code=503)


@app.get("/")
def index():
    return {"name": "Baches API", "docs": "/docs"}
