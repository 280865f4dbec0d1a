from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, FileResponse
from pydantic import BaseModel
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime

import structlog

import config
from db import SessionLocal, init_db
from errors import PersistenceFailure, SourceUnavailable
from logging_conf import configure_logging
from refresh import Refresher
from schema import Base, Country
from service import HttpSourceClient
from store import CountryStore
from summary import SummaryGenerator

configure_logging(config.LOG_LEVEL)
logger = structlog.get_logger(__name__)

app = FastAPI()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Build a simple field -> message map from validation errors
    details = {}
    for err in exc.errors():
        loc = err.get("loc", [])
        # prefer the last location token as the field name
        field = loc[-1] if loc else "body"
        details[str(field)] = err.get("msg")
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(SourceUnavailable)
async def source_unavailable_handler(request: Request, exc: SourceUnavailable):
    return JSONResponse(
        status_code=503,
        content={"error": "External data source unavailable", "details": exc.details},
    )


@app.exception_handler(Exception)
async def internal_exception_handler(request: Request, exc: Exception):
    logger.exception("request.failed", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# initialize DB (creates tables if missing)
init_db(Base)

store = CountryStore(SessionLocal)
refresher = Refresher(
    HttpSourceClient(),
    store,
    SummaryGenerator(config.SUMMARY_IMAGE_PATH, top_n=config.SUMMARY_TOP_N),
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store() -> CountryStore:
    return store


def get_refresher() -> Refresher:
    return refresher


class CountryOut(BaseModel):
    id: int
    name: str
    capital: Optional[str]
    region: Optional[str]
    population: int
    currency_code: Optional[str]
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]
    flag_url: Optional[str]
    last_refreshed_at: Optional[datetime]

    class Config:
        from_attributes = True


class StatusOut(BaseModel):
    total_countries: int
    last_refreshed_at: Optional[datetime]


def not_found():
    return JSONResponse(status_code=404, content={"error": "Country not found"})


@app.post("/countries/refresh")
async def refresh_countries(refresher: Refresher = Depends(get_refresher)):
    try:
        result = await refresher.refresh()
    except PersistenceFailure:
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return {
        "success": True,
        "processed": result.processed,
        "total": result.total,
        "last_refreshed_at": result.last_refreshed_at.isoformat(),
    }


@app.get("/countries", response_model=List[CountryOut])
def list_countries(
    region: Optional[str] = Query(None),
    currency: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, pattern="^gdp_(asc|desc)$"),
    db: Session = Depends(get_db),
):
    q = db.query(Country)
    if region:
        q = q.filter(func.lower(Country.region) == region.lower())
    if currency:
        q = q.filter(func.lower(Country.currency_code) == currency.lower())
    if sort == "gdp_desc":
        q = q.order_by(Country.estimated_gdp.is_(None), Country.estimated_gdp.desc(), Country.id)
    elif sort == "gdp_asc":
        q = q.order_by(Country.estimated_gdp.is_(None), Country.estimated_gdp.asc(), Country.id)
    else:
        q = q.order_by(Country.id)
    return q.all()


@app.get("/countries/image")
def get_image():
    path = config.SUMMARY_IMAGE_PATH
    if not path.exists():
        return JSONResponse(status_code=404, content={"error": "Summary image not found"})
    return FileResponse(str(path), media_type="image/png")


@app.get("/countries/{name}", response_model=CountryOut)
def get_country(name: str, store: CountryStore = Depends(get_store)):
    c = store.get(name)
    if not c:
        return not_found()
    return c


@app.delete("/countries/{name}")
def delete_country(name: str, store: CountryStore = Depends(get_store)):
    if not store.delete(name):
        return not_found()
    return {"success": True}


@app.get("/status", response_model=StatusOut)
def status(refresher: Refresher = Depends(get_refresher)):
    return refresher.status()
