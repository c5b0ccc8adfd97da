from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse, JSONResponse
from starlette.exceptions import HTTPException

from url_shortener import config
from url_shortener.analytics import AnalyticsAggregator, Stats
from url_shortener.clock import Clock, SystemClock
from url_shortener.db import Base, SessionLocal, engine
from url_shortener.errors import (
    InvalidShortcode, InvalidUrl, InvalidValidity, ShortenerError, ValidationFailed,
)
from url_shortener.middleware.custom_logger import StructuredAuditMiddleware, audit
from url_shortener.resolver import ClickContext, GeoLookup, RedirectResolver, no_geo_lookup
from url_shortener.schemas import (
    ClickItem, CreateShortURLReq, CreateShortURLResp, DeleteResp, HealthResp, LocationItem, StatsResp,
)
from url_shortener.service import ShortUrlService
from url_shortener.store import RecordStore
from url_shortener.utils import client_ip, iso_z, make_short_link


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="URL Shortener", lifespan=lifespan)
app.add_middleware(StructuredAuditMiddleware)
if config.FRONTEND_URL:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

_system_clock = SystemClock()


def get_store() -> RecordStore:
    return RecordStore(SessionLocal)

def get_clock() -> Clock:
    return _system_clock

def get_geo_lookup() -> GeoLookup:
    return no_geo_lookup

def base_url(request: Request) -> str:
    return config.BASE_URL or str(request.base_url)

def to_stats_resp(stats: Stats, base: str) -> StatsResp:
    return StatsResp(
        shortcode=stats.shortcode,
        originalUrl=stats.original_url,
        createdAt=iso_z(stats.created_at),
        expiresAt=iso_z(stats.expires_at),
        totalClicks=stats.total_clicks,
        isExpired=stats.is_expired,
        shortLink=make_short_link(base, stats.shortcode),
        clicks=[
            ClickItem(
                timestamp=iso_z(c.timestamp),
                referrer=c.referrer,
                location=LocationItem(country=c.location.country, region=c.location.region, city=c.location.city),
            )
            for c in stats.clicks
        ],
    )

@app.post("/shorturls", response_model=CreateShortURLResp, status_code=201)
def create_short_url(payload: CreateShortURLReq, request: Request,
                     store: RecordStore = Depends(get_store), clock: Clock = Depends(get_clock)):
    created = ShortUrlService(store).create(
        payload.url, clock.now(), validity_minutes=payload.validity, shortcode=payload.shortcode,
    )
    return CreateShortURLResp(shortLink=make_short_link(base_url(request), created.shortcode),
                              expiry=iso_z(created.expires_at))

@app.get("/shorturls", response_model=list[StatsResp])
def list_stats(request: Request, store: RecordStore = Depends(get_store), clock: Clock = Depends(get_clock)):
    base = base_url(request)
    return [to_stats_resp(s, base) for s in AnalyticsAggregator(store).summarize_all(clock.now())]

@app.get("/shorturls/{shortcode}", response_model=StatsResp)
def get_stats(shortcode: str, request: Request,
              store: RecordStore = Depends(get_store), clock: Clock = Depends(get_clock)):
    stats = AnalyticsAggregator(store).stats(shortcode, clock.now())
    return to_stats_resp(stats, base_url(request))

@app.delete("/shorturls/{shortcode}", response_model=DeleteResp)
def delete_short_url(shortcode: str, store: RecordStore = Depends(get_store), clock: Clock = Depends(get_clock)):
    AnalyticsAggregator(store).remove(shortcode, clock.now())
    return DeleteResp(success=True, message="Short URL deleted")

@app.get("/health", response_model=HealthResp)
def health(clock: Clock = Depends(get_clock)):
    return HealthResp(status="OK", timestamp=iso_z(clock.now()))

@app.get("/{shortcode}")
def redirect_shortcode(shortcode: str, request: Request, store: RecordStore = Depends(get_store),
                       clock: Clock = Depends(get_clock), geo_lookup: GeoLookup = Depends(get_geo_lookup)):
    context = ClickContext(
        referrer=request.headers.get("referer") or request.headers.get("referrer"),
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    target = RedirectResolver(store, geo_lookup).resolve(shortcode, clock.now(), context)
    return RedirectResponse(url=target, status_code=302)

@app.exception_handler(ShortenerError)
async def shortener_error_handler(request: Request, exc: ShortenerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

_field_errors = {"url": InvalidUrl, "validity": InvalidValidity, "shortcode": InvalidShortcode}

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    for err in exc.errors():
        field = err.get("loc", ())[-1:]
        if field and field[0] in _field_errors:
            return await shortener_error_handler(request, _field_errors[field[0]]())
    return await shortener_error_handler(request, ValidationFailed("Invalid request body"))

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    audit.event("unhandled_error", path=request.url.path, error=repr(exc))
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("url_shortener.app:app", host="0.0.0.0", port=5000, log_level="info")
