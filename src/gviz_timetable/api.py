"""HTTP API for the timetable: day fetch, search, free finder, cache invalidation.

Failures come back as ``{"success": false, "error": ...}`` bodies with a
matching status code; operations never raise past the route.
"""

import asyncio
import hmac
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gviz_timetable.config import TimetableConfig, load_config
from gviz_timetable.logging import get_logger, log_context
from gviz_timetable.models import ErrorResult
from gviz_timetable.service import ALL_DAYS, TimetableService, days_listing

log = get_logger(__name__)

# Status per error type; unknown types are upstream failures
_STATUS_BY_ERROR: dict[str, int] = {
    "InvalidDaySelector": 400,
    "InvalidQuery": 400,
    "DataNotReady": 503,
    "Timeout": 504,
}
RETRY_AFTER_SECONDS = "5"


def _respond(result: BaseModel) -> JSONResponse:
    body = result.model_dump(mode="json")
    if not isinstance(result, ErrorResult):
        return JSONResponse(body)
    status = _STATUS_BY_ERROR.get(result.error_type, 502)
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if status == 503 else None
    return JSONResponse(body, status_code=status, headers=headers)


def create_app(
    service: TimetableService | None = None, config: TimetableConfig | None = None
) -> FastAPI:
    """Build the FastAPI app around a service (one is created from config if omitted)."""
    config = config or (service.config if service else load_config())
    service = service or TimetableService(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        warmup = None
        if config.warm_on_startup:
            warmup = asyncio.create_task(service.fetch_week())
            log.info("week_warmup_started")
        yield
        if warmup is not None and not warmup.done():
            warmup.cancel()
        await service.aclose()

    app = FastAPI(
        title="GViz Timetable API",
        description="Classroom timetable parsed from a published Google Sheet",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def bind_route(request: Request, call_next):
        with log_context(route=request.url.path):
            return await call_next(request)

    @app.get("/health")
    async def health():
        return {"status": "ok", "loaded_days": sorted(service.latest_week)}

    @app.get("/api/schedule/days")
    async def list_days():
        return {"success": True, "days": days_listing()}

    @app.get("/api/schedule")
    async def fetch_schedule(day: str = Query("", description="0-4, all or today")):
        return _respond(await service.fetch_day(day))

    @app.get("/api/search")
    async def search(
        query: str = Query("", description="Class code, room name or class title"),
        day: str = Query(ALL_DAYS, description="0-4, all or today"),
    ):
        return _respond(await service.search(query, day))

    @app.get("/api/free/rooms")
    async def free_rooms(
        start: str = Query("", description="Range start, e.g. 9:00"),
        end: str = Query("", description="Range end (exclusive), e.g. 11:00"),
        day: str = Query(ALL_DAYS, description="0-4, all or today"),
    ):
        return _respond(service.free_rooms(day, start, end))

    @app.get("/api/free/ranges")
    async def free_ranges(
        query: str = Query("", description="Room id (E-31) or class text"),
        day: str = Query(ALL_DAYS, description="0-4, all or today"),
    ):
        return _respond(service.free_ranges(query, day))

    @app.post("/api/clear-cache")
    async def clear_cache(x_tt_secret: str = Header("", alias="X-TT-Secret")):
        secret = config.clear_cache_secret
        if not secret:
            log.warning("clear_cache_refused", reason="secret_not_configured")
            return JSONResponse(
                {"success": False, "error": "Cache clearing is not configured"},
                status_code=503,
            )
        if not hmac.compare_digest(x_tt_secret.encode(), secret.encode()):
            log.warning("clear_cache_unauthorized")
            return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)
        service.clear_cache()
        return {"success": True, "message": "Cache cleared"}

    return app

