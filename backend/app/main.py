from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.db.session import get_session_local
from app.core.logging import configure_logging
from app.core.middleware.audit import get_logger
from app.core.middleware.request_id import RequestIdMiddleware
from app.core.scheduler import Scheduler
from app.domain.analytics.routes import router as analytics_router
from app.domain.facilities.routes.facilities import router as facilities_router
from app.domain.monitoring.routes import router as monitoring_router
from app.domain.notifications.routes import router as notifications_router
from app.shared.exceptions import AppError, NotAuthorized

logger = get_logger(__name__)


def _session_factory():
    return get_session_local()()


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler: Scheduler = app.state.scheduler
    if settings.scheduler_enabled:
        scheduler.start()
    try:
        yield
    finally:
        scheduler.stop()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="NAV Lending Covenant Monitor - Backend", version="0.1.0", lifespan=lifespan)
    app.add_middleware(RequestIdMiddleware)
    app.state.scheduler = Scheduler(_session_factory)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        body: dict[str, str | None] = {"detail": exc.detail, "message": exc.message or exc.detail}
        if isinstance(exc, NotAuthorized):
            body["reason"] = exc.reason
        if exc.status_code >= 500:
            logger.error("request.failed", path=request.url.path, error=exc.detail)
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.get("/health", tags=["admin"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    routers = (facilities_router, monitoring_router, notifications_router, analytics_router)
    for router in routers:
        app.include_router(router)

    # The web client proxies requests under /api/*.
    app.add_api_route("/api/health", health, methods=["GET"], tags=["admin"])
    for router in routers:
        app.include_router(router, prefix="/api")

    return app


app = create_app()
