import logging
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from plant_monitor.api import router
from plant_monitor.core import Settings, settings as default_settings
from plant_monitor.core.exceptions import PlantMonitorError
from plant_monitor.crud import ReadingStore, build_store
from plant_monitor.services import build_services
from plant_monitor.services.notifier import Notifier
from plant_monitor.utils.logger import setup_logging
from plant_monitor.utils.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
            for error in exc.errors()
        ]
        missing = any(error["type"] == "missing" for error in exc.errors())
        message = "Missing required fields" if missing else "Invalid request"
        return _error(400, message, errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(PlantMonitorError)
    async def monitor_error_handler(request: Request, exc: PlantMonitorError) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error(exc.status_code, exc.message)


def create_app(
    settings: Settings = default_settings,
    store: ReadingStore | None = None,
    notifier: Notifier | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    setup_logging(settings)
    services = build_services(settings, store or build_store(settings), notifier=notifier, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.store.init()
        logger.info(
            f"Plant monitor started (storage={type(services.store).__name__}, "
            f"cooldown={settings.alert_cooldown_minutes}min, notifier={type(services.notifier).__name__})"
        )
        try:
            yield
        finally:
            services.store.close()
            logger.info("Plant monitor stopped")

    app = FastAPI(
        title="Plant Monitor API",
        version="0.1.0",
        description="Soil moisture and light readings, device presence and rate-limited alerts.",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")
    register_exception_handlers(app)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "message": "Plant monitor backend is running",
            "docs": "/docs",
            "totalReadings": services.store.count(),
            "devices": len(services.store.list_presence()),
            "alertsDispatched": services.policy.alerts_dispatched,
        }

    return app


app = create_app()


def run() -> None:
    uvicorn.run("plant_monitor.main:app", host=default_settings.host, port=default_settings.port)
