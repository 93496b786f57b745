from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teamhub import __version__
from teamhub.application import ServiceContainer, build_container
from teamhub.core.config import Settings
from teamhub.core.errors import TeamHubError, ValidationFailed
from teamhub.core.logging import get_logger, setup_logging
from teamhub.routes import dashboards, jobs, realtime, reports, teams, users

logger = get_logger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TeamHubError)
    async def handle_domain_error(request: Request, exc: TeamHubError) -> JSONResponse:
        body: dict[str, object] = {"detail": exc.message}
        if isinstance(exc, ValidationFailed) and exc.errors:
            body["errors"] = exc.errors
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "path": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", "invalid value"),
            }
            for error in exc.errors()
        ]
        return JSONResponse({"detail": "Validation error", "errors": errors}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"detail": "Internal server error"}, status_code=500)


def create_app(settings: Settings | None = None, container: ServiceContainer | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.start()
        try:
            yield
        finally:
            await container.stop()

    app = FastAPI(title="TeamHub Reporting API", version=__version__, lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)

    app.include_router(users.router, prefix="/api")
    app.include_router(teams.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")
    app.include_router(dashboards.router, prefix="/api")
    app.include_router(jobs.router, prefix="/api")
    app.include_router(realtime.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "TeamHub Reporting API",
                "docs": "/docs",
                "health": "/api/health",
            }
        )

    @app.get("/api/health", tags=["health"])
    async def health() -> dict:
        return {
            "status": "ok",
            "queue": {"running": container.queue.running},
            "connections": container.channel.connection_count,
        }

    return app


app = create_app()
