"""FastAPI application wiring for the bookkeeping service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Mapping

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.auth import router as auth_router
from .api.ledger import build_ledger_router
from .api.users import router as users_router
from .config import Settings, get_settings
from .domain.auth import AuthService
from .domain.ledger import LedgerKind
from .domain.ledger_service import LedgerService
from .domain.owner import TenancyMode
from .domain.tenancy import TenancyResolver
from .domain.users import UserService
from .errors import BookkeepingError, Unauthenticated, Unexpected, ValidationFailed
from .observability import Telemetry, setup_logging
from .repository.ledger import LedgerRepository
from .repository.schema import ensure_schema
from .repository.users import UserRepository
from .security.rate_limiter import build_rate_limiter


def wire_services(
    app: FastAPI,
    user_repository: UserRepository,
    ledger_repositories: Mapping[LedgerKind, LedgerRepository],
) -> None:
    """Build the services over the given repositories and attach them to ``app.state``."""
    settings: Settings = app.state.settings
    telemetry: Telemetry = app.state.telemetry
    mode = TenancyMode(settings.tenancy_mode)

    auth_service = AuthService(user_repository, settings, telemetry)
    ledger_services = {
        kind: LedgerService(ledger_repositories[kind], mode, telemetry) for kind in LedgerKind
    }
    app.state.auth_service = auth_service
    app.state.ledger_services = ledger_services
    app.state.user_service = UserService(
        user_repository, list(ledger_services.values()), mode, telemetry
    )
    app.state.tenancy = TenancyResolver(mode, auth_service)
    app.state.rate_limiter = build_rate_limiter(settings)
    telemetry.logger.info("services wired in %s tenancy mode", mode.value)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the Postgres pool, apply the schema and wire services for the app lifecycle."""
    settings: Settings = app.state.settings
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    app.state.pool = pool
    try:
        ensure_schema(pool)
        wire_services(
            app,
            UserRepository(pool),
            {kind: LedgerRepository(pool, kind) for kind in LedgerKind},
        )
        yield
    finally:
        pool.close()


def install_error_handlers(app: FastAPI) -> None:
    """Render the error taxonomy as ``{"detail": ...}`` responses."""

    @app.exception_handler(BookkeepingError)
    async def handle_bookkeeping_error(request: Request, exc: BookkeepingError) -> JSONResponse:
        headers: dict[str, str] = {}
        body: dict[str, object] = {"detail": exc.detail}
        if isinstance(exc, Unexpected):
            app.state.telemetry.unexpected(f"unexpected failure on {request.url.path}", exc)
            body = {"detail": "internal server error"}
        elif isinstance(exc, Unauthenticated):
            headers["WWW-Authenticate"] = "Bearer"
        elif isinstance(exc, ValidationFailed) and exc.errors:
            body["errors"] = exc.errors
        return JSONResponse(status_code=exc.status_code, content=body, headers=headers or None)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({"detail": "validation failed", "errors": errors}),
        )


def create_app(settings: Settings | None = None, *, with_database: bool = True) -> FastAPI:
    """Create the application.

    With ``with_database=False`` no lifespan is attached and the caller is
    expected to call :func:`wire_services` with its own repositories.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan if with_database else None,
    )
    app.state.settings = settings
    app.state.telemetry = Telemetry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    install_error_handlers(app)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        """Return a minimal readiness indicator used by orchestration systems."""
        return {"status": "ok"}

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(
            content=generate_latest(app.state.telemetry.registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    app.include_router(auth_router)
    app.include_router(users_router)
    for kind in LedgerKind:
        app.include_router(build_ledger_router(kind))
    return app
