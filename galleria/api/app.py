"""FastAPI application for Galleria.

``create_app`` wires configuration, the database, the session store and the
identity provider into one application. Module-level ``app`` is what
``uvicorn galleria.api.app:app`` serves.
"""

from contextlib import asynccontextmanager
from typing import Any, List, Optional

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sqlalchemy.exc import SQLAlchemyError

from galleria import __version__
from galleria.api.auth.oidc import OIDCClient
from galleria.api.dependencies import ServiceContainer
from galleria.api.models import ErrorResponse
from galleria.api.routes import albums, auth, meta, photos, tenants
from galleria.api.shared.helpers.errors import (
    ErrorCode,
    create_error_response,
    domain_error_response,
)
from galleria.api.shared.middleware import (
    AuthenticationMiddleware,
    CorrelationIdMiddleware,
    RequestContextMiddleware,
    ServerSessionMiddleware,
    TenantResolutionMiddleware,
)
from galleria.cache import build_session_store, close_redis_client, get_redis_client
from galleria.cache.sessions import SessionStore
from galleria.config import GalleriaConfig, get_config
from galleria.db.session import Database
from galleria.errors import GalleriaError
from galleria.logging_config import configure_logging, get_logger, is_configured

logger = get_logger(__name__)

HEALTH_TRANSACTIONS = ("/health", "/health/ready", "GET /health", "GET /health/ready")


def _init_sentry(config: GalleriaConfig) -> None:
    """Initialize Sentry SDK with FastAPI integrations."""
    if not config.server.sentry_dsn:
        logger.info("SENTRY_DSN not configured, Sentry error tracking disabled")
        return

    sample_rate = config.server.sentry_traces_sample_rate

    def traces_sampler(sampling_context: dict[str, Any]) -> float:
        name = sampling_context.get("transaction_context", {}).get("name", "")
        if name in HEALTH_TRANSACTIONS:
            return 0.0
        return sample_rate

    sentry_sdk.init(
        dsn=config.server.sentry_dsn,
        environment=config.environment.value,
        release=__version__,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            RedisIntegration(),
        ],
        send_default_pii=False,
        traces_sampler=traces_sampler,
    )
    logger.info("Sentry SDK initialized", extra={"environment": config.environment.value})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    config: GalleriaConfig = app.state.config
    if app.state.session_store is None:
        app.state.session_store = await build_session_store(config)
    services: ServiceContainer = app.state.services
    try:
        await services.role_service.seed_roles()
    except SQLAlchemyError:
        # Roles are also inserted on first use; the API can still start
        logger.warning("Could not seed roles at startup", exc_info=True)
    logger.info(
        "Starting Galleria API",
        extra={"environment": config.environment.value, "rls": app.state.services.database.rls_enabled},
    )
    yield
    logger.info("Shutting down Galleria API")
    if services.oidc is not None:
        await services.oidc.aclose()
    await close_redis_client()
    await services.database.dispose()


def create_app(
    config: Optional[GalleriaConfig] = None,
    database: Optional[Database] = None,
    session_store: Optional[SessionStore] = None,
    oidc_client: Optional[OIDCClient] = None,
) -> FastAPI:
    """Build the application.

    Args:
        config: Configuration; loaded from the environment when omitted
        database: Database to use instead of one built from ``config``
        session_store: Session store; built at startup when omitted
        oidc_client: Identity provider client; built from ``config`` when omitted
    """
    config = config or get_config()
    config.validate()
    if not is_configured():
        configure_logging(
            level=config.logging.level,
            json_output=config.logging.format == "json",
            log_file=config.logging.file,
        )
    _init_sentry(config)

    database = database or Database.from_config(config.database)
    services = ServiceContainer.build(
        config,
        database,
        oidc=oidc_client or OIDCClient(config.oidc),
    )

    app = FastAPI(
        title="Galleria API",
        version=__version__,
        description="Multi-tenant photo gallery API with row level security isolation.",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.services = services
    app.state.session_store = session_store
    app.state.app_name = "galleria"
    app.state.version = __version__
    app.state.environment = config.environment.value

    # Starlette runs the last added middleware first
    app.add_middleware(TenantResolutionMiddleware)
    app.add_middleware(AuthenticationMiddleware)
    app.add_middleware(ServerSessionMiddleware, config=config.session)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(albums.router, prefix="/api")
    app.include_router(photos.router, prefix="/api")
    app.include_router(tenants.router, prefix="/api")
    app.include_router(meta.router, prefix="/api")

    _register_health_routes(app)
    _register_exception_handlers(app)

    app.state.route_paths = route_paths(app.routes)
    return app


def route_paths(routes) -> List[str]:
    """Distinct paths of ``routes``, sorted."""
    # Mounted sub-routers carry no path of their own
    paths = (getattr(route, "path", None) for route in routes)
    return sorted({path for path in paths if path})


def _register_health_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/health/ready", tags=["Health"])
    async def readiness_check(request: Request):
        """Readiness check verifying the database and Redis.

        Returns 200 if all dependencies are healthy, 503 if any are down.
        """
        checks: dict[str, Any] = {}
        all_healthy = True

        try:
            await request.app.state.services.database.connectivity_check()
            checks["database"] = True
        except Exception as e:
            checks["database"] = False
            all_healthy = False
            logger.warning(f"Database health check failed: {e}")

        redis_url = request.app.state.config.redis.url
        if not redis_url:
            checks["redis"] = "skipped"
        else:
            try:
                client = await get_redis_client(redis_url)
                await client.ping()
                checks["redis"] = True
            except Exception as e:
                checks["redis"] = False
                all_healthy = False
                logger.warning(f"Redis health check failed: {e}")

        return JSONResponse(
            status_code=200 if all_healthy else 503,
            content={"status": "ready" if all_healthy else "not_ready", "checks": checks},
        )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GalleriaError)
    async def galleria_error_handler(request: Request, exc: GalleriaError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc.message}", exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content=domain_error_response(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in e["loc"][1:]) for e in exc.errors() if len(e["loc"]) > 1]
        detail = f"Invalid field(s): {', '.join(fields)}" if fields else None
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=create_error_response(ErrorCode.VAL_INVALID_FORMAT, detail),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        sentry_sdk.capture_exception(exc)
        logger.error(f"Database error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(ErrorCode.SYS_DATABASE_ERROR),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        sentry_sdk.capture_exception(exc)
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        body = create_error_response(ErrorCode.SYS_INTERNAL_ERROR)
        if not request.app.state.config.is_production:
            body["detail"] = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(**body).model_dump(),
        )


def __getattr__(name: str):
    # Built on first access so importing this module has no side effects
    if name == "app":
        global app
        app = create_app()
        return app
    raise AttributeError(name)
