"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Build the FastAPI application (create_app) with metadata
  - Configure middleware (CORS, request context)
  - Mount the authorization-guarded routers under /v1
  - Start the audit dispatcher on startup and drain it on shutdown
  - Expose health check and metrics endpoints

Collaborators:
  - FastAPI: ASGI web framework
  - CORSMiddleware: Cross-Origin Resource Sharing handler
  - RequestContextMiddleware: Request ID and logging context
  - container: audit dispatcher, pipeline, repositories
  - interfaces.api.http.router: session / tenants / admin endpoints

Constraints:
  - CORS configurable via ALLOWED_ORIGINS env var (comma-separated)
  - In test env (APP_ENV=test) no DB pool is opened; adapters are in-memory

Notes:
  - Middleware order matters: RequestContext → CORS → routes
  - /v1 prefix allows API versioning
  - /healthz follows Kubernetes health check convention
  - /metrics exposes Prometheus metrics (platform principal when
    METRICS_REQUIRE_AUTH=true)
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from ..container import (
    get_audit_dispatcher,
    get_audit_log_repository,
    get_authorization_pipeline,
    is_test_env,
)
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from ..crosscutting.middleware import RequestContextMiddleware
from ..identity.credentials import extract_bearer_token
from ..identity.dependencies import provenance_from_request
from ..identity.pipeline import AuthorizationPipeline, RequireScope
from ..identity.principal import RoleScope
from ..infrastructure.db.pool import close_pool, init_pool
from ..interfaces.api.http.router import router
from .exception_handlers import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle. Initializes pool and audit dispatcher."""
    settings = get_settings()
    use_db = not is_test_env()

    if use_db:
        # Initialize DB pool (must happen before any repository usage)
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )

    dispatcher = get_audit_dispatcher()
    dispatcher.start()

    try:
        logger.info(
            "Tenant Guard API starting up",
            extra={
                "app_env": settings.app_env,
                "db_pool_min": settings.db_pool_min_size,
                "db_pool_max": settings.db_pool_max_size,
                "audit_queue_max_size": settings.audit_queue_max_size,
                "metrics_require_auth": settings.metrics_require_auth,
            },
        )

        yield

    finally:
        drained = dispatcher.close(timeout=settings.audit_shutdown_timeout_seconds)
        if not drained:
            logger.warning(
                "Audit dispatcher did not drain before shutdown",
                extra={"timeout_seconds": settings.audit_shutdown_timeout_seconds},
            )
        if use_db:
            close_pool()
        logger.info("Tenant Guard API shutting down")


def _metrics_guard(
    request: Request,
    authorization: str | None = Header(default=None),
    pipeline: AuthorizationPipeline = Depends(get_authorization_pipeline),
) -> None:
    # R: Sin METRICS_REQUIRE_AUTH el endpoint es público (dev/local).
    if not get_settings().metrics_require_auth:
        return
    pipeline.authorize(
        extract_bearer_token(authorization),
        (RequireScope(RoleScope.PLATFORM),),
        provenance=provenance_from_request(request),
    )


def create_app() -> FastAPI:
    settings = get_settings()

    # R: Create FastAPI application instance with API metadata
    app = FastAPI(
        title="Tenant Guard API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "session", "description": "Resolved principal for a token"},
            {
                "name": "tenants",
                "description": "Tenant modules (own tenant or platform only)",
            },
            {
                "name": "admin",
                "description": "Audit trail (requires 'view_audit_logs')",
            },
        ],
    )

    # R: Add request context middleware
    app.add_middleware(RequestContextMiddleware)

    # R: Configure CORS with secure defaults
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
    )

    # R: Register API routes under /v1 prefix for versioning
    app.include_router(router, prefix="/v1")

    # R: Register exception handlers for structured error responses
    register_exception_handlers(app)

    @app.get("/healthz")
    def healthz(request: Request):
        """
        Health check: verifica la conexión a la base.

        Returns:
            ok: True si la base responde
            db: "connected" or "disconnected"
            request_id: Correlation ID for this request
        """
        db_status = "disconnected"
        try:
            if get_audit_log_repository().ping():
                db_status = "connected"
        except Exception as e:
            logger.warning("Health check: DB unavailable", extra={"error": str(e)})

        return {
            "ok": db_status == "connected",
            "db": db_status,
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.get("/metrics")
    def metrics(_auth: None = Depends(_metrics_guard)):
        """Expose Prometheus metrics."""
        body, content_type = get_metrics_response()
        return Response(content=body, media_type=content_type)

    return app


app = create_app()
