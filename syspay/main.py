"""SysPay API process: charges, users and their sessions behind one FastAPI app."""

from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from syspay.common.config import settings
from syspay.common.db import SessionLocal
from syspay.common.exception_handlers import register_exception_handlers
from syspay.common.logging import bind_request_context, configure_logging, logger
from syspay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from syspay.common.startup import log_startup_config
from syspay.common.tracing import instrument_app, setup_tracing
from syspay.services.auth.service import AuthService
from syspay.services.charges.provider import PaymentProvider
from syspay.services.charges.routes import router as charges_router
from syspay.services.charges.service import ChargeService
from syspay.services.users.routes import router as users_router


def _cors_origins(value: str) -> list[str]:
    value = (value or "").strip()
    if not value or value == "*":
        return ["*"]
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.auth_service.ensure_admin(settings.admin_email, settings.admin_password, settings.admin_name)
    logger.info("syspay api ready")
    yield


def create_app(session_factory=None, payment_provider: PaymentProvider | None = None) -> FastAPI:
    """Wire services, middleware and routers.

    Tests pass their own session factory and provider.
    """

    session_factory = session_factory or SessionLocal
    app = FastAPI(title="SysPay API", lifespan=lifespan)

    auth_service = AuthService(session_factory)
    app.state.auth_service = auth_service
    app.state.charge_service = ChargeService(session_factory, users=auth_service, provider=payment_provider)

    origins = _cors_origins(settings.frontend_origin)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Bind a trace id and record request count and latency."""

        trace_id = request.headers.get("x-correlation-id") or str(uuid4())
        bind_request_context(trace_id)
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["x-correlation-id"] = trace_id
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    api = APIRouter(prefix=settings.api_prefix)
    api.include_router(charges_router)
    api.include_router(users_router)
    app.include_router(api)

    @app.get("/health")
    def health():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return metrics_response()

    instrument_app(app)
    return app


configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings,
    [
        "SERVICE_NAME",
        "DATABASE_URL",
        "LOG_LEVEL",
        "SESSION_EXPIRES_IN_SECONDS",
        "SESSION_COOKIE_NAME",
        "FRONTEND_ORIGIN",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "ADMIN_EMAIL",
    ],
)
app = create_app()


def run() -> None:
    """Serve the API with uvicorn; `syspay-api` console entry point."""

    uvicorn.run("syspay.main:app", host=settings.host, port=settings.port, log_config=None)
