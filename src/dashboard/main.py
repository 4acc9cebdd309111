import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.dashboard.api.v1.routes_assistant import router as assistant_router_v1
from src.dashboard.api.v1.routes_notes import router as notes_router_v1
from src.dashboard.api.v1.routes_patients import router as patients_router_v1
from src.dashboard.api.v1.routes_system import router as system_router_v1
from src.dashboard.config import settings
from src.dashboard.errors import DashboardError, GatewayError, UnauthenticatedError
from src.dashboard.infra.gateway.bootstrap import get_gateway, provision_remote_tables, set_gateway

logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Clinical Dashboard API")


@app.on_event("startup")
async def on_startup() -> None:
    """Application startup hook.

    When PROVISION_ON_STARTUP is enabled this makes the single best-effort
    call that provisions the patient notes table. A failure is logged and the
    application starts regardless.
    """

    if settings.provision_on_startup:
        await provision_remote_tables(get_gateway())


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_gateway().aclose()
    set_gateway(None)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    status_code = 500
    if isinstance(exc, UnauthenticatedError):
        status_code = 401
    elif isinstance(exc, GatewayError):
        status_code = 502
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# CORS configuration – permissive by default for development. Tighten via
# CORS_ALLOW_ORIGINS in production deployments.
allow_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """Basic liveness probe for the API root."""
    return {"status": "ok"}


# Versioned API routers
app.include_router(system_router_v1, prefix="/api/v1")
app.include_router(patients_router_v1, prefix="/api/v1")
app.include_router(notes_router_v1, prefix="/api/v1")
app.include_router(assistant_router_v1, prefix="/api/v1")
