import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.vetcore.api.v1.routes_auth import router as auth_router_v1
from src.vetcore.api.v1.routes_observations import router as observations_router_v1
from src.vetcore.api.v1.routes_patients import router as patients_router_v1
from src.vetcore.api.v1.routes_plans import router as plans_router_v1
from src.vetcore.api.v1.routes_practices import router as practices_router_v1
from src.vetcore.api.v1.routes_system import router as system_router_v1
from src.vetcore.api.v1.routes_team import router as team_router_v1
from src.vetcore.api.v1.routes_templates import router as templates_router_v1
from src.vetcore.config import settings
from src.vetcore.container import get_services
from src.vetcore.errors import ConfigurationError, VetCoreError

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger("vetcore")

app = FastAPI(title="VetCore Practice API")


@app.on_event("startup")
async def on_startup() -> None:
    """Build the service container eagerly so configuration defects such as
    a broken role profile or missing DATABASE_URL fail the process at start
    rather than on the first request.
    """

    get_services()


@app.exception_handler(VetCoreError)
async def vetcore_error_handler(request: Request, exc: VetCoreError) -> JSONResponse:
    if isinstance(exc, ConfigurationError) or exc.status_code >= 500:
        logger.error(
            "internal configuration error on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            extra={"details": exc.details},
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "Internal server error", "details": {}},
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message, "details": exc.details},
    )


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
app.include_router(auth_router_v1, prefix="/api/v1")
app.include_router(practices_router_v1, prefix="/api/v1")
app.include_router(team_router_v1, prefix="/api/v1")
app.include_router(plans_router_v1, prefix="/api/v1")
app.include_router(patients_router_v1, prefix="/api/v1")
app.include_router(templates_router_v1, prefix="/api/v1")
app.include_router(observations_router_v1, prefix="/api/v1")
