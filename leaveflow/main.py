"""LeaveFlow application factory.

``uvicorn leaveflow.main:app`` serves the module-level instance; tests call
``create_app()`` for a fresh one and override ``get_db``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from leaveflow import __version__
from leaveflow.common.exceptions import register_exception_handlers
from leaveflow.common.rate_limit import limiter
from leaveflow.config import settings
from leaveflow.database import engine
from leaveflow.eligibility.router import router as eligibility_router
from leaveflow.leave.router import router as leave_router
from leaveflow.notifications.router import router as notifications_router
from leaveflow.sla.router import router as sla_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

_ROUTERS = (
    ("/leave", leave_router, "leave"),
    ("/sla", sla_router, "sla"),
    ("/eligibility", eligibility_router, "eligibility"),
    ("/notifications", notifications_router, "notifications"),
)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("LeaveFlow %s up (environment=%s)", __version__, settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("LeaveFlow shut down")


def create_app() -> FastAPI:
    configure_logging()
    public_docs = settings.ENVIRONMENT != "production"

    app = FastAPI(
        title="LeaveFlow",
        description="Leave requests, review SLAs and eligibility scoring for multi-tenant HR",
        version=__version__,
        docs_url=f"{API_PREFIX}/docs" if public_docs else None,
        redoc_url=f"{API_PREFIX}/redoc" if public_docs else None,
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def health():
        """Liveness probe; needs no token."""
        return {"status": "healthy", "version": __version__, "environment": settings.ENVIRONMENT}

    for path, router, tag in _ROUTERS:
        app.include_router(router, prefix=f"{API_PREFIX}{path}", tags=[tag])

    return app


app = create_app()
