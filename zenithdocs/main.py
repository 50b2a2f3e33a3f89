"""
ZenithDocs API application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `services/`, `repositories/`, and `core/` packages.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from zenithdocs.api.v1.api import api_router
from zenithdocs.core.config import settings
from zenithdocs.core.exceptions import ConflictError, register_exception_handlers
from zenithdocs.core.permissions import Role
from zenithdocs.core.rate_limit import limiter
from zenithdocs.db.base import Base
from zenithdocs.db.session import async_session_factory, engine
# imported so metadata.create_all sees the users table
from zenithdocs.models.user import User  # noqa: F401
from zenithdocs.services.auth import AuthService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("zenithdocs.request")


async def seed_first_admin() -> None:
    """Create the configured admin account if it does not exist yet."""
    if not (settings.FIRST_ADMIN_EMAIL and settings.FIRST_ADMIN_PASSWORD):
        return
    async with async_session_factory() as session:
        try:
            await AuthService(session).register(
                settings.FIRST_ADMIN_EMAIL,
                settings.FIRST_ADMIN_PASSWORD,
                role=Role.ADMIN,
            )
        except ConflictError:
            return
    logger.info(
        "Default admin created: %s (password: <redacted>)",
        settings.FIRST_ADMIN_EMAIL,
    )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_first_admin()

    logger.info("%s v%s started (%s)", settings.PROJECT_NAME, settings.VERSION, settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Document management API: authentication and accounts",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.state.limiter = limiter

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def log_requests(request: Request, call_next):
        # method, path, status and timing only; never bodies or credentials
        start = time.perf_counter()
        response = await call_next(request)
        request_logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, bool]:
        return {"success": True}

    @application.get("/", tags=["health"])
    async def root() -> dict[str, object]:
        return {"success": True, "message": f"Welcome to {settings.PROJECT_NAME}"}

    return application


app = create_app()
