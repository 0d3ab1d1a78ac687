import os
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import Base, engine
from .errors import error_body, register_error_handlers
from .logging import setup_logging, RequestIdMiddleware
from .models import models  # noqa: F401  registers tables on Base.metadata
from .services.ownership import validate_query_specs
from .auth.router import router as auth_router
from .routes.clients import router as clients_router
from .routes.sites import router as sites_router
from .routes.crews import router as crews_router
from .routes.vehicles import router as vehicles_router
from .routes.instruments import router as instruments_router
from .routes.bills import router as bills_router
from .routes.expenses import router as expenses_router
from .routes.enquiries import router as enquiries_router
from .routes.dashboard import router as dashboard_router


logger = structlog.get_logger(__name__)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content=error_body("TOO_MANY_REQUESTS", "Too many requests, please try again later"))


def create_app() -> FastAPI:
    setup_logging()
    validate_query_specs()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_middleware(SlowAPIMiddleware)

    register_error_handlers(app)

    # Routers
    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=prefix)
    app.include_router(clients_router, prefix=prefix)
    app.include_router(sites_router, prefix=prefix)
    app.include_router(crews_router, prefix=prefix)
    app.include_router(vehicles_router, prefix=prefix)
    app.include_router(instruments_router, prefix=prefix)
    app.include_router(bills_router, prefix=prefix)
    app.include_router(expenses_router, prefix=prefix)
    app.include_router(enquiries_router, prefix=prefix)
    app.include_router(dashboard_router, prefix=prefix)

    @app.get("/health")
    def health():
        return {
            "success": True,
            "message": "Survey Hub API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
        logger.info("startup_complete", environment=settings.environment, api_prefix=prefix)

    return app


app = create_app()
