# repario/main.py

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from repario.api.auth import router as auth_router
from repario.api.customers import router as customers_router
from repario.api.invoices import router as invoices_router
from repario.api.items import router as items_router
from repario.api.layouts import router as layouts_router
from repario.api.profile import router as profile_router
from repario.api.status_settings import router as status_settings_router
from repario.core.config import Settings, get_settings
from repario.core.logging import setup_logging
from repario.errors import ReparioError

logger = logging.getLogger(__name__)

# private network ranges: 192.168.x.y, 10.x.y.z, 172.16-31.x.y
_DEV_HOSTS = (
    r"localhost"
    r"|127\.0\.0\.1"
    r"|192\.168\.\d{1,3}\.\d{1,3}"
    r"|10\.\d{1,3}\.\d{1,3}\.\d{1,3}"
    r"|172\.(?:1[6-9]|2\d|3[01])\.\d{1,3}\.\d{1,3}"
)


def build_cors_origin_regex(settings: Settings) -> Optional[str]:
    """
    Origins allowed on top of ALLOWED_ORIGINS: any subdomain of the configured
    domains, plus local and private network hosts in development.
    """
    patterns: List[str] = [
        rf"https?://(?:[a-z0-9-]+\.)*{re.escape(domain.lower())}(?::\d+)?"
        for domain in settings.ALLOWED_DOMAINS
    ]
    if settings.is_development:
        patterns.append(rf"http://(?:{_DEV_HOSTS})(?::\d+)?")
    if not patterns:
        return None
    return "(?i)(?:" + "|".join(patterns) + ")"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_origin_regex=build_cors_origin_regex(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("Incoming: %s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(ReparioError)
    async def repario_error_handler(request: Request, exc: ReparioError):
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request data. Please check all required fields.",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/health")
    def health_check():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/config")
    def public_config():
        return {
            "apiUrl": settings.public_api_url,
            "environment": settings.ENVIRONMENT,
            "version": settings.VERSION,
        }

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(layouts_router)
    app.include_router(customers_router)
    app.include_router(items_router)
    app.include_router(invoices_router)
    app.include_router(status_settings_router)

    return app


app = create_app()
