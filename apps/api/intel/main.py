from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .db import Database
from .errors import ServiceError
from .payments import PaymentGateway
from .routes import billing as billing_routes
from .routes import companies as companies_routes
from .routes import compare as compare_routes
from .routes import health as health_routes
from .routes import industries as industries_routes
from .routes import search as search_routes

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("intel.access")


def create_app(
    cfg: Optional[Settings] = None,
    database: Optional[Database] = None,
    payments: Optional[PaymentGateway] = None,
) -> FastAPI:
    """Build the API. ``database`` and ``payments`` default to instances built from ``cfg``."""
    cfg = cfg or settings

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        db = database or Database.from_settings(cfg)
        db.init_db()
        app.state.db = db
        app.state.payments = payments or PaymentGateway.from_settings(cfg)
        logger.info("Industry intelligence API ready (database dialect: %s)", db.dialect)
        try:
            yield
        finally:
            db.dispose()

    app = FastAPI(title="Industry Intelligence API", version="1.0.0", lifespan=_lifespan)
    app.state.settings = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = str(uuid.uuid4())
        request.state.request_id = rid
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            _log_access(request, rid, 500, start, exc)
            raise
        response.headers["X-Request-ID"] = rid
        _log_access(request, rid, response.status_code, start, None)
        return response

    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
        )

    app.include_router(billing_routes.router, prefix="/api")
    app.include_router(companies_routes.router, prefix="/api/companies")
    app.include_router(industries_routes.router, prefix="/api/industries")
    app.include_router(compare_routes.router, prefix="/api/compare")
    app.include_router(search_routes.router, prefix="/api/search")
    app.include_router(health_routes.router, prefix="/api/health")

    # Optional Sentry
    if cfg.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(dsn=cfg.sentry_dsn, environment=cfg.environment)

    return app


def _log_access(request: Request, rid: str, status: int, start: float, exc: Optional[BaseException]) -> None:
    # Structured JSON access log
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "request_id": rid,
        "method": request.method,
        "path": request.url.path,
        "status": status,
        "dur_ms": round((time.time() - start) * 1000.0, 2),
        "client": request.client.host if request.client else None,
    }
    if exc is not None:
        payload["error"] = type(exc).__name__
        access_logger.error(json.dumps(payload))
    else:
        access_logger.info(json.dumps(payload))


app = create_app()
