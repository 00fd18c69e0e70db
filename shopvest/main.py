"""
FastAPI application entry point
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopvest.infrastructure.settings import get_settings
from shopvest.infrastructure.logging_config import setup_logging
from shopvest.api.exceptions import (
    engine_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from shopvest.api.public.health import router as health_router
from shopvest.api.public.metrics import router as metrics_router
from shopvest.api.v1 import router as api_v1_router
from shopvest.api.admin import router as admin_router
from shopvest.api.webhooks import router as webhooks_router
from shopvest.services.exceptions import EngineError
from shopvest.utils.trace_id import TraceIDMiddleware
from shopvest.utils.request_logging import RequestLoggingMiddleware

settings = get_settings()

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Shopvest Engine API",
    description="Wallets, shop investments, withdrawals and transfers",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

if settings.CORS_ENABLED:
    cors_origins = settings.cors_allow_origins_list
    if not cors_origins:
        logger.warning(
            "CORS_ENABLED=True but CORS_ALLOW_ORIGINS is empty. "
            "Set CORS_ALLOW_ORIGINS (comma-separated, e.g. 'http://localhost:3000')."
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

# Last added is outermost
app.add_middleware(TraceIDMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(EngineError, engine_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(api_v1_router)
app.include_router(admin_router)
app.include_router(webhooks_router)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "name": "Shopvest Engine API",
        "version": "1.0.0",
        "status": "running",
    }
