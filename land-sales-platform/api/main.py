"""
Land Sales Platform API - Main Application.

FastAPI application with CORS enabled for frontend communication.

The storage backend (Supabase or local SQLite) is chosen once at startup from
the environment (see repositories/config.py), initialized in the lifespan and
closed on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.models import ErrorResponse
from domain.errors import LandStoreError
from repositories.config import Settings, create_store, load_settings
from repositories.store import LandStore

logger = logging.getLogger(__name__)

_ERROR_TITLES = {
    400: "Invalid request",
    404: "Not found",
    409: "Conflict",
}


def create_app(store: Optional[LandStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        store: use this store instead of one built from settings (tests)
        settings: configuration; loaded from the environment when omitted
    """
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store if store is not None else create_store(settings)
        try:
            app.state.store.initialize()
            logger.info("Land store ready (%s backend)", app.state.store.backend_name)
            yield
        finally:
            app.state.store.close()

    app = FastAPI(
        title="Land Sales Platform API",
        description="REST API for selling land plots and tracking buyer payments",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LandStoreError)
    async def land_store_error_handler(request: Request, exc: LandStoreError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        body = ErrorResponse(
            error=_ERROR_TITLES.get(exc.status_code, "Internal server error"),
            detail=exc.message,
            status_code=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = []
        for err in exc.errors():
            # Drop the "body"/"query"/"path" prefix from the location
            loc = [str(part) for part in err.get("loc", ())[1:]]
            problems.append(f"{'.'.join(loc) or 'request'}: {err.get('msg')}")
        body = ErrorResponse(error=_ERROR_TITLES[400], detail="; ".join(problems), status_code=400)
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error in %s %s", request.method, request.url.path)
        body = ErrorResponse(error="Internal server error", detail=str(exc), status_code=500)
        return JSONResponse(status_code=500, content=body.model_dump())

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns the API status, version and active storage backend.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "land-sales-platform-api",
            "backend": request.app.state.store.backend_name,
        }

    @app.get("/api", tags=["Root"])
    def api_info():
        """
        API information and route index.
        """
        return {
            "message": "Land Sales Platform API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "plots": "/api/plots",
                "buyers": "/api/buyers",
                "transactions": "/api/transactions",
                "payments": "/api/transactions/payments",
                "purchases": "/api/purchases",
            },
        }

    # Import and include routers
    from api.routers import buyers, plots, purchases, transactions

    app.include_router(plots.router, prefix="/api", tags=["Plots"])
    app.include_router(buyers.router, prefix="/api", tags=["Buyers"])
    app.include_router(transactions.router, prefix="/api", tags=["Transactions"])
    app.include_router(purchases.router, prefix="/api", tags=["Purchases"])

    return app


app = create_app()
