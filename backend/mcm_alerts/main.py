"""
MCM Alerts - FastAPI Main Application
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mcm_alerts.api.v1.router import api_router
from mcm_alerts.core.config import settings
from mcm_alerts.core.timezone import utc_now
from mcm_alerts.services.backend import AlertBackend

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    backend: AlertBackend = app.state.backend
    
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    await backend.start()
    
    yield
    
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await backend.stop()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400), not 422"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid payload", "errors": jsonable_encoder(exc.errors())},
    )


def create_application(backend: Optional[AlertBackend] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title=settings.app_name,
        description="Site monitoring alerts: push fan-out and realtime delivery",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.backend = backend or AlertBackend.from_settings(settings)
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list or ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    
    # Include API router
    app.include_router(api_router, prefix="/api/v1")
    
    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.app_name,
            "timestamp": utc_now().isoformat(),
        }
    
    return app


app = create_application()
