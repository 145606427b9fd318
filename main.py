# main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
import logging
import os
import uvicorn

from config.settings import RelaySettings, get_settings, load_environment, validate_environment
from models.schemas import HealthResponse
from relay import SignalingRelay
from routes.room_management import router as room_router
from signaling import router as signaling_router

# Load environment variables before logging reads LOG_LEVEL
load_environment()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle app startup and shutdown"""
    settings = app.state.settings
    logger.info("Starting up PeerLink signaling relay")
    try:
        validate_environment(settings)
        logger.info("Environment validation passed")
    except Exception as e:
        logger.error(f"Environment validation failed: {e}")
        raise

    yield

    logger.info("Shutting down PeerLink signaling relay")
    await app.state.relay.shutdown()


def register_static_client(app: FastAPI, settings: RelaySettings):
    """Serve the built client, falling back to index.html for client-side routes"""
    static_root = Path(settings.static_dir).resolve()
    index_file = static_root / "index.html"

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_client(full_path: str):
        candidate = (static_root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(static_root):
            return FileResponse(candidate)
        return FileResponse(index_file)

    logger.info(f"Serving client assets from {static_root}")


def create_app(settings: Optional[RelaySettings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="PeerLink Signaling Relay",
        description="Pairs two peers per room and relays WebRTC negotiation messages",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.state.settings = settings
    app.state.relay = SignalingRelay(outbox_limit=settings.outbox_limit)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(room_router, prefix="/api", tags=["Rooms"])
    app.include_router(signaling_router, tags=["Signaling"])

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        relay = app.state.relay
        return HealthResponse(
            status="healthy",
            connections=relay.connection_count,
            rooms=relay.room_count,
            environment=settings.environment,
            staticAssets=settings.serve_static,
        )

    @app.exception_handler(500)
    async def internal_server_error_handler(request, exc):
        logger.error(f"Internal server error: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred"
            }
        )

    @app.exception_handler(404)
    async def not_found_handler(request, exc):
        message = exc.detail if isinstance(exc, StarletteHTTPException) else "The requested endpoint does not exist"
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not found",
                "message": message,
            }
        )

    if settings.serve_static:
        register_static_client(app, settings)
    else:
        @app.get("/")
        async def root():
            return {
                "message": "PeerLink Signaling Relay",
                "status": "running",
                "version": "1.0.0",
                "environment": settings.environment,
                "endpoints": {
                    "signaling": "/ws",
                    "list_rooms": "/api/rooms",
                    "room_info": "/api/room/{room_id}",
                    "participants": "/api/room/{room_id}/participants",
                    "health": "/health"
                }
            }

    return app


app = create_app()

if __name__ == "__main__":
    settings = app.state.settings
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        access_log=True,
        # Relay state is in-memory, so a single worker
        workers=1,
    )
