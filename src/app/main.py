"""Profile Image Upload – FastAPI application entry-point."""

from contextlib import asynccontextmanager
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware

from src.app.config import Settings, settings
from src.app.router import health, upload
from src.app.services.upload_service import UploadHandler

# Configure logging from settings
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Lifespan: report where uploads go
# ──────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app_settings: Settings = app.state.settings
    logger.info("🚀 Accepting uploads into %s (max %d bytes).",
                app_settings.upload_dir.resolve(), app_settings.max_upload_size)
    if not app_settings.verify_image_content:
        logger.info("Image content sniffing disabled; trusting declared MIME types.")
    yield
    logger.info("🛑 Shutting down.")


# ──────────────────────────────────────────────
# Application factory
# ──────────────────────────────────────────────
def create_app(app_settings: Settings = settings) -> FastAPI:
    app = FastAPI(
        title="Profile Image Upload API",
        description="Upload profile images and get back their public URL.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.upload_handler = UploadHandler(app_settings)

    # ── CORS middleware (configured from environment variables) ──
    app.add_middleware(
        middleware_class=CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_methods_list,
        allow_headers=app_settings.cors_headers_list,
    )

    logger.info("CORS configured with origins: %s", app_settings.cors_origins_list)

    # ── register routers ──
    app.get('/')(lambda: {"message": "Welcome to the Profile Image Upload API! Visit /docs for API documentation."})
    app.include_router(health.router)
    app.include_router(upload.router)

    # ── serve stored images statically (directory is created on first upload) ──
    app.mount(
        app_settings.upload_url_prefix,
        StaticFiles(directory=str(app_settings.upload_dir), check_dir=False),
        name="uploads",
    )
    return app


app = create_app()
