import logging
import os

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware
from app.api.v1.router import v1_router

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )
    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    # Building photos: the upload endpoint returns "<dir name>/<file>", served from here
    os.makedirs(settings.upload_dir, exist_ok=True)
    mount = "/" + os.path.basename(os.path.normpath(settings.upload_dir))
    app.mount(mount, StaticFiles(directory=settings.upload_dir), name="uploads")

    logger.info("[app] %s started env=%s api=%s photos=%s", settings.app_name, settings.environment, settings.api_prefix, mount)
    return app


app = create_app()
