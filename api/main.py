"""
TrendSage HTTP API.

`create_app()` builds the FastAPI application around one Settings object;
`app` is the instance uvicorn serves (`uvicorn api.main:app`).
"""

import logging
import sys
import os
from contextlib import asynccontextmanager
from typing import Optional

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router, get_settings, get_store
from config.settings import Settings, configure_logging

logger = logging.getLogger(__name__)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    config = config or get_settings()
    configure_logging(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # open the store at boot
        if get_store not in app.dependency_overrides:
            get_store()
        logger.info(f"🚀 {config.APP_NAME} API ready on /api/v1")
        yield
        logger.info("👋 TrendSage API stopped")

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description=(
            "Daily competitor market insights: stored AI sentiment records "
            "per calendar date, plus an endpoint to trigger a collection run."
        ),
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.dependency_overrides[get_settings] = lambda: config
    app.include_router(router, prefix="/api/v1")

    @app.get("/", tags=["System"])
    async def root():
        return {
            "name": config.APP_NAME,
            "version": config.APP_VERSION,
            "insights": "/api/v1/insights/latest",
            "docs": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
