# api/main.py
from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from api.routers import health, thematic
from database.db import build_engine, build_session_factory, init_db
from services.settings import Settings, load_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, session_factory: Optional[sessionmaker] = None) -> FastAPI:
    """
    Build the read-only API. When no session factory is injected, the store
    is opened from settings at startup and disposed at shutdown.
    Run with: uvicorn api.main:create_app --factory
    """
    if settings is None and session_factory is None:
        settings = load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if app.state.session_factory is None:
            logger.info("🚀 Starting Thematic Analysis API, connecting to database")
            try:
                engine = build_engine(settings.database_url)
                init_db(engine)
            except Exception as e:
                logger.error(f"❌ Failed to initialize database: {e}", exc_info=True)
                raise
            app.state.session_factory = build_session_factory(engine)
        yield
        if engine is not None:
            engine.dispose()
        logger.info("🛑 Shutting down Thematic Analysis API")

    app = FastAPI(
        title="Thematic Analysis API",
        version="1.0.0",
        description="Read-only access to consolidated themes, sub-themes, codes and papers.",
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory

    origins = list(settings.allowed_origins) if settings else []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(thematic.router, prefix="/api", tags=["Thematic Analysis"])
    return app
