from typing import Optional

from fastapi import FastAPI

from shortlink_app.config import Settings
from shortlink_app.database.connection import Base, create_db_engine, create_session_factory
from shortlink_app.api.v1 import mappings, redirect
from shortlink_app.logging_config import setup_logging
from shortlink_app.ratelimit import RateLimiter, create_rate_limit_store
from shortlink_app.services.click_recorder import ClickRecorder

# Import models to ensure they're registered with Base
from shortlink_app.models import Mapping, ClickEvent  # noqa: F401


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build a fully wired application.

    Everything stateful is created here and hung on app.state, so two apps
    (say, one per test) never share an engine or a rate-limit store.
    """
    settings = settings or Settings()
    logger = setup_logging(settings.log_level)

    engine = create_db_engine(settings.database_url)
    # Create database tables
    Base.metadata.create_all(bind=engine)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="A multi-tenant shortcode service built with FastAPI",
        debug=settings.debug,
    )

    session_factory = create_session_factory(engine)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.rate_limiter = RateLimiter(
        create_rate_limit_store(settings),
        max_per_day=settings.rate_limit_max_per_day,
        ttl_seconds=settings.rate_limit_ttl_seconds,
    )
    app.state.click_recorder = ClickRecorder(session_factory, settings.click_hash_salt)

    @app.get("/")
    def read_root():
        """Root endpoint with API information"""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "docs": "/docs",
            "redoc": "/redoc",
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "environment": settings.environment}

    ######## Include routers
    app.include_router(mappings.router, prefix="/api/v1")
    # Catch-all shortcode route, must stay last
    app.include_router(redirect.router)

    logger.info("%s %s ready (root domain %s)", settings.app_name, settings.app_version, settings.root_domain)
    return app


app = create_app()
