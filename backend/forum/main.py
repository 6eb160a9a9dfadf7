"""Tech Bant Community - forum API."""
from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forum.config import Settings, get_settings
from forum.database import Base, build_engine, build_session_factory
from forum.errors import register_exception_handlers
from forum.logging_config import configure_logging, register_request_logging
from forum.services.email import ResendMailer
from forum.services.identity import SupabaseAuthClient
from forum.services.storage import StorageClient

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def create_app(
    settings: Settings | None = None,
    identity: SupabaseAuthClient | None = None,
    storage: StorageClient | None = None,
    mailer: ResendMailer | None = None,
) -> FastAPI:
    """Build the application with its engine and collaborator clients.

    Collaborators not passed in are constructed from settings and share one
    httpx client, which is closed on shutdown.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = build_engine(settings.database_url, echo=settings.debug)
    http_client = None
    if identity is None or storage is None or mailer is None:
        http_client = httpx.Client(timeout=settings.http_timeout_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Import all models so they're registered with Base
        from forum import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info(f"{settings.app_name} started")
        yield
        if http_client is not None:
            http_client.close()
        engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Community forum: posts, comments, follows, media and moderation",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.identity = identity or SupabaseAuthClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        settings.supabase_service_role_key,
        http_client,
    )
    app.state.storage = storage or StorageClient(
        settings.supabase_url,
        settings.supabase_service_role_key,
        settings.storage_bucket,
        http_client,
    )
    app.state.mailer = mailer or ResendMailer(
        settings.resend_api_key,
        settings.resend_from,
        settings.resend_api_url,
        http_client,
    )

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_request_logging(app)
    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "app": settings.app_name}

    from forum.api import admin, auth, comments, media, oauth, posts, two_factor, users

    for module in (auth, two_factor, oauth, posts, comments, users, media, admin):
        app.include_router(module.router, prefix=API_PREFIX)

    return app
