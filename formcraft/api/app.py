"""
FastAPI application factory for FormCraft.

Creates and configures the FastAPI app, the session store, the form
registry and the routes.

Run with:
    uvicorn formcraft.api.app:app --reload
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formcraft.api.routes import configure_routes, router
from formcraft.core.session import FormRegistry, SessionStore
from formcraft.core.templates import templates_dir

# .env values fill in anything not already set in the environment
load_dotenv()

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the app with fresh, empty session and form stores."""

    application = FastAPI(
        title="FormCraft",
        description="Form builder and form filling engine",
        version="0.1.0",
    )

    # CORS: allow all origins unless configured
    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Initialize stores
    session_timeout = int(os.getenv("SESSION_TIMEOUT_SECONDS", "1800"))
    session_store = SessionStore(timeout_seconds=session_timeout)
    registry = FormRegistry()

    # Routes share one store and registry per app
    configure_routes(session_store, registry)
    application.include_router(router, prefix="/api")

    logger.info("FormCraft backend configured")
    logger.info("Session timeout: %d seconds", session_timeout)
    logger.info("Templates directory: %s", templates_dir())

    return application


# Module-level instance for `uvicorn formcraft.api.app:app`
app = create_app()
