import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from dotask import __version__
from dotask.core.config import Settings
from dotask.core.errors import ConfigError
from dotask.core.security import CredentialService
from dotask.core.session import SessionMiddleware
from dotask.routers import health
from dotask.routers.graphql import create_graphql_router
from dotask.store import Store, create_store

logger = logging.getLogger(__name__)


def create_app(settings: Settings, store: Optional[Store] = None) -> FastAPI:
    if store is None:
        store = create_store(settings)
    credentials = CredentialService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        store.close()

    app = FastAPI(
        title="DoTask API",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.credentials = credentials

    # Middlewares: le dernier ajouté s'exécute en premier (CORS avant session)
    app.add_middleware(SessionMiddleware, credentials=credentials)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
    )

    # Routes
    app.include_router(health.router, prefix="/health")
    app.include_router(create_graphql_router(store, credentials, settings), prefix="/query")

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/query")

    return app


def load_settings() -> Settings:
    """Lit la config; un secret manquant arrête le process"""
    try:
        return Settings.from_env()
    except ConfigError as e:
        logger.critical(f"Configuration error: {e}")
        raise SystemExit(1)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings)
    return create_app(settings)


def run():
    import uvicorn

    settings = load_settings()
    configure_logging(settings)
    logger.info(f"Server is running on http://localhost:{settings.port}/")
    uvicorn.run("dotask.main:build_app", factory=True, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
