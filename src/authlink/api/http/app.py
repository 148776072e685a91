"""FastAPI application factory and setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from src.authlink.api.http.errors import register_error_handlers
from src.authlink.api.http.routers.health import router as health_router
from src.authlink.api.http.routers.users import router as users_router
from src.authlink.api.utils.app_startup import configure_logging
from src.authlink.core.services.database.db_manage import DbManageService
from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.runtime.context import get_config


def create_app(db: DbSessionService | None = None) -> FastAPI:
    """Build the application.

    When ``db`` is given the caller owns its lifetime; otherwise the app
    connects on startup and closes the database on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = db is None
        database = db or DbSessionService()
        if owned:
            configure_logging()
            database.connect()
            DbManageService(database.engine).create_all()
        app.state.db = database
        logger.info("Starting up application in {} environment", get_config().app.environment)
        try:
            yield
        finally:
            logger.info("Shutting down application")
            if owned:
                database.close()

    production = get_config().app.environment == "production"
    app = FastAPI(
        title="authlink",
        lifespan=lifespan,
        docs_url=None if production else "/docs",
        redoc_url=None if production else "/redoc",
    )
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(users_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    """Serve the application on the configured host and port."""
    import uvicorn

    app_config = get_config().app
    logger.info("Serving authlink at {}", app_config.base_url)
    uvicorn.run(app, host=app_config.host, port=app_config.port, access_log=False)


__all__ = ["app", "create_app", "run"]


if __name__ == "__main__":
    run()
