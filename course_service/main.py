import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from shared.config import Settings
from shared.database import Base, make_engine, make_session_factory
from . import models  # noqa: F401  (registers tables on Base.metadata)
from .routes import build_router, build_admin_router

logger = logging.getLogger("course-service")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    engine = make_engine(settings.database_url)
    SessionLocal = make_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.create_tables:
            Base.metadata.create_all(engine)
        logger.info("Course service started (db=%s)", engine.url.render_as_string(hide_password=True))
        yield
        engine.dispose()
        logger.info("Course service stopped")

    app = FastAPI(title="Course Bank Service", version="1.0.0", lifespan=lifespan)
    app.state.engine = engine
    app.state.settings = settings

    allow_credentials = True
    if settings.cors_origins == ["*"]:
        # Browsers reject "*" with credentials
        allow_credentials = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Query failed: %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Query failed"},
        )

    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "healthy", "service": "course-service"}

    app.include_router(build_router(SessionLocal, settings))
    app.include_router(build_admin_router(SessionLocal), prefix="/admin")

    return app


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8003"))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
