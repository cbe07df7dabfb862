from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from versioning_plane.api.routes import file
from versioning_plane.core.config import settings
from versioning_plane.core.exceptions import (
    Conflict,
    FileVersioningError,
    InvalidOperation,
    NotFound,
    TransientStoreFailure,
)
from versioning_plane.core.logging import setup_logging
from versioning_plane.db.session import create_db_engine, create_session_factory, init_db
from versioning_plane.services.locks import KeyedLock

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidOperation: status.HTTP_400_BAD_REQUEST,
    Conflict: status.HTTP_409_CONFLICT,
    TransientStoreFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def handle_versioning_error(request: Request, exc: FileVersioningError):
    code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code, content={"detail": exc.message})


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the app around an engine. The engine, session factory and the
    per-file lock registry live on app.state for the life of the process.
    """
    setup_logging(settings.LOG_LEVEL)

    engine = engine or create_db_engine()
    init_db(engine)

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.file_locks = KeyedLock(timeout=settings.LOCK_TIMEOUT_SECONDS)

    app.add_exception_handler(FileVersioningError, handle_versioning_error)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # include routers
    app.include_router(file.router)

    return app
