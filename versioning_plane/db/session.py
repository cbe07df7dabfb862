from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from versioning_plane.core.config import settings
from versioning_plane.db.base import Base


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    db_url = url or settings.DATABASE_URL
    connect_args = {}
    if db_url.startswith("sqlite"):
        # sessions are handed across request threads
        connect_args = {"check_same_thread": False}
    return create_engine(
        db_url,
        echo=settings.SQL_ECHO if echo is None else echo,
        connect_args=connect_args,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    import versioning_plane.models  # noqa: F401  # populate metadata

    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """
    Yields a session bound to the engine the app was started with.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
