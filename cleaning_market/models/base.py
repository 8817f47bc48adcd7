"""SQLAlchemy declarative base and session factories."""

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    pass


def normalize_database_url(url: str) -> str:
    # Heroku-style postgres:// URLs; SQLAlchemy 2.x requires postgresql://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def make_session_factory(url: str, echo: bool = False) -> sessionmaker:
    """Session factory bound to a fresh engine for ``url``."""
    engine = create_engine(normalize_database_url(url), pool_pre_ping=True, echo=echo)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine) -> None:
    """Create all tables that do not exist yet (and the SQLite file's directory)."""
    url = bind.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
    Base.metadata.create_all(bind=bind)
