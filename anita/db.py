import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from .config import settings


class Base(DeclarativeBase):
    """SQLAlchemy Declarative Base."""

    pass


def _connect_args(url: str):
    # For SQLite, disable same-thread check
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


def make_engine(url: str):
    kwargs = dict(connect_args=_connect_args(url), pool_pre_ping=True, echo=False)
    if not url.startswith("sqlite"):
        kwargs.update(dict(pool_recycle=1800, pool_size=5, max_overflow=10))
    if url.startswith("sqlite") and ":memory:" not in url:
        db_path = make_url(url).database
        if db_path and os.path.dirname(db_path):
            os.makedirs(os.path.dirname(db_path), exist_ok=True)
    if url.startswith("sqlite") and ":memory:" in url:
        # One shared connection so every session sees the same in-memory schema
        kwargs["poolclass"] = StaticPool
    eng = create_engine(url, **kwargs)

    if url.startswith("sqlite") and ":memory:" not in url:

        @event.listens_for(eng, "connect")
        def _sqlite_pragma(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.close()

    return eng


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(bind=None) -> None:
    """Create tables (no migrations; the schema is a single table)."""
    import anita.orm_models  # noqa: F401  registers models on Base

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
