# flashcart/database.py
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from flashcart.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Engine configuration
#
# SQLite (local dev / tests):
#   - check_same_thread=False : sessions are used from request threads
#   - timeout                 : writers queue on the database lock instead
#                               of failing with "database is locked"
#
# Postgres:
#   - pool_pre_ping=True      : validate connections before using them
#   - sslmode                 : appended when DB_SSLMODE is set
# ---------------------------------------------------------


def _with_sslmode(db_url: str, sslmode: str | None) -> str:
    if not sslmode or not db_url.startswith("postgres") or "sslmode=" in db_url:
        return db_url
    separator = "&" if "?" in db_url else "?"
    return f"{db_url}{separator}sslmode={sslmode}"


def build_engine(db_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL with the per-dialect options above.
    """
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.SQLITE_BUSY_TIMEOUT,
            },
        )

    # Heroku-style URLs
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)

    return create_engine(
        _with_sslmode(db_url, settings.DB_SSLMODE),
        echo=echo,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
