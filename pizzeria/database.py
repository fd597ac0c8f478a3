# pizzeria/database.py
from sqlmodel import SQLModel, create_engine, Session

from pizzeria.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Database connection
#
# PostgreSQL (production):
#   - sslmode=require   : enforce SSL when running in the cloud
#   - pool_size / max_overflow kept small for hosted poolers
#   - pool_pre_ping=True: validate connections before using them
#
# SQLite (local runs):
#   - check_same_thread=False so the sweep worker thread can use it
# ---------------------------------------------------------

db_url = settings.DATABASE_URL

if db_url.startswith("postgresql"):
    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    engine = create_engine(
        db_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=0,
    )
else:
    engine = create_engine(
        db_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


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
