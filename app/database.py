from typing import Any

from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
# - statement_timeout : session/profile lookups that exceed it raise,
#                       and the auth layer turns that into a denial
#
# Other URLs (sqlite for local runs) get the driver defaults.
# ---------------------------------------------------------


def engine_config(db_url: str, timeout_ms: int) -> tuple[str, dict[str, Any]]:
    """Return the URL and create_engine() keyword arguments for `db_url`."""
    if not db_url.startswith("postgres"):
        return db_url, {"echo": False}

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return db_url, {
        "echo": False,        # set to True if you want to debug SQL queries
        "pool_pre_ping": True,
        "pool_size": 1,
        "max_overflow": 0,
        "connect_args": {
            "options": f"-c statement_timeout={timeout_ms}",
        },
    }


db_url, engine_kwargs = engine_config(settings.DATABASE_URL, settings.DB_LOOKUP_TIMEOUT_MS)

engine = create_engine(db_url, **engine_kwargs)


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
