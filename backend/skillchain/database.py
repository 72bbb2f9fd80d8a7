"""
Database Engine & Session Management
SQLAlchemy setup shared by the SQL storage backend and the health check.
"""
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from skillchain.config import get_settings

settings = get_settings()

Base = declarative_base()


def create_db_engine(database_url: str, timeout: float = 10.0, echo: bool = False) -> Engine:
    """Build an engine; SQLite files get their directory created and a busy timeout."""
    connect_args = {}
    engine_args = {}
    if database_url.startswith("sqlite"):
        path = database_url.replace("sqlite:///", "")
        if path and path != ":memory:" and os.path.dirname(path):
            os.makedirs(os.path.dirname(path), exist_ok=True)
        connect_args = {
            "check_same_thread": False,  # Required for SQLite
            "timeout": timeout,  # Busy timeout for concurrent writers
        }
    else:
        engine_args["pool_timeout"] = timeout

    return create_engine(
        database_url,
        connect_args=connect_args,
        echo=echo,
        **engine_args,
    )


engine = create_db_engine(settings.DATABASE_URL, settings.DB_TIMEOUT_SECONDS, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None):
    """Create all tables. Called once at application startup."""
    from skillchain.models import payment as _payment_model          # noqa: F401
    from skillchain.models import assessment as _assessment_model    # noqa: F401
    from skillchain.models import stats as _stats_model              # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
