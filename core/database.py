import os
from pathlib import Path
import time

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# SQLite database stored inside data/ unless BACHES_DATABASE_URL points elsewhere
DATA_DIR = Path("data")
DB_PATH = DATA_DIR / "baches.db"
DATABASE_URL = os.getenv("BACHES_DATABASE_URL", f"sqlite:///{DB_PATH}")

Base = declarative_base()


def get_engine(url: str = DATABASE_URL):
    if not url.startswith("sqlite"):
        return create_engine(url, future=True, pool_pre_ping=True)

    if ":memory:" in url:
        # one shared connection, otherwise every session sees its own empty database
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

    os.makedirs(DATA_DIR, exist_ok=True)
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": 10},
        future=True,
        pool_pre_ping=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()

    return engine


def run_with_retry(fn, retries: int = 3, delay: float = 0.2):
    last_exc = None
    for _ in range(retries):
        try:
            return fn()
        except OperationalError as exc:
            last_exc = exc
            if "locked" not in str(exc).lower():
                raise
            time.sleep(delay)
    if last_exc:
        raise last_exc


engine = get_engine()
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
    expire_on_commit=False,  # rows are converted to dicts after commit
)


def init_db():
    """Create all tables if they do not exist yet."""
    from core import db_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    _ensure_schema()


def _ensure_schema():
    """Add columns that databases created before point geometry was stored lack."""
    columns = [c["name"] for c in inspect(engine).get_columns("reports")]
    if "location_json" not in columns:
        with engine.begin() as conn:
            conn.execute(text("ALTER TABLE reports ADD COLUMN location_json TEXT;"))


def reset_db():
    """Drop and recreate every table. Used by the test fixtures."""
    from core import db_models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
