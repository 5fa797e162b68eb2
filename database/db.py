# File: database/db.py
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for the thematic store.
    SQLite URLs (used by the test-suite) get a shared connection and
    foreign-key enforcement so cascades behave like PostgreSQL.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True,
        connect_args={"connect_timeout": 10}
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def ping(engine: Engine) -> None:
    """Raises if the store is unreachable."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def _register_models():
    from database.models import thematic_models  # noqa: F401


def init_db(engine: Engine) -> None:
    _register_models()
    Base.metadata.create_all(bind=engine)


def recreate_schema(engine: Engine) -> None:
    """
    DESTRUCTIVE: drops every thematic table and recreates it empty.
    This is a full reset, not a migration.
    """
    _register_models()
    logger.warning("⚠️ Dropping ALL thematic analysis tables (destructive reset)")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info(f"🛠️ Recreated tables: {', '.join(Base.metadata.tables)}")
