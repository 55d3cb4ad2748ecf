"""
Database connection module.

The engine and session factory are created lazily so that importing the
application never opens a connection.
"""
import os
import time
import logging
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from insurance_crm.config import settings

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Resolve the database URL from the environment or settings."""
    url = os.environ.get("DATABASE_PRIVATE_URL") or settings.DATABASE_PRIVATE_URL or settings.DATABASE_URL

    # Remove accidental whitespace/quotes
    url = url.strip().strip("'").strip('"')

    # SQLAlchemy needs an explicit driver for psycopg 3
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)

    return url


def create_app_engine(db_url: str = None):
    """Create SQLAlchemy engine with connection pooling suited to the backend."""
    db_url = db_url or get_database_url()

    if db_url.startswith("sqlite"):
        logger.info("Configuring SQLite database engine")
        return create_engine(db_url, connect_args={"check_same_thread": False})

    # Sanitized host logging
    host = db_url.split("@")[1].split(":")[0] if "@" in db_url else "unknown"
    logger.info(f"Configuring database engine for host: {host}")

    return create_engine(
        db_url,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=5,
        max_overflow=10,
        connect_args={
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000"
        }
    )


# Singleton instances
_engine = None
_SessionLocal = None


def get_engine():
    """Lazy engine initialization to prevent import-time crashes."""
    global _engine
    if _engine is None:
        _engine = create_app_engine()
    return _engine


def get_session_local():
    """Lazy session factory initialization."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def connect_with_retry(max_retries=5, delay=3):
    """Linear backoff while the database becomes reachable."""
    last_error = None
    for attempt in range(max_retries):
        try:
            with get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
                logger.info("Database connection established successfully.")
                return True
        except Exception as e:
            last_error = e
            wait = delay * (attempt + 1)
            logger.warning(f"DB Connection attempt {attempt + 1} failed. Retrying in {wait}s...")
            time.sleep(wait)
    logger.error(f"Failed to connect: {last_error}")
    return False


# Base class for models
Base = declarative_base()


def get_db():
    Session = get_session_local()
    db = Session()
    try:
        yield db
    finally:
        db.close()


def check_database_health() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


def get_connection_info() -> dict:
    engine = get_engine()
    return {
        "dialect": engine.dialect.name,
        "database_name": engine.url.database,
        "host": engine.url.host,
        "port": engine.url.port,
    }
