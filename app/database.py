from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from app.config import settings
from app.exceptions import StreakError
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Database connection pooling configuration
POOL_SIZE = 5          # Base connections per worker
MAX_OVERFLOW = 10      # Additional connections when needed
POOL_RECYCLE = 1800    # Recycle connections every 30 minutes
POOL_PRE_PING = True   # Validate connections before use

# Global variables for lazy initialization
_engine = None
_session_local = None

Base = declarative_base()


def _engine_kwargs(database_url: str) -> dict:
    """Pool and timeout options for the configured backend."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": settings.DB_CONNECT_TIMEOUT}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            # One shared connection so every session sees the same in-memory database
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "poolclass": QueuePool,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": POOL_RECYCLE,
        "pool_pre_ping": POOL_PRE_PING,
        "connect_args": {"connect_timeout": settings.DB_CONNECT_TIMEOUT},
    }


def get_engine():
    """Get database engine with lazy initialization for worker compatibility."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.DATABASE_URL,
            echo=settings.DEBUG,  # Log SQL queries in debug mode
            **_engine_kwargs(settings.DATABASE_URL),
        )
        logger.info(
            f"Database engine configured: backend={_engine.dialect.name}, "
            f"pool_timeout={settings.DB_POOL_TIMEOUT}s, connect_timeout={settings.DB_CONNECT_TIMEOUT}s"
        )
    return _engine

def get_session_local():
    """Get SessionLocal with lazy initialization for worker compatibility."""
    global _session_local
    if _session_local is None:
        _session_local = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=get_engine())
    return _session_local

def get_db():
    """
    Database dependency for FastAPI.

    Rolls back whatever the request left uncommitted when it fails; client
    errors raised by the streak engine are not logged as database problems.
    """
    db = get_session_local()()
    try:
        yield db
    except StreakError as e:
        db.rollback()
        if e.status_code >= 500:
            logger.error(f"Streak storage failure, pool status: {get_pool_status()}")
        raise
    except Exception as e:
        logger.error(f"Database session error: {e}")
        try:
            db.rollback()
        except Exception as rollback_error:
            logger.error(f"Error during rollback: {rollback_error}")
        logger.error(f"Pool status during error: {get_pool_status()}")
        raise
    finally:
        db.close()

def get_pool_status():
    """
    Get current database connection pool status.
    Useful for monitoring and debugging.
    """
    try:
        pool = get_engine().pool
        status = {"pool_type": type(pool).__name__}
        if isinstance(pool, QueuePool):
            status.update({
                "pool_size": pool.size(),
                "checked_in": pool.checkedin(),
                "checked_out": pool.checkedout(),
                "overflow": pool.overflow(),
            })
        return status
    except Exception as e:
        return {
            "error": f"Could not get pool status: {str(e)}",
            "pool_type": "unknown"
        }

def init_schema():
    """Create missing tables; production schemas are managed by Alembic."""
    # Register models on Base.metadata before creating tables
    import app.models  # noqa: F401
    Base.metadata.create_all(bind=get_engine())
