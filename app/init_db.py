from app.database import init_schema
from app.logging_config import configure_logging
from app.utils.logger import get_logger


logger = get_logger(__name__)

def init_db():
    """Create any missing streak tables. Alembic owns schema changes after that."""
    try:
        init_schema()
        logger.info("Database initialization check complete")
    except Exception as e:
        logger.error(f"Error during database initialization: {e}")
        raise

if __name__ == "__main__":
    configure_logging()
    init_db()
