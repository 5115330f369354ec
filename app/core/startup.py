"""
Startup utilities for the application.
"""
import logging

from sqlalchemy.exc import OperationalError, ProgrammingError

from app.core.config import settings
from app.core.database import Base, engine

logger = logging.getLogger(__name__)


def import_models():
    """Register every model on Base.metadata."""
    from app.models import provider, rental, service, transaction, user, vehicle  # noqa: F401


async def ensure_tables():
    """
    Create missing tables when AUTO_CREATE_TABLES is on (local/dev).
    Otherwise tables are expected to come from 'alembic upgrade head'.
    """
    if not settings.AUTO_CREATE_TABLES:
        logger.info("AUTO_CREATE_TABLES disabled; run 'alembic upgrade head' to manage the schema.")
        return
    import_models()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured.")
    except (OperationalError, ProgrammingError) as e:
        logger.warning(
            f"Database error while creating tables. Error: {e}. "
            f"Please ensure database is accessible and migrations are run."
        )
