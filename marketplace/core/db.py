"""
Database engine
"""

from sqlalchemy import event
from sqlmodel import create_engine

from marketplace.core.config import settings
from marketplace.core.logging import get_logger

logger = get_logger(__name__)

engine = create_engine(
    str(settings.SQLALCHEMY_DATABASE_URI),
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,  # Verify connections before using them
    pool_recycle=3600,
)


@event.listens_for(engine, "handle_error")
def handle_error(exception_context):
    """Log driver-level failures once, with the statement that caused them"""
    exception = exception_context.original_exception
    logger.error(
        "database_error",
        error_type=type(exception).__name__,
        error_message=str(exception),
        statement=exception_context.statement,
    )

