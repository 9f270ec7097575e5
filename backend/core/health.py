"""
Process uptime and database reachability, shared by /health and the admin dashboard
"""
import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

STARTED_AT = time.time()


def uptime_seconds() -> float:
    return round(time.time() - STARTED_AT, 2)


def database_status(db: Session) -> str:
    """'connected' if a trivial query succeeds, else 'disconnected'"""
    try:
        db.execute(text("SELECT 1"))
        return "connected"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {str(e)}")
        return "disconnected"
