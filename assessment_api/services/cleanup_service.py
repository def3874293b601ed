"""Background sweep that times out overdue attempts and purges expired sessions."""
import logging
import threading
import time

from assessment_api.config import ATTEMPT_EXPIRY_INTERVAL_SECONDS
from assessment_api.database import SessionLocal
from assessment_api.services.attempt_service import expire_overdue_attempts
from assessment_api.services.auth_service import cleanup_expired_sessions

logger = logging.getLogger(__name__)


def expire_attempts_once() -> int:
    """Run one sweep in its own session. Returns the number of attempts timed out."""
    try:
        db = SessionLocal()
        try:
            return expire_overdue_attempts(db)
        finally:
            db.close()
    except Exception as e:
        logger.error(f"Failed to expire overdue attempts: {e}")
        return 0


def purge_sessions_once() -> int:
    """Delete expired login sessions. Returns the number removed."""
    try:
        db = SessionLocal()
        try:
            removed = cleanup_expired_sessions(db)
        finally:
            db.close()
    except Exception as e:
        logger.error(f"Failed to purge expired sessions: {e}")
        return 0
    if removed:
        logger.info(f"Purged {removed} expired sessions")
    return removed


def schedule_attempt_expiry(interval: int = ATTEMPT_EXPIRY_INTERVAL_SECONDS) -> threading.Thread | None:
    """Start the periodic sweep on a daemon thread; 0 disables it."""
    if interval <= 0:
        logger.info("Attempt expiry sweep disabled")
        return None

    def _worker() -> None:
        while True:
            time.sleep(interval)
            expire_attempts_once()
            purge_sessions_once()

    thread = threading.Thread(
        target=_worker,
        name="attempt_expiry",
        daemon=True,
    )
    thread.start()
    logger.info(f"Attempt expiry sweep scheduled every {interval}s")
    return thread
