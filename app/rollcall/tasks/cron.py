import logging
from datetime import datetime, timezone

from ..db.db_client import AsyncPostgresClient

logger = logging.getLogger(__name__)


async def deactivate_expired_sessions_task(db_client: AsyncPostgresClient):
    """
    Periodic housekeeping: flips is_active off for sessions past their
    deadline, which frees their codes and meeting slots for new sessions.
    Redemption checks the deadline itself, so a late sweep is harmless.
    """
    logger.info("Running deactivate_expired_sessions_task...")
    try:
        closed = await db_client.deactivate_expired_sessions(datetime.now(timezone.utc))
    except Exception as e:
        logger.error(f"Failed to deactivate expired sessions: {e}", exc_info=True)
        return 0
    if closed:
        logger.info(f"Deactivated {closed} expired session(s).")
    return closed
