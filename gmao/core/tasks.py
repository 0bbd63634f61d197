# gmao/core/tasks.py

import logging

from sqlmodel import select

from gmao.core.database import get_async_session_context

logger = logging.getLogger(__name__)


async def health_check_database_task(ctx):
    """
    Periodic arq task checking that the database answers a trivial query.
    """
    try:
        async with get_async_session_context() as db:
            result = await db.execute(select(1))
            if result.scalar_one_or_none() == 1:
                logger.info("Database health check: connection successful.")
                return {"status": "success", "message": "Database connection successful."}
            error_msg = "Database health check failed: No result from test query."
            logger.error(error_msg)
            return {"status": "failed", "message": error_msg}
    except Exception as e:
        error_msg = f"Database connection error: {e}"
        logger.error("Database health check failed: %s", error_msg)
        return {"status": "failed", "message": error_msg}
