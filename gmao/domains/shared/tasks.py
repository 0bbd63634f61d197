# gmao/domains/shared/tasks.py

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


async def dispatch_notification_task(ctx, event: str, payload: Dict[str, Any]):
    """
    arq task delivering one notification event.
    Delivery channels (mail, push, announcement board) are external; the
    event is recorded in the worker log.
    """
    logger.info("Notification event '%s': %s", event, payload)
    return {"status": "success", "event": event}
