import logging
from datetime import datetime
from uuid import uuid4

logger = logging.getLogger(__name__)

NOTIFICATIONS = "notifications"


def emit_notification(
    store,
    user_id: str,
    title: str,
    text: str,
    actor_id: str,
    actor_name: str,
    class_id: str = None,
    activity_id: str = None,
    type: str = "activity_correction",
) -> None:
    """
    Write one notification document.

    Scheduled unawaited after a grading decision. May fail silently: errors are
    logged and never reach the operation that triggered it.
    """
    try:
        store.set(NOTIFICATIONS, str(uuid4()), {
            "user_id": user_id,
            "actor_id": actor_id,
            "actor_name": actor_name,
            "type": type,
            "title": title,
            "text": text,
            "class_id": class_id,
            "activity_id": activity_id,
            "read": False,
            "created_at": datetime.utcnow().isoformat(),
        })
    except Exception:
        logger.exception("Failed to emit notification for user %s", user_id)
