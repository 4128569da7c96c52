import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.activity_log_model import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
        db: Session,
        user_id: Optional[int],
        action: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        description: Optional[str] = None,
) -> ActivityLog:
    """
    Add an audit row to the current session. The caller commits, so the row
    lands together with the change it describes.
    """
    row = ActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
    )
    db.add(row)
    logger.info("%s %s id=%s by user_id=%s", action, entity_type, entity_id, user_id)
    return row
