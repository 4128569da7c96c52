from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.models.user_model import User
from app.models.activity_log_model import ActivityLog

router = APIRouter(prefix="/activities", tags=["Activities"])


@router.get("")
def list_activities(
        user_id: Optional[int] = Query(None),
        entity_type: Optional[str] = Query(None),
        limit: int = Query(100, ge=1, le=1000),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    q = db.query(ActivityLog, User.username).outerjoin(User, User.user_id == ActivityLog.user_id)
    if user_id is not None:
        q = q.filter(ActivityLog.user_id == user_id)
    if entity_type:
        q = q.filter(ActivityLog.entity_type == entity_type.upper())

    rows = q.order_by(ActivityLog.activity_id.desc()).limit(limit).all()
    return [
        {
            "activity_id": a.activity_id,
            "user_id": a.user_id,
            "username": username,
            "action": a.action,
            "entity_type": a.entity_type,
            "entity_id": a.entity_id,
            "description": a.description,
            "created_on": a.created_on,
        }
        for a, username in rows
    ]
