from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.utils.activity_logger import log_activity
from app.models.user_model import User
from app.models.system_settings_model import SystemSetting
from app.schemas import SettingPatch, SettingCreate, SettingOut

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=List[SettingOut])
def list_settings(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return db.query(SystemSetting).order_by(SystemSetting.key.asc()).all()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_setting(
        payload: SettingCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    key = payload.key.strip().upper()

    # 1) Prevent duplicate key
    existing = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    if existing:
        raise HTTPException(status_code=409, detail="Setting key already exists")

    # 2) Create new setting
    obj = SystemSetting(
        key=key,
        value=str(payload.value).strip(),
        description=(payload.description or "").strip(),
        updated_by=admin.user_id,
    )
    db.add(obj)
    log_activity(db, admin.user_id, "CREATE", "SETTING", None, f"{key}={obj.value}")
    db.commit()
    db.refresh(obj)

    return {
        "message": "created",
        "key": obj.key,
        "value": obj.value,
        "description": obj.description,
    }


@router.patch("")
def update_setting(
        payload: SettingPatch,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    obj = db.query(SystemSetting).filter(SystemSetting.key == payload.key.strip().upper()).first()
    if not obj:
        raise HTTPException(404, "Setting not found")

    old = obj.value
    obj.value = payload.value.strip()
    obj.updated_by = admin.user_id
    log_activity(db, admin.user_id, "UPDATE", "SETTING", None, f"{obj.key}: {old} -> {obj.value}")
    db.commit()
    return {"message": "updated", "key": obj.key, "value": obj.value}
