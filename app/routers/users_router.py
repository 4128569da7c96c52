import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import hash_password, require_admin
from app.utils.activity_logger import log_activity
from app.models.user_model import User
from app.models.unit_model import Unit
from app.schemas import UserCreate, UserUpdate, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


# =================================================
# 🔹 STATIC ROUTES (ALWAYS FIRST)
# =================================================
@router.get("/available-for-project/{project_id}", response_model=List[UserOut])
def users_available_for_project(
        project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Active non-admin users that do not hold a unit in the project yet."""
    taken = db.query(Unit.user_id).filter(Unit.project_id == project_id)
    return (
        db.query(User)
        .filter(User.role != "ADMIN")
        .filter(User.is_active.is_(True))
        .filter(~User.user_id.in_(taken))
        .order_by(User.username.asc())
        .all()
    )


@router.get("", response_model=List[UserOut])
def list_users(
        role: Optional[str] = Query(None),
        is_active: Optional[bool] = Query(None),
        search: Optional[str] = Query(None),
        limit: int = Query(200, ge=1, le=1000),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role.upper())
    if is_active is not None:
        q = q.filter(User.is_active.is_(is_active))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                User.username.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
            )
        )
    return q.order_by(User.user_id.asc()).offset(offset).limit(limit).all()


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
        payload: UserCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    if db.query(User).filter(User.username == payload.username).first():
        raise HTTPException(status.HTTP_409_CONFLICT, "Username already exists")

    user = User(
        username=payload.username,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
        role=payload.role,
        is_active=payload.is_active,
    )

    try:
        db.add(user)
        db.flush()
        log_activity(db, admin.user_id, "CREATE", "USER", user.user_id, f"User {user.username} created")
        db.commit()
        db.refresh(user)
        return user
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "Username already exists")
    except Exception:
        db.rollback()
        raise


# =================================================
# 🔹 DYNAMIC ROUTES (LAST)
# =================================================
@router.get("/{user_id}", response_model=UserOut)
def get_user(
        user_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(404, "User not found")
    return user


@router.put("/{user_id}", response_model=UserOut)
def update_user(
        user_id: int,
        payload: UserUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(404, "User not found")

    data = payload.model_dump(exclude_unset=True)

    new_username = data.pop("username", None)
    if new_username and new_username.strip() != user.username:
        new_username = new_username.strip()
        clash = db.query(User).filter(User.username == new_username, User.user_id != user_id).first()
        if clash:
            raise HTTPException(status.HTTP_409_CONFLICT, "Username already exists")
        user.username = new_username

    password = data.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    if user.user_id == admin.user_id and data.get("role") not in (None, "ADMIN"):
        raise HTTPException(400, "You cannot remove your own admin role")

    for field, value in data.items():
        setattr(user, field, value)

    try:
        log_activity(db, admin.user_id, "UPDATE", "USER", user.user_id, f"User {user.username} updated")
        db.commit()
        db.refresh(user)
        return user
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "Username already exists")
    except Exception:
        db.rollback()
        raise


@router.delete("/{user_id}")
def delete_user(
        user_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(404, "User not found")

    if user.user_id == admin.user_id:
        raise HTTPException(400, "You cannot delete your own account")

    unit_count = db.query(Unit).filter(Unit.user_id == user_id).count()
    if unit_count:
        logger.warning("Delete refused for user_id=%s: %s unit(s) assigned", user_id, unit_count)
        raise HTTPException(
            400,
            f"User holds {unit_count} unit(s). Remove them from their projects or archive the user instead.",
        )

    username = user.username
    try:
        db.delete(user)
        log_activity(db, admin.user_id, "DELETE", "USER", user_id, f"User {username} deleted")
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": "deleted", "user_id": user_id}
