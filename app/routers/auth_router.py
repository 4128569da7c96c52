import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import verify_password, create_access_token, get_current_user
from app.utils.activity_logger import log_activity
from app.models.user_model import User
from app.schemas import LoginRequest, TokenOut, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == payload.username.strip()).first()

    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for username=%s", payload.username)
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid username or password")

    if not user.is_active:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "User is inactive")

    log_activity(db, user.user_id, "LOGIN", "USER", user.user_id, f"{user.username} logged in")
    db.commit()

    return TokenOut(
        access_token=create_access_token(user),
        user_id=user.user_id,
        username=user.username,
        role=user.role,
    )


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
