import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from app.core.config import JWT_SECRET, JWT_ALGO, ACCESS_TOKEN_EXPIRE_MINUTES
from app.utils.database import get_db
from app.models.user_model import User

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 600000

bearer_scheme = HTTPBearer(auto_error=False)


# -------------------------------------------------
# Passwords
# -------------------------------------------------
def hash_password(password: str) -> str:
    """Format: pbkdf2:sha256:<iterations>$<salt>$<hash>"""
    return generate_password_hash(password, method=f"pbkdf2:sha256:{PBKDF2_ITERATIONS}")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return check_password_hash(password_hash, password or "")
    except (ValueError, TypeError):
        logger.warning("Unreadable password hash rejected")
        return False


# -------------------------------------------------
# Tokens
# -------------------------------------------------
def create_access_token(user: User, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.user_id),
        "username": user.username,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGO)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])


# -------------------------------------------------
# Dependencies
# -------------------------------------------------
def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
        db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = int(payload.get("sub"))
    except jwt.ExpiredSignatureError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token expired")
    except (jwt.InvalidTokenError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    user = db.query(User).filter(User.user_id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User not found / inactive")

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "ADMIN":
        logger.warning("Admin route refused for user_id=%s", current_user.user_id)
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Admin access required")
    return current_user


def ensure_self_or_admin(current_user: User, user_id: int) -> None:
    if current_user.role != "ADMIN" and current_user.user_id != user_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "You can only access your own data")
