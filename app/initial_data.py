import logging

from app.core.config import ADMIN_USERNAME, ADMIN_PASSWORD
from app.utils.database import SessionLocal
from app.utils.security import hash_password
from app.utils.finance_ops import SETTING_DAILY_PENALTY, SETTING_GRACE_DAYS
from app.models.user_model import User
from app.models.system_settings_model import SystemSetting

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = [
    (SETTING_DAILY_PENALTY, "0", "Daily late fee used when a member has no own setting"),
    (SETTING_GRACE_DAYS, "0", "Days after the due date before late fees start"),
]


def seed_admin(db) -> bool:
    if db.query(User).filter(User.username == ADMIN_USERNAME).first():
        return False
    db.add(
        User(
            username=ADMIN_USERNAME,
            password_hash=hash_password(ADMIN_PASSWORD),
            first_name="System",
            last_name="Admin",
            role="ADMIN",
            is_active=True,
        )
    )
    logger.info("Seeded admin user '%s'", ADMIN_USERNAME)
    return True


def seed_settings(db) -> int:
    created = 0
    for key, value, description in DEFAULT_SETTINGS:
        if db.query(SystemSetting).filter(SystemSetting.key == key).first():
            continue
        db.add(SystemSetting(key=key, value=value, description=description))
        created += 1
    if created:
        logger.info("Seeded %s system setting(s)", created)
    return created


def init_seed():
    db = SessionLocal()
    try:
        seed_admin(db)
        seed_settings(db)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Initial seeding failed")
        raise
    finally:
        db.close()
