# app/models/user_model.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        Index("ix_users_role_active", "role", "is_active"),
    )

    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(180), nullable=True)
    phone = Column(String(30), nullable=True)

    # ADMIN / BUYER / CONTRACTOR / SUPPLIER / USER
    role = Column(String(20), nullable=False, default="USER")
    is_active = Column(Boolean, nullable=False, default=True)

    # per-user late fee rules (daily 0 / grace NULL = use request or system defaults)
    daily_penalty_amount = Column(Numeric(18, 2), nullable=False, default=0)
    penalty_grace_days = Column(Integer, nullable=True)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)

    units = relationship(
        "Unit",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    user_installments = relationship(
        "UserInstallment",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.username

    def __repr__(self) -> str:
        return f"<User(id={self.user_id}, username={self.username}, role={self.role})>"
