# app/models/unit_model.py
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class Unit(Base):
    __tablename__ = "units"
    __table_args__ = (
        UniqueConstraint("project_id", "unit_number", name="uq_unit_number_per_project"),
    )

    unit_id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    unit_number = Column(String(50), nullable=False)
    area = Column(Numeric(12, 2), nullable=False, default=0)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)

    project = relationship("Project", back_populates="units")
    user = relationship("User", back_populates="units")
    user_installments = relationship(
        "UserInstallment",
        back_populates="unit",
        cascade="all, delete-orphan",
    )
