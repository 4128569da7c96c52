# app/models/project_model.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    Boolean,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class Project(Base):
    __tablename__ = "projects"

    project_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    # ACTIVE / INACTIVE / COMPLETED
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)

    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_on = Column(DateTime, server_default=func.now(), nullable=True)
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=True)

    units = relationship(
        "Unit",
        back_populates="project",
        cascade="all, delete-orphan",
    )
    installment_definitions = relationship(
        "InstallmentDefinition",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="InstallmentDefinition.order_no",
    )
    fiscal_years = relationship(
        "FiscalYear",
        back_populates="project",
        cascade="all, delete-orphan",
    )


class FiscalYear(Base):
    __tablename__ = "fiscal_years"
    __table_args__ = (
        UniqueConstraint("project_id", "year", name="uq_fiscal_year_per_project"),
    )

    fiscal_year_id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    year = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_closed = Column(Boolean, nullable=False, default=False)

    # PERMANENT documents posted by the opening / closing entry operations
    opening_document_id = Column(Integer, nullable=True)
    closing_document_id = Column(Integer, nullable=True)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)

    project = relationship("Project", back_populates="fiscal_years")
