# app/models/archive_model.py
"""
Snapshot tables for archived projects and users.

Rows keep the original primary keys in ``original_*`` columns so a restore can
rebuild the links between units, installments, payments and penalties.
Archive tables carry no foreign keys to the live tables.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    Numeric,
    Boolean,
    ForeignKey,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class ArchivedProject(Base):
    __tablename__ = "archived_projects"

    archived_project_id = Column(Integer, primary_key=True, index=True)
    original_project_id = Column(Integer, nullable=False, index=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=True)
    created_on = Column(DateTime, nullable=True)

    archived_by = Column(Integer, nullable=True)
    archived_at = Column(DateTime, server_default=func.now())

    units = relationship(
        "ArchivedUnit",
        back_populates="archived_project",
        cascade="all, delete-orphan",
        foreign_keys="ArchivedUnit.archived_project_id",
    )
    definitions = relationship(
        "ArchivedInstallmentDefinition",
        back_populates="archived_project",
        cascade="all, delete-orphan",
    )


class ArchivedUser(Base):
    __tablename__ = "archived_users"

    archived_user_id = Column(Integer, primary_key=True, index=True)
    original_user_id = Column(Integer, nullable=False, index=True)

    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(180), nullable=True)
    phone = Column(String(30), nullable=True)
    role = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=True)
    daily_penalty_amount = Column(Numeric(18, 2), nullable=True)
    penalty_grace_days = Column(Integer, nullable=True)
    created_on = Column(DateTime, nullable=True)

    archived_by = Column(Integer, nullable=True)
    archived_at = Column(DateTime, server_default=func.now())

    units = relationship(
        "ArchivedUnit",
        back_populates="archived_user",
        cascade="all, delete-orphan",
        foreign_keys="ArchivedUnit.archived_user_id",
    )


class ArchivedUnit(Base):
    __tablename__ = "archived_units"

    archived_unit_id = Column(Integer, primary_key=True, index=True)
    archived_project_id = Column(
        Integer,
        ForeignKey("archived_projects.archived_project_id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    archived_user_id = Column(
        Integer,
        ForeignKey("archived_users.archived_user_id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    original_unit_id = Column(Integer, nullable=False)
    original_project_id = Column(Integer, nullable=False)
    original_user_id = Column(Integer, nullable=False)

    unit_number = Column(String(50), nullable=False)
    area = Column(Numeric(12, 2), nullable=False, default=0)

    archived_at = Column(DateTime, server_default=func.now())

    archived_project = relationship(
        "ArchivedProject", back_populates="units", foreign_keys=[archived_project_id]
    )
    archived_user = relationship(
        "ArchivedUser", back_populates="units", foreign_keys=[archived_user_id]
    )
    installments = relationship(
        "ArchivedUserInstallment",
        back_populates="archived_unit",
        cascade="all, delete-orphan",
    )


class ArchivedInstallmentDefinition(Base):
    __tablename__ = "archived_installment_definitions"

    archived_definition_id = Column(Integer, primary_key=True, index=True)
    archived_project_id = Column(
        Integer,
        ForeignKey("archived_projects.archived_project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_definition_id = Column(Integer, nullable=False)

    title = Column(String(200), nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False, default=0)
    is_default = Column(Boolean, nullable=True)
    order_no = Column(Integer, nullable=True)

    archived_at = Column(DateTime, server_default=func.now())

    archived_project = relationship("ArchivedProject", back_populates="definitions")


class ArchivedUserInstallment(Base):
    __tablename__ = "archived_user_installments"

    archived_user_installment_id = Column(Integer, primary_key=True, index=True)
    archived_unit_id = Column(
        Integer,
        ForeignKey("archived_units.archived_unit_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    original_user_installment_id = Column(Integer, nullable=False)
    original_definition_id = Column(Integer, nullable=True)

    title = Column(String(200), nullable=True)
    due_date = Column(Date, nullable=True)
    share_amount = Column(Numeric(18, 2), nullable=False, default=0)
    status = Column(String(20), nullable=True)
    is_customized = Column(Boolean, nullable=True)

    archived_at = Column(DateTime, server_default=func.now())

    archived_unit = relationship("ArchivedUnit", back_populates="installments")
    payments = relationship(
        "ArchivedPayment",
        back_populates="archived_user_installment",
        cascade="all, delete-orphan",
    )
    penalty = relationship(
        "ArchivedPenalty",
        back_populates="archived_user_installment",
        cascade="all, delete-orphan",
        uselist=False,
    )


class ArchivedPayment(Base):
    __tablename__ = "archived_payments"

    archived_payment_id = Column(Integer, primary_key=True, index=True)
    archived_user_installment_id = Column(
        Integer,
        ForeignKey("archived_user_installments.archived_user_installment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_payment_id = Column(Integer, nullable=False)

    payment_date = Column(Date, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(Text, nullable=True)
    receipt_image_path = Column(String(500), nullable=True)

    archived_at = Column(DateTime, server_default=func.now())

    archived_user_installment = relationship("ArchivedUserInstallment", back_populates="payments")


class ArchivedPenalty(Base):
    __tablename__ = "archived_penalties"

    archived_penalty_id = Column(Integer, primary_key=True, index=True)
    archived_user_installment_id = Column(
        Integer,
        ForeignKey("archived_user_installments.archived_user_installment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_penalty_id = Column(Integer, nullable=False)

    days_late = Column(Integer, nullable=False, default=0)
    daily_rate = Column(Numeric(18, 2), nullable=False, default=0)
    total_penalty = Column(Numeric(18, 2), nullable=False, default=0)
    reason = Column(Text, nullable=True)

    archived_at = Column(DateTime, server_default=func.now())

    archived_user_installment = relationship("ArchivedUserInstallment", back_populates="penalty")
