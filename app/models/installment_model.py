# app/models/installment_model.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Numeric,
    Boolean,
    ForeignKey,
    Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class InstallmentDefinition(Base):
    """Project level template of a scheduled payment."""
    __tablename__ = "installment_definitions"

    definition_id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(200), nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False, default=0)

    is_default = Column(Boolean, nullable=False, default=True)
    order_no = Column(Integer, nullable=False, default=1)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)

    project = relationship("Project", back_populates="installment_definitions")
    user_installments = relationship("UserInstallment", back_populates="definition")


class UserInstallment(Base):
    """Per-member share of an installment definition (or a customized one-off)."""
    __tablename__ = "user_installments"

    __table_args__ = (
        Index("ix_user_installments_user_status", "user_id", "status"),
    )

    user_installment_id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unit_id = Column(
        Integer,
        ForeignKey("units.unit_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    definition_id = Column(
        Integer,
        ForeignKey("installment_definitions.definition_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # snapshot / override of the definition values
    title = Column(String(200), nullable=True)
    due_date = Column(Date, nullable=True)

    share_amount = Column(Numeric(18, 2), nullable=False, default=0)

    # PENDING / PARTIAL / PAID / OVERDUE
    status = Column(String(20), nullable=False, default="PENDING")
    is_customized = Column(Boolean, nullable=False, default=False)

    created_on = Column(DateTime, server_default=func.now(), nullable=True)

    user = relationship("User", back_populates="user_installments")
    unit = relationship("Unit", back_populates="user_installments")
    definition = relationship("InstallmentDefinition", back_populates="user_installments")

    payments = relationship(
        "Payment",
        back_populates="user_installment",
        cascade="all, delete-orphan",
        order_by="Payment.payment_date",
    )
    penalty = relationship(
        "Penalty",
        back_populates="user_installment",
        cascade="all, delete-orphan",
        uselist=False,
    )

    @property
    def effective_title(self) -> str:
        if self.title:
            return self.title
        if self.definition is not None:
            return self.definition.title
        return f"Installment {self.user_installment_id}"

    @property
    def effective_due_date(self):
        if self.due_date is not None:
            return self.due_date
        if self.definition is not None:
            return self.definition.due_date
        return None
