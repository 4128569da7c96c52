# app/models/accounting_document_model.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    Numeric,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class AccountingDocument(Base):
    __tablename__ = "accounting_documents"
    __table_args__ = (
        UniqueConstraint("project_id", "document_number", name="uq_document_number_per_project"),
        Index("ix_accounting_documents_project_status_date", "project_id", "status", "document_date"),
    )

    document_id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fiscal_year_id = Column(
        Integer,
        ForeignKey("fiscal_years.fiscal_year_id", ondelete="SET NULL"),
        nullable=True,
    )

    document_number = Column(String(30), nullable=False)
    document_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)

    total_debit = Column(Numeric(18, 2), nullable=False, default=0)
    total_credit = Column(Numeric(18, 2), nullable=False, default=0)

    # TEMPORARY / PERMANENT
    status = Column(String(20), nullable=False, default="TEMPORARY")

    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_on = Column(DateTime, server_default=func.now())
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now())

    entries = relationship(
        "AccountingEntry",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="AccountingEntry.entry_id",
    )


class AccountingEntry(Base):
    __tablename__ = "accounting_entries"

    entry_id = Column(Integer, primary_key=True, index=True)
    document_id = Column(
        Integer,
        ForeignKey("accounting_documents.document_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    account_code = Column(String(20), nullable=False, index=True)
    account_name = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)

    debit = Column(Numeric(18, 2), nullable=False, default=0)
    credit = Column(Numeric(18, 2), nullable=False, default=0)

    account_nature = Column(String(20), nullable=True)

    document = relationship("AccountingDocument", back_populates="entries")


class CommonDescription(Base):
    __tablename__ = "common_descriptions"
    __table_args__ = (
        UniqueConstraint("project_id", "text", name="uq_common_description_per_project"),
    )

    description_id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    text = Column(String(500), nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)

    created_on = Column(DateTime, server_default=func.now())
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now())
