# app/models/accounting_coding_model.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class AccountGroup(Base):
    """Level 1 of the chart of accounts (1 digit)."""
    __tablename__ = "account_groups"
    __table_args__ = (
        UniqueConstraint("project_id", "fiscal_year_id", "code", name="uq_account_group_code"),
    )

    group_id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fiscal_year_id = Column(
        Integer,
        ForeignKey("fiscal_years.fiscal_year_id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    code = Column(String(1), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    is_default = Column(Boolean, nullable=False, default=False)
    is_protected = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_on = Column(DateTime, server_default=func.now())

    classes = relationship(
        "AccountClass",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="AccountClass.code",
    )

    @property
    def full_code(self) -> str:
        return self.code


class AccountClass(Base):
    """Level 2 (kol): 1 digit under its group."""
    __tablename__ = "account_classes"
    __table_args__ = (
        UniqueConstraint("group_id", "code", name="uq_account_class_code"),
    )

    class_id = Column(Integer, primary_key=True, index=True)
    group_id = Column(
        Integer,
        ForeignKey("account_groups.group_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code = Column(String(1), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # DEBIT / CREDIT / DEBIT_CREDIT
    nature = Column(String(20), nullable=False, default="DEBIT_CREDIT")

    is_default = Column(Boolean, nullable=False, default=False)
    is_protected = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_on = Column(DateTime, server_default=func.now())

    group = relationship("AccountGroup", back_populates="classes")
    sub_classes = relationship(
        "AccountSubClass",
        back_populates="account_class",
        cascade="all, delete-orphan",
        order_by="AccountSubClass.code",
    )

    @property
    def full_code(self) -> str:
        return f"{self.group.code}{self.code}"


class AccountSubClass(Base):
    """Level 3 (moein): 2 digits under its class."""
    __tablename__ = "account_sub_classes"
    __table_args__ = (
        UniqueConstraint("class_id", "code", name="uq_account_sub_class_code"),
    )

    sub_class_id = Column(Integer, primary_key=True, index=True)
    class_id = Column(
        Integer,
        ForeignKey("account_classes.class_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code = Column(String(2), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    has_details = Column(Boolean, nullable=False, default=False)
    is_default = Column(Boolean, nullable=False, default=False)
    is_protected = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_on = Column(DateTime, server_default=func.now())

    account_class = relationship("AccountClass", back_populates="sub_classes")
    details = relationship(
        "AccountDetail",
        back_populates="sub_class",
        cascade="all, delete-orphan",
        order_by="AccountDetail.code",
    )

    @property
    def full_code(self) -> str:
        return f"{self.account_class.full_code}{self.code}"


class AccountDetail(Base):
    """Level 4 (tafsili): 2 digits under its subclass."""
    __tablename__ = "account_details"
    __table_args__ = (
        UniqueConstraint("sub_class_id", "code", name="uq_account_detail_code"),
    )

    detail_id = Column(Integer, primary_key=True, index=True)
    sub_class_id = Column(
        Integer,
        ForeignKey("account_sub_classes.sub_class_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code = Column(String(2), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    is_default = Column(Boolean, nullable=False, default=False)
    is_protected = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_on = Column(DateTime, server_default=func.now())

    sub_class = relationship("AccountSubClass", back_populates="details")

    @property
    def full_code(self) -> str:
        return f"{self.sub_class.full_code}{self.code}"
