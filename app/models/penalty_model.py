from sqlalchemy import (
    Column, Integer, DateTime, Numeric, Text, ForeignKey
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class Penalty(Base):
    __tablename__ = "penalties"

    penalty_id = Column(Integer, primary_key=True, index=True)

    # one penalty per installment
    user_installment_id = Column(
        Integer,
        ForeignKey("user_installments.user_installment_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    days_late = Column(Integer, nullable=False, default=0)
    daily_rate = Column(Numeric(18, 2), nullable=False, default=0)
    total_penalty = Column(Numeric(18, 2), nullable=False, default=0)
    reason = Column(Text, nullable=True)

    created_on = Column(DateTime, server_default=func.now())
    updated_on = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user_installment = relationship("UserInstallment", back_populates="penalty")
