from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric, Text, ForeignKey
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class Payment(Base):
    __tablename__ = "payments"

    payment_id = Column(Integer, primary_key=True, index=True)
    user_installment_id = Column(
        Integer,
        ForeignKey("user_installments.user_installment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    payment_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(Text, nullable=True)

    # a payment carrying a receipt path is a receipt link, not money received
    receipt_image_path = Column(String(500), nullable=True)

    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_on = Column(DateTime, server_default=func.now())

    user_installment = relationship("UserInstallment", back_populates="payments")
