from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional, List


class MemberPaymentCreate(BaseModel):
    """Amount spread over the member's open installments."""
    user_id: int
    amount: float = Field(gt=0)
    payment_date: Optional[date] = None
    description: Optional[str] = None


class AppliedPaymentOut(BaseModel):
    payment_id: int
    user_installment_id: int
    title: str
    amount: float
    status: str


class MemberPaymentResult(BaseModel):
    project_id: int
    user_id: int
    amount: float
    applied_amount: float
    remaining_amount: float
    payments: List[AppliedPaymentOut]


class PaymentCreate(BaseModel):
    user_installment_id: int
    amount: float = Field(gt=0)
    payment_date: Optional[date] = None
    description: Optional[str] = None
    receipt_image_path: Optional[str] = None

    @field_validator("description", "receipt_image_path", mode="before")
    def empty_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class PaymentUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    payment_date: Optional[date] = None
    description: Optional[str] = None
    receipt_image_path: Optional[str] = None


class PaymentOut(BaseModel):
    payment_id: int
    user_installment_id: int
    payment_date: date
    amount: float
    description: Optional[str] = None
    receipt_image_path: Optional[str] = None
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True
