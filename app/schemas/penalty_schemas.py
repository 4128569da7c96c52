from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional


class PenaltyCreate(BaseModel):
    user_installment_id: int
    days_late: int = Field(ge=0)
    daily_rate: float = Field(ge=0)
    total_penalty: Optional[float] = Field(None, ge=0)
    reason: Optional[str] = None


class PenaltyUpdate(BaseModel):
    days_late: Optional[int] = Field(None, ge=0)
    daily_rate: Optional[float] = Field(None, ge=0)
    total_penalty: Optional[float] = Field(None, ge=0)
    reason: Optional[str] = None


class PenaltyOut(BaseModel):
    penalty_id: int
    user_installment_id: int
    days_late: int
    daily_rate: float
    total_penalty: float
    reason: Optional[str] = None
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class PenaltyCalculationRequest(BaseModel):
    """Fallback values when the member has no penalty settings of their own."""
    daily_penalty_amount: Optional[float] = Field(None, ge=0)
    penalty_grace_days: Optional[int] = Field(None, ge=0)
    include_unpaid: bool = False
    as_on: Optional[date] = None
