from pydantic import BaseModel, Field
from datetime import date
from typing import Optional


class DefinitionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    due_date: date
    amount: float = Field(ge=0)
    is_default: bool = True


class DefinitionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    due_date: Optional[date] = None
    amount: Optional[float] = Field(None, ge=0)
    order_no: Optional[int] = Field(None, ge=1)


class DefinitionOut(BaseModel):
    definition_id: int
    project_id: int
    title: str
    due_date: date
    amount: float
    is_default: bool
    order_no: int

    class Config:
        from_attributes = True


class UserInstallmentCreate(BaseModel):
    """Manual (customized) installment for one member."""
    user_id: int
    title: str = Field(..., min_length=1, max_length=200)
    due_date: date
    share_amount: float = Field(ge=0)


class UserInstallmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    due_date: Optional[date] = None
    share_amount: Optional[float] = Field(None, ge=0)


class UserInstallmentOut(BaseModel):
    user_installment_id: int
    user_id: int
    unit_id: int
    definition_id: Optional[int] = None

    title: str
    due_date: Optional[date] = None
    share_amount: float
    paid_amount: float
    remaining_amount: float

    status: str
    is_customized: bool
