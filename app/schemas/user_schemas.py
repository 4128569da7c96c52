from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, Literal

UserRole = Literal["ADMIN", "BUYER", "CONTRACTOR", "SUPPLIER", "USER"]


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=4)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    role: UserRole = "USER"
    is_active: bool = True

    @field_validator("username", mode="before")
    def strip_username(cls, v):
        return str(v).strip() if v is not None else v

    @field_validator("first_name", "last_name", "email", "phone", mode="before")
    def empty_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    password: Optional[str] = Field(None, min_length=4)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    user_id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str
    is_active: bool

    daily_penalty_amount: float
    penalty_grace_days: Optional[int] = None

    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class PenaltySettingsIn(BaseModel):
    daily_penalty_amount: float = Field(gt=0)
    penalty_grace_days: int = Field(ge=0)


class PenaltySettingsOut(BaseModel):
    user_id: int
    username: str
    daily_penalty_amount: float
    penalty_grace_days: Optional[int] = None
