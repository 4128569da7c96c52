from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import Optional, Literal

ProjectStatus = Literal["ACTIVE", "INACTIVE", "COMPLETED"]


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: ProjectStatus = "ACTIVE"


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None


class ProjectOut(BaseModel):
    project_id: int
    name: str
    description: Optional[str] = None
    status: str
    created_by: Optional[int] = None
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None

    class Config:
        from_attributes = True


# ===== Fiscal years =====

class FiscalYearCreate(BaseModel):
    year: int = Field(..., ge=1000, le=9999)
    start_date: date
    end_date: date
    description: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class FiscalYearUpdate(BaseModel):
    year: Optional[int] = Field(None, ge=1000, le=9999)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    is_closed: Optional[bool] = None


class FiscalYearOut(BaseModel):
    fiscal_year_id: int
    project_id: int
    year: int
    start_date: date
    end_date: date
    description: Optional[str] = None
    is_active: bool
    is_closed: bool
    opening_document_id: Optional[int] = None
    closing_document_id: Optional[int] = None

    class Config:
        from_attributes = True


# ===== Members / units =====

class MemberAdd(BaseModel):
    user_id: int
    unit_number: str = Field(..., min_length=1, max_length=50)
    area: float = Field(gt=0)


class MemberUpdate(BaseModel):
    unit_number: Optional[str] = Field(None, min_length=1, max_length=50)
    area: Optional[float] = Field(None, gt=0)


class MemberOut(BaseModel):
    unit_id: int
    project_id: int
    user_id: int
    username: str
    full_name: str
    role: str
    unit_number: str
    area: float

    total_share: float
    total_paid: float
    total_remaining: float
    total_penalty: float
