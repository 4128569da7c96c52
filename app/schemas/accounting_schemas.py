from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List, Literal

Nature = Literal["DEBIT", "CREDIT", "DEBIT_CREDIT"]
DocumentStatus = Literal["TEMPORARY", "PERMANENT"]


# ===== Coding =====

class GroupCreate(BaseModel):
    project_id: int
    fiscal_year_id: Optional[int] = None
    code: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    sort_order: int = 0


class ClassCreate(BaseModel):
    group_id: int
    code: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    nature: Nature = "DEBIT_CREDIT"
    sort_order: int = 0


class SubClassCreate(BaseModel):
    class_id: int
    code: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    has_details: bool = False
    sort_order: int = 0


class DetailCreate(BaseModel):
    sub_class_id: int
    code: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    sort_order: int = 0


class CodingUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    nature: Optional[Nature] = None
    has_details: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class CodingInit(BaseModel):
    project_id: int
    fiscal_year_id: Optional[int] = None


# ===== Documents =====

class EntryIn(BaseModel):
    account_code: str = Field(..., min_length=1, max_length=20)
    account_name: Optional[str] = None
    description: Optional[str] = None
    debit: float = Field(0, ge=0)
    credit: float = Field(0, ge=0)


class EntryOut(BaseModel):
    entry_id: int
    account_code: str
    account_name: Optional[str] = None
    description: Optional[str] = None
    debit: float
    credit: float
    account_nature: Optional[str] = None

    class Config:
        from_attributes = True


class DocumentCreate(BaseModel):
    project_id: int
    fiscal_year_id: Optional[int] = None
    document_number: Optional[str] = None
    document_date: date
    description: Optional[str] = None
    status: DocumentStatus = "TEMPORARY"
    entries: List[EntryIn]


class DocumentUpdate(BaseModel):
    document_number: Optional[str] = None
    document_date: Optional[date] = None
    description: Optional[str] = None
    entries: Optional[List[EntryIn]] = None


class DocumentStatusIn(BaseModel):
    status: DocumentStatus


class DocumentOut(BaseModel):
    document_id: int
    project_id: int
    fiscal_year_id: Optional[int] = None
    document_number: str
    document_date: date
    description: Optional[str] = None
    total_debit: float
    total_credit: float
    status: str
    created_on: Optional[datetime] = None
    entries: List[EntryOut] = []

    class Config:
        from_attributes = True


# ===== Year end =====

class OpeningEntryIn(BaseModel):
    project_id: int
    fiscal_year_id: int
    document_date: Optional[date] = None
    description: Optional[str] = None
    entries: List[EntryIn]


class ClosingEntryIn(BaseModel):
    """Without ``entries`` the lines are built from the year's balances."""
    project_id: int
    fiscal_year_id: int
    document_date: Optional[date] = None
    description: Optional[str] = None
    entries: Optional[List[EntryIn]] = None


# ===== Common descriptions =====

class CommonDescriptionCreate(BaseModel):
    project_id: int
    text: str = Field(..., min_length=1, max_length=500)


class CommonDescriptionUpdate(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class CommonDescriptionOut(BaseModel):
    description_id: int
    project_id: int
    text: str
    usage_count: int
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True
