from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.models.user_model import User
from app.models.project_model import Project
from app.models.accounting_document_model import CommonDescription
from app.schemas.accounting_schemas import (
    CommonDescriptionCreate,
    CommonDescriptionUpdate,
    CommonDescriptionOut,
)

router = APIRouter(prefix="/accounting/common-descriptions", tags=["Accounting Descriptions"])


def _get_description(db: Session, description_id: int) -> CommonDescription:
    d = db.query(CommonDescription).filter(CommonDescription.description_id == description_id).first()
    if not d:
        raise HTTPException(404, "Description not found")
    return d


# ===== LIST =====
@router.get("", response_model=List[CommonDescriptionOut])
def list_descriptions(
        project_id: int = Query(...),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Most used first."""
    return (
        db.query(CommonDescription)
        .filter(CommonDescription.project_id == project_id)
        .order_by(CommonDescription.usage_count.desc(), CommonDescription.text.asc())
        .all()
    )


# ===== CREATE =====
@router.post("", response_model=CommonDescriptionOut, status_code=status.HTTP_201_CREATED)
def create_description(
        payload: CommonDescriptionCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    if not db.query(Project.project_id).filter(Project.project_id == payload.project_id).first():
        raise HTTPException(404, "Project not found")

    text = payload.text.strip()
    if not text:
        raise HTTPException(400, "Text is required")

    d = CommonDescription(project_id=payload.project_id, text=text, usage_count=0)
    try:
        db.add(d)
        db.commit()
        db.refresh(d)
        return d
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "This description already exists")


# ===== UPDATE =====
@router.put("/{description_id}", response_model=CommonDescriptionOut)
def update_description(
        description_id: int,
        payload: CommonDescriptionUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    d = _get_description(db, description_id)
    text = payload.text.strip()
    if not text:
        raise HTTPException(400, "Text is required")

    d.text = text
    try:
        db.commit()
        db.refresh(d)
        return d
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "This description already exists")


@router.post("/{description_id}/use", response_model=CommonDescriptionOut)
def use_description(
        description_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    d = _get_description(db, description_id)
    d.usage_count = (d.usage_count or 0) + 1
    db.commit()
    db.refresh(d)
    return d


# ===== DELETE =====
@router.delete("/{description_id}")
def delete_description(
        description_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    d = _get_description(db, description_id)
    db.delete(d)
    db.commit()
    return {"message": "deleted", "description_id": description_id}
