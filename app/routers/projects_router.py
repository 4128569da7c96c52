import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin, get_current_user
from app.utils.activity_logger import log_activity
from app.models.user_model import User
from app.models.project_model import Project, FiscalYear
from app.models.unit_model import Unit
from app.schemas import (
    ProjectCreate,
    ProjectUpdate,
    ProjectOut,
    FiscalYearCreate,
    FiscalYearUpdate,
    FiscalYearOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])


def _get_project(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.project_id == project_id).first()
    if not project:
        raise HTTPException(404, "Project not found")
    return project


# =================================================
# 🔹 PROJECTS
# =================================================
@router.get("", response_model=List[ProjectOut])
def list_projects(
        status_filter: Optional[str] = Query(None, alias="status"),
        search: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    """Admins see every project; members only the projects they hold a unit in."""
    q = db.query(Project)
    if current_user.role != "ADMIN":
        mine = db.query(Unit.project_id).filter(Unit.user_id == current_user.user_id)
        q = q.filter(Project.project_id.in_(mine))
    if status_filter:
        q = q.filter(Project.status == status_filter.upper())
    if search:
        q = q.filter(Project.name.ilike(f"%{search.strip()}%"))
    return q.order_by(Project.project_id.asc()).all()


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
        payload: ProjectCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    name = payload.name.strip()
    if db.query(Project).filter(Project.name == name).first():
        raise HTTPException(status.HTTP_409_CONFLICT, "Project name already exists")

    project = Project(
        name=name,
        description=payload.description,
        status=payload.status,
        created_by=admin.user_id,
    )

    try:
        db.add(project)
        db.flush()
        log_activity(db, admin.user_id, "CREATE", "PROJECT", project.project_id, f"Project {name} created")
        db.commit()
        db.refresh(project)
        return project
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "Project name already exists")
    except Exception:
        db.rollback()
        raise


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(
        project_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    project = _get_project(db, project_id)
    if current_user.role != "ADMIN":
        member = (
            db.query(Unit.unit_id)
            .filter(Unit.project_id == project_id, Unit.user_id == current_user.user_id)
            .first()
        )
        if not member:
            raise HTTPException(status.HTTP_403_FORBIDDEN, "You are not a member of this project")
    return project


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(
        project_id: int,
        payload: ProjectUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    project = _get_project(db, project_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name"):
        name = data["name"].strip()
        clash = (
            db.query(Project)
            .filter(Project.name == name, Project.project_id != project_id)
            .first()
        )
        if clash:
            raise HTTPException(status.HTTP_409_CONFLICT, "Project name already exists")
        data["name"] = name

    for field, value in data.items():
        setattr(project, field, value)

    try:
        log_activity(db, admin.user_id, "UPDATE", "PROJECT", project_id, f"Project {project.name} updated")
        db.commit()
        db.refresh(project)
        return project
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "Project name already exists")
    except Exception:
        db.rollback()
        raise


@router.delete("/{project_id}")
def delete_project(
        project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    project = _get_project(db, project_id)

    unit_count = db.query(Unit).filter(Unit.project_id == project_id).count()
    if unit_count:
        logger.warning("Delete refused for project_id=%s: %s unit(s)", project_id, unit_count)
        raise HTTPException(
            400,
            f"Project has {unit_count} unit(s). Archive the project instead of deleting it.",
        )

    name = project.name
    try:
        db.delete(project)
        log_activity(db, admin.user_id, "DELETE", "PROJECT", project_id, f"Project {name} deleted")
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": "deleted", "project_id": project_id}


# =================================================
# 🔹 FISCAL YEARS
# =================================================
@router.get("/{project_id}/fiscal-years", response_model=List[FiscalYearOut])
def list_fiscal_years(
        project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _get_project(db, project_id)
    return (
        db.query(FiscalYear)
        .filter(FiscalYear.project_id == project_id)
        .order_by(FiscalYear.year.desc())
        .all()
    )


@router.post(
    "/{project_id}/fiscal-years",
    response_model=FiscalYearOut,
    status_code=status.HTTP_201_CREATED,
)
def create_fiscal_year(
        project_id: int,
        payload: FiscalYearCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    project = _get_project(db, project_id)

    exists = (
        db.query(FiscalYear)
        .filter(FiscalYear.project_id == project_id, FiscalYear.year == payload.year)
        .first()
    )
    if exists:
        raise HTTPException(status.HTTP_409_CONFLICT, "Fiscal year already exists for this project")

    fy = FiscalYear(**payload.model_dump())

    try:
        project.fiscal_years.append(fy)
        db.flush()
        log_activity(db, admin.user_id, "CREATE", "FISCAL_YEAR", fy.fiscal_year_id, f"Fiscal year {fy.year} created")
        db.commit()
        db.refresh(fy)
        return fy
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "Fiscal year already exists for this project")
    except Exception:
        db.rollback()
        raise


@router.put("/{project_id}/fiscal-years/{fiscal_year_id}", response_model=FiscalYearOut)
def update_fiscal_year(
        project_id: int,
        fiscal_year_id: int,
        payload: FiscalYearUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    fy = (
        db.query(FiscalYear)
        .filter(FiscalYear.project_id == project_id, FiscalYear.fiscal_year_id == fiscal_year_id)
        .first()
    )
    if not fy:
        raise HTTPException(404, "Fiscal year not found")

    data = payload.model_dump(exclude_unset=True)

    start = data.get("start_date", fy.start_date)
    end = data.get("end_date", fy.end_date)
    if start >= end:
        raise HTTPException(400, "start_date must be before end_date")

    if "year" in data and data["year"] != fy.year:
        clash = (
            db.query(FiscalYear)
            .filter(
                FiscalYear.project_id == project_id,
                FiscalYear.year == data["year"],
                FiscalYear.fiscal_year_id != fiscal_year_id,
            )
            .first()
        )
        if clash:
            raise HTTPException(status.HTTP_409_CONFLICT, "Fiscal year already exists for this project")

    for field, value in data.items():
        setattr(fy, field, value)

    log_activity(db, admin.user_id, "UPDATE", "FISCAL_YEAR", fy.fiscal_year_id, f"Fiscal year {fy.year} updated")
    db.commit()
    db.refresh(fy)
    return fy


@router.delete("/{project_id}/fiscal-years/{fiscal_year_id}")
def delete_fiscal_year(
        project_id: int,
        fiscal_year_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    fy = (
        db.query(FiscalYear)
        .filter(FiscalYear.project_id == project_id, FiscalYear.fiscal_year_id == fiscal_year_id)
        .first()
    )
    if not fy:
        raise HTTPException(404, "Fiscal year not found")

    year = fy.year
    db.delete(fy)
    log_activity(db, admin.user_id, "DELETE", "FISCAL_YEAR", fiscal_year_id, f"Fiscal year {year} deleted")
    db.commit()
    return {"message": "deleted", "fiscal_year_id": fiscal_year_id}
