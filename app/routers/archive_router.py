import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.utils.activity_logger import log_activity
from app.utils.financial_calculations import money, ZERO
from app.utils.archive_ops import (
    ArchiveConflict,
    archive_project,
    archive_user,
    restore_project,
    restore_user,
)
from app.models.user_model import User
from app.models.project_model import Project
from app.models.archive_model import ArchivedProject, ArchivedUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/archive", tags=["Archive"])


def _unit_stats(units) -> dict:
    installments = 0
    payments = 0
    paid = ZERO
    share = ZERO
    for u in units:
        for ui in u.installments:
            installments += 1
            share += money(ui.share_amount)
            for p in ui.payments:
                payments += 1
                if money(p.amount) > 0 and not p.receipt_image_path:
                    paid += money(p.amount)
    return {
        "unit_count": len(units),
        "installment_count": installments,
        "payment_count": payments,
        "total_share": float(money(share)),
        "total_paid": float(money(paid)),
    }


def _page(q, page: int, limit: int):
    total = q.count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit if total else 0
    return rows, {"page": page, "limit": limit, "total": total, "pages": pages}


# =================================================
# 🔹 ARCHIVE
# =================================================
@router.post("/projects/{project_id}", status_code=status.HTTP_201_CREATED)
def archive_project_route(
        project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    project = db.query(Project).filter(Project.project_id == project_id).first()
    if not project:
        raise HTTPException(404, "Project not found")

    name = project.name
    try:
        archived = archive_project(db, project, archived_by=admin.user_id)
        log_activity(db, admin.user_id, "ARCHIVE", "PROJECT", project_id, f"Project {name} archived")
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Archiving project_id=%s failed", project_id)
        raise

    return {
        "message": "archived",
        "archived_project_id": archived.archived_project_id,
        "original_project_id": project_id,
        "name": name,
    }


@router.post("/users/{user_id}", status_code=status.HTTP_201_CREATED)
def archive_user_route(
        user_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(404, "User not found")

    username = user.username
    try:
        archived = archive_user(db, user, archived_by=admin.user_id)
        log_activity(db, admin.user_id, "ARCHIVE", "USER", user_id, f"User {username} archived")
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(400, str(e))
    except Exception:
        db.rollback()
        logger.exception("Archiving user_id=%s failed", user_id)
        raise

    return {
        "message": "archived",
        "archived_user_id": archived.archived_user_id,
        "original_user_id": user_id,
        "username": username,
    }


# =================================================
# 🔹 LISTS
# =================================================
@router.get("/projects")
def list_archived_projects(
        search: Optional[str] = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=200),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    q = db.query(ArchivedProject)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(ArchivedProject.name.ilike(like), ArchivedProject.description.ilike(like)))
    q = q.order_by(ArchivedProject.archived_at.desc(), ArchivedProject.archived_project_id.desc())

    rows, pagination = _page(q, page, limit)
    return {
        "items": [
            {
                "archived_project_id": a.archived_project_id,
                "original_project_id": a.original_project_id,
                "name": a.name,
                "description": a.description,
                "status": a.status,
                "archived_at": a.archived_at,
                "archived_by": a.archived_by,
                "definition_count": len(a.definitions),
                **_unit_stats(a.units),
            }
            for a in rows
        ],
        "pagination": pagination,
    }


@router.get("/users")
def list_archived_users(
        search: Optional[str] = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=200),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    q = db.query(ArchivedUser)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                ArchivedUser.username.ilike(like),
                ArchivedUser.first_name.ilike(like),
                ArchivedUser.last_name.ilike(like),
                ArchivedUser.email.ilike(like),
            )
        )
    q = q.order_by(ArchivedUser.archived_at.desc(), ArchivedUser.archived_user_id.desc())

    rows, pagination = _page(q, page, limit)
    return {
        "items": [
            {
                "archived_user_id": a.archived_user_id,
                "original_user_id": a.original_user_id,
                "username": a.username,
                "first_name": a.first_name,
                "last_name": a.last_name,
                "role": a.role,
                "archived_at": a.archived_at,
                "archived_by": a.archived_by,
                **_unit_stats(a.units),
            }
            for a in rows
        ],
        "pagination": pagination,
    }


# =================================================
# 🔹 RESTORE / DELETE
# =================================================
@router.post("/projects/{archived_project_id}/restore")
def restore_project_route(
        archived_project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    archived = (
        db.query(ArchivedProject)
        .filter(ArchivedProject.archived_project_id == archived_project_id)
        .first()
    )
    if not archived:
        raise HTTPException(404, "Archived project not found")

    try:
        project, skipped = restore_project(db, archived)
        log_activity(db, admin.user_id, "RESTORE", "PROJECT", project.project_id, f"Project {project.name} restored")
        db.commit()
    except ArchiveConflict as e:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, str(e))
    except Exception:
        db.rollback()
        logger.exception("Restoring archived_project_id=%s failed", archived_project_id)
        raise

    return {
        "message": "restored",
        "project_id": project.project_id,
        "name": project.name,
        "skipped_units": skipped,
    }


@router.post("/users/{archived_user_id}/restore")
def restore_user_route(
        archived_user_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    archived = db.query(ArchivedUser).filter(ArchivedUser.archived_user_id == archived_user_id).first()
    if not archived:
        raise HTTPException(404, "Archived user not found")

    try:
        user, skipped = restore_user(db, archived)
        log_activity(db, admin.user_id, "RESTORE", "USER", user.user_id, f"User {user.username} restored")
        db.commit()
    except ArchiveConflict as e:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, str(e))
    except Exception:
        db.rollback()
        logger.exception("Restoring archived_user_id=%s failed", archived_user_id)
        raise

    return {
        "message": "restored",
        "user_id": user.user_id,
        "username": user.username,
        "skipped_units": skipped,
    }


@router.delete("/projects/{archived_project_id}")
def delete_archived_project(
        archived_project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    archived = (
        db.query(ArchivedProject)
        .filter(ArchivedProject.archived_project_id == archived_project_id)
        .first()
    )
    if not archived:
        raise HTTPException(404, "Archived project not found")

    name = archived.name
    db.delete(archived)
    log_activity(db, admin.user_id, "PURGE", "ARCHIVED_PROJECT", archived_project_id, f"{name} permanently deleted")
    db.commit()
    return {"message": "deleted", "archived_project_id": archived_project_id}


@router.delete("/users/{archived_user_id}")
def delete_archived_user(
        archived_user_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    archived = db.query(ArchivedUser).filter(ArchivedUser.archived_user_id == archived_user_id).first()
    if not archived:
        raise HTTPException(404, "Archived user not found")

    username = archived.username
    db.delete(archived)
    log_activity(db, admin.user_id, "PURGE", "ARCHIVED_USER", archived_user_id, f"{username} permanently deleted")
    db.commit()
    return {"message": "deleted", "archived_user_id": archived_user_id}
