import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin, get_current_user, ensure_self_or_admin
from app.utils.activity_logger import log_activity
from app.utils.financial_calculations import money, user_share, installment_status, ZERO
from app.utils.finance_ops import (
    project_total_area,
    project_installments,
    recalculate_project_shares,
    installment_paid,
    refresh_status,
)
from app.models.user_model import User
from app.models.project_model import Project
from app.models.unit_model import Unit
from app.models.installment_model import InstallmentDefinition, UserInstallment
from app.schemas import (
    DefinitionCreate,
    DefinitionUpdate,
    DefinitionOut,
    UserInstallmentCreate,
    UserInstallmentUpdate,
    UserInstallmentOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/finance", tags=["Installments"])


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def _get_project(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.project_id == project_id).first()
    if not project:
        raise HTTPException(404, "Project not found")
    return project


def _get_user_installment(db: Session, user_installment_id: int) -> UserInstallment:
    ui = (
        db.query(UserInstallment)
        .filter(UserInstallment.user_installment_id == user_installment_id)
        .first()
    )
    if not ui:
        raise HTTPException(404, "Installment not found")
    return ui


def installment_out(ui: UserInstallment) -> UserInstallmentOut:
    share = money(ui.share_amount)
    paid = installment_paid(ui)
    return UserInstallmentOut(
        user_installment_id=ui.user_installment_id,
        user_id=ui.user_id,
        unit_id=ui.unit_id,
        definition_id=ui.definition_id,
        title=ui.effective_title,
        due_date=ui.effective_due_date,
        share_amount=float(share),
        paid_amount=float(paid),
        remaining_amount=float(max(share - paid, ZERO)),
        status=installment_status(share, paid, ui.effective_due_date),
        is_customized=bool(ui.is_customized),
    )


# =================================================
# 🔹 INSTALLMENT DEFINITIONS
# =================================================
@router.get("/projects/{project_id}/installment-definitions", response_model=List[DefinitionOut])
def list_definitions(
        project_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    _get_project(db, project_id)
    return (
        db.query(InstallmentDefinition)
        .filter(InstallmentDefinition.project_id == project_id)
        .order_by(InstallmentDefinition.order_no.asc(), InstallmentDefinition.definition_id.asc())
        .all()
    )


@router.post(
    "/projects/{project_id}/installment-definitions",
    response_model=DefinitionOut,
    status_code=status.HTTP_201_CREATED,
)
def create_definition(
        project_id: int,
        payload: DefinitionCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """
    Add an installment to the project schedule and give every unit its share:
    share = amount * unit.area / total project area.
    """
    project = _get_project(db, project_id)

    title = payload.title.strip()
    if not title:
        raise HTTPException(400, "Title is required")

    max_order = (
        db.query(func.max(InstallmentDefinition.order_no))
        .filter(InstallmentDefinition.project_id == project_id)
        .scalar()
    )

    try:
        d = InstallmentDefinition(
            project=project,
            title=title,
            due_date=payload.due_date,
            amount=money(payload.amount),
            is_default=payload.is_default,
            order_no=(max_order or 0) + 1,
        )
        db.add(d)
        db.flush()

        total_area = project_total_area(db, project_id)
        units = db.query(Unit).filter(Unit.project_id == project_id).all()
        for unit in units:
            ui = UserInstallment(
                user_id=unit.user_id,
                unit=unit,
                definition=d,
                share_amount=user_share(d.amount, unit.area, total_area),
                is_customized=False,
            )
            ui.status = installment_status(ui.share_amount, ZERO, d.due_date)
            db.add(ui)

        log_activity(
            db, admin.user_id, "CREATE", "INSTALLMENT_DEFINITION", d.definition_id,
            f"{title} ({d.amount}) for {len(units)} unit(s)",
        )
        db.commit()
        db.refresh(d)
        return d
    except Exception:
        db.rollback()
        raise


@router.put("/installment-definitions/{definition_id}", response_model=DefinitionOut)
def update_definition(
        definition_id: int,
        payload: DefinitionUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    d = db.query(InstallmentDefinition).filter(InstallmentDefinition.definition_id == definition_id).first()
    if not d:
        raise HTTPException(404, "Installment definition not found")

    data = payload.model_dump(exclude_unset=True)
    if "title" in data:
        data["title"] = data["title"].strip()
    if "amount" in data:
        data["amount"] = money(data["amount"])

    amount_changed = "amount" in data and money(data["amount"]) != money(d.amount)

    for field, value in data.items():
        setattr(d, field, value)

    try:
        if amount_changed:
            # customized shares keep their own amount
            recalculate_project_shares(db, d.project_id)
        else:
            db.flush()
            for ui in d.user_installments:
                refresh_status(ui)

        log_activity(db, admin.user_id, "UPDATE", "INSTALLMENT_DEFINITION", d.definition_id, f"{d.title} updated")
        db.commit()
        db.refresh(d)
        return d
    except Exception:
        db.rollback()
        raise


@router.delete("/installment-definitions/{definition_id}")
def delete_definition(
        definition_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    d = db.query(InstallmentDefinition).filter(InstallmentDefinition.definition_id == definition_id).first()
    if not d:
        raise HTTPException(404, "Installment definition not found")

    linked = [ui for ui in d.user_installments if not ui.is_customized]
    if linked:
        raise HTTPException(
            400,
            f"{len(linked)} member installment(s) still use this definition. Remove them first.",
        )

    detached = 0
    try:
        for ui in list(d.user_installments):
            ui.title = ui.title or d.title
            ui.due_date = ui.due_date or d.due_date
            ui.definition_id = None
            ui.definition = None
            detached += 1

        title = d.title
        db.delete(d)
        log_activity(
            db, admin.user_id, "DELETE", "INSTALLMENT_DEFINITION", definition_id,
            f"{title} deleted ({detached} customized installment(s) detached)",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": "deleted", "definition_id": definition_id, "detached_installments": detached}


# =================================================
# 🔹 USER INSTALLMENTS
# =================================================
@router.get("/projects/{project_id}/installments", response_model=List[UserInstallmentOut])
def list_user_installments(
        project_id: int,
        user_id: Optional[int] = Query(None),
        status_filter: Optional[str] = Query(None, alias="status"),
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    """Members can only list their own installments."""
    _get_project(db, project_id)

    if current_user.role != "ADMIN":
        user_id = current_user.user_id

    rows = project_installments(db, project_id, user_id).all()
    out = [installment_out(ui) for ui in rows]
    if status_filter:
        out = [r for r in out if r.status == status_filter.upper()]

    out.sort(key=lambda r: (r.user_id, r.due_date is None, r.due_date, r.user_installment_id))
    return out


@router.post(
    "/projects/{project_id}/installments",
    response_model=UserInstallmentOut,
    status_code=status.HTTP_201_CREATED,
)
def add_custom_installment(
        project_id: int,
        payload: UserInstallmentCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _get_project(db, project_id)
    unit = (
        db.query(Unit)
        .filter(Unit.project_id == project_id, Unit.user_id == payload.user_id)
        .first()
    )
    if not unit:
        raise HTTPException(404, "User is not a member of this project")

    ui = UserInstallment(
        user_id=unit.user_id,
        unit=unit,
        title=payload.title.strip(),
        due_date=payload.due_date,
        share_amount=money(payload.share_amount),
        is_customized=True,
    )
    ui.status = installment_status(ui.share_amount, ZERO, ui.due_date)

    try:
        db.add(ui)
        db.flush()
        log_activity(
            db, admin.user_id, "CREATE", "USER_INSTALLMENT", ui.user_installment_id,
            f"Custom installment '{ui.title}' for user_id={unit.user_id}",
        )
        db.commit()
        db.refresh(ui)
    except Exception:
        db.rollback()
        raise

    return installment_out(ui)


@router.get("/user-installments/{user_installment_id}", response_model=UserInstallmentOut)
def get_user_installment(
        user_installment_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    ui = _get_user_installment(db, user_installment_id)
    ensure_self_or_admin(current_user, ui.user_id)
    return installment_out(ui)


@router.put("/user-installments/{user_installment_id}", response_model=UserInstallmentOut)
def update_user_installment(
        user_installment_id: int,
        payload: UserInstallmentUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Any change to share, title or due date marks the installment as customized."""
    ui = _get_user_installment(db, user_installment_id)
    data = payload.model_dump(exclude_unset=True)
    if not data:
        return installment_out(ui)

    if "title" in data:
        ui.title = data["title"].strip()
    if "due_date" in data:
        ui.due_date = data["due_date"]
    if "share_amount" in data:
        ui.share_amount = money(data["share_amount"])

    # freeze the snapshot so later definition edits don't leak in
    if ui.definition is not None:
        ui.title = ui.title or ui.definition.title
        ui.due_date = ui.due_date or ui.definition.due_date
    ui.is_customized = True
    refresh_status(ui)

    log_activity(db, admin.user_id, "UPDATE", "USER_INSTALLMENT", ui.user_installment_id, f"{ui.effective_title} customized")
    db.commit()
    db.refresh(ui)
    return installment_out(ui)


@router.delete("/user-installments/{user_installment_id}")
def delete_user_installment(
        user_installment_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    ui = _get_user_installment(db, user_installment_id)
    if ui.payments:
        raise HTTPException(400, "Installment has payments. Delete the payments first.")

    title = ui.effective_title
    db.delete(ui)
    log_activity(db, admin.user_id, "DELETE", "USER_INSTALLMENT", user_installment_id, f"{title} deleted")
    db.commit()
    return {"message": "deleted", "user_installment_id": user_installment_id}
