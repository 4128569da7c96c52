"""
Database-side finance routines shared by the project, installment, payment and
penalty routers. Arithmetic lives in ``financial_calculations``; these helpers
load rows, apply it and flush. Callers own the transaction (commit/rollback).
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Dict, Any, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.system_settings_model import SystemSetting
from app.models.user_model import User
from app.models.unit_model import Unit
from app.models.installment_model import InstallmentDefinition, UserInstallment
from app.models.payment_model import Payment
from app.models.penalty_model import Penalty
from app.utils.financial_calculations import (
    money,
    user_share,
    paid_total,
    installment_status,
    calculate_penalty,
    allocate_payment,
    ZERO,
)

logger = logging.getLogger(__name__)

SETTING_DAILY_PENALTY = "DEFAULT_DAILY_PENALTY"
SETTING_GRACE_DAYS = "DEFAULT_PENALTY_GRACE_DAYS"

UNPAID_STATUSES = ("PENDING", "PARTIAL", "OVERDUE")


def get_setting(db: Session, key: str, default: str) -> str:
    row = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    return row.value if row else default


# -------------------------------------------------
# Shares
# -------------------------------------------------
def project_total_area(db: Session, project_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Unit.area), 0))
        .filter(Unit.project_id == project_id)
        .scalar()
    )
    return Decimal(str(total or 0))


def project_installments(db: Session, project_id: int, user_id: Optional[int] = None):
    q = (
        db.query(UserInstallment)
        .join(Unit, UserInstallment.unit_id == Unit.unit_id)
        .filter(Unit.project_id == project_id)
    )
    if user_id is not None:
        q = q.filter(UserInstallment.user_id == user_id)
    return q


def recalculate_project_shares(db: Session, project_id: int, today: Optional[date] = None) -> int:
    """Re-derive every non-customized share of the project from the current total area."""
    db.flush()
    total_area = project_total_area(db, project_id)

    updated = 0
    rows = (
        project_installments(db, project_id)
        .filter(UserInstallment.is_customized.is_(False))
        .filter(UserInstallment.definition_id.isnot(None))
        .all()
    )
    for ui in rows:
        new_share = user_share(ui.definition.amount, ui.unit.area, total_area)
        if money(ui.share_amount) != new_share:
            ui.share_amount = new_share
            updated += 1
        refresh_status(ui, today=today)

    logger.info("Recalculated shares for project_id=%s (%s changed)", project_id, updated)
    return updated


def create_installments_for_unit(db: Session, unit: Unit) -> List[UserInstallment]:
    definitions = (
        db.query(InstallmentDefinition)
        .filter(InstallmentDefinition.project_id == unit.project_id)
        .order_by(InstallmentDefinition.order_no.asc())
        .all()
    )
    created = []
    for d in definitions:
        ui = UserInstallment(
            user_id=unit.user_id,
            unit=unit,
            definition=d,
            share_amount=ZERO,
            status="PENDING",
            is_customized=False,
        )
        db.add(ui)
        created.append(ui)
    db.flush()
    return created


# -------------------------------------------------
# Status
# -------------------------------------------------
def installment_paid(ui: UserInstallment) -> Decimal:
    return paid_total(ui.payments)


def refresh_status(ui: UserInstallment, today: Optional[date] = None) -> str:
    ui.status = installment_status(
        ui.share_amount,
        installment_paid(ui),
        ui.effective_due_date,
        today=today,
    )
    return ui.status


# -------------------------------------------------
# Payments
# -------------------------------------------------
def unpaid_installments_by_due(db: Session, project_id: int, user_id: int) -> List[UserInstallment]:
    rows = (
        project_installments(db, project_id, user_id)
        .filter(UserInstallment.status.in_(UNPAID_STATUSES))
        .all()
    )
    return sorted(
        rows,
        key=lambda ui: (ui.effective_due_date or date.max, ui.user_installment_id),
    )


def apply_member_payment(
        db: Session,
        project_id: int,
        user_id: int,
        amount,
        payment_date: date,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
) -> Tuple[List[Dict[str, Any]], Decimal]:
    """Spread ``amount`` over the member's open installments, earliest due first."""
    installments = unpaid_installments_by_due(db, project_id, user_id)
    by_id = {ui.user_installment_id: ui for ui in installments}

    allocations, leftover = allocate_payment(
        amount,
        [(ui.user_installment_id, ui.share_amount, installment_paid(ui)) for ui in installments],
    )

    applied = []
    for ui_id, part in allocations:
        ui = by_id[ui_id]
        p = Payment(
            user_installment_id=ui_id,
            payment_date=payment_date,
            amount=part,
            description=description,
            created_by=created_by,
        )
        ui.payments.append(p)
        db.flush()
        refresh_status(ui)
        applied.append({
            "payment_id": p.payment_id,
            "user_installment_id": ui_id,
            "title": ui.effective_title,
            "amount": part,
            "status": ui.status,
        })

    return applied, leftover


# -------------------------------------------------
# Penalties
# -------------------------------------------------
def resolve_penalty_settings(
        db: Session,
        user: User,
        daily_amount=None,
        grace_days: Optional[int] = None,
) -> Tuple[Decimal, int]:
    """Member settings first, then the request values, then system settings."""
    daily = money(user.daily_penalty_amount)
    if daily <= 0 and daily_amount is not None:
        daily = money(daily_amount)
    if daily <= 0:
        daily = money(get_setting(db, SETTING_DAILY_PENALTY, "0"))

    # an explicit 0 grace is a real setting; only None falls through
    if user.penalty_grace_days is not None:
        grace = int(user.penalty_grace_days)
    elif grace_days is not None:
        grace = int(grace_days)
    else:
        grace = int(get_setting(db, SETTING_GRACE_DAYS, "0"))

    return daily, max(grace, 0)


def latest_paid_date(ui: UserInstallment) -> Optional[date]:
    dates = [
        p.payment_date for p in ui.payments
        if money(p.amount) > 0 and not p.receipt_image_path
    ]
    return max(dates) if dates else None


def calculate_member_penalties(
        db: Session,
        project_id: int,
        user: User,
        daily_amount,
        grace_days: int,
        include_unpaid: bool = False,
        as_on: Optional[date] = None,
        only_open: bool = True,
) -> Dict[str, Any]:
    """
    Upsert one penalty per late installment.

    Paid installments are measured at their latest payment date. With
    ``include_unpaid`` installments without payments are measured at ``as_on``.
    ``only_open`` limits the run to installments not yet fully paid.
    """
    daily = money(daily_amount)
    result = {
        "daily_amount": daily,
        "grace_days": grace_days,
        "updated_penalties": 0,
        "total_penalty_amount": ZERO,
        "items": [],
    }
    if daily <= 0:
        logger.info("Penalty run skipped for user_id=%s: daily amount not set", user.user_id)
        return result

    as_on = as_on or date.today()

    q = project_installments(db, project_id, user.user_id)
    if only_open:
        q = q.filter(UserInstallment.status.in_(UNPAID_STATUSES))

    for ui in q.all():
        measured_at = latest_paid_date(ui)
        if measured_at is None:
            if not include_unpaid:
                continue
            measured_at = as_on

        days_late, amount = calculate_penalty(ui.effective_due_date, measured_at, daily, grace_days)
        if amount <= 0:
            continue

        pen = ui.penalty
        if pen is None:
            pen = Penalty(user_installment_id=ui.user_installment_id)
            ui.penalty = pen
        pen.days_late = days_late
        pen.daily_rate = daily
        pen.total_penalty = amount
        pen.reason = f"{days_late} day(s) late after {grace_days} grace day(s)"

        result["updated_penalties"] += 1
        result["total_penalty_amount"] = money(result["total_penalty_amount"] + amount)
        result["items"].append({
            "user_installment_id": ui.user_installment_id,
            "title": ui.effective_title,
            "days_late": days_late,
            "total_penalty": amount,
        })

    db.flush()
    logger.info(
        "Penalties calculated for user_id=%s project_id=%s: %s rows, total=%s",
        user.user_id, project_id, result["updated_penalties"], result["total_penalty_amount"],
    )
    return result
