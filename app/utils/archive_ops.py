"""
Archive copy / restore.

Archiving copies a project (or a user) and everything hanging off its units
into the ``archived_*`` tables, then deletes the live rows. Restoring rebuilds
live rows from the snapshot. Callers commit or roll back.
"""
import logging
from typing import List, Dict, Any, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.project_model import Project
from app.models.user_model import User
from app.models.unit_model import Unit
from app.models.installment_model import InstallmentDefinition, UserInstallment
from app.models.payment_model import Payment
from app.models.penalty_model import Penalty
from app.models.archive_model import (
    ArchivedProject,
    ArchivedUser,
    ArchivedUnit,
    ArchivedInstallmentDefinition,
    ArchivedUserInstallment,
    ArchivedPayment,
    ArchivedPenalty,
)
from app.utils.finance_ops import recalculate_project_shares, refresh_status

logger = logging.getLogger(__name__)


class ArchiveConflict(Exception):
    """A live row with the same unique name already exists."""


# -------------------------------------------------
# Copy helpers
# -------------------------------------------------
def _snapshot_installment(ui: UserInstallment) -> ArchivedUserInstallment:
    snap = ArchivedUserInstallment(
        original_user_installment_id=ui.user_installment_id,
        original_definition_id=ui.definition_id,
        title=ui.effective_title,
        due_date=ui.effective_due_date,
        share_amount=ui.share_amount,
        status=ui.status,
        is_customized=ui.is_customized,
    )
    for p in ui.payments:
        snap.payments.append(
            ArchivedPayment(
                original_payment_id=p.payment_id,
                payment_date=p.payment_date,
                amount=p.amount,
                description=p.description,
                receipt_image_path=p.receipt_image_path,
            )
        )
    if ui.penalty is not None:
        pen = ui.penalty
        snap.penalty = ArchivedPenalty(
            original_penalty_id=pen.penalty_id,
            days_late=pen.days_late,
            daily_rate=pen.daily_rate,
            total_penalty=pen.total_penalty,
            reason=pen.reason,
        )
    return snap


def _snapshot_unit(unit: Unit) -> ArchivedUnit:
    snap = ArchivedUnit(
        original_unit_id=unit.unit_id,
        original_project_id=unit.project_id,
        original_user_id=unit.user_id,
        unit_number=unit.unit_number,
        area=unit.area,
    )
    for ui in unit.user_installments:
        snap.installments.append(_snapshot_installment(ui))
    return snap


def _restore_installments(
        snap_unit: ArchivedUnit,
        unit: Unit,
        definition_map: Dict[int, InstallmentDefinition],
) -> int:
    count = 0
    for snap in snap_unit.installments:
        definition = definition_map.get(snap.original_definition_id)
        linked = definition is not None and not snap.is_customized

        ui = UserInstallment(
            user_id=unit.user_id,
            definition=definition,
            title=None if linked else snap.title,
            due_date=None if linked else snap.due_date,
            share_amount=snap.share_amount,
            status=snap.status or "PENDING",
            is_customized=not linked,
        )
        for p in snap.payments:
            ui.payments.append(
                Payment(
                    payment_date=p.payment_date,
                    amount=p.amount,
                    description=p.description,
                    receipt_image_path=p.receipt_image_path,
                )
            )
        if snap.penalty is not None:
            ui.penalty = Penalty(
                days_late=snap.penalty.days_late,
                daily_rate=snap.penalty.daily_rate,
                total_penalty=snap.penalty.total_penalty,
                reason=snap.penalty.reason,
            )
        unit.user_installments.append(ui)
        count += 1
    return count


# -------------------------------------------------
# Projects
# -------------------------------------------------
def archive_project(db: Session, project: Project, archived_by: Optional[int] = None) -> ArchivedProject:
    archived = ArchivedProject(
        original_project_id=project.project_id,
        name=project.name,
        description=project.description,
        status=project.status,
        created_on=project.created_on,
        archived_by=archived_by,
    )

    for d in project.installment_definitions:
        archived.definitions.append(
            ArchivedInstallmentDefinition(
                original_definition_id=d.definition_id,
                title=d.title,
                due_date=d.due_date,
                amount=d.amount,
                is_default=d.is_default,
                order_no=d.order_no,
            )
        )

    for unit in project.units:
        archived.units.append(_snapshot_unit(unit))

    db.add(archived)
    db.flush()

    db.delete(project)
    db.flush()

    logger.info(
        "Archived project_id=%s as archived_project_id=%s (%s units)",
        archived.original_project_id, archived.archived_project_id, len(archived.units),
    )
    return archived


def restore_project(db: Session, archived: ArchivedProject) -> Tuple[Project, List[Dict[str, Any]]]:
    exists = db.query(Project).filter(Project.name == archived.name).first()
    if exists:
        raise ArchiveConflict(f"A project named '{archived.name}' already exists")

    project = Project(
        name=archived.name,
        description=archived.description,
        status=archived.status or "ACTIVE",
    )
    db.add(project)
    db.flush()

    definition_map: Dict[int, InstallmentDefinition] = {}
    for snap in sorted(archived.definitions, key=lambda d: (d.order_no or 0, d.archived_definition_id)):
        d = InstallmentDefinition(
            project=project,
            title=snap.title,
            due_date=snap.due_date,
            amount=snap.amount,
            is_default=True if snap.is_default is None else snap.is_default,
            order_no=snap.order_no or 1,
        )
        db.add(d)
        definition_map[snap.original_definition_id] = d
    db.flush()

    skipped = []
    for snap_unit in archived.units:
        user = db.query(User).filter(User.user_id == snap_unit.original_user_id).first()
        if not user:
            skipped.append({
                "unit_number": snap_unit.unit_number,
                "original_user_id": snap_unit.original_user_id,
                "reason": "user no longer exists",
            })
            continue

        unit = Unit(
            project=project,
            user=user,
            unit_number=snap_unit.unit_number,
            area=snap_unit.area,
        )
        db.add(unit)
        db.flush()
        _restore_installments(snap_unit, unit, definition_map)

    db.flush()
    for unit in project.units:
        for ui in unit.user_installments:
            refresh_status(ui)

    db.delete(archived)
    db.flush()

    logger.info("Restored project '%s' as project_id=%s (%s units skipped)", project.name, project.project_id, len(skipped))
    return project, skipped


# -------------------------------------------------
# Users
# -------------------------------------------------
def archive_user(db: Session, user: User, archived_by: Optional[int] = None) -> ArchivedUser:
    if user.role == "ADMIN":
        raise ValueError("Admin users cannot be archived")

    archived = ArchivedUser(
        original_user_id=user.user_id,
        username=user.username,
        password_hash=user.password_hash,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        is_active=user.is_active,
        daily_penalty_amount=user.daily_penalty_amount,
        penalty_grace_days=user.penalty_grace_days,
        created_on=user.created_on,
        archived_by=archived_by,
    )

    project_ids = set()
    for unit in user.units:
        archived.units.append(_snapshot_unit(unit))
        project_ids.add(unit.project_id)

    db.add(archived)
    db.flush()

    db.delete(user)
    db.flush()

    # remaining members now share a smaller total area
    for pid in project_ids:
        recalculate_project_shares(db, pid)

    logger.info(
        "Archived user_id=%s as archived_user_id=%s (%s units)",
        archived.original_user_id, archived.archived_user_id, len(archived.units),
    )
    return archived


def restore_user(db: Session, archived: ArchivedUser) -> Tuple[User, List[Dict[str, Any]]]:
    exists = db.query(User).filter(User.username == archived.username).first()
    if exists:
        raise ArchiveConflict(f"Username '{archived.username}' already exists")

    user = User(
        username=archived.username,
        password_hash=archived.password_hash,
        first_name=archived.first_name,
        last_name=archived.last_name,
        email=archived.email,
        phone=archived.phone,
        role=archived.role or "USER",
        is_active=True if archived.is_active is None else archived.is_active,
        daily_penalty_amount=archived.daily_penalty_amount or 0,
        penalty_grace_days=archived.penalty_grace_days,
    )
    db.add(user)
    db.flush()

    skipped = []
    project_ids = set()
    for snap_unit in archived.units:
        project = db.query(Project).filter(Project.project_id == snap_unit.original_project_id).first()
        if not project:
            skipped.append({
                "unit_number": snap_unit.unit_number,
                "original_project_id": snap_unit.original_project_id,
                "reason": "project no longer exists",
            })
            continue

        taken = (
            db.query(Unit)
            .filter(Unit.project_id == project.project_id, Unit.unit_number == snap_unit.unit_number)
            .first()
        )
        if taken:
            skipped.append({
                "unit_number": snap_unit.unit_number,
                "original_project_id": snap_unit.original_project_id,
                "reason": "unit number already used in project",
            })
            continue

        definition_map = {
            d.definition_id: d
            for d in db.query(InstallmentDefinition)
            .filter(InstallmentDefinition.project_id == project.project_id)
            .all()
        }

        unit = Unit(
            project=project,
            user=user,
            unit_number=snap_unit.unit_number,
            area=snap_unit.area,
        )
        db.add(unit)
        db.flush()
        _restore_installments(snap_unit, unit, definition_map)
        project_ids.add(project.project_id)

    db.flush()
    for pid in project_ids:
        recalculate_project_shares(db, pid)

    db.delete(archived)
    db.flush()

    logger.info("Restored user '%s' as user_id=%s (%s units skipped)", user.username, user.user_id, len(skipped))
    return user, skipped
